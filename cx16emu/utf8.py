"""UTF-8 encoding and decoding of single code points."""

_LENGTHS = (1,) * 16 + (0,) * 8 + (2, 2, 2, 2, 3, 3, 4, 0)
_MASKS = (0x00, 0x7F, 0x1F, 0x0F, 0x07)
_MINS = (4194304, 0, 128, 2048, 65536)
_SHIFT_CODE = (0, 18, 12, 6, 0)
_SHIFT_ERROR = (0, 6, 4, 2, 0)


def decode(data, offset=0):
    """Decode the character starting at ``offset`` in ``data``.

    Returns ``(code_point, next_offset)``. Invalid sequences, non-canonical
    encodings, surrogate halves and out-of-range values raise
    ``UnicodeDecodeError``; its ``end`` is the offset where decoding may
    resume, always at least one byte further on.
    """
    if not 0 <= offset < len(data):
        raise IndexError(f"offset {offset} outside data of length {len(data)}")
    s0, s1, s2, s3 = bytes(data[offset:offset + 4]).ljust(4, b"\0")
    length = _LENGTHS[s0 >> 3]
    next_offset = offset + (length or 1)

    code = (s0 & _MASKS[length]) << 18
    code |= (s1 & 0x3F) << 12
    code |= (s2 & 0x3F) << 6
    code |= s3 & 0x3F
    code >>= _SHIFT_CODE[length]

    error = (code < _MINS[length]) << 6
    error |= ((code >> 11) == 0x1B) << 7
    error |= (code > 0x10FFFF) << 8
    error |= (s1 & 0xC0) >> 2
    error |= (s2 & 0xC0) >> 4
    error |= s3 >> 6
    error ^= 0x2A
    error >>= _SHIFT_ERROR[length]

    if error:
        raise UnicodeDecodeError(
            "utf-8",
            bytes(data),
            offset,
            min(next_offset, len(data)),
            "invalid UTF-8 sequence",
        )
    return code, next_offset


def encode(code_point):
    """Encode one code point (0 to 0x10FFFF) as UTF-8 bytes."""
    if code_point < 0 or code_point > 0x10FFFF:
        raise ValueError(f"code point {code_point:#x} out of range")
    if code_point <= 0x7F:
        return bytes((code_point,))
    if code_point <= 0x7FF:
        return bytes((
            ((code_point >> 6) & 0x1F) | 0xC0,
            (code_point & 0x3F) | 0x80,
        ))
    if code_point <= 0xFFFF:
        return bytes((
            ((code_point >> 12) & 0x0F) | 0xE0,
            ((code_point >> 6) & 0x3F) | 0x80,
            (code_point & 0x3F) | 0x80,
        ))
    return bytes((
        ((code_point >> 18) & 0x07) | 0xF0,
        ((code_point >> 12) & 0x3F) | 0x80,
        ((code_point >> 6) & 0x3F) | 0x80,
        (code_point & 0x3F) | 0x80,
    ))