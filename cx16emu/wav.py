"""Recording of the emulated audio output to a 16-bit stereo WAV file."""

import logging
import struct
from enum import IntEnum

_log = logging.getLogger(__name__)

# RIFF header (12) + fmt chunk (24) + data chunk header (8)
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
_FMT_AND_DATA_SIZE = 24 + 8
_CHANNELS = 2
_SAMPLE_BYTES = 2


class WavCommand(IntEnum):
    PAUSE = 0
    RECORD = 1
    AUTOSTART = 2


class WavState(IntEnum):
    DISABLED = 0
    PAUSED = 1
    AUTOSTARTING = 2
    RECORDING = 3


class WavRecorder:
    """Writes interleaved stereo int16 samples to the configured path."""

    def __init__(self, sample_rate):
        self.sample_rate = sample_rate
        self.state = WavState.DISABLED
        self.path = None
        self._file = None
        self._frames_written = 0

    def _write_header(self, riff_size, data_size):
        block_align = _SAMPLE_BYTES * _CHANNELS
        self._file.write(_HEADER.pack(
            b"RIFF", riff_size, b"WAVE",
            b"fmt ", 16, 1, _CHANNELS, self.sample_rate,
            self.sample_rate * block_align, block_align, _SAMPLE_BYTES * 8,
            b"data", data_size,
        ))

    def _begin(self):
        self._end()
        try:
            self._file = open(self.path, "wb")
            self._write_header(4, 0)
        except OSError as exc:
            _log.warning("cannot record to %s: %s", self.path, exc)
            self._close()
            return
        self._frames_written = 0

    def _close(self):
        if self._file is not None:
            self._file.close()
            self._file = None

    def _end(self):
        if self._file is None:
            return
        data_size = _SAMPLE_BYTES * _CHANNELS * self._frames_written
        try:
            self._file.seek(0)
            self._write_header(4 + _FMT_AND_DATA_SIZE + data_size, data_size)
        finally:
            self._close()

    def _add(self, samples):
        if self._file is None:
            return
        frames = len(samples) // _CHANNELS
        count = frames * _CHANNELS
        try:
            self._file.write(struct.pack(f"<{count}h", *samples[:count]))
        except OSError as exc:
            _log.warning("recording to %s stopped: %s", self.path, exc)
            self._close()
        else:
            self._frames_written += frames

    def set_path(self, path):
        """Set the output path; a ``,wait`` or ``,auto`` suffix delays the start."""
        if self.state == WavState.RECORDING:
            self._end()
        if path is None:
            self.path = None
            self.state = WavState.DISABLED
            return
        if path.endswith(",wait"):
            self.path = path[:-5]
            self.state = WavState.PAUSED
        elif path.endswith(",auto"):
            self.path = path[:-5]
            self.state = WavState.AUTOSTARTING
        else:
            self.path = path
            self.state = WavState.RECORDING
            self._begin()

    def set(self, command):
        """Pause, start or arm recording; ignored while disabled."""
        command = WavCommand(command)
        if self.state == WavState.DISABLED:
            return
        if command == WavCommand.PAUSE:
            self.state = WavState.PAUSED
        elif command == WavCommand.RECORD:
            self.state = WavState.RECORDING
            self._begin()
        else:
            self.state = WavState.AUTOSTARTING

    def process(self, samples):
        """Take interleaved stereo samples; autostart begins at the first non-zero."""
        samples = list(samples)
        if self.state == WavState.AUTOSTARTING and any(samples):
            self.state = WavState.RECORDING
            self._begin()
        if self.state == WavState.RECORDING:
            self._add(samples)

    def shutdown(self):
        """Finish the file being written, if any."""
        self._end()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.shutdown()