"""Line-based test protocol over stdin/stdout for driving the machine.

The runner sends one command per line: three upper-case letters, then
fields separated by exactly one character each, with 16-bit values as four
hex digits and 8-bit values as two. The emulator answers ``RDY``, a hex
value, or ``ERR <message>``.

The machine object must have the integer attributes ``a``, ``x``, ``y``,
``sp``, ``status`` and ``pc`` and the methods ``read_memory(address)``,
``write_memory(address, value)``, ``set_ram_bank(bank)`` and
``set_rom_bank(bank)``.
"""

import sys

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

_REGISTER_SETTERS = {"STA": "a", "STX": "x", "STY": "y", "SST": "status", "SSP": "sp"}
_REGISTER_QUERIES = {"RQA": "a", "RQX": "x", "RQY": "y", "RST": "status", "RSP": "sp"}

# Return address pushed on RUN, so that a final RTS lands on $FFFD.
_RETURN_ADDRESS = 0xFFFD - 1


def parse_hex(text, digits):
    """Parse exactly ``digits`` hex digits; raise ValueError otherwise."""
    if len(text) != digits or not set(text) <= _HEX_DIGITS:
        raise ValueError(f"expected {digits} hex digits, got {text!r}")
    return int(text, 16)


def _field(line, start, digits, min_length):
    if len(line) < min_length:
        raise ValueError(f"command too short: {line!r}")
    return parse_hex(line[start:start + digits], digits)


class Testbench:
    """Reads setup commands until ``RUN``, which hands control to the CPU."""

    def __init__(self, machine, stdin=None, stdout=None):
        self._machine = machine
        self._stdin = stdin if stdin is not None else sys.stdin
        self._stdout = stdout if stdout is not None else sys.stdout

    def _send(self, text):
        self._stdout.write(text + "\n")
        self._stdout.flush()

    def _ready(self):
        self._send("RDY")

    def _invalid(self):
        self._send("ERR Invalid command")

    def run(self):
        """Process commands; return the start address given by ``RUN``.

        Raises EOFError if the input ends first.
        """
        self._ready()
        for line in self._stdin:
            start = self._handle(line)
            if start is not None:
                return start
        raise EOFError("testbench input ended before RUN")

    def _handle(self, line):
        machine = self._machine
        command = line[:3]
        try:
            if command in ("RAM", "ROM") or command in _REGISTER_SETTERS:
                fields = (_field(line, 4, 2, 7),)
            elif command == "STM":
                fields = (_field(line, 4, 4, 12), _field(line, 9, 2, 12))
            elif command == "FLM":
                fields = (
                    _field(line, 4, 4, 17),
                    _field(line, 9, 4, 17),
                    _field(line, 14, 2, 17),
                )
            elif command in ("RUN", "RQM"):
                fields = (_field(line, 4, 4, 9),)
            else:
                fields = ()
        except ValueError:
            self._invalid()
            return None

        if command == "RAM":
            machine.set_ram_bank(fields[0])
            self._ready()
        elif command == "ROM":
            machine.set_rom_bank(fields[0])
            self._ready()
        elif command == "STM":
            machine.write_memory(*fields)
            self._ready()
        elif command == "FLM":
            first, last, value = fields
            for address in range(first, last + 1):
                machine.write_memory(address, value)
            self._ready()
        elif command in _REGISTER_SETTERS:
            setattr(machine, _REGISTER_SETTERS[command], fields[0])
            self._ready()
        elif command == "RUN":
            return self._start(fields[0])
        elif command == "RQM":
            self._send(f"{machine.read_memory(fields[0]):x}")
        elif command in _REGISTER_QUERIES:
            self._send(f"{getattr(machine, _REGISTER_QUERIES[command]):x}")
        else:
            self._send("ERR Unknown command")
        return None

    def _start(self, address):
        machine = self._machine
        sp = machine.sp & 0xFF
        machine.write_memory(0x0100 + sp, _RETURN_ADDRESS >> 8)
        sp = (sp - 1) & 0xFF
        machine.write_memory(0x0100 + sp, _RETURN_ADDRESS & 0xFF)
        sp = (sp - 1) & 0xFF
        machine.sp = sp
        machine.pc = address
        return address