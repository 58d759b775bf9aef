"""VERA SPI controller driving an SD card."""

from typing import Optional, Protocol


class _SDCard(Protocol):
    attached: bool

    def handle(self, value: int) -> int:
        ...

    def select(self, selected: bool) -> None:
        ...


class VeraSPI:
    """Byte-wide SPI master; a transfer takes eight clocks."""

    def __init__(self, sdcard: Optional[_SDCard] = None):
        self._sdcard = sdcard
        self._sending = 0
        self._counter = 0
        self.reset()

    def reset(self):
        self._selected = False
        self._busy = False
        self._autotx = False
        self._received = 0xFF

    def _start(self, value):
        self._sending = value
        self._busy = True
        self._counter = 0

    def step(self, clocks):
        if not self._busy:
            return
        self._counter += clocks
        if self._counter >= 8:
            self._busy = False
            if self._sdcard is not None and self._sdcard.attached:
                self._received = self._sdcard.handle(self._sending)
            else:
                self._received = 0xFF

    def read(self, reg):
        """Read the data (0) or control (1) register."""
        if reg == 0:
            if self._autotx and self._selected and not self._busy:
                # Auto-transmit sends $FF after every read.
                self._start(0xFF)
            return self._received
        if reg == 1:
            return (self._busy << 7) | (self._autotx << 3) | int(self._selected)
        return 0

    def write(self, reg, value):
        """Write the data (0) or control (1) register."""
        if reg == 0:
            if self._selected and not self._busy:
                self._start(value)
        elif reg == 1:
            selected = bool(value & 1)
            if selected != self._selected:
                self._selected = selected
                if selected and self._sdcard is not None:
                    self._sdcard.select(True)
            self._autotx = bool(value & 8)