"""Commodore serial bus (IEC) device side, bit-banged through VIA#1.

The bus object plays the part of the peripheral: it watches the ATN, CLK and
DATA lines driven by the computer and hands the decoded bytes to an IEEE
layer object, which must provide:

``acptr()`` returning ``(value, status)``, ``listen(byte)``,
``unlisten()`` returning a status, ``talk(byte)``, ``untalk()``,
``second(byte)``, ``tksa(byte)`` and ``ciout(byte)``.
"""

from dataclasses import dataclass

SERIAL_ATNIN_MASK = 1 << 3
SERIAL_CLOCKIN_MASK = 1 << 4
SERIAL_DATAIN_MASK = 1 << 5


@dataclass
class SerialPort:
    """Line levels: ``*_in`` are driven by the computer, ``*_out`` by the device."""

    atn_in: int = 0
    clk_in: int = 0
    data_in: int = 0
    clk_out: int = 1
    data_out: int = 1

    def read_clk(self):
        """Level of the wired-AND CLK line."""
        return bool(self.clk_out & self.clk_in)

    def read_data(self):
        """Level of the wired-AND DATA line."""
        return bool(self.data_out & self.data_in)


class SerialBus:
    """State machine for the device end of the serial bus."""

    def __init__(self, ieee, mhz=8):
        self.port = SerialPort()
        self.mhz = mhz
        self._ieee = ieee
        self.state = 0
        self.listening = False
        self.talking = False
        self.file_not_found = False
        self._valid = False
        self._bit = 0
        self._byte = 0
        self._during_atn = False
        self._eoi = False
        self._clocks_since_change = 0
        self._old = (False, False, False)

    def _signals(self):
        port = self.port
        return bool(port.atn_in), port.read_clk(), port.read_data()

    def step(self, clocks):
        """Advance the bus by ``clocks`` CPU cycles."""
        if self._signals() == self._old:
            self._idle(clocks)
        else:
            self._on_change()
        self._old = self._signals()

    def _read_byte(self):
        value, status = self._ieee.acptr()
        self._eoi = status >= 0
        return value & 0xFF

    def _idle(self, clocks):
        port = self.port
        mhz = self.mhz
        self._clocks_since_change += clocks

        if (self.state == 2 and self._valid and self._bit == 0
                and self._clocks_since_change > 200 * mhz):
            if self._clocks_since_change < (200 + 60) * mhz:
                # acknowledge EOI
                port.data_out = 0
                self._eoi = True
            else:
                port.data_out = 1
                self._clocks_since_change = 0

        if self.state == 10 and self._clocks_since_change > 60 * mhz:
            port.clk_out = 1
            self.state = 11
            self._clocks_since_change = 0
        elif self.state == 11 and port.read_data() and not self.file_not_found:
            self._clocks_since_change = 0
            self._byte = self._read_byte()
            self._bit = 0
            self._valid = True
            if self._eoi:
                self.state = 12
            else:
                port.clk_out = 0
                self.state = 13
        elif self.state == 12 and self._clocks_since_change > 512 * mhz:
            # EOI delay; the listener's acknowledgement is not checked
            self._clocks_since_change = 0
            port.clk_out = 0
            self.state = 13
        elif self.state == 13 and self._clocks_since_change > 60 * mhz:
            if self._valid:
                port.data_out = (self._byte >> self._bit) & 1
                port.clk_out = 1
                self._bit += 1
                if self._bit == 8:
                    self.state = 14
            else:
                port.clk_out = 0
            self._valid = not self._valid
            self._clocks_since_change = 0
        elif self.state == 14 and self._clocks_since_change > 60 * mhz:
            port.data_out = 1
            port.clk_out = 0
            self.state = 10
            self._clocks_since_change = 0

    def _on_change(self):
        port = self.port
        self._clocks_since_change = 0

        if not self._during_atn and port.atn_in:
            port.data_out = 0
            self.state = 99
            self._during_atn = True

        if self.state == 99:
            if not port.read_clk():
                self.state = 1
        elif self.state == 1:
            self._wait_for_byte()
        elif self.state == 2:
            self._receive_bit()

    def _wait_for_byte(self):
        port = self.port
        if self._during_atn and not port.atn_in:
            # ATN released
            port.data_out = 1
            port.clk_out = 1
            self._during_atn = False
            if self.listening:
                # keep holding DATA to show we are here
                port.data_out = 0
            elif self.talking:
                port.clk_out = 0
                self.state = 10
            else:
                self.state = 0
            return
        if port.read_clk():
            port.data_out = 1
            self.state = 2
            self._valid = True
            self._bit = 0
            self._byte = 0
            self._eoi = False

    def _receive_bit(self):
        port = self.port
        if self._during_atn and not port.atn_in:
            port.data_out = 1
            port.clk_out = 1
            self.state = 0
            return
        if self._valid:
            if not port.read_clk():
                self._valid = False
            return
        if not port.read_clk():
            return
        self._byte |= int(port.read_data()) << self._bit
        self._valid = True
        self._bit += 1
        if self._bit != 8:
            return
        if self._during_atn:
            self._command(self._byte)
        else:
            self._ieee.ciout(self._byte)
        port.data_out = 0
        self.state = 1

    def _command(self, byte):
        group = byte & 0x60
        if group == 0x20:
            if byte == 0x3F:
                self.file_not_found = self._ieee.unlisten() == 2
                self.listening = False
            else:
                self._ieee.listen(byte)
                self.listening = True
        elif group == 0x40:
            if byte == 0x5F:
                self._ieee.untalk()
                self.talking = False
            else:
                self._ieee.talk(byte)
                self.talking = True
        elif group == 0x60:
            if self.listening:
                self._ieee.second(byte)
            else:
                self._ieee.tksa(byte)