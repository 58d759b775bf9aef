"""System management controller: power, reset, NMI, LEDs and input buffers."""


class PowerOff(Exception):
    """Raised when the machine is told to power off."""


class SMC:
    """The SMC as seen over I2C.

    ``keyboard_next`` and ``mouse_next`` pop one byte from the keyboard and
    mouse buffers, ``mouse_count`` returns the mouse buffer fill, and
    ``on_nmi`` triggers an NMI on the CPU.
    """

    def __init__(self, keyboard_next, mouse_count, mouse_next, on_nmi):
        self._keyboard_next = keyboard_next
        self._mouse_count = mouse_count
        self._mouse_next = mouse_next
        self._on_nmi = on_nmi
        self._mouse_packet_index = 0
        self.activity_led = 0
        self.requested_reset = False

    def read(self, offset):
        if offset == 0x07:
            return self._keyboard_next()
        if offset == 0x21:
            # Mouse packets are three bytes; a single zero means none is complete.
            if self._mouse_packet_index == 0 and self._mouse_count() > 2:
                self._mouse_packet_index = 1
                return self._mouse_next()
            if self._mouse_packet_index > 0:
                self._mouse_packet_index = (self._mouse_packet_index + 1) % 3
                return self._mouse_next()
            return 0x00
        return 0xFF

    def write(self, offset, value):
        if offset == 1:
            if value == 0:
                raise PowerOff("SMC power off")
            if value == 1:
                self.requested_reset = True
        elif offset == 2:
            if value == 0:
                self.requested_reset = True
        elif offset == 3:
            if value == 0:
                self._on_nmi()
        elif offset == 5:
            self.activity_led = value