"""6522 VIA: timers, interrupt flags and the ports of the two machine VIAs."""

from dataclasses import dataclass

from cx16emu.serial import (
    SERIAL_ATNIN_MASK,
    SERIAL_CLOCKIN_MASK,
    SERIAL_DATAIN_MASK,
)

I2C_DATA_MASK = 0x01
I2C_CLK_MASK = 0x02
JOY_LATCH_MASK = 0x04
JOY_CLK_MASK = 0x08

_U32 = 0xFFFFFFFF


@dataclass
class I2CPort:
    """I2C line levels shared between VIA#1 and the I2C bus."""

    data_in: int = 0
    data_out: int = 0
    clk_in: int = 0


class Via:
    """Internal logic of one 6522; ports read back the output registers."""

    def __init__(self):
        # timer latches, timer counters and SR survive a reset
        self.registers = [0] * 15
        self.timer_count = [0, 0]
        self.pb6_pulse_counts = 0
        self.reset()

    def reset(self):
        for index in (0, 1, 2, 3, 11, 12, 13, 14):
            self.registers[index] = 0
        self._timer_running = [False, False]
        self._timer1_m1 = False
        self.pb7_output = True

    def _clear_pra_irqs(self):
        self.registers[13] &= ~0x02 & 0xFF
        if self.registers[12] & 0b00001010 != 0b00000010:
            self.registers[13] &= ~0x01 & 0xFF

    def _clear_prb_irqs(self):
        self.registers[13] &= ~0x10 & 0xFF
        if self.registers[12] & 0b10100000 != 0b00100000:
            self.registers[13] &= ~0x08 & 0xFF

    def _clear_flag(self, mask):
        self.registers[13] &= ~mask & 0xFF

    def read(self, reg, debug=False):
        """Read a register; ``debug`` reads have no side effects."""
        regs = self.registers
        if reg == 0:
            if not debug:
                self._clear_prb_irqs()
            return regs[0]
        if reg in (1, 15):
            if not debug:
                self._clear_pra_irqs()
            return regs[1]
        if reg == 4:
            if not debug:
                self._clear_flag(0x40)
            return self.timer_count[0] & 0xFF
        if reg == 5:
            return (self.timer_count[0] >> 8) & 0xFF
        if reg == 8:
            if not debug:
                self._clear_flag(0x20)
            return self.timer_count[1] & 0xFF
        if reg == 9:
            return (self.timer_count[1] >> 8) & 0xFF
        if reg == 10:
            if not debug:
                self._clear_flag(0x04)
            return regs[10]
        if reg == 13:
            ifr = regs[13]
            irq = (ifr & regs[14]) != 0
            return ((irq << 7) | ifr) & 0xFF
        if reg == 14:
            return regs[14] | 0x80
        return regs[reg]

    def write(self, reg, value):
        regs = self.registers
        value &= 0xFF
        if reg == 0:
            self._clear_prb_irqs()
            regs[0] = value
        elif reg in (1, 15):
            self._clear_pra_irqs()
            regs[1] = value
        elif reg == 4:
            regs[6] = value
        elif reg in (5, 7):
            self._clear_flag(0x40)
            regs[7] = value
            if reg == 5:
                self.timer_count[0] = (value << 8) | regs[6]
                self._timer_running[0] = True
                self.pb7_output = False
        elif reg == 9:
            self._clear_flag(0x20)
            self.timer_count[1] = (value << 8) | regs[8]
            self._timer_running[1] = True
        elif reg == 10:
            self._clear_flag(0x04)
            regs[10] = value
        elif reg == 13:
            pcr = regs[12]
            if value & 0x01 and pcr & 0b00001010 == 0b00000010:
                self._clear_flag(0x01)
            if value & 0x08 and pcr & 0b10100000 == 0b00100000:
                self._clear_flag(0x08)
        elif reg == 14:
            if value & 0x80:
                regs[14] |= value & 0x7F
            else:
                regs[14] &= ~value & 0x7F
        else:
            regs[reg] = value

    def _timer1_reload(self):
        return (self.registers[7] << 8) | self.registers[6]

    def step(self, clocks):
        """Run the timers for ``clocks`` cycles and update the flags."""
        acr = self.registers[11]
        ifr = self.registers[13]

        # timer 1 counts even when not running
        count = self.timer_count[0]
        remaining = clocks
        while remaining > 0:
            if self._timer1_m1:
                reload = self._timer1_reload()
                taken = min(reload + 1, remaining)
                count = reload - taken + 1
                self._timer1_m1 = False
            elif count < remaining:
                if self._timer_running[0]:
                    ifr |= 0x40
                    self.pb7_output = not self.pb7_output
                    if not acr & 0x40:
                        self._timer_running[0] = False
                if remaining - count == 1:
                    # the counter spends one cycle at -1
                    count = 0xFFFF
                    self._timer1_m1 = True
                    taken = 1
                else:
                    reload = self._timer1_reload()
                    taken = min(count + reload + 2, remaining)
                    count = count + reload + 2 - taken
            else:
                count -= remaining
                break
            remaining -= taken
        self.timer_count[0] = count & _U32

        count = self.timer_count[1]
        ticks = self.pb6_pulse_counts if acr & 0x20 else clocks
        self.pb6_pulse_counts = 0
        if count < ticks:
            if self._timer_running[1]:
                ifr |= 0x20
                self._timer_running[1] = False
            self.timer_count[1] = (0x10000 + count - ticks) & _U32
        else:
            self.timer_count[1] = count - ticks

        self.registers[13] = ifr

    def irq(self):
        return (self.registers[13] & self.registers[14]) != 0


class Via1(Via):
    """VIA#1: I2C and NES controllers on port A, serial bus on port B.

    ``joystick`` needs a ``data`` attribute and ``set_latch``/``set_clock``
    methods; ``i2c_step`` advances the I2C bus before port A is touched.
    """

    def __init__(self, serial_port, i2c_port, joystick=None, i2c_step=None):
        self.serial_port = serial_port
        self.i2c_port = i2c_port
        self.joystick = joystick
        self._i2c_step = i2c_step
        super().__init__()

    def reset(self):
        super().reset()
        self.i2c_port.clk_in = 1
        port = self.serial_port
        port.atn_in = 0
        port.clk_in = 0
        port.data_in = 0
        port.clk_out = 1
        port.data_out = 1

    def _step_i2c(self):
        if self._i2c_step is not None:
            self._i2c_step()

    def read(self, reg, debug=False):
        regs = self.registers
        if reg == 0:
            if not debug:
                self._clear_prb_irqs()
            if regs[11] & 2:
                # input latching is not emulated
                return 0
            port = self.serial_port
            ddr = regs[2]
            inputs = (int(port.read_clk()) << 6) | (int(port.read_data()) << 7)
            outputs = (
                (int(bool(port.atn_in)) << 3)
                | (int(not port.clk_in) << 4)
                | (int(not port.data_in) << 5)
            )
            return ((~ddr & inputs) | (ddr & outputs)) & 0xFF
        if reg in (1, 15):
            self._step_i2c()
            if not debug:
                self._clear_pra_irqs()
            if regs[11] & 1:
                return 0
            ddr = regs[3]
            i2c = self.i2c_port
            joystick_data = self.joystick.data if self.joystick is not None else 0
            return (
                (~ddr & i2c.data_out)
                | (ddr & i2c.data_in)
                | (~ddr & I2C_CLK_MASK)
                | (ddr & i2c.clk_in)
                | joystick_data
            ) & 0xFF
        return super().read(reg, debug)

    def write(self, reg, value):
        super().write(reg, value)
        regs = self.registers
        if reg in (0, 2):
            pb = (regs[0] | ~regs[2]) & 0xFF
            port = self.serial_port
            port.atn_in = int(pb & SERIAL_ATNIN_MASK != 0)
            port.clk_in = int(pb & SERIAL_CLOCKIN_MASK == 0)
            port.data_in = int(pb & SERIAL_DATAIN_MASK == 0)
        elif reg in (1, 3):
            self._step_i2c()
            pa = (regs[1] | ~regs[3]) & 0xFF
            # inputs read as high, like pull-ups
            self.i2c_port.data_in = pa & I2C_DATA_MASK
            self.i2c_port.clk_in = (pa & I2C_CLK_MASK) >> 1
            if self.joystick is not None:
                self.joystick.set_latch(bool(regs[1] & JOY_LATCH_MASK))
                self.joystick.set_clock(bool(regs[1] & JOY_CLK_MASK))