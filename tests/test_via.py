from cx16emu.serial import SerialPort
from cx16emu.via import I2CPort, Via, Via1


class FakeJoystick:
    def __init__(self, data=0):
        self.data = data
        self.latch = []
        self.clock = []

    def set_latch(self, value):
        self.latch.append(value)

    def set_clock(self, value):
        self.clock.append(value)


def make_via1(joystick_data=0):
    steps = []
    serial_port = SerialPort()
    i2c_port = I2CPort()
    joystick = FakeJoystick(joystick_data)
    via = Via1(serial_port, i2c_port, joystick, lambda: steps.append(1))
    return via, serial_port, i2c_port, joystick, steps


def load_timer1(via, low, high=0):
    via.write(4, low)
    via.write(5, high)


def test_register_store_and_read_back():
    via = Via()
    via.write(2, 0x5A)
    assert via.read(2) == 0x5A


def test_reset_clears_ports_but_keeps_latches():
    via = Via()
    via.write(6, 0x33)
    via.write(2, 0xFF)
    via.reset()
    assert via.read(6) == 0x33
    assert via.read(2) == 0


def test_timer1_load_and_count_down():
    via = Via()
    load_timer1(via, 0x10)
    assert via.read(4, debug=True) == 0x10
    assert via.read(5, debug=True) == 0
    via.step(5)
    assert via.read(4, debug=True) == 0x10 - 5
    assert via.read(13) & 0x40 == 0


def test_timer1_interrupt_and_clear_on_read():
    via = Via()
    via.write(14, 0x80 | 0x40)
    load_timer1(via, 0x10)
    via.step(0x20)
    assert via.irq()
    assert via.read(13) & 0xC0 == 0xC0
    via.read(4, debug=True)
    assert via.irq()
    via.read(4)
    assert not via.irq()
    assert via.read(13) & 0x40 == 0


def test_timer1_one_shot_fires_once():
    via = Via()
    load_timer1(via, 0x10)
    via.step(0x20)
    via.read(4)
    via.step(0x20)
    assert via.read(13) & 0x40 == 0


def test_timer1_free_run_fires_again():
    via = Via()
    via.write(11, 0x40)
    load_timer1(via, 0x10)
    via.step(0x20)
    via.read(4)
    via.step(0x20)
    assert via.read(13) & 0x40 == 0x40


def test_ifr_write_does_not_clear_timer_flag():
    via = Via()
    load_timer1(via, 0x10)
    via.step(0x20)
    via.write(13, 0x7F)
    assert via.read(13, debug=True) & 0x40 == 0x40


def test_timer2_one_shot():
    via = Via()
    via.write(8, 5)
    via.write(9, 0)
    assert via.read(8, debug=True) == 5
    via.step(10)
    assert via.read(13) & 0x20 == 0x20
    via.read(8)
    assert via.read(13) & 0x20 == 0
    via.step(10)
    assert via.read(13) & 0x20 == 0


def test_ier_set_and_clear():
    via = Via()
    via.write(14, 0x80 | 0x20)
    assert via.read(14) == 0x80 | 0x20
    via.write(14, 0x20)
    assert via.read(14) == 0x80


def test_irq_needs_enable():
    via = Via()
    load_timer1(via, 0x10)
    via.step(0x20)
    assert not via.irq()
    assert via.read(13) & 0x80 == 0


def test_via1_reset_initialises_lines():
    via, serial_port, i2c_port, _, _ = make_via1()
    assert i2c_port.clk_in == 1
    assert (serial_port.clk_out, serial_port.data_out) == (1, 1)
    assert (serial_port.atn_in, serial_port.clk_in, serial_port.data_in) == (0, 0, 0)


def test_via1_port_b_drives_serial_lines():
    via, serial_port, _, _, _ = make_via1()
    via.write(2, 0x38)
    via.write(0, 0x08)
    assert serial_port.atn_in == 1
    assert serial_port.clk_in == 1
    assert serial_port.data_in == 1
    via.write(0, 0x30)
    assert serial_port.atn_in == 0
    assert serial_port.clk_in == 0
    assert serial_port.data_in == 0


def test_via1_port_b_reads_serial_inputs():
    via, serial_port, _, _, _ = make_via1()
    serial_port.clk_in = 1
    serial_port.data_in = 0
    assert via.read(0) == 0x40
    serial_port.data_in = 1
    assert via.read(0) & 0x80 == 0x80


def test_via1_port_b_latching_reads_zero():
    via, serial_port, _, _, _ = make_via1()
    serial_port.clk_in = 1
    via.write(11, 0x02)
    assert via.read(0) == 0


def test_via1_port_a_write_drives_i2c_and_joystick():
    via, _, i2c_port, joystick, steps = make_via1()
    via.write(3, 0x0F)
    via.write(1, 0x04)
    assert i2c_port.data_in == 0
    assert i2c_port.clk_in == 0
    assert joystick.latch[-1] is True
    assert joystick.clock[-1] is False
    assert len(steps) == 2


def test_via1_port_a_inputs_pull_up():
    via, _, i2c_port, _, _ = make_via1()
    via.write(3, 0x00)
    assert i2c_port.data_in == 1
    assert i2c_port.clk_in == 1


def test_via1_port_a_read_reflects_i2c_and_joystick():
    via, _, i2c_port, joystick, steps = make_via1(joystick_data=0x80)
    i2c_port.data_out = 1
    value = via.read(1)
    assert value & 0x01 == 0x01
    assert value & 0x02 == 0x02
    assert value & 0x80 == 0x80
    i2c_port.data_out = 0
    assert via.read(15) & 0x01 == 0
    assert len(steps) == 2


def test_via1_port_a_latching_reads_zero():
    via, _, i2c_port, _, _ = make_via1(joystick_data=0x80)
    i2c_port.data_out = 1
    via.write(11, 0x01)
    assert via.read(1) == 0


def test_via1_other_registers_use_timers():
    via, _, _, _, _ = make_via1()
    load_timer1(via, 0x10)
    via.step(0x20)
    assert via.read(13) & 0x40 == 0x40