# cx16emu

Cycle-stepped models of chips inside the Commander X16 home computer,
written in plain Python with no third-party dependencies.

Each chip is an object that you drive from your own machine loop: write
registers, step it by a number of clocks, and read back registers,
interrupt lines or rendered output.

## What is included

| Module                | Contents                                                              |
|-----------------------|-----------------------------------------------------------------------|
| `cx16emu.psg`         | `PSG`: the 16-voice programmable sound generator                      |
| `cx16emu.spi`         | `VeraSPI`: the SD-card SPI port                                       |
| `cx16emu.via`         | `Via`, `Via1`, `I2CPort`: 65C22 VIAs with timers and port wiring      |
| `cx16emu.serial`      | `SerialPort`, `SerialBus`: the device end of the Commodore serial bus |
| `cx16emu.smc`         | `SMC`, `PowerOff`: the system management controller                   |
| `cx16emu.wav`         | `WavRecorder`, `WavCommand`, `WavState`: audio capture to WAV         |
| `cx16emu.vera_render` | Layer, sprite and palette helpers and the scanline `Renderer`         |
| `cx16emu.timing`      | `Timing`, `window_title`: real-time pacing and speed reporting        |
| `cx16emu.testbench`   | `Testbench`, `parse_hex`: the line-based test-runner protocol         |
| `cx16emu.utf8`        | `decode` and `encode` for single UTF-8 code points                    |

## Sound

```python
from cx16emu.psg import PSG

psg = PSG()
psg.write_register(0, 0x00)   # voice 0 frequency, low byte
psg.write_register(1, 0x04)   # voice 0 frequency, high byte
psg.write_register(2, 0xFF)   # left and right, full volume
psg.write_register(3, 0x3F)   # pulse wave, 50% width
frames = psg.render(64)       # list of (left, right) integer pairs
```

## Recording audio

`WavRecorder` writes interleaved 16-bit stereo samples (a flat sequence of
left, right, left, right ...) to a WAV file.

```python
from cx16emu.wav import WavRecorder, WavCommand

with WavRecorder(48000) as recorder:
    recorder.set_path("session.wav,wait")   # armed but paused
    recorder.set(WavCommand.RECORD)
    recorder.process([0, 0, 1000, -1000])
# leaving the block calls shutdown(), which writes the final header sizes
```

A path ending in `,wait` starts paused, one ending in `,auto` starts
recording at the first non-zero sample, and any other path starts recording
at once. Commands are ignored while no path is set.

## VIAs

```python
from cx16emu.via import Via

via = Via()
via.write(14, 0xC0)   # enable the timer 1 interrupt
via.write(4, 0x10)    # T1 latch, low byte
via.write(5, 0x00)    # T1 high byte: load and start
via.step(32)
assert via.irq()
```

`Via1` adds the wiring of the first VIA: port B drives a `SerialPort`,
port A drives an `I2CPort` and, if given, a joystick object with a `data`
attribute and `set_latch`/`set_clock` methods. `SerialBus` watches a
`SerialPort` and passes the bytes it decodes to an IEEE-layer object you
supply.

## Video rendering

`cx16emu.vera_render` turns VERA register and memory contents into
scanlines:

- `LayerProperties.from_registers(registers, previous)` derives a layer's
  mode, map and tile geometry from its seven registers.
- `SpriteProperties.from_bytes(data)` decodes one sprite's eight attribute
  bytes.
- `Renderer(vram)` renders text, tile and bitmap layer lines and sprite
  lines (`render_text_line`, `render_tile_line`, `render_bitmap_line`,
  `render_sprite_line`), each returning colour indices for the 640 pixels.
- `compose_pixel` picks the visible index from a sprite and two layers,
  and `palette_entries` with `default_palette_bytes` gives 0xRRGGBB colours.

## Other pieces

- `SMC.write(1, 0)` is the machine asking to power off; it raises
  `PowerOff` for your main loop to handle.
- `Timing.update(clockticks, ...)` sleeps when emulation runs ahead of
  real time and updates the window title with the speed every five seconds.
- `Testbench(machine, stdin, stdout).run()` answers setup and query
  commands until `RUN nnnn`, then returns the start address; it raises
  `EOFError` if input ends first.
- `utf8.decode(data, offset)` returns `(code_point, next_offset)` and raises
  `UnicodeDecodeError` on bad input; `utf8.encode` raises `ValueError` for
  values outside 0 to 0x10FFFF.

## What this package does not do

It does not contain a CPU, memory map, PCM audio FIFO, or VERA register
interface with scan timing and interrupts, and it opens no window and reads
no keyboard or mouse. The scanline renderer works on memory and properties
you hand it; assembling frames and showing them is left to your code.

## Running the tests

The test suite uses pytest and is installed with the `test` extra.