import pytest

from cx16emu.vera_render import (
    LayerProperties,
    Renderer,
    SpriteLine,
    SpriteProperties,
    compose_pixel,
    default_palette_bytes,
    palette_entries,
)

MAP_BASE_REG = 0x10  # map at 0x2000
TILE_BASE_REG = 0x20  # tiles at 0x4000
MAP_BASE = MAP_BASE_REG << 9
TILE_BASE = (TILE_BASE_REG & 0xFC) << 9


def layer(r0, r2=TILE_BASE_REG, r3=0, r4=0, previous=None):
    return LayerProperties.from_registers([r0, MAP_BASE_REG, r2, r3, r4, 0, 0], previous)


def sprite_bytes(address=0, mode8=False, x=0, y=0, z=3, mask=0, hflip=False,
                 vflip=False, size=0, palette=0):
    return bytes([
        (address >> 5) & 0xFF,
        ((address >> 13) & 0xF) | (0x80 if mode8 else 0),
        x & 0xFF, (x >> 8) & 3,
        y & 0xFF, (y >> 8) & 3,
        mask | (z << 2) | (2 if vflip else 0) | (1 if hflip else 0),
        size | palette,
    ])


# --- palette ---------------------------------------------------------------

def test_default_palette_layout():
    data = default_palette_bytes()
    assert len(data) == 512
    assert data[0:2] == b"\x00\x00"
    assert data[2:4] == b"\xff\x0f"


def test_palette_white_and_black():
    entries = palette_entries(default_palette_bytes(), 1)
    assert len(entries) == 256
    assert entries[0] == 0
    assert entries[1] == 0xFFFFFF


def test_palette_blue_screen_when_output_off():
    entries = palette_entries(default_palette_bytes(), 0)
    assert set(entries) == {0x0000FF}


def test_palette_chroma_disable_is_grey():
    for entry in palette_entries(default_palette_bytes(), 6):
        r, g, b = entry >> 16, (entry >> 8) & 0xFF, entry & 0xFF
        assert r == g == b


def test_palette_channels_repeat_nibble():
    for entry in palette_entries(default_palette_bytes(), 1):
        for channel in (entry >> 16, (entry >> 8) & 0xFF, entry & 0xFF):
            assert channel >> 4 == channel & 0xF


# --- composition -----------------------------------------------------------

@pytest.mark.parametrize("z, sprite, l1, l2, expected", [
    (3, 5, 6, 7, 5),
    (3, 0, 6, 7, 7),
    (3, 0, 6, 0, 6),
    (2, 5, 6, 7, 7),
    (2, 5, 6, 0, 5),
    (2, 0, 6, 0, 6),
    (1, 5, 6, 7, 7),
    (1, 5, 6, 0, 6),
    (1, 5, 0, 0, 5),
    (0, 5, 6, 0, 6),
    (0, 5, 0, 0, 0),
])
def test_compose_pixel(z, sprite, l1, l2, expected):
    assert compose_pixel(z, sprite, l1, l2) == expected


# --- layer properties ------------------------------------------------------

def test_text_mode_defaults():
    props = layer(0)
    assert props.text_mode and not props.tile_mode and not props.bitmap_mode
    assert props.tilew == 8 and props.tileh == 8
    assert props.map_base == MAP_BASE
    assert props.tile_base == TILE_BASE
    assert props.layerw_max + 1 == (1 << props.mapw_log2) * props.tilew
    assert props.layerh_max + 1 == (1 << props.maph_log2) * props.tileh


def test_tile_mode_sizes_follow_registers():
    props = layer(0x03 | 0x10 | 0x40, r2=TILE_BASE_REG | 3)
    assert props.tile_mode
    assert props.tilew == 16 and props.tileh == 16
    assert props.mapw_log2 == props.maph_log2 == 6
    assert props.bits_per_pixel == 8
    assert props.color_mask == 0xFF


def test_scroll_and_effective_x_range():
    props = layer(0x03, r3=0x34, r4=0x01)
    assert props.hscroll == 0x134
    assert 0 <= props.min_eff_x <= props.max_eff_x <= props.layerw_max
    assert props.eff_x(0) == 0x134 & props.layerw_max


def test_bitmap_mode_ignores_scroll_and_keeps_map_sizes():
    tiled = layer(0x03 | 0x10)
    bitmap = layer(0x07, r3=0x55, r4=0x05, previous=tiled)
    assert bitmap.bitmap_mode
    assert bitmap.hscroll == 0 and bitmap.vscroll == 0
    assert bitmap.tilew == 320 and bitmap.tileh == 480
    assert bitmap.mapw_log2 == tiled.mapw_log2


def test_wide_bitmap():
    assert layer(0x06, r2=TILE_BASE_REG | 1).tilew == 640


def test_effective_range_carried_when_unchanged():
    first = layer(0x03, r3=8)
    second = layer(0x03, r3=8, previous=first)
    assert (second.min_eff_x, second.max_eff_x) == (first.min_eff_x, first.max_eff_x)


# --- sprite properties -----------------------------------------------------

def test_sprite_from_bytes_fields():
    sprite = SpriteProperties.from_bytes(
        sprite_bytes(address=0x1000, mode8=True, x=100, y=50, z=2, mask=0x30,
                     hflip=True, palette=3))
    assert sprite.address == 0x1000
    assert sprite.color_mode == 1
    assert (sprite.x, sprite.y) == (100, 50)
    assert sprite.zdepth == 2
    assert sprite.collision_mask == 0x30
    assert sprite.hflip and not sprite.vflip
    assert sprite.palette_offset == 3 << 4
    assert sprite.width == 8 and sprite.height == 8


def test_sprite_negative_coordinates():
    sprite = SpriteProperties.from_bytes(sprite_bytes(x=0x3FF, y=0x3FE))
    assert sprite.x == -1
    assert sprite.y == -2


def test_sprite_rejects_wrong_length():
    with pytest.raises(ValueError):
        SpriteProperties.from_bytes(b"\x00" * 7)


# --- sprite rendering ------------------------------------------------------

def make_sprite_renderer(pixels, address=0x1000):
    renderer = Renderer()
    renderer.vram[address:address + len(pixels)] = bytes(pixels)
    return renderer


def test_sprite_line_8bpp():
    pixels = list(range(1, 65))
    renderer = make_sprite_renderer(pixels)
    sprite = SpriteProperties.from_bytes(sprite_bytes(0x1000, True, x=10, y=5))
    line = renderer.render_sprite_line([sprite], 5)
    assert line.col[10:18] == pixels[:8]
    assert line.z[10:18] == [3] * 8
    assert line.col[9] == 0 and line.col[18] == 0


def test_sprite_second_row_and_outside_rows():
    pixels = list(range(1, 65))
    renderer = make_sprite_renderer(pixels)
    sprite = SpriteProperties.from_bytes(sprite_bytes(0x1000, True, x=0, y=5))
    assert renderer.render_sprite_line([sprite], 6).col[0:8] == pixels[8:16]
    assert renderer.render_sprite_line([sprite], 13).col == [0] * 640


def test_sprite_flips():
    pixels = list(range(1, 65))
    renderer = make_sprite_renderer(pixels)
    hflipped = SpriteProperties.from_bytes(sprite_bytes(0x1000, True, hflip=True))
    assert renderer.render_sprite_line([hflipped], 0).col[0:8] == pixels[7::-1]
    vflipped = SpriteProperties.from_bytes(sprite_bytes(0x1000, True, vflip=True))
    assert renderer.render_sprite_line([vflipped], 0).col[0:8] == pixels[56:64]


def test_sprite_zero_depth_is_hidden():
    renderer = make_sprite_renderer([7] * 64)
    sprite = SpriteProperties.from_bytes(sprite_bytes(0x1000, True, z=0))
    assert renderer.render_sprite_line([sprite], 0).col == [0] * 640


def test_sprite_4bpp_with_palette_offset():
    renderer = make_sprite_renderer([0x12, 0x30, 0x00, 0x00])
    sprite = SpriteProperties.from_bytes(sprite_bytes(0x1000, False, palette=2))
    col = renderer.render_sprite_line([sprite], 0).col
    assert col[0:4] == [0x21, 0x22, 0x23, 0]


def test_sprite_collisions_accumulate():
    renderer = make_sprite_renderer([1] * 64)
    a = SpriteProperties.from_bytes(sprite_bytes(0x1000, True, mask=0x10))
    b = SpriteProperties.from_bytes(sprite_bytes(0x1000, True, x=4, mask=0x30, z=1))
    line = renderer.render_sprite_line([a, b], 0)
    assert line.collisions == 0x10
    assert line.mask[5] == 0x30
    assert line.z[5] == 3


def test_sprite_line_clear_keeps_collisions():
    line = SpriteLine(collisions=0x20)
    line.col[100] = 5
    line.clear(50)
    assert line.col[100] == 0
    assert line.collisions == 0x20


# --- layer rendering -------------------------------------------------------

def test_text_line_colours():
    renderer = Renderer()
    props = layer(0)
    renderer.vram[MAP_BASE] = 1
    renderer.vram[MAP_BASE + 1] = 0x21
    renderer.vram[TILE_BASE + (1 << props.tile_size_log2)] = 0b10000000
    line = renderer.render_text_line(props, props, 0)
    assert len(line) == 640
    assert line[0] == 1
    assert line[1:8] == [2] * 7
    assert line[8] == 0


def test_text_line_256_colour_mode():
    renderer = Renderer()
    props = layer(0x08)
    renderer.vram[MAP_BASE] = 1
    renderer.vram[MAP_BASE + 1] = 0x9A
    renderer.vram[TILE_BASE + (1 << props.tile_size_log2)] = 0b01000000
    line = renderer.render_text_line(props, props, 0)
    assert line[0:3] == [0, 0x9A, 0]


def make_tile_renderer(attributes):
    renderer = Renderer()
    props = layer(0x03)
    renderer.vram[MAP_BASE] = 1
    renderer.vram[MAP_BASE + 1] = attributes
    start = TILE_BASE + (1 << props.tile_size_log2)
    renderer.vram[start:start + 8] = bytes(range(1, 9))
    return renderer, props


def test_tile_line_8bpp():
    renderer, props = make_tile_renderer(0)
    line = renderer.render_tile_line(props, props, 0)
    assert line[0:8] == list(range(1, 9))
    assert line[8] == 0


def test_tile_line_hflip():
    renderer, props = make_tile_renderer(0x04)
    assert renderer.render_tile_line(props, props, 0)[0:8] == list(range(8, 0, -1))


def test_tile_line_palette_offset():
    renderer, props = make_tile_renderer(0x10)
    line = renderer.render_tile_line(props, props, 0)
    assert line[0:8] == [value + 0x10 for value in range(1, 9)]


def test_bitmap_line_wraps_at_width():
    renderer = Renderer()
    props = layer(0x07)
    renderer.vram[TILE_BASE:TILE_BASE + 320] = bytes(i & 0xFF for i in range(320))
    line = renderer.render_bitmap_line(props, 0, 0)
    assert line[0:320] == [i & 0xFF for i in range(320)]
    assert line[320:640] == line[0:320]


def test_bitmap_line_palette_offset_applies_to_low_colours():
    renderer = Renderer()
    props = layer(0x07)
    renderer.vram[TILE_BASE:TILE_BASE + 3] = bytes([0, 5, 0x40])
    line = renderer.render_bitmap_line(props, 2, 0)
    assert line[0:3] == [0, 0x25, 0x40]