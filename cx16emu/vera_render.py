"""VERA scanline rendering: layer and sprite properties, palettes and line output."""

from dataclasses import dataclass, field

SCREEN_WIDTH = 640
SCREEN_HEIGHT = 480
NUM_SPRITES = 128
VRAM_SIZE = 0x20000
_VRAM_MASK = 0x1FFFF
_U16 = 0xFFFF
_SPRITE_BUDGET = 800 + 1

_DEFAULT_PALETTE = (
    0x000, 0xfff, 0x800, 0xafe, 0xc4c, 0x0c5, 0x00a, 0xee7, 0xd85, 0x640, 0xf77, 0x333, 0x777, 0xaf6, 0x08f, 0xbbb,
    0x000, 0x111, 0x222, 0x333, 0x444, 0x555, 0x666, 0x777, 0x888, 0x999, 0xaaa, 0xbbb, 0xccc, 0xddd, 0xeee, 0xfff,
    0x211, 0x433, 0x644, 0x866, 0xa88, 0xc99, 0xfbb, 0x211, 0x422, 0x633, 0x844, 0xa55, 0xc66, 0xf77, 0x200, 0x411,
    0x611, 0x822, 0xa22, 0xc33, 0xf33, 0x200, 0x400, 0x600, 0x800, 0xa00, 0xc00, 0xf00, 0x221, 0x443, 0x664, 0x886,
    0xaa8, 0xcc9, 0xfeb, 0x211, 0x432, 0x653, 0x874, 0xa95, 0xcb6, 0xfd7, 0x210, 0x431, 0x651, 0x862, 0xa82, 0xca3,
    0xfc3, 0x210, 0x430, 0x640, 0x860, 0xa80, 0xc90, 0xfb0, 0x121, 0x343, 0x564, 0x786, 0x9a8, 0xbc9, 0xdfb, 0x121,
    0x342, 0x463, 0x684, 0x8a5, 0x9c6, 0xbf7, 0x120, 0x241, 0x461, 0x582, 0x6a2, 0x8c3, 0x9f3, 0x120, 0x240, 0x360,
    0x480, 0x5a0, 0x6c0, 0x7f0, 0x121, 0x343, 0x465, 0x686, 0x8a8, 0x9ca, 0xbfc, 0x121, 0x242, 0x364, 0x485, 0x5a6,
    0x6c8, 0x7f9, 0x020, 0x141, 0x162, 0x283, 0x2a4, 0x3c5, 0x3f6, 0x020, 0x041, 0x061, 0x082, 0x0a2, 0x0c3, 0x0f3,
    0x122, 0x344, 0x466, 0x688, 0x8aa, 0x9cc, 0xbff, 0x122, 0x244, 0x366, 0x488, 0x5aa, 0x6cc, 0x7ff, 0x022, 0x144,
    0x166, 0x288, 0x2aa, 0x3cc, 0x3ff, 0x022, 0x044, 0x066, 0x088, 0x0aa, 0x0cc, 0x0ff, 0x112, 0x334, 0x456, 0x668,
    0x88a, 0x9ac, 0xbcf, 0x112, 0x224, 0x346, 0x458, 0x56a, 0x68c, 0x79f, 0x002, 0x114, 0x126, 0x238, 0x24a, 0x35c,
    0x36f, 0x002, 0x014, 0x016, 0x028, 0x02a, 0x03c, 0x03f, 0x112, 0x334, 0x546, 0x768, 0x98a, 0xb9c, 0xdbf, 0x112,
    0x324, 0x436, 0x648, 0x85a, 0x96c, 0xb7f, 0x102, 0x214, 0x416, 0x528, 0x62a, 0x83c, 0x93f, 0x102, 0x204, 0x306,
    0x408, 0x50a, 0x60c, 0x70f, 0x212, 0x434, 0x646, 0x868, 0xa8a, 0xc9c, 0xfbe, 0x211, 0x423, 0x635, 0x847, 0xa59,
    0xc6b, 0xf7d, 0x201, 0x413, 0x615, 0x826, 0xa28, 0xc3a, 0xf3c, 0x201, 0x403, 0x604, 0x806, 0xa08, 0xc09, 0xf0b,
)


def default_palette_bytes():
    """The power-on palette as 512 little-endian bytes (two per entry)."""
    return b"".join(entry.to_bytes(2, "little") for entry in _DEFAULT_PALETTE)


def palette_entries(palette, composer0):
    """Turn 512 palette bytes into 256 0xRRGGBB values for the given DC_VIDEO."""
    if composer0 & 3 == 0:
        # video generation off shows a blue screen
        return [0x0000FF] * 256
    chroma_disable = composer0 & 0x07 == 6
    entries = []
    for index in range(256):
        entry = palette[index * 2] | (palette[index * 2 + 1] << 8)
        r = ((entry >> 8) & 0xF) * 0x11
        g = ((entry >> 4) & 0xF) * 0x11
        b = (entry & 0xF) * 0x11
        if chroma_disable:
            r = g = b = (r + g + b) // 3
        entries.append((r << 16) | (g << 8) | b)
    return entries


def compose_pixel(sprite_z, sprite_col, l1_col, l2_col):
    """Pick the visible colour index from a sprite and the two layers."""
    if sprite_z == 3:
        return sprite_col or l2_col or l1_col
    if sprite_z == 2:
        return l2_col or sprite_col or l1_col
    if sprite_z == 1:
        return l2_col or l1_col or sprite_col
    if sprite_z == 0:
        return l2_col or l1_col
    return 0


@dataclass(frozen=True)
class LayerProperties:
    """Values derived from the seven registers of one layer."""

    color_depth: int = 0
    map_base: int = 0
    tile_base: int = 0
    text_mode: bool = False
    text_mode_256c: bool = False
    tile_mode: bool = False
    bitmap_mode: bool = False
    hscroll: int = 0
    vscroll: int = 0
    mapw_log2: int = 0
    maph_log2: int = 0
    tilew: int = 0
    tileh: int = 0
    tilew_log2: int = 0
    tileh_log2: int = 0
    mapw_max: int = 0
    maph_max: int = 0
    tilew_max: int = 0
    tileh_max: int = 0
    layerw_max: int = 0
    layerh_max: int = 0
    tile_size_log2: int = 0
    min_eff_x: int = 0
    max_eff_x: int = 0
    bits_per_pixel: int = 0
    first_color_pos: int = 0
    color_mask: int = 0
    color_fields_max: int = 0

    @classmethod
    def from_registers(cls, registers, previous=None):
        """Derive the properties; map/tile sizes not used by bitmap mode carry over."""
        prev = previous if previous is not None else cls()
        r0, r1, r2, r3, r4, r5, r6 = (value & 0xFF for value in registers)

        color_depth = r0 & 3
        bitmap_mode = bool(r0 & 4)
        text_mode = color_depth == 0 and not bitmap_mode
        tile_mode = not bitmap_mode and not text_mode

        if bitmap_mode:
            hscroll = vscroll = 0
        else:
            hscroll = r3 | ((r4 & 0xF) << 8)
            vscroll = r5 | ((r6 & 0xF) << 8)

        mapw_log2, maph_log2 = prev.mapw_log2, prev.maph_log2
        tilew_log2, tileh_log2 = prev.tilew_log2, prev.tileh_log2
        mapw = maph = 0
        if bitmap_mode:
            # a bitmap is one huge tile
            tilew = 640 if r2 & 1 else 320
            tileh = SCREEN_HEIGHT
        else:
            mapw_log2 = 5 + ((r0 >> 4) & 3)
            maph_log2 = 5 + ((r0 >> 6) & 3)
            mapw = 1 << mapw_log2
            maph = 1 << maph_log2
            tilew_log2 = 3 + (r2 & 1)
            tileh_log2 = 3 + ((r2 >> 1) & 1)
            tilew = 1 << tilew_log2
            tileh = 1 << tileh_log2

        layerw_max = (mapw * tilew - 1) & _U16
        layerh_max = (maph * tileh - 1) & _U16

        if previous is None or prev.layerw_max != layerw_max or prev.hscroll != hscroll:
            effective = [(x + hscroll) & layerw_max for x in range(SCREEN_WIDTH)]
            min_eff_x, max_eff_x = min(effective), max(effective)
        else:
            min_eff_x, max_eff_x = prev.min_eff_x, prev.max_eff_x

        bits_per_pixel = 1 << color_depth
        return cls(
            color_depth=color_depth,
            map_base=r1 << 9,
            tile_base=(r2 & 0xFC) << 9,
            text_mode=text_mode,
            text_mode_256c=bool(r0 & 8),
            tile_mode=tile_mode,
            bitmap_mode=bitmap_mode,
            hscroll=hscroll,
            vscroll=vscroll,
            mapw_log2=mapw_log2,
            maph_log2=maph_log2,
            tilew=tilew,
            tileh=tileh,
            tilew_log2=tilew_log2,
            tileh_log2=tileh_log2,
            mapw_max=(mapw - 1) & _U16,
            maph_max=(maph - 1) & _U16,
            tilew_max=(tilew - 1) & _U16,
            tileh_max=(tileh - 1) & _U16,
            layerw_max=layerw_max,
            layerh_max=layerh_max,
            tile_size_log2=(tilew_log2 + tileh_log2 + color_depth - 3) & 0xFF,
            min_eff_x=min_eff_x,
            max_eff_x=max_eff_x,
            bits_per_pixel=bits_per_pixel,
            first_color_pos=8 - bits_per_pixel,
            color_mask=(1 << bits_per_pixel) - 1,
            color_fields_max=(8 >> color_depth) - 1,
        )

    def eff_x(self, x):
        return (x + self.hscroll) & self.layerw_max

    def eff_y(self, y):
        return (y + self.vscroll) & self.layerh_max

    def map_address(self, eff_x, eff_y):
        row = (eff_y >> self.tileh_log2) << self.mapw_log2
        return self.map_base + ((row + (eff_x >> self.tilew_log2)) << 1)


@dataclass(frozen=True)
class SpriteProperties:
    """Values derived from the eight attribute bytes of one sprite."""

    zdepth: int = 0
    collision_mask: int = 0
    x: int = 0
    y: int = 0
    width_log2: int = 3
    height_log2: int = 3
    width: int = 8
    height: int = 8
    hflip: bool = False
    vflip: bool = False
    color_mode: int = 0
    address: int = 0
    palette_offset: int = 0

    @classmethod
    def from_bytes(cls, data):
        d = bytes(data)
        if len(d) != 8:
            raise ValueError(f"sprite attributes are 8 bytes, got {len(d)}")
        width_log2 = ((d[7] >> 4) & 3) + 3
        height_log2 = (d[7] >> 6) + 3
        width = 1 << width_log2
        height = 1 << height_log2
        x = d[2] | ((d[3] & 3) << 8)
        y = d[4] | ((d[5] & 3) << 8)
        # coordinates near the top of the range are negative
        if x >= 0x400 - width:
            x -= 0x400
        if y >= 0x400 - height:
            y -= 0x400
        return cls(
            zdepth=(d[6] >> 2) & 3,
            collision_mask=d[6] & 0xF0,
            x=x,
            y=y,
            width_log2=width_log2,
            height_log2=height_log2,
            width=width,
            height=height,
            hflip=bool(d[6] & 1),
            vflip=bool((d[6] >> 1) & 1),
            color_mode=(d[1] >> 7) & 1,
            address=(d[0] << 5) | ((d[1] & 0xF) << 13),
            palette_offset=(d[7] & 0x0F) << 4,
        )


@dataclass
class SpriteLine:
    """Per-pixel sprite colour, depth and collision mask for one scanline."""

    col: list = field(default_factory=lambda: [0] * SCREEN_WIDTH)
    z: list = field(default_factory=lambda: [0] * SCREEN_WIDTH)
    mask: list = field(default_factory=lambda: [0] * SCREEN_WIDTH)
    collisions: int = 0

    def clear(self, start=0):
        """Zero the pixels from ``start`` on; collisions are kept."""
        for line in (self.col, self.z, self.mask):
            line[start:] = [0] * (SCREEN_WIDTH - start)


class Renderer:
    """Draws sprite and layer scanlines from video RAM."""

    def __init__(self, vram=None):
        self.vram = vram if vram is not None else bytearray(VRAM_SIZE)
        self.sprite_line = SpriteLine()

    def _read(self, address):
        return self.vram[address & _VRAM_MASK]

    def _sprite_pixels(self, sprite, eff_sy):
        shift = sprite.width_log2 - (1 - sprite.color_mode)
        base = sprite.address + (eff_sy << shift)
        width = min(sprite.width, 64)
        if sprite.color_mode:
            return [self._read(base + i) for i in range(width)]
        pixels = []
        for i in range(width // 2):
            byte = self._read(base + i)
            pixels.extend((byte >> 4, byte & 0xF))
        return pixels

    def render_sprite_line(self, sprites, y):
        """Render line ``y`` of all sprites into ``sprite_line`` and return it."""
        line = self.sprite_line
        line.clear()
        budget = _SPRITE_BUDGET
        for sprite in sprites:
            # one clock per lookup
            budget = (budget - 1) & _U16
            if budget == 0:
                break
            if sprite.zdepth == 0:
                continue
            if y < sprite.y or y >= sprite.y + sprite.height:
                continue
            row = y - sprite.y
            eff_sy = ((sprite.height - 1 - row) if sprite.vflip else row) & _U16
            pixels = self._sprite_pixels(sprite, eff_sy)
            eff_sx = sprite.width - 1 if sprite.hflip else 0
            step = -1 if sprite.hflip else 1
            for sx in range(sprite.width):
                line_x = (sprite.x + sx) & _U16
                if line_x >= SCREEN_WIDTH:
                    eff_sx += step
                    continue
                # one clock per fetched 32 bits
                if not sx & 3:
                    budget = (budget - 1) & _U16
                    if budget == 0:
                        break
                # one clock per rendered pixel
                budget = (budget - 1) & _U16
                if budget == 0:
                    break
                col_index = pixels[eff_sx]
                eff_sx += step
                if col_index > 0:
                    line.collisions |= line.mask[line_x] & sprite.collision_mask
                    line.mask[line_x] |= sprite.collision_mask
                    if sprite.zdepth > line.z[line_x]:
                        line.col[line_x] = (col_index + sprite.palette_offset) & 0xFF
                        line.z[line_x] = sprite.zdepth
        return line

    def render_text_line(self, props, props0, y):
        """Render one line of a 1bpp text layer; ``props0`` supplies the scroll."""
        max_pixels_per_byte = (8 >> props.color_depth) - 1
        eff_y = props0.eff_y(y)
        yy = eff_y & props.tileh_max
        y_add = (yy << props.tilew_log2) >> 3

        fg = bg = 0
        tile_start = 0
        s = 0
        color_shift = 0

        def fetch_map(eff_x):
            nonlocal fg, bg, tile_start
            address = props.map_address(eff_x, eff_y)
            tile_index = self._read(address)
            attributes = self._read(address + 1)
            if props.text_mode_256c:
                fg, bg = attributes, 0
            else:
                fg, bg = attributes & 15, attributes >> 4
            tile_start = tile_index << props.tile_size_log2

        eff_x = props.eff_x(0)
        xx = eff_x & props.tilew_max
        fetch_map(eff_x)
        s = self._read(props.tile_base + tile_start + y_add + (xx >> 3))
        color_shift = (max_pixels_per_byte - (xx & 7)) & 0xFF

        pixels = []
        for x in range(SCREEN_WIDTH):
            eff_x = props.eff_x(x)
            xx = eff_x & props.tilew_max
            if eff_x & 7 == 0:
                if xx == 0:
                    fetch_map(eff_x)
                s = self._read(props.tile_base + tile_start + y_add + (xx >> 3))
                color_shift = max_pixels_per_byte
            bit = (s >> color_shift) & 1
            color_shift = (color_shift - 1) & 0xFF
            pixels.append(fg if bit else bg)
        return pixels

    def render_tile_line(self, props, props0, y):
        """Render one line of a tiled layer with flips and palette offsets."""
        max_pixels_per_byte = (8 >> props.color_depth) - 1
        eff_y = props0.eff_y(y)
        yy = eff_y & props.tileh_max & 0xFF
        yy_flip = yy ^ props.tileh_max
        row_shift = props.tilew_log2 + props.color_depth - 3
        y_add = yy << row_shift
        y_add_flip = yy_flip << row_shift

        palette_offset = 0
        vflip = hflip = False
        tile_start = 0
        shift_step = 0

        def fetch_map(eff_x):
            nonlocal palette_offset, vflip, hflip, tile_start, shift_step
            address = props.map_address(eff_x, eff_y)
            byte0 = self._read(address)
            byte1 = self._read(address + 1)
            vflip = bool((byte1 >> 3) & 1)
            hflip = bool((byte1 >> 2) & 1)
            palette_offset = byte1 & 0xF0
            tile_start = (byte0 | ((byte1 & 3) << 8)) << props.tile_size_log2
            shift_step = props.bits_per_pixel if hflip else -props.bits_per_pixel

        def fetch_byte(eff_x):
            xx = eff_x & props.tilew_max
            if hflip:
                xx ^= props.tilew_max
                shift = 0
            else:
                shift = props.first_color_pos
            x_add = ((xx << props.color_depth) >> 3) & _U16
            offset = tile_start + (y_add_flip if vflip else y_add) + x_add
            return self._read(props.tile_base + offset), shift

        eff_x = props.eff_x(0)
        fetch_map(eff_x)
        s, color_shift = fetch_byte(eff_x)

        pixels = []
        for x in range(SCREEN_WIDTH):
            eff_x = props.eff_x(x)
            if eff_x & max_pixels_per_byte == 0:
                if eff_x & props.tilew_max == 0:
                    fetch_map(eff_x)
                s, color_shift = fetch_byte(eff_x)
            col_index = (s >> color_shift) & props.color_mask
            color_shift = (color_shift + shift_step) & 0xFF
            if palette_offset and 0 < col_index < 16:
                col_index += palette_offset
            pixels.append(col_index & 0xFF)
        return pixels

    def render_bitmap_line(self, props, palette_offset, y):
        """Render one line of a bitmap layer; ``palette_offset`` is 0 to 15."""
        yy = y % props.tileh
        y_add = (yy * props.tilew * props.bits_per_pixel) >> 3
        offset = palette_offset & 0xF
        pixels = []
        for x in range(SCREEN_WIDTH):
            xx = x % props.tilew
            x_add = ((xx * props.bits_per_pixel) >> 3) & _U16
            s = self._read(props.tile_base + y_add + x_add)
            shift = props.first_color_pos - ((xx & props.color_fields_max) << props.color_depth)
            col_index = (s >> shift) & props.color_mask
            if offset and 0 < col_index < 16:
                col_index += offset << 4
            pixels.append(col_index & 0xFF)
        return pixels