"""Fixed machine constants: memory map, display size, font and palette."""

MEM_SIZE = 4096
START_ADDRESS = 0x200
FONT_ADDRESS = 0x50  # canonical address for font sprites
FONT_GLYPH_SIZE = 5
SCREEN_W, SCREEN_H = 64, 32

TIMER_HZ = 60
DEFAULT_CLOCK_HZ = 700

# Colours are packed 0xRRGGBB
COLOR_ON = 0xFFFFFF
COLOR_OFF = 0x000000

# Classic CHIP-8 4x5 font (each char 5 bytes)
FONTSET = (
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
)
