"""
pygame driver for the chip8vm core.

Run:
  python -m chip8vm path/to/rom [--scale 15] [--clock 700] [--legacy-shift]

Keyboard mapping (common layout):

  CHIP-8  =>  Keyboard
  1 2 3 C =>  1 2 3 4
  4 5 6 D =>  Q W E R
  7 8 9 E =>  A S D F
  A 0 B F =>  Z X C V

The driver owns the window, the keyboard and the two clocks: it runs
`clock // 60` instructions per frame, then ticks the timers once and
composites. Sound is not produced.
"""
from __future__ import annotations

import argparse
import logging
import sys

import numpy as np

try:
    import pygame
except Exception:
    print("This emulator requires pygame. Install with: pip install pygame", file=sys.stderr)
    raise

from .compositor import Compositor
from .config import MachineConfig
from .constants import COLOR_OFF, COLOR_ON, DEFAULT_CLOCK_HZ, TIMER_HZ
from .cpu import Chip8
from .errors import Chip8Error
from .keypad import Keypad

logger = logging.getLogger(__name__)

# Keyboard mapping: CHIP-8 key index -> pygame key
KEYMAP = {
    0x0: pygame.K_x,
    0x1: pygame.K_1,
    0x2: pygame.K_2,
    0x3: pygame.K_3,
    0x4: pygame.K_q,
    0x5: pygame.K_w,
    0x6: pygame.K_e,
    0x7: pygame.K_a,
    0x8: pygame.K_s,
    0x9: pygame.K_d,
    0xA: pygame.K_z,
    0xB: pygame.K_c,
    0xC: pygame.K_4,
    0xD: pygame.K_r,
    0xE: pygame.K_f,
    0xF: pygame.K_v,
}
SCANCODE_TO_KEY = {pgk: k_idx for k_idx, pgk in KEYMAP.items()}


def to_rgb(pixels: np.ndarray) -> np.ndarray:
    """(height, width) packed 0xRRGGBB -> (width, height, 3) for surfarray."""
    rgb = np.stack(((pixels >> 16) & 0xFF, (pixels >> 8) & 0xFF, pixels & 0xFF),
                   axis=-1).astype(np.uint8)
    return rgb.transpose(1, 0, 2)


class Frontend:
    def __init__(self, chip8: Chip8, keypad: Keypad, scale: int = 10):
        self.chip8 = chip8
        self.keypad = keypad
        self.compositor = Compositor(chip8.display, chip8.config.color_on,
                                     chip8.config.color_off)
        self.scale = max(1, int(scale))
        width, height = chip8.config.width, chip8.config.height
        self.surface = pygame.display.set_mode(
            (width * self.scale, height * self.scale))
        pygame.display.set_caption("chip8vm")
        self.frame = pygame.Surface((width, height))
        self.clock = pygame.time.Clock()
        self.compositor.invalidate()

    def handle_events(self) -> bool:
        """Feed key state to the keypad; False once the user asks to quit."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            elif event.type in (pygame.KEYDOWN, pygame.KEYUP):
                # Escape to quit
                if event.key == pygame.K_ESCAPE:
                    return False
                key = SCANCODE_TO_KEY.get(event.key)
                if key is not None:
                    self.keypad.set(key, event.type == pygame.KEYDOWN)
        return True

    def render(self):
        damage = self.compositor.composite()
        if damage.size == 0:
            return
        pygame.surfarray.blit_array(self.frame, to_rgb(self.compositor.as_grid()))
        pygame.transform.scale(self.frame, self.surface.get_size(), self.surface)
        pygame.display.flip()

    def tick(self, fps: int):
        self.clock.tick(fps)


def parse_color(text: str) -> int:
    return int(text.lstrip("#"), 16) & 0xFFFFFF


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CHIP-8 interpreter")
    parser.add_argument("rom", help="Path to CHIP-8 ROM")
    parser.add_argument("--scale", type=int, default=15,
                        help="Pixel scale factor (default 15)")
    parser.add_argument("--clock", type=int, default=DEFAULT_CLOCK_HZ,
                        help=f"CPU clock in Hz (default {DEFAULT_CLOCK_HZ})")
    parser.add_argument("--legacy-shift", action="store_true",
                        help="8XY6/8XYE copy VY into VX before shifting")
    parser.add_argument("--legacy-store", action="store_true",
                        help="Use original FX55/FX65 quirk (I increments)")
    parser.add_argument("--fg", type=parse_color, default=COLOR_ON,
                        help="Foreground colour as RRGGBB hex")
    parser.add_argument("--bg", type=parse_color, default=COLOR_OFF,
                        help="Background colour as RRGGBB hex")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log every ignored opcode")
    return parser


def run(frontend: Frontend, clock_hz: int):
    chip8 = frontend.chip8
    cycles_per_frame = max(1, clock_hz // TIMER_HZ)
    logger.info("Running %d instructions per frame at %d Hz", cycles_per_frame, TIMER_HZ)
    while frontend.handle_events():
        for _ in range(cycles_per_frame):
            chip8.step()
        chip8.tick_timers()
        frontend.render()
        frontend.tick(TIMER_HZ)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="[%(levelname)s]:  %(message)s", stream=sys.stdout)

    config = MachineConfig(color_on=args.fg, color_off=args.bg,
                           legacy_shift=args.legacy_shift,
                           legacy_store=args.legacy_store)
    keypad = Keypad()
    chip8 = Chip8(config=config, key_down=keypad)

    # Load ROM
    try:
        with open(args.rom, 'rb') as f:
            rom_data = f.read()
        chip8.load_rom(rom_data)
    except (OSError, ValueError) as e:
        print(f"Cannot load ROM {args.rom}: {e}", file=sys.stderr)
        return 1

    pygame.init()
    pygame.display.set_allow_screensaver(True)
    try:
        run(Frontend(chip8, keypad, scale=args.scale), args.clock)
    except Chip8Error as e:
        print(f"Emulation stopped: {e}", file=sys.stderr)
        return 2
    finally:
        pygame.quit()
    return 0
