"""
Turns the packed frame buffer into a dense colour array.

Only pixels whose bit changed since the previous composite are repainted,
so the cost follows the amount of damage rather than the screen size.
"""
from __future__ import annotations

import numpy as np

from .constants import COLOR_OFF, COLOR_ON
from .framebuffer import FrameBuffer

# bit position inside a byte, MSB first, matching FrameBuffer packing
_BIT_COLUMNS = np.arange(8, dtype=np.int64)


class Compositor:
    def __init__(self, frame: FrameBuffer, color_on: int = COLOR_ON,
                 color_off: int = COLOR_OFF):
        self.frame = frame
        self.color_on = color_on
        self.color_off = color_off
        self.previous = np.zeros(len(frame.bits), dtype=np.uint8)
        self.pixels = np.full(frame.width * frame.height, color_off,
                              dtype=np.uint32)

    def invalidate(self):
        """Make the next composite repaint every pixel."""
        current = np.frombuffer(self.frame.snapshot(), dtype=np.uint8)
        # previous = ~current guarantees every bit differs
        self.previous = np.bitwise_not(current)

    def composite(self) -> np.ndarray:
        """Paint changed pixels into self.pixels and return their indices."""
        current = np.frombuffer(self.frame.snapshot(), dtype=np.uint8)
        changed = np.bitwise_xor(current, self.previous)
        byte_idx = np.flatnonzero(changed)
        if byte_idx.size == 0:
            return byte_idx

        diff_bits = np.unpackbits(changed[byte_idx]).reshape(-1, 8).astype(bool)
        new_bits = np.unpackbits(current[byte_idx]).reshape(-1, 8)
        pixel_idx = (byte_idx[:, None] * 8 + _BIT_COLUMNS)[diff_bits]
        turned_on = new_bits[diff_bits].astype(bool)

        self.pixels[pixel_idx] = np.where(turned_on, self.color_on,
                                          self.color_off)
        self.previous = current.copy()
        return pixel_idx

    def as_grid(self) -> np.ndarray:
        """Colour array viewed as (height, width)."""
        return self.pixels.reshape(self.frame.height, self.frame.width)
