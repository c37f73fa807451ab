"""
Bit-packed monochrome frame buffer.

Pixels are stored row-major, 8 per byte, most significant bit first: pixel
(x, y) lives in byte (y * width + x) // 8 at bit 7 - (x % 8). Sprites are
XORed in; rows crossing the right edge or the bottom edge are clipped.
"""
from __future__ import annotations

from typing import Iterable


class FrameBuffer:
    def __init__(self, width: int, height: int):
        if width % 8:
            raise ValueError(f"width must be a multiple of 8, got {width}")
        self.width = width
        self.height = height
        self.stride = width // 8
        self.bits = bytearray(self.stride * height)

    def clear(self):
        self.bits[:] = bytes(len(self.bits))

    def pixel(self, x: int, y: int) -> int:
        pos = y * self.width + x
        return (self.bits[pos >> 3] >> (7 - (pos & 7))) & 1

    def snapshot(self) -> bytes:
        return bytes(self.bits)

    def draw_sprite(self, x_pos: int, y_pos: int, rows: Iterable[int]) -> bool:
        """XOR a sprite in at (x_pos, y_pos); return True if any on pixel went off.

        The position is wrapped onto the screen first; the sprite itself is
        clipped, never wrapped.
        """
        x_pos %= self.width
        y_pos %= self.height
        bits = self.bits
        collision = False
        for row, sprite in enumerate(rows):
            py = y_pos + row
            if py >= self.height:
                break
            if not sprite:
                continue
            pos = py * self.width + x_pos
            idx = pos >> 3
            offset = pos & 7

            left = (sprite >> offset) & 0xFF
            if bits[idx] & left:
                collision = True
            bits[idx] ^= left

            if offset == 0:
                continue
            nxt = idx + 1
            # next byte belongs to the following display row: clip
            if nxt % self.stride == 0:
                continue
            right = (sprite << (8 - offset)) & 0xFF
            if bits[nxt] & right:
                collision = True
            bits[nxt] ^= right
        return collision
