from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .constants import (COLOR_OFF, COLOR_ON, FONT_ADDRESS, FONTSET,
                        MEM_SIZE, SCREEN_H, SCREEN_W, START_ADDRESS)


@dataclass(frozen=True)
class MachineConfig:
    """Immutable description of one emulated machine.

    legacy_shift: 8XY6/8XYE copy VY into VX before shifting (COSMAC quirk).
    legacy_store: FX55/FX65 increment I past the last register touched.
    """
    width: int = SCREEN_W
    height: int = SCREEN_H
    memory_size: int = MEM_SIZE
    start_address: int = START_ADDRESS
    font_address: int = FONT_ADDRESS
    font: Tuple[int, ...] = FONTSET
    color_on: int = COLOR_ON
    color_off: int = COLOR_OFF
    legacy_shift: bool = False
    legacy_store: bool = False

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"display size must be positive, got {self.width}x{self.height}")
        if self.width % 8:
            raise ValueError(
                f"display width must be a multiple of 8, got {self.width}")
        if not 0 <= self.font_address <= self.start_address - len(self.font):
            raise ValueError("font does not fit below the program area")
        if self.start_address >= self.memory_size:
            raise ValueError("program area starts past the end of memory")

    @property
    def stride(self) -> int:
        """Bytes per display row in the packed frame buffer."""
        return self.width // 8
