from __future__ import annotations

from typing import List

KEY_COUNT = 16

class Keypad:
    """Hex keypad state; calling it answers "is key k held?"."""

    def __init__(self):
        self.keys: List[bool] = [False] * KEY_COUNT

    def press(self, key: int):
        self.keys[key & 0xF] = True

    def release(self, key: int):
        self.keys[key & 0xF] = False

    def set(self, key: int, is_down: bool):
        self.keys[key & 0xF] = is_down

    def __call__(self, key: int) -> bool:
        if 0 <= key <= 0xF:
            return self.keys[key]
        return False
