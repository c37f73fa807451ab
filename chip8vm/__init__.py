"""CHIP-8 interpreter core: execution engine, packed display and compositor."""
from .compositor import Compositor
from .config import MachineConfig
from .cpu import Chip8
from .errors import AddressingError, Chip8Error, StackUnderflowError
from .framebuffer import FrameBuffer
from .keypad import Keypad

__all__ = [
    "AddressingError",
    "Chip8",
    "Chip8Error",
    "Compositor",
    "FrameBuffer",
    "Keypad",
    "MachineConfig",
    "StackUnderflowError",
]
