"""Exceptions raised by the interpreter core."""


class Chip8Error(RuntimeError):
    """Base class for fatal interpreter errors."""


class AddressingError(Chip8Error):
    """The program counter or a memory access left the address space."""

    def __init__(self, address: int, length: int = 1, what: str = "memory access"):
        self.address = address
        self.length = length
        super().__init__(
            f"{what} out of range: {address:#05x} (+{length})")


class StackUnderflowError(Chip8Error):
    """RET executed with an empty call stack."""

    def __init__(self, pc: int):
        self.pc = pc
        super().__init__(f"Stack underflow on RET at PC {pc:03X}")
