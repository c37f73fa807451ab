"""
CHIP-8 execution engine.

One `Chip8` instance owns the whole machine state: memory, V0..VF, I, PC,
the call stack, both timers and the packed frame buffer. The driver calls
`step()` at the instruction clock and `tick_timers()` at 60 Hz.

Quirk handling:
- 8XY6 / 8XYE shift VX in place by default; `legacy_shift` copies VY first.
- FX55 / FX65 leave I untouched by default; `legacy_store` increments it.
- Sprites clip at the right and bottom edges. DXYN sets VF when any lit
  pixel is switched off.
- Unknown opcodes are ignored.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from .config import MachineConfig
from .constants import FONT_GLYPH_SIZE
from .errors import AddressingError, StackUnderflowError
from .framebuffer import FrameBuffer
from .keypad import KEY_COUNT, Keypad

logger = logging.getLogger(__name__)


def random_byte() -> int:
    return random.randint(0, 255)


@dataclass
class Chip8:
    config: MachineConfig = field(default_factory=MachineConfig)
    # capability queried by EX9E / EXA1 / FX0A
    key_down: Callable[[int], bool] = field(default_factory=Keypad)
    rand_byte: Callable[[], int] = field(default_factory=lambda: random_byte)

    memory: bytearray = field(init=False, repr=False)
    V: List[int] = field(init=False)  # registers V0..VF
    I: int = field(init=False, default=0)
    pc: int = field(init=False, default=0)
    stack: List[int] = field(init=False)
    delay_timer: int = field(init=False, default=0)
    sound_timer: int = field(init=False, default=0)
    display: FrameBuffer = field(init=False, repr=False)

    def __post_init__(self):
        self._families: Dict[int, Callable[[int], None]] = {
            0x0: self._op_sys,
            0x1: self._op_jp,
            0x2: self._op_call,
            0x3: self._op_se_byte,
            0x4: self._op_sne_byte,
            0x5: self._op_se_reg,
            0x6: self._op_ld_byte,
            0x7: self._op_add_byte,
            0x8: self._op_alu,
            0x9: self._op_sne_reg,
            0xA: self._op_ld_i,
            0xB: self._op_jp_v0,
            0xC: self._op_rnd,
            0xD: self._op_drw,
            0xE: self._op_skip_key,
            0xF: self._op_misc,
        }
        self._alu: Dict[int, Callable[[int, int], None]] = {
            0x0: self._alu_ld,
            0x1: self._alu_or,
            0x2: self._alu_and,
            0x3: self._alu_xor,
            0x4: self._alu_add,
            0x5: self._alu_sub,
            0x6: self._alu_shr,
            0x7: self._alu_subn,
            0xE: self._alu_shl,
        }
        self._misc: Dict[int, Callable[[int], None]] = {
            0x07: self._ld_vx_dt,
            0x0A: self._ld_vx_key,
            0x15: self._ld_dt_vx,
            0x18: self._ld_st_vx,
            0x1E: self._add_i_vx,
            0x29: self._ld_f_vx,
            0x33: self._ld_b_vx,
            0x55: self._ld_mem_vx,
            0x65: self._ld_vx_mem,
        }
        self.display = FrameBuffer(self.config.width, self.config.height)
        self.reset()

    def reset(self):
        cfg = self.config
        self.memory = bytearray(cfg.memory_size)
        self.memory[cfg.font_address:cfg.font_address + len(cfg.font)] = bytes(cfg.font)
        self.V = [0] * 16
        self.I = 0
        self.pc = cfg.start_address
        self.stack = []
        self.delay_timer = 0
        self.sound_timer = 0
        # same FrameBuffer object for the lifetime of the machine
        self.display.clear()

    def load_rom(self, data: bytes):
        self.reset()
        start = self.config.start_address
        end = start + len(data)
        if end > len(self.memory):
            raise ValueError("ROM is too large for memory")
        self.memory[start:end] = data
        logger.info("Loaded %d byte program at %#05x", len(data), start)

    # =============== Core fetch/decode/execute cycle ===============
    def fetch_opcode(self) -> int:
        pc = self.pc
        if pc & 1 or pc < 0 or pc + 1 >= len(self.memory):
            raise AddressingError(pc, 2, "program counter")
        return (self.memory[pc] << 8) | self.memory[pc + 1]

    def step(self):
        """Execute exactly one instruction."""
        opcode = self.fetch_opcode()
        self.pc += 2
        handler = self._families.get(opcode >> 12)
        if handler is not None:
            handler(opcode)

    def tick_timers(self):
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    # =============== Helpers ===============
    def _check_span(self, address: int, length: int):
        if address < 0 or address + length > len(self.memory):
            raise AddressingError(address, length)

    def _skip_if(self, condition: bool):
        if condition:
            self.pc += 2

    def _ignore(self, opcode: int):
        logger.debug("Ignoring opcode %04X at PC %03X", opcode, self.pc - 2)

    # =============== Opcode families ===============
    def _op_sys(self, opcode: int):
        if opcode == 0x00E0:  # CLS
            self.display.clear()
        elif opcode == 0x00EE:  # RET
            if not self.stack:
                raise StackUnderflowError(self.pc - 2)
            self.pc = self.stack.pop()
        else:  # 0NNN machine call, not emulated
            self._ignore(opcode)

    def _op_jp(self, opcode: int):  # JP addr
        self.pc = opcode & 0x0FFF

    def _op_call(self, opcode: int):  # CALL addr
        self.stack.append(self.pc)
        self.pc = opcode & 0x0FFF

    def _op_se_byte(self, opcode: int):  # SE Vx, byte
        self._skip_if(self.V[(opcode >> 8) & 0xF] == opcode & 0xFF)

    def _op_sne_byte(self, opcode: int):  # SNE Vx, byte
        self._skip_if(self.V[(opcode >> 8) & 0xF] != opcode & 0xFF)

    def _op_se_reg(self, opcode: int):  # SE Vx, Vy
        if opcode & 0xF:
            return self._ignore(opcode)
        self._skip_if(self.V[(opcode >> 8) & 0xF] == self.V[(opcode >> 4) & 0xF])

    def _op_sne_reg(self, opcode: int):  # SNE Vx, Vy
        if opcode & 0xF:
            return self._ignore(opcode)
        self._skip_if(self.V[(opcode >> 8) & 0xF] != self.V[(opcode >> 4) & 0xF])

    def _op_ld_byte(self, opcode: int):  # LD Vx, byte
        self.V[(opcode >> 8) & 0xF] = opcode & 0xFF

    def _op_add_byte(self, opcode: int):  # ADD Vx, byte (VF untouched)
        x = (opcode >> 8) & 0xF
        self.V[x] = (self.V[x] + (opcode & 0xFF)) & 0xFF

    def _op_alu(self, opcode: int):
        op = self._alu.get(opcode & 0xF)
        if op is None:
            return self._ignore(opcode)
        op((opcode >> 8) & 0xF, (opcode >> 4) & 0xF)

    def _op_ld_i(self, opcode: int):  # LD I, addr
        self.I = opcode & 0x0FFF

    def _op_jp_v0(self, opcode: int):  # JP V0, addr
        self.pc = (opcode & 0x0FFF) + self.V[0]

    def _op_rnd(self, opcode: int):  # RND Vx, byte
        self.V[(opcode >> 8) & 0xF] = self.rand_byte() & opcode & 0xFF

    def _op_drw(self, opcode: int):  # DRW Vx, Vy, nibble
        n = opcode & 0xF
        self._check_span(self.I, n)
        rows = self.memory[self.I:self.I + n]
        collided = self.display.draw_sprite(
            self.V[(opcode >> 8) & 0xF], self.V[(opcode >> 4) & 0xF], rows)
        self.V[0xF] = 1 if collided else 0

    def _op_skip_key(self, opcode: int):
        key = self.V[(opcode >> 8) & 0xF] & 0xF
        kk = opcode & 0xFF
        if kk == 0x9E:  # SKP Vx
            self._skip_if(self.key_down(key))
        elif kk == 0xA1:  # SKNP Vx
            self._skip_if(not self.key_down(key))
        else:
            self._ignore(opcode)

    def _op_misc(self, opcode: int):
        op = self._misc.get(opcode & 0xFF)
        if op is None:
            return self._ignore(opcode)
        op((opcode >> 8) & 0xF)

    # =============== 8XYN arithmetic ===============
    def _alu_ld(self, x: int, y: int):
        self.V[x] = self.V[y]

    def _alu_or(self, x: int, y: int):
        self.V[x] |= self.V[y]

    def _alu_and(self, x: int, y: int):
        self.V[x] &= self.V[y]

    def _alu_xor(self, x: int, y: int):
        self.V[x] ^= self.V[y]

    def _alu_add(self, x: int, y: int):
        total = self.V[x] + self.V[y]
        self.V[x] = total & 0xFF
        self.V[0xF] = 1 if total > 0xFF else 0

    def _alu_sub(self, x: int, y: int):  # Vx = Vx - Vy
        vx, vy = self.V[x], self.V[y]
        self.V[x] = (vx - vy) & 0xFF
        self.V[0xF] = 1 if vx >= vy else 0

    def _alu_subn(self, x: int, y: int):  # Vx = Vy - Vx
        vx, vy = self.V[x], self.V[y]
        self.V[x] = (vy - vx) & 0xFF
        self.V[0xF] = 1 if vy >= vx else 0

    def _alu_shr(self, x: int, y: int):
        value = self.V[y] if self.config.legacy_shift else self.V[x]
        self.V[x] = value >> 1
        self.V[0xF] = value & 0x1

    def _alu_shl(self, x: int, y: int):
        value = self.V[y] if self.config.legacy_shift else self.V[x]
        self.V[x] = (value << 1) & 0xFF
        self.V[0xF] = (value >> 7) & 0x1

    # =============== FXNN timers, keys, memory ===============
    def _ld_vx_dt(self, x: int):
        self.V[x] = self.delay_timer

    def _ld_dt_vx(self, x: int):
        self.delay_timer = self.V[x]

    def _ld_st_vx(self, x: int):
        self.sound_timer = self.V[x]

    def _ld_vx_key(self, x: int):
        for key in range(KEY_COUNT):
            if self.key_down(key):
                self.V[x] = key
                return
        # no key held: run this instruction again next step
        self.pc -= 2

    def _add_i_vx(self, x: int):
        self.I = (self.I + self.V[x]) & 0xFFFF

    def _ld_f_vx(self, x: int):
        self.I = self.config.font_address + (self.V[x] & 0xF) * FONT_GLYPH_SIZE

    def _ld_b_vx(self, x: int):
        self._check_span(self.I, 3)
        val = self.V[x]
        self.memory[self.I] = val // 100
        self.memory[self.I + 1] = (val // 10) % 10
        self.memory[self.I + 2] = val % 10

    def _ld_mem_vx(self, x: int):
        self._check_span(self.I, x + 1)
        self.memory[self.I:self.I + x + 1] = bytes(self.V[:x + 1])
        if self.config.legacy_store:
            self.I = (self.I + x + 1) & 0xFFFF

    def _ld_vx_mem(self, x: int):
        self._check_span(self.I, x + 1)
        self.V[:x + 1] = list(self.memory[self.I:self.I + x + 1])
        if self.config.legacy_store:
            self.I = (self.I + x + 1) & 0xFFFF
