"""
Execution engine tests.

Programs are written as lists of 16-bit words and loaded at 0x200; each
test steps the machine a fixed number of times and checks registers,
memory and the frame buffer against hand-computed values.
"""
import pytest

from chip8vm import (AddressingError, Chip8, Keypad, MachineConfig,
                     StackUnderflowError)
from chip8vm.constants import FONT_ADDRESS, FONTSET, START_ADDRESS


def _machine(words, keypad=None, rand=0xAB, **config) -> Chip8:
    """Build a machine with `words` loaded as the program."""
    chip8 = Chip8(config=MachineConfig(**config),
                  key_down=keypad if keypad is not None else Keypad(),
                  rand_byte=lambda: rand)
    rom = b"".join(w.to_bytes(2, "big") for w in words)
    chip8.load_rom(rom)
    return chip8


def _run(words, steps=None, **kwargs) -> Chip8:
    chip8 = _machine(words, **kwargs)
    for _ in range(len(words) if steps is None else steps):
        chip8.step()
    return chip8


class TestMemoryLayout:
    def test_font_installed(self):
        chip8 = Chip8()
        end = FONT_ADDRESS + len(FONTSET)
        assert bytes(chip8.memory[FONT_ADDRESS:end]) == bytes(FONTSET)

    def test_rom_loaded_at_program_start(self):
        chip8 = _machine([0x1234, 0xABCD])
        assert chip8.pc == START_ADDRESS
        assert bytes(chip8.memory[0x200:0x204]) == b"\x12\x34\xab\xcd"

    def test_rom_too_large(self):
        chip8 = Chip8()
        with pytest.raises(ValueError):
            chip8.load_rom(bytes(4096 - 0x200 + 1))

    def test_load_rom_resets_state(self):
        chip8 = _run([0x6042, 0x2300])
        chip8.load_rom(b"\x00\xe0")
        assert chip8.V[0] == 0
        assert chip8.stack == []
        assert chip8.pc == START_ADDRESS


class TestLoadsAndAdds:
    def test_set_then_add_zero_is_identity(self):
        for r in range(16):
            for b in (0x00, 0x01, 0x7F, 0x80, 0xFF):
                chip8 = _run([0x6000 | r << 8 | b, 0x7000 | r << 8])
                assert chip8.V[r] == b, f"V{r:X} after SET {b:02X}"

    def test_add_byte_wraps_without_flag(self):
        chip8 = _run([0x60FF, 0x6F05, 0x7002])
        assert chip8.V[0] == 0x01
        assert chip8.V[0xF] == 0x05

    def test_end_to_end_add(self):
        chip8 = _run([0x6005, 0x610A, 0x8014])
        assert chip8.V[0] == 0x0F
        assert chip8.V[1] == 0x0A
        assert chip8.V[0xF] == 0
        assert chip8.pc == 0x206


class TestAlu:
    def test_assign(self):
        chip8 = _run([0x6133, 0x8010])
        assert chip8.V[0] == 0x33

    def test_logic_ops(self):
        assert _run([0x60F0, 0x610F, 0x8011]).V[0] == 0xFF
        assert _run([0x60F0, 0x613C, 0x8012]).V[0] == 0x30
        assert _run([0x60FF, 0x610F, 0x8013]).V[0] == 0xF0

    def test_add_with_carry(self):
        chip8 = _run([0x60FF, 0x6101, 0x8014])
        assert chip8.V[0] == 0x00
        assert chip8.V[0xF] == 1

    def test_add_without_carry_clears_flag(self):
        chip8 = _run([0x6F01, 0x6010, 0x6120, 0x8014])
        assert chip8.V[0] == 0x30
        assert chip8.V[0xF] == 0

    def test_sub_with_borrow(self):
        chip8 = _run([0x6005, 0x610A, 0x8015])
        assert chip8.V[0] == 0xFB
        assert chip8.V[0xF] == 0

    def test_sub_without_borrow(self):
        chip8 = _run([0x600A, 0x6105, 0x8015])
        assert chip8.V[0] == 0x05
        assert chip8.V[0xF] == 1

    def test_sub_equal_is_no_borrow(self):
        chip8 = _run([0x6007, 0x6107, 0x8015])
        assert chip8.V[0] == 0
        assert chip8.V[0xF] == 1

    def test_subn(self):
        chip8 = _run([0x6005, 0x610A, 0x8017])
        assert chip8.V[0] == 0x05
        assert chip8.V[0xF] == 1
        chip8 = _run([0x600A, 0x6105, 0x8017])
        assert chip8.V[0] == 0xFB
        assert chip8.V[0xF] == 0

    def test_flag_wins_when_vf_is_target(self):
        chip8 = _run([0x6FFF, 0x6101, 0x8F14])
        assert chip8.V[0xF] == 1


class TestShiftModes:
    PROGRAM = [0x6004, 0x6181]

    def test_shr_modern_shifts_in_place(self):
        chip8 = _run(self.PROGRAM + [0x8016])
        assert chip8.V[0] == 0x02
        assert chip8.V[0xF] == 0
        assert chip8.V[1] == 0x81

    def test_shr_legacy_copies_vy(self):
        chip8 = _run(self.PROGRAM + [0x8016], legacy_shift=True)
        assert chip8.V[0] == 0x40
        assert chip8.V[0xF] == 1
        assert chip8.V[1] == 0x81

    def test_shl_modern_shifts_in_place(self):
        chip8 = _run(self.PROGRAM + [0x801E])
        assert chip8.V[0] == 0x08
        assert chip8.V[0xF] == 0

    def test_shl_legacy_copies_vy(self):
        chip8 = _run(self.PROGRAM + [0x801E], legacy_shift=True)
        assert chip8.V[0] == 0x02
        assert chip8.V[0xF] == 1


class TestControlFlow:
    def test_jump(self):
        chip8 = _run([0x1208], steps=1)
        assert chip8.pc == 0x208

    def test_call_and_return(self):
        # 200: CALL 206 / 202: LD V0,1 / 204: JP 204 / 206: RET
        chip8 = _machine([0x2206, 0x6001, 0x1204, 0x00EE])
        chip8.step()
        assert chip8.pc == 0x206
        assert chip8.stack == [0x202]
        chip8.step()
        assert chip8.pc == 0x202
        assert chip8.stack == []
        chip8.step()
        assert chip8.V[0] == 1

    def test_return_with_empty_stack_is_fatal(self):
        chip8 = _machine([0x00EE])
        with pytest.raises(StackUnderflowError):
            chip8.step()

    def test_jump_plus_v0(self):
        chip8 = _run([0x6004, 0xB300])
        assert chip8.pc == 0x304

    @pytest.mark.parametrize("words, skipped", [
        ([0x6005, 0x3005], True),
        ([0x6005, 0x3006], False),
        ([0x6005, 0x4005], False),
        ([0x6005, 0x4006], True),
        ([0x6005, 0x6105, 0x5010], True),
        ([0x6005, 0x6106, 0x5010], False),
        ([0x6005, 0x6105, 0x9010], False),
        ([0x6005, 0x6106, 0x9010], True),
    ])
    def test_conditional_skips(self, words, skipped):
        chip8 = _run(words)
        base = 0x200 + 2 * len(words)
        assert chip8.pc == (base + 2 if skipped else base)

    def test_skip_lands_past_next_instruction(self):
        chip8 = _run([0x6005, 0x3005, 0x6001, 0x6102], steps=3)
        assert chip8.V[0] == 5
        assert chip8.V[1] == 2
        assert chip8.pc == 0x208


class TestIndexAndRandom:
    def test_load_index(self):
        assert _run([0xA123]).I == 0x123

    def test_random_masked(self):
        chip8 = _run([0xC00F], rand=0xAB)
        assert chip8.V[0] == 0x0B

    def test_add_to_index(self):
        chip8 = _run([0xA0FF, 0x6002, 0xF01E])
        assert chip8.I == 0x101

    def test_font_address(self):
        chip8 = _run([0x601A, 0xF029])
        assert chip8.I == FONT_ADDRESS + 0xA * 5

    def test_bcd(self):
        chip8 = _run([0x60FE, 0xA300, 0xF033])
        assert list(chip8.memory[0x300:0x303]) == [2, 5, 4]

    def test_store_and_load_registers(self):
        chip8 = _run([0x6011, 0x6122, 0x6233, 0xA300, 0xF255,
                      0x6000, 0x6100, 0x6200, 0xF165])
        assert list(chip8.memory[0x300:0x303]) == [0x11, 0x22, 0x33]
        assert chip8.V[:3] == [0x11, 0x22, 0]
        assert chip8.I == 0x300

    def test_legacy_store_advances_index(self):
        chip8 = _run([0xA300, 0xF255], legacy_store=True)
        assert chip8.I == 0x303
        chip8 = _run([0xA300, 0xF165], legacy_store=True)
        assert chip8.I == 0x302


class TestTimersAndKeys:
    def test_timer_registers(self):
        chip8 = _run([0x6003, 0xF015, 0xF018, 0xF207])
        assert chip8.delay_timer == 3
        assert chip8.sound_timer == 3
        assert chip8.V[2] == 3

    def test_timers_floor_at_zero(self):
        chip8 = _run([0x6002, 0xF015, 0x6001, 0xF018])
        for _ in range(5):
            chip8.tick_timers()
        assert chip8.delay_timer == 0
        assert chip8.sound_timer == 0

    def test_tick_decrements_once(self):
        chip8 = _run([0x6002, 0xF015])
        chip8.tick_timers()
        assert chip8.delay_timer == 1

    def test_skip_if_key_down(self):
        keypad = Keypad()
        keypad.press(0xC)
        assert _run([0x601C, 0xE09E], keypad=keypad).pc == 0x206
        assert _run([0x601C, 0xE0A1], keypad=keypad).pc == 0x204

    def test_skip_if_key_up(self):
        assert _run([0x6005, 0xE09E]).pc == 0x204
        assert _run([0x6005, 0xE0A1]).pc == 0x206

    def test_key_capability_is_any_callable(self):
        queried = []

        def key_down(key):
            queried.append(key)
            return True

        chip8 = _run([0x60F7, 0xE09E], keypad=key_down)
        assert queried == [0x7]
        assert chip8.pc == 0x206

    def test_wait_for_key(self):
        keypad = Keypad()
        chip8 = _machine([0xF30A], keypad=keypad)
        chip8.step()
        assert chip8.pc == 0x200
        keypad.press(0x7)
        chip8.step()
        assert chip8.V[3] == 0x7
        assert chip8.pc == 0x202


class TestDraw:
    def test_draw_font_glyph(self):
        chip8 = _run([0x6000, 0x6100, 0xA050, 0xD015])
        display = chip8.display
        assert [display.pixel(x, 0) for x in range(8)] == [1, 1, 1, 1, 0, 0, 0, 0]
        assert [display.pixel(x, 1) for x in range(8)] == [1, 0, 0, 1, 0, 0, 0, 0]
        assert chip8.V[0xF] == 0

    def test_double_draw_restores_and_flags(self):
        chip8 = _run([0x6003, 0x6102, 0xA050, 0xD015])
        assert any(chip8.display.snapshot())
        assert chip8.V[0xF] == 0
        chip8.pc -= 2
        chip8.step()
        assert not any(chip8.display.snapshot())
        assert chip8.V[0xF] == 1

    def test_collision_cleared_by_non_overlapping_draw(self):
        chip8 = _run([0x6F01, 0x6000, 0x6100, 0xA050, 0xD011])
        assert chip8.V[0xF] == 0

    def test_draw_position_wraps(self):
        chip8 = _run([0x6042, 0x6121, 0xA050, 0xD011])
        assert chip8.display.pixel(2, 1) == 1

    def test_draw_right_edge_clips(self):
        chip8 = _run([0x603E, 0x6100, 0xA050, 0xD011])
        assert [chip8.display.pixel(x, 0) for x in range(60, 64)] == [0, 0, 1, 1]
        assert chip8.display.pixel(0, 0) == 0
        assert chip8.display.pixel(0, 1) == 0

    def test_clear_screen(self):
        chip8 = _run([0xA050, 0xD005, 0x00E0])
        assert not any(chip8.display.snapshot())

    def test_sprite_past_end_of_memory(self):
        chip8 = _machine([0xAFFE, 0xD00F])
        chip8.step()
        with pytest.raises(AddressingError):
            chip8.step()


class TestErrorsAndUnknownOpcodes:
    @pytest.mark.parametrize("opcode", [0x0123, 0x5011, 0x9012, 0x8008,
                                        0xE000, 0xF0FF])
    def test_unknown_variants_are_noops(self, opcode):
        chip8 = _machine([0x6005, 0x6105, opcode])
        chip8.step()
        chip8.step()
        registers = list(chip8.V)
        chip8.step()
        assert chip8.V == registers
        assert chip8.pc == 0x206
        assert chip8.stack == []

    def test_pc_past_end_of_memory(self):
        chip8 = Chip8()
        chip8.pc = 0xFFE
        chip8.step()
        assert chip8.pc == 0x1000
        with pytest.raises(AddressingError):
            chip8.step()

    def test_odd_pc_is_fatal(self):
        chip8 = Chip8()
        chip8.pc = 0x201
        with pytest.raises(AddressingError):
            chip8.step()

    def test_jump_plus_v0_out_of_range(self):
        chip8 = _machine([0x60FF, 0xBFFF])
        chip8.step()
        chip8.step()
        with pytest.raises(AddressingError):
            chip8.step()
