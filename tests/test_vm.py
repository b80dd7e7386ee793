"""
tests/test_vm.py — Machine semantics, suspension and error handling
===================================================================

Test categories
---------------
Unit — opcode semantics      (add, mul, compare, jumps, relative base)
Unit — addressing modes      (position, immediate, relative; write targets)
Unit — suspension protocol   (AWAITING_INPUT, OUTPUT, HALTED; resume)
Unit — channel helpers       (FIFO input, drain, triples, ASCII)
Unit — run helpers           (run, run_to_completion)
Unit — error taxonomy        (malformed programs, driver misuse, step budget)
Integration — reference programs (quine, large literals, comparisons)

Run
---
    pytest tests/test_vm.py -v
    pytest tests/test_vm.py -v -k "suspend"
"""

from __future__ import annotations

import logging

import pytest

from intcode.memory import INT64_MAX, MAX_ADDRESS
from intcode.vm import (
    AddressLimitError,
    ArithmeticOverflowError,
    ImmediateWriteError,
    InputExhaustedError,
    InvalidModeError,
    InvalidOpcodeError,
    Machine,
    MachineError,
    MachineStateError,
    NegativeAddressError,
    ProgramError,
    Signal,
    StepLimitExceeded,
    Suspension,
)


QUINE = [109, 1, 204, -1, 1001, 100, 1, 100, 1008, 100, 16, 101, 1006, 101, 0, 99]

# Outputs 999 if the input is below 8, 1000 if equal to 8, 1001 if above.
COMPARE_TO_8 = [
    3, 21, 1008, 21, 8, 20, 1005, 20, 22, 107, 8, 21, 20, 1006, 20, 31,
    1106, 0, 36, 98, 0, 0, 1002, 21, 125, 20, 4, 20, 1105, 1, 46, 104,
    999, 1105, 1, 46, 1101, 1000, 1, 20, 4, 20, 1105, 1, 46, 98, 99,
]

# Echo inputs forever: IN [9]; OUT [9]; JMP 0
ECHO = [3, 9, 4, 9, 1105, 1, 0, 99, 0, 0]


def _run_memory(program):
    vm = Machine(program)
    assert vm.resume() == Suspension.HALTED
    return vm.memory.snapshot()


# ─────────────────────────────────────────────────────────────────────────────
# Opcode semantics
# ─────────────────────────────────────────────────────────────────────────────

class TestOpcodes:
    def test_halt_only(self):
        vm = Machine([99])
        assert vm.resume().is_halted
        assert vm.outputs == []
        assert vm.memory.read(0) == 99
        assert vm.halted

    @pytest.mark.parametrize("program, expected", [
        ([1, 0, 0, 0, 99], [2, 0, 0, 0, 99]),
        ([2, 3, 0, 3, 99], [2, 3, 0, 6, 99]),
        ([2, 4, 4, 5, 99, 0], [2, 4, 4, 5, 99, 9801]),
        ([1, 1, 1, 4, 99, 5, 6, 0, 99], [30, 1, 1, 4, 2, 5, 6, 0, 99]),
    ])
    def test_add_mul(self, program, expected):
        assert _run_memory(program) == expected

    def test_gravity_assist_example(self):
        mem = _run_memory([1, 9, 10, 3, 2, 3, 11, 0, 99, 30, 40, 50])
        assert mem[0] == 3500
        assert mem[3] == 70

    def test_patched_noun_verb(self):
        program = [1, 0, 0, 0, 99, 7, 11]
        vm = Machine(program)
        vm.memory.write(1, 5)
        vm.memory.write(2, 6)
        vm.run()
        assert vm.memory.read(0) == 18
        assert program[1] == 0

    def test_negative_literal(self):
        mem = _run_memory([1101, 100, -1, 4, 0])
        assert mem[4] == 99

    @pytest.mark.parametrize("program, value, expected", [
        ([3, 9, 8, 9, 10, 9, 4, 9, 99, -1, 8], 8, 1),
        ([3, 9, 8, 9, 10, 9, 4, 9, 99, -1, 8], 7, 0),
        ([3, 9, 7, 9, 10, 9, 4, 9, 99, -1, 8], 5, 1),
        ([3, 9, 7, 9, 10, 9, 4, 9, 99, -1, 8], 8, 0),
        ([3, 3, 1108, -1, 8, 3, 4, 3, 99], 8, 1),
        ([3, 3, 1107, -1, 8, 3, 4, 3, 99], 9, 0),
    ])
    def test_compare(self, program, value, expected):
        assert Machine(program).run([value]) == [expected]

    @pytest.mark.parametrize("program", [
        [3, 12, 6, 12, 15, 1, 13, 14, 13, 4, 13, 99, -1, 0, 1, 9],
        [3, 3, 1105, -1, 9, 1101, 0, 0, 12, 4, 12, 99, 1],
    ])
    @pytest.mark.parametrize("value, expected", [(0, 0), (5, 1), (-3, 1)])
    def test_jumps(self, program, value, expected):
        assert Machine(program).run([value]) == [expected]

    @pytest.mark.parametrize("value, expected", [(7, 999), (8, 1000), (9, 1001)])
    def test_larger_compare_example(self, value, expected):
        assert Machine(COMPARE_TO_8).run([value]) == [expected]

    def test_adjust_base(self):
        # ARB 5; ARB -2; OUT [rb+0] -> mem[3]
        vm = Machine([109, 5, 109, -2, 204, 0, 99])
        vm.run()
        assert vm.relative_base == 3
        assert vm.outputs == [-2]


# ─────────────────────────────────────────────────────────────────────────────
# Addressing modes
# ─────────────────────────────────────────────────────────────────────────────

class TestModes:
    def test_position_and_immediate(self):
        mem = _run_memory([1002, 4, 3, 4, 33])
        assert mem[4] == 99

    def test_relative_write(self):
        # ARB 10; IN [rb+2] -> mem[12]
        vm = Machine([109, 10, 203, 2, 99])
        vm.run([77])
        assert vm.memory.read(12) == 77

    def test_relative_read(self):
        vm = Machine([109, 6, 204, 0, 99, 0, 123])
        assert vm.run() == [123]

    def test_write_past_program_extends_memory(self):
        vm = Machine([1101, 2, 3, 1000, 99])
        vm.run()
        assert vm.memory.read(1000) == 5
        assert len(vm.memory) == 1001

    def test_read_past_program_is_zero(self):
        assert Machine([4, 500, 99]).run() == [0]


# ─────────────────────────────────────────────────────────────────────────────
# Suspension protocol
# ─────────────────────────────────────────────────────────────────────────────

class TestSuspension:
    def test_awaiting_input_does_not_advance(self):
        vm = Machine([3, 5, 99])
        assert vm.resume() is Suspension.AWAITING_INPUT
        assert vm.ip == 0
        assert vm.resume().is_awaiting_input
        assert vm.ip == 0

    def test_resume_after_input(self):
        vm = Machine(ECHO)
        assert vm.resume().is_awaiting_input
        vm.push_input(42)
        result = vm.resume()
        assert result.signal is Signal.OUTPUT
        assert result.value == 42
        assert vm.resume().is_awaiting_input

    def test_output_not_repeated(self):
        vm = Machine([104, 1, 104, 2, 99])
        assert vm.resume() == Suspension.output(1)
        assert vm.resume() == Suspension.output(2)
        assert vm.resume() is Suspension.HALTED
        assert vm.outputs == [1, 2]

    def test_input_is_fifo(self):
        vm = Machine(ECHO, inputs=[1, 2])
        vm.push_inputs([3, 4])
        values = [vm.resume().value for _ in range(4)]
        assert values == [1, 2, 3, 4]

    def test_suspend_resume_transparency(self):
        inputs = [3, 8, 11]
        batch = [Machine(COMPARE_TO_8).run([v]) for v in inputs]
        interactive = []
        for value in inputs:
            vm = Machine(COMPARE_TO_8)
            assert vm.resume().is_awaiting_input
            vm.push_input(value)
            while True:
                s = vm.resume()
                if s.is_halted:
                    break
            interactive.append(vm.outputs)
        assert interactive == batch

    def test_echo_interleaved_matches_preloaded(self):
        preloaded = Machine(ECHO, inputs=[5, 6, 7])
        expected = [preloaded.resume().value for _ in range(3)]
        vm = Machine(ECHO)
        got = []
        for value in (5, 6, 7):
            assert vm.resume().is_awaiting_input
            vm.push_input(value)
            got.append(vm.resume().value)
        assert got == expected

    def test_repr(self):
        assert repr(Suspension.output(3)) == "Suspension(OUTPUT, 3)"
        assert repr(Suspension.HALTED) == "Suspension(HALTED)"


# ─────────────────────────────────────────────────────────────────────────────
# Channel helpers
# ─────────────────────────────────────────────────────────────────────────────

class TestChannels:
    def test_drain_output(self):
        vm = Machine([104, 1, 104, 2, 104, 3, 99])
        vm.run()
        assert vm.drain_output() == [1, 2, 3]
        assert vm.outputs == []

    def test_output_triples(self):
        vm = Machine([104, 1, 104, 2, 104, 3, 104, -1, 104, 0, 104, 7, 104, 9, 99])
        vm.run()
        assert vm.output_triples() == [(1, 2, 3), (-1, 0, 7)]

    def test_last_output(self):
        vm = Machine([104, 4, 104, 5, 99])
        vm.run()
        assert vm.last_output == 5

    def test_ascii_round_trip(self):
        vm = Machine(ECHO)
        vm.push_ascii("hi\n")
        for _ in range(3):
            vm.resume()
        assert vm.ascii_output() == "hi\n"

    def test_ascii_skips_large_values(self):
        vm = Machine([104, 72, 104, 105, 104, 19349, 99])
        vm.run()
        assert vm.ascii_output() == "Hi"
        assert vm.last_output == 19349

    def test_blocked_on_input(self):
        vm = Machine([3, 0, 99])
        assert vm.is_blocked_on_input()
        vm.run([99])
        assert not vm.is_blocked_on_input()


# ─────────────────────────────────────────────────────────────────────────────
# Run helpers
# ─────────────────────────────────────────────────────────────────────────────

class TestRunHelpers:
    def test_quine(self):
        assert Machine(QUINE).run_to_completion() == QUINE

    def test_large_literal(self):
        assert Machine([104, 1125899906842624, 99]).run_to_completion() == [1125899906842624]

    def test_sixteen_digit_product(self):
        out = Machine([1102, 34915192, 34915192, 7, 4, 7, 99, 0]).run_to_completion()
        assert len(out) == 1
        assert len(str(out[0])) == 16
        assert out[0] == 34915192 * 34915192

    def test_feedback_input(self):
        # IN [a]; OUT [a]; IN [b]; OUT [b]+1; second read sees the first output
        program = [3, 13, 4, 13, 3, 14, 1001, 14, 1, 14, 4, 14, 99, 0, 0]
        assert Machine(program).run_to_completion(5) == [5, 6]

    def test_run_to_completion_starved(self):
        with pytest.raises(InputExhaustedError):
            Machine([3, 0, 99]).run_to_completion()

    def test_run_starved(self):
        with pytest.raises(InputExhaustedError):
            Machine([3, 0, 3, 0, 99]).run([1])

    def test_program_not_mutated(self):
        program = [1002, 4, 3, 4, 33]
        Machine(program).run()
        assert program == [1002, 4, 3, 4, 33]

    def test_trace_logs_instructions(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="intcode.vm"):
            Machine([1101, 1, 1, 0, 99], trace=True, name="t").run()
        assert any("ADD" in rec.getMessage() for rec in caplog.records)
        assert any("halted" in rec.getMessage() for rec in caplog.records)


# ─────────────────────────────────────────────────────────────────────────────
# Error taxonomy
# ─────────────────────────────────────────────────────────────────────────────

class TestErrors:
    def test_running_off_the_end_hits_opcode_zero(self):
        vm = Machine([1101, 1, 1, 5])
        with pytest.raises(InvalidOpcodeError) as info:
            vm.run()
        assert info.value.ip == 4
        assert info.value.opcode == 0

    def test_unknown_opcode_reports_ip(self):
        vm = Machine([104, 0, 42])
        vm.resume()
        with pytest.raises(InvalidOpcodeError) as info:
            vm.resume()
        assert info.value.ip == 2
        assert info.value.opcode == 42
        assert "ip=2" in str(info.value)

    def test_unknown_opcode_with_mode_digits(self):
        with pytest.raises(InvalidOpcodeError) as info:
            Machine([1198, 0, 0, 0]).run()
        assert info.value.opcode == 98
        assert "opcode=98" in str(info.value)

    def test_invalid_mode(self):
        with pytest.raises(InvalidModeError) as info:
            Machine([301, 0, 0, 0, 99]).run()
        assert info.value.ip == 0
        assert info.value.opcode == 1

    def test_immediate_write(self):
        with pytest.raises(ImmediateWriteError):
            Machine([11101, 1, 1, 0, 99]).run()

    def test_immediate_input_target(self):
        with pytest.raises(ImmediateWriteError):
            Machine([103, 0, 99]).run([1])

    def test_negative_address(self):
        with pytest.raises(NegativeAddressError) as info:
            Machine([4, -1, 99]).run()
        assert info.value.ip == 0

    def test_negative_jump_target(self):
        with pytest.raises(NegativeAddressError):
            Machine([1105, 1, -4, 99]).run()

    def test_address_above_limit(self):
        vm = Machine([4, MAX_ADDRESS + 1, 99])
        with pytest.raises(AddressLimitError) as info:
            vm.run()
        assert info.value.ip == 0
        assert vm.faulted
        assert len(vm.memory) == 3

    def test_overflow(self):
        with pytest.raises(ArithmeticOverflowError):
            Machine([1101, INT64_MAX, 1, 0, 99]).run()

    def test_program_literal_overflow(self):
        with pytest.raises(ArithmeticOverflowError):
            Machine([INT64_MAX + 1])

    def test_faulted_cannot_resume(self):
        vm = Machine([42])
        with pytest.raises(ProgramError):
            vm.resume()
        assert vm.faulted
        with pytest.raises(MachineStateError):
            vm.resume()

    def test_resume_after_halt(self):
        vm = Machine([99])
        vm.resume()
        with pytest.raises(MachineStateError):
            vm.resume()

    def test_last_output_before_any(self):
        with pytest.raises(MachineStateError):
            Machine([99]).last_output

    def test_step_limit(self):
        vm = Machine([1105, 1, 0], max_steps=50)
        with pytest.raises(StepLimitExceeded):
            vm.resume()
        assert vm.steps == 50

    def test_blocked_query_leaves_memory_alone(self):
        vm = Machine([1105, 1, 10], max_steps=1)
        with pytest.raises(StepLimitExceeded):
            vm.resume()
        assert vm.ip == 10
        assert not vm.is_blocked_on_input()
        assert len(vm.memory) == 3

    def test_hierarchy(self):
        for exc in (InvalidOpcodeError, InvalidModeError, ImmediateWriteError,
                    NegativeAddressError, AddressLimitError, ArithmeticOverflowError):
            assert issubclass(exc, ProgramError)
        for exc in (ProgramError, MachineStateError, InputExhaustedError, StepLimitExceeded):
            assert issubclass(exc, MachineError)
