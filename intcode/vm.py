"""Intcode Virtual Machine — interprets an integer array as code and data.

Execution model:
  - ``resume()`` runs fetch/decode/execute until the machine suspends
  - a machine suspends only after producing one output value, at HALT,
    or when an input instruction finds the input queue empty
  - input is a single FIFO queue; output is append-only
  - a malformed program raises a ``ProgramError`` subclass and leaves the
    machine faulted; faulted and halted machines cannot be resumed
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Deque, Dict, Iterable, List, Optional, Tuple

from intcode.isa import (
    DecodeError,
    Instruction,
    Mode,
    Opcode,
    UnknownModeError,
    decode,
)
from intcode.memory import AddressError, Memory, ValueOverflowError

log = logging.getLogger(__name__)


# ── Errors ─────────────────────────────────────────────────────────────────────

class MachineError(Exception):
    pass


class ProgramError(MachineError):
    """The supplied program is malformed.  Fatal; the machine cannot resume."""

    def __init__(self, message: str, *, ip: Optional[int] = None,
                 opcode: Optional[int] = None):
        if ip is not None:
            message = f"{message} (ip={ip}, opcode={opcode})"
        super().__init__(message)
        self.ip = ip
        self.opcode = opcode


class InvalidOpcodeError(ProgramError):
    pass


class InvalidModeError(ProgramError):
    pass


class ImmediateWriteError(ProgramError):
    pass


class NegativeAddressError(ProgramError):
    pass


class AddressLimitError(ProgramError):
    """An operand addressed a cell above ``memory.MAX_ADDRESS``."""


class ArithmeticOverflowError(ProgramError):
    pass


class MachineStateError(MachineError):
    """The driver broke the calling contract (e.g. resumed a halted machine)."""


class InputExhaustedError(MachineError):
    """A run helper needed input that nobody is going to supply."""


class StepLimitExceeded(MachineError):
    pass


# ── Suspension ─────────────────────────────────────────────────────────────────

class Signal(Enum):
    AWAITING_INPUT = auto()
    OUTPUT         = auto()
    HALTED         = auto()


@dataclass(frozen=True)
class Suspension:
    """What ``Machine.resume()`` hands back to its driver."""
    signal: Signal
    value:  Optional[int] = None

    @classmethod
    def output(cls, value: int) -> "Suspension":
        return cls(Signal.OUTPUT, value)

    @property
    def is_output(self) -> bool:
        return self.signal is Signal.OUTPUT

    @property
    def is_halted(self) -> bool:
        return self.signal is Signal.HALTED

    @property
    def is_awaiting_input(self) -> bool:
        return self.signal is Signal.AWAITING_INPUT

    def __repr__(self) -> str:
        if self.signal is Signal.OUTPUT:
            return f"Suspension(OUTPUT, {self.value})"
        return f"Suspension({self.signal.name})"


Suspension.AWAITING_INPUT = Suspension(Signal.AWAITING_INPUT)
Suspension.HALTED         = Suspension(Signal.HALTED)


# ── Machine ────────────────────────────────────────────────────────────────────

class Machine:
    def __init__(self, program: Iterable[int], *, inputs: Iterable[int] = (),
                 trace: bool = False, max_steps: Optional[int] = None,
                 name: str = "machine"):
        try:
            self.memory = Memory(program)
        except ValueOverflowError as e:
            raise ArithmeticOverflowError(f"Program literal out of range: {e.value}") from e

        self.name          = name
        self.trace         = trace
        self.max_steps     = max_steps
        self.ip            = 0
        self.relative_base = 0
        self.inputs:  Deque[int] = deque(inputs)
        self.outputs: List[int]  = []
        self.halted  = False
        self.faulted = False
        self.steps   = 0

        self._handlers: Dict[Opcode, Callable[[Instruction], Optional[Suspension]]] = {
            Opcode.ADD:           self._op_add,
            Opcode.MUL:           self._op_mul,
            Opcode.INPUT:         self._op_input,
            Opcode.OUTPUT:        self._op_output,
            Opcode.JUMP_IF_TRUE:  self._op_jump_if_true,
            Opcode.JUMP_IF_FALSE: self._op_jump_if_false,
            Opcode.LESS_THAN:     self._op_less_than,
            Opcode.EQUALS:        self._op_equals,
            Opcode.ADJUST_BASE:   self._op_adjust_base,
            Opcode.HALT:          self._op_halt,
        }

    # ── Channel I/O ───────────────────────────────────────────────────────────

    def push_input(self, value: int) -> None:
        self.inputs.append(value)

    def push_inputs(self, values: Iterable[int]) -> None:
        self.inputs.extend(values)

    def push_ascii(self, text: str) -> None:
        """Queue every character of ``text`` as its code point."""
        self.inputs.extend(ord(ch) for ch in text)

    def drain_output(self) -> List[int]:
        """Return all pending output values and clear the output list."""
        values = self.outputs
        self.outputs = []
        return values

    def output_triples(self) -> List[Tuple[int, int, int]]:
        """Group the output list into ``(a, b, c)`` triples; a partial tail is ignored."""
        out = self.outputs
        return [(out[i], out[i + 1], out[i + 2]) for i in range(0, len(out) - 2, 3)]

    def ascii_output(self) -> str:
        """Output rendered as text; values outside 0–127 are skipped."""
        return "".join(chr(v) for v in self.outputs if 0 <= v < 128)

    @property
    def last_output(self) -> int:
        if not self.outputs:
            raise MachineStateError(f"{self.name}: no output has been produced")
        return self.outputs[-1]

    def is_blocked_on_input(self) -> bool:
        """True when the instruction at ``ip`` is an input instruction."""
        if self.halted or self.faulted or not 0 <= self.ip < len(self.memory):
            return False
        word = self.memory.read(self.ip)
        return word >= 0 and word % 100 == Opcode.INPUT

    # ── Driving ───────────────────────────────────────────────────────────────

    def resume(self) -> Suspension:
        """Run until the next output, halt, or missing input."""
        if self.halted:
            raise MachineStateError(f"{self.name}: resume() on a halted machine")
        if self.faulted:
            raise MachineStateError(f"{self.name}: machine faulted and cannot resume")
        try:
            return self._run()
        except ProgramError:
            self.faulted = True
            raise

    def run(self, inputs: Iterable[int] = ()) -> List[int]:
        """Pre-load ``inputs`` and run to halt.  Returns every output value."""
        self.push_inputs(inputs)
        while True:
            suspension = self.resume()
            if suspension.is_halted:
                return list(self.outputs)
            if suspension.is_awaiting_input:
                raise InputExhaustedError(
                    f"{self.name}: waiting for input at ip={self.ip} with an empty queue"
                )

    def run_to_completion(self, initial_input: Optional[int] = None) -> List[int]:
        """Run to halt, feeding every output back in as the next input."""
        if initial_input is not None:
            self.push_input(initial_input)
        while True:
            suspension = self.resume()
            if suspension.is_output:
                self.push_input(suspension.value)
            elif suspension.is_halted:
                return list(self.outputs)
            else:
                raise InputExhaustedError(
                    f"{self.name}: waiting for input at ip={self.ip} with an empty queue"
                )

    # ── Fetch / decode / execute ──────────────────────────────────────────────

    def _run(self) -> Suspension:
        while True:
            if self.max_steps is not None and self.steps >= self.max_steps:
                raise StepLimitExceeded(
                    f"{self.name}: step limit {self.max_steps} reached at ip={self.ip}"
                )
            instr = self._fetch()
            if self.trace:
                log.debug("[%s] ip=%d rb=%d %s %s", self.name, self.ip,
                          self.relative_base, instr.mnemonic,
                          [m.name for m in instr.modes])
            result = self._handlers[instr.opcode](instr)
            if result is Suspension.AWAITING_INPUT:
                return result
            self.steps += 1
            if result is not None:
                return result

    def _fetch(self) -> Instruction:
        word = self._read(self.ip)
        try:
            return decode(word)
        except UnknownModeError as e:
            raise InvalidModeError(str(e), ip=self.ip, opcode=word % 100) from e
        except DecodeError as e:
            opcode = word % 100 if word >= 0 else word
            raise InvalidOpcodeError(str(e), ip=self.ip, opcode=opcode) from e

    def _read(self, address: int) -> int:
        try:
            return self.memory.read(address)
        except AddressError as e:
            raise self._address_error(e) from e

    def _write(self, address: int, value: int) -> None:
        try:
            self.memory.write(address, value)
        except AddressError as e:
            raise self._address_error(e) from e
        except ValueOverflowError as e:
            raise ArithmeticOverflowError(str(e), ip=self.ip,
                                          opcode=self._current_opcode()) from e

    def _address_error(self, e: AddressError) -> ProgramError:
        cls = NegativeAddressError if e.address < 0 else AddressLimitError
        return cls(str(e), ip=self.ip, opcode=self._current_opcode())

    def _current_opcode(self) -> Optional[int]:
        if not 0 <= self.ip < len(self.memory):
            return None
        return self.memory.read(self.ip) % 100

    # ── Parameter resolution ──────────────────────────────────────────────────

    def _load(self, instr: Instruction, n: int) -> int:
        """Value of parameter ``n`` (1-based) under its addressing mode."""
        raw  = self._read(self.ip + n)
        mode = instr.modes[n - 1]
        if mode is Mode.IMMEDIATE:
            return raw
        if mode is Mode.POSITION:
            return self._read(raw)
        return self._read(raw + self.relative_base)

    def _address(self, instr: Instruction, n: int) -> int:
        """Target address of write parameter ``n`` (1-based)."""
        raw  = self._read(self.ip + n)
        mode = instr.modes[n - 1]
        if not mode.writable:
            raise ImmediateWriteError(f"Parameter {n} is a write target in immediate mode",
                                      ip=self.ip, opcode=int(instr.opcode))
        if mode is Mode.RELATIVE:
            return raw + self.relative_base
        return raw

    def _store(self, instr: Instruction, n: int, value: int) -> None:
        self._write(self._address(instr, n), value)

    # ── Opcode handlers ───────────────────────────────────────────────────────

    def _op_add(self, instr: Instruction) -> None:
        self._store(instr, 3, self._load(instr, 1) + self._load(instr, 2))
        self.ip += 4

    def _op_mul(self, instr: Instruction) -> None:
        self._store(instr, 3, self._load(instr, 1) * self._load(instr, 2))
        self.ip += 4

    def _op_input(self, instr: Instruction) -> Optional[Suspension]:
        address = self._address(instr, 1)
        if not self.inputs:
            return Suspension.AWAITING_INPUT
        self._write(address, self.inputs.popleft())
        self.ip += 2
        return None

    def _op_output(self, instr: Instruction) -> Suspension:
        value = self._load(instr, 1)
        self.ip += 2
        self.outputs.append(value)
        return Suspension.output(value)

    def _op_jump_if_true(self, instr: Instruction) -> None:
        if self._load(instr, 1) != 0:
            self.ip = self._load(instr, 2)
        else:
            self.ip += 3

    def _op_jump_if_false(self, instr: Instruction) -> None:
        if self._load(instr, 1) == 0:
            self.ip = self._load(instr, 2)
        else:
            self.ip += 3

    def _op_less_than(self, instr: Instruction) -> None:
        self._store(instr, 3, 1 if self._load(instr, 1) < self._load(instr, 2) else 0)
        self.ip += 4

    def _op_equals(self, instr: Instruction) -> None:
        self._store(instr, 3, 1 if self._load(instr, 1) == self._load(instr, 2) else 0)
        self.ip += 4

    def _op_adjust_base(self, instr: Instruction) -> None:
        self.relative_base += self._load(instr, 1)
        self.ip += 2

    def _op_halt(self, instr: Instruction) -> Suspension:
        self.halted = True
        log.debug("[%s] halted at ip=%d after %d steps", self.name, self.ip, self.steps)
        return Suspension.HALTED

    def __repr__(self) -> str:
        state = "halted" if self.halted else "faulted" if self.faulted else "ready"
        return (f"Machine({self.name!r}, ip={self.ip}, rb={self.relative_base}, "
                f"{state}, in={len(self.inputs)}, out={len(self.outputs)})")
