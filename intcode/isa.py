"""Intcode ISA — opcode table, parameter modes and instruction decoding.

Instruction word layout (decimal):

    ... C B A O O
        │ │ │ └─┴── opcode         (word % 100)
        │ │ └────── mode of param 1
        │ └──────── mode of param 2
        └────────── mode of param 3

Missing mode digits default to POSITION.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List, Tuple


# ── Opcodes ────────────────────────────────────────────────────────────────────

class Opcode(IntEnum):
    ADD           = 1
    MUL           = 2
    INPUT         = 3
    OUTPUT        = 4
    JUMP_IF_TRUE  = 5
    JUMP_IF_FALSE = 6
    LESS_THAN     = 7
    EQUALS        = 8
    ADJUST_BASE   = 9
    HALT          = 99


OPCODES: dict[str, int] = {
    "ADD":  Opcode.ADD,
    "MUL":  Opcode.MUL,
    "IN":   Opcode.INPUT,
    "OUT":  Opcode.OUTPUT,
    "JT":   Opcode.JUMP_IF_TRUE,
    "JF":   Opcode.JUMP_IF_FALSE,
    "LT":   Opcode.LESS_THAN,
    "EQ":   Opcode.EQUALS,
    "ARB":  Opcode.ADJUST_BASE,
    "HALT": Opcode.HALT,
}

# Reverse lookup: opcode int → mnemonic string
OPCODE_NAMES: dict[int, str] = {int(v): k for k, v in OPCODES.items()}

# Number of parameters following each opcode
PARAM_COUNT: dict[int, int] = {
    Opcode.ADD:           3,
    Opcode.MUL:           3,
    Opcode.INPUT:         1,
    Opcode.OUTPUT:        1,
    Opcode.JUMP_IF_TRUE:  2,
    Opcode.JUMP_IF_FALSE: 2,
    Opcode.LESS_THAN:     3,
    Opcode.EQUALS:        3,
    Opcode.ADJUST_BASE:   1,
    Opcode.HALT:          0,
}


# ── Parameter modes ────────────────────────────────────────────────────────────

class Mode(IntEnum):
    POSITION  = 0   # parameter is an address
    IMMEDIATE = 1   # parameter is the value itself (read-only)
    RELATIVE  = 2   # parameter is an offset from the relative base

    @property
    def writable(self) -> bool:
        return self is not Mode.IMMEDIATE



# ── Decode errors ──────────────────────────────────────────────────────────────

class DecodeError(ValueError):
    """Raised when an instruction word cannot be decoded."""

    def __init__(self, word: int, message: str):
        super().__init__(message)
        self.word = word


class UnknownOpcodeError(DecodeError):
    pass


class UnknownModeError(DecodeError):
    pass


# ── Decoded instruction ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Instruction:
    """Decoded instruction word."""
    opcode: Opcode
    modes:  Tuple[Mode, Mode, Mode]

    @property
    def mnemonic(self) -> str:
        return OPCODE_NAMES[self.opcode]

    @property
    def width(self) -> int:
        """Instruction length in memory cells, opcode included."""
        return 1 + PARAM_COUNT[self.opcode]


def decode_modes(word: int) -> Tuple[Mode, Mode, Mode]:
    rest  = word // 100
    modes = []
    for _ in range(3):
        digit = rest % 10
        rest //= 10
        try:
            modes.append(Mode(digit))
        except ValueError:
            raise UnknownModeError(
                word, f"Mode must be 0, 1 or 2, got {digit} in word {word}"
            ) from None
    return modes[0], modes[1], modes[2]


def decode(word: int) -> Instruction:
    """Split an instruction word into its opcode and three parameter modes."""
    if word < 0:
        raise UnknownOpcodeError(word, f"Negative instruction word {word}")
    code = word % 100
    try:
        opcode = Opcode(code)
    except ValueError:
        raise UnknownOpcodeError(word, f"Unknown opcode {code} in word {word}") from None
    return Instruction(opcode, decode_modes(word))


# ── Disassembler ───────────────────────────────────────────────────────────────

def _format_param(value: int, mode: Mode) -> str:
    if mode is Mode.IMMEDIATE:
        return str(value)
    if mode is Mode.RELATIVE:
        return f"[rb{value:+d}]"
    return f"[{value}]"


def disassemble(program: Iterable[int]) -> str:
    """Render a program as a human-readable listing.

    Code and data share one address space, so this is best effort: any word
    that does not decode (or whose parameters run past the end) is listed as
    a ``DATA`` cell and the scan continues at the next address.
    """
    cells: List[int] = list(program)
    lines = []
    addr = 0
    while addr < len(cells):
        word = cells[addr]
        try:
            instr = decode(word)
        except DecodeError:
            instr = None
        if instr is None or addr + instr.width > len(cells):
            lines.append(f"{addr:>6}  {word:<12} DATA {word}")
            addr += 1
            continue
        params = cells[addr + 1: addr + instr.width]
        operands = ", ".join(
            _format_param(value, mode) for value, mode in zip(params, instr.modes)
        )
        raw = " ".join(str(c) for c in cells[addr: addr + instr.width])
        lines.append(f"{addr:>6}  {raw:<12} {instr.mnemonic:<4} {operands}".rstrip())
        addr += instr.width
    return "\n".join(lines)
