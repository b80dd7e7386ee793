"""
intcode
=======
Stored-program integer machine: growable memory, three addressing modes,
suspend/resume I/O, and a cooperative multi-machine network.

Exports:
    Machine      — the interpreter (``resume`` / ``run`` / ``run_to_completion``)
    Suspension   — what ``resume`` returns (AWAITING_INPUT | OUTPUT | HALTED)
    Memory       — auto-extending int64 store
    decode       — instruction word → (opcode, modes)
    parse_program / load_program — comma-separated text loader
"""

__version__ = "1.0.0"

from .isa import Instruction, Mode, Opcode, decode, disassemble
from .memory import AddressError, Memory, ValueOverflowError
from .vm import (
    ArithmeticOverflowError,
    ImmediateWriteError,
    InputExhaustedError,
    InvalidModeError,
    InvalidOpcodeError,
    Machine,
    MachineError,
    MachineStateError,
    NegativeAddressError,
    AddressLimitError,
    ProgramError,
    Signal,
    StepLimitExceeded,
    Suspension,
)
from .loader import ProgramFormatError, load_program, parse_program

__all__ = [
    "Machine",
    "Suspension",
    "Signal",
    "Memory",
    "Mode",
    "Opcode",
    "Instruction",
    "decode",
    "disassemble",
    "parse_program",
    "load_program",
    "MachineError",
    "ProgramError",
    "InvalidOpcodeError",
    "InvalidModeError",
    "ImmediateWriteError",
    "NegativeAddressError",
    "AddressLimitError",
    "ArithmeticOverflowError",
    "MachineStateError",
    "InputExhaustedError",
    "StepLimitExceeded",
    "AddressError",
    "ValueOverflowError",
    "ProgramFormatError",
]
