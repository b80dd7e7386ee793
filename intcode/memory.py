"""
intcode/memory.py — Growable machine memory
===========================================

A single contiguous store of signed 64-bit cells, backed by
``array.array("q")``.  The store grows on demand:

  - reading or writing address *i* first grows the store to at least
    *i* + 1 cells, zero-filling the new slots
  - negative addresses, and addresses above ``MAX_ADDRESS``, are a
    program defect and raise ``AddressError``
  - values that do not fit in a signed 64-bit cell raise
    ``ValueOverflowError``

One ``Memory`` belongs to exactly one machine.  It is built from a copy of
the program, so the caller's sequence is never mutated.
"""
from __future__ import annotations

from array import array
from typing import Iterable, Iterator, List

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

# Highest addressable cell (128 MiB of backing store).
MAX_ADDRESS = (1 << 24) - 1


class AddressError(ValueError):
    """Raised on access to a negative address or one above ``MAX_ADDRESS``."""

    def __init__(self, address: int):
        if address < 0:
            message = f"Negative memory address: {address}"
        else:
            message = f"Memory address {address} exceeds limit {MAX_ADDRESS}"
        super().__init__(message)
        self.address = address


class ValueOverflowError(OverflowError):
    """Raised when a value does not fit in a signed 64-bit cell."""

    def __init__(self, value: int):
        super().__init__(f"Value out of int64 range: {value}")
        self.value = value


class Memory:
    """Zero-filled, auto-extending int64 store."""

    TYPECODE = "q"

    def __init__(self, initial: Iterable[int] = ()):
        self._cells = array(self.TYPECODE)
        for value in initial:
            self._cells.append(self._checked(value))

    # ── access ───────────────────────────────────────────────────────────────

    def read(self, address: int) -> int:
        self._ensure(address)
        return self._cells[address]

    def write(self, address: int, value: int) -> None:
        self._ensure(address)
        self._cells[address] = self._checked(value)

    __getitem__ = read
    __setitem__ = write

    # ── helpers ──────────────────────────────────────────────────────────────

    def _ensure(self, address: int) -> None:
        if not 0 <= address <= MAX_ADDRESS:
            raise AddressError(address)
        missing = address + 1 - len(self._cells)
        if missing > 0:
            self._cells.extend(array(self.TYPECODE, [0]) * missing)

    @staticmethod
    def _checked(value: int) -> int:
        if not INT64_MIN <= value <= INT64_MAX:
            raise ValueOverflowError(value)
        return value

    def snapshot(self) -> List[int]:
        """Copy of the current backing store."""
        return self._cells.tolist()

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[int]:
        return iter(self._cells)

    def __repr__(self) -> str:
        return f"Memory(len={len(self._cells)})"
