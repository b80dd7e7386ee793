"""
intcode/runtime/amplifier.py — Phase-primed machine pipelines
=============================================================

Machines wired output → input, each primed with a phase setting as its
first input.

    linear:    signal ─► M0 ─► M1 ─► … ─► Mn ─► result
    feedback:  signal ─► M0 ─► M1 ─► … ─► Mn ─┐
                          ▲──────────────────────┘   until Mn halts

Every stage is a private machine built from the same program snapshot.
"""

from __future__ import annotations

import logging
from itertools import permutations
from typing import Iterable, List, Sequence, Tuple

from intcode.vm import InputExhaustedError, Machine, Suspension

log = logging.getLogger(__name__)

LINEAR_PHASES   = range(0, 5)
FEEDBACK_PHASES = range(5, 10)


class AmplifierChain:
    def __init__(self, program: Iterable[int], phases: Sequence[int]):
        if not phases:
            raise ValueError("An amplifier chain needs at least one phase setting")
        self.program  = list(program)
        self.phases   = tuple(phases)
        self.machines: List[Machine] = []

    def _build(self) -> List[Machine]:
        self.machines = [
            Machine(self.program, inputs=[phase], name=f"amp{stage}")
            for stage, phase in enumerate(self.phases)
        ]
        return self.machines

    @staticmethod
    def _advance(machine: Machine) -> Suspension:
        suspension = machine.resume()
        if suspension.is_awaiting_input:
            raise InputExhaustedError(f"{machine.name} asked for more input than the chain supplies")
        return suspension

    def run(self, signal: int = 0) -> int:
        """Pass ``signal`` through every stage once and return the last output."""
        for machine in self._build():
            machine.push_input(signal)
            suspension = self._advance(machine)
            if suspension.is_halted:
                raise InputExhaustedError(f"{machine.name} halted without producing a signal")
            signal = suspension.value
        return signal

    def run_feedback(self, signal: int = 0) -> int:
        """Loop the last stage back into the first until a stage halts.

        Returns the last value produced by the final stage.
        """
        machines = self._build()
        rounds = 0
        while True:
            for machine in machines:
                if machine.halted:
                    return self._result(rounds)
                machine.push_input(signal)
                suspension = self._advance(machine)
                if suspension.is_halted:
                    return self._result(rounds)
                signal = suspension.value
            rounds += 1

    def _result(self, rounds: int) -> int:
        final = self.machines[-1]
        log.debug("feedback loop settled after %d rounds", rounds)
        return final.last_output


def best_phase_sequence(program: Iterable[int], phase_values: Iterable[int] = LINEAR_PHASES,
                        *, feedback: bool = False, signal: int = 0) -> Tuple[int, Tuple[int, ...]]:
    """Try every ordering of ``phase_values``; return ``(best signal, phases)``."""
    program = list(program)
    best: Tuple[int, Tuple[int, ...]] = (0, ())
    found = False
    for phases in permutations(phase_values):
        chain = AmplifierChain(program, phases)
        result = chain.run_feedback(signal) if feedback else chain.run(signal)
        if not found or result > best[0]:
            best = (result, phases)
            found = True
    if not found:
        raise ValueError("No phase values supplied")
    return best
