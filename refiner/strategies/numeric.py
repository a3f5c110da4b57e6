"""
Local search over integers, characters and floats.

All three share a directional hill climb: step by +delta, and while that keeps
improving, double the step; otherwise try -delta the same way; repeat until
neither direction helps. Integers and floats first try a handful of boundary
candidates (sign flip, zero, machine limits).
"""

from __future__ import annotations

import math
import sys
from typing import TYPE_CHECKING, Any, Callable, Iterable

from refiner.config import MAX_UNICODE_CODE_POINT
from refiner.strategies.base import Backup, StatementLocalSearch
from refiner.testcase import PrimitiveStatement, ValueKind

if TYPE_CHECKING:
    from refiner.objective import LocalSearchObjective
    from refiner.testcase import TestCase

# shift(value, delta) returns the neighbour of value, or None if there is none.
Shift = Callable[[Any, Any], Any]


class NumericLocalSearch(StatementLocalSearch):
    """Shared boundary and hill-climbing phases for totally ordered values."""

    def _try_boundaries(
        self,
        test: "TestCase",
        statement: PrimitiveStatement,
        objective: "LocalSearchObjective",
        baseline: Backup,
        candidates: Iterable[Any],
    ) -> tuple[Backup, bool]:
        """Accept the first boundary candidate that improves fitness."""
        tried = set()
        for candidate in candidates:
            if self.is_exhausted():
                break
            if candidate == baseline.value or candidate in tried:
                continue
            tried.add(candidate)
            baseline, accepted = self._try_candidate(
                test, statement, objective, baseline, candidate
            )
            if accepted:
                print(f"    -> Boundary value accepted: {candidate!r}", file=sys.stderr)
                return baseline, True
        return baseline, False

    def _hill_climb(
        self,
        test: "TestCase",
        statement: PrimitiveStatement,
        objective: "LocalSearchObjective",
        baseline: Backup,
        step: Any,
        shift: Shift,
    ) -> tuple[Backup, bool]:
        improved = False
        while not self.is_exhausted():
            moved = False
            for delta in (step, -step):
                baseline, moved = self._iterate(
                    test, statement, objective, baseline, delta, shift
                )
                if moved:
                    improved = True
                    break
            if not moved:
                break
        return baseline, improved

    def _iterate(
        self,
        test: "TestCase",
        statement: PrimitiveStatement,
        objective: "LocalSearchObjective",
        baseline: Backup,
        delta: Any,
        shift: Shift,
    ) -> tuple[Backup, bool]:
        """Move by `delta`, doubling it after every improvement."""
        improved = False
        while not self.is_exhausted():
            candidate = shift(baseline.value, delta)
            if candidate is None or candidate == baseline.value:
                break
            baseline, accepted = self._try_candidate(
                test, statement, objective, baseline, candidate
            )
            if not accepted:
                break
            improved = True
            print(f"    -> Step {delta!r} accepted: {candidate!r}", file=sys.stderr)
            if abs(delta * 2) <= self.config.max_integer_step:
                delta *= 2
        return baseline, improved


class IntegerLocalSearch(NumericLocalSearch):
    """Boundary values, then an exponential +/- climb."""

    kind = ValueKind.INTEGER

    def search(
        self, test: "TestCase", index: int, objective: "LocalSearchObjective"
    ) -> bool:
        statement = self._statement(test, index)
        baseline = Backup.capture(test, statement)
        print(f"[+] Applying local search to integer {statement.value!r}", file=sys.stderr)

        value = baseline.value
        baseline, on_boundary = self._try_boundaries(
            test, statement, objective, baseline,
            (-value, *self.config.integer_boundary_values),
        )
        baseline, climbed = self._hill_climb(
            test, statement, objective, baseline, 1, lambda v, d: v + d
        )
        return on_boundary or climbed


def _shift_code_point(value: str, delta: int) -> str | None:
    code_point = ord(value) + delta
    if not 0 <= code_point <= MAX_UNICODE_CODE_POINT:
        return None
    return chr(code_point)


class CharLocalSearch(NumericLocalSearch):
    """The integer climb applied to a character's code point."""

    kind = ValueKind.CHAR

    def search(
        self, test: "TestCase", index: int, objective: "LocalSearchObjective"
    ) -> bool:
        statement = self._statement(test, index)
        baseline = Backup.capture(test, statement)
        print(f"[+] Applying local search to char {statement.value!r}", file=sys.stderr)
        baseline, improved = self._hill_climb(
            test, statement, objective, baseline, 1, _shift_code_point
        )
        return improved


def _float_shift(decimals: int | None) -> Shift:
    def shift(value: float, delta: float) -> float | None:
        moved = value + delta
        if decimals is not None:
            moved = round(moved, decimals)
        return moved if math.isfinite(moved) else None

    return shift


class FloatLocalSearch(NumericLocalSearch):
    """Fix non-finite values, try boundaries, then climb at decreasing step sizes."""

    kind = ValueKind.FLOAT

    def search(
        self, test: "TestCase", index: int, objective: "LocalSearchObjective"
    ) -> bool:
        statement = self._statement(test, index)
        baseline = Backup.capture(test, statement)
        print(f"[+] Applying local search to float {statement.value!r}", file=sys.stderr)
        improved = False

        if not math.isfinite(baseline.value) and not self.is_exhausted():
            baseline, accepted = self._try_candidate(
                test, statement, objective, baseline, 0.0
            )
            improved |= accepted

        if math.isfinite(baseline.value):
            baseline, accepted = self._try_boundaries(
                test, statement, objective, baseline, (-baseline.value, 0.0)
            )
            improved |= accepted

        baseline, accepted = self._hill_climb(
            test, statement, objective, baseline, 1.0, _float_shift(None)
        )
        improved |= accepted

        for decimals in range(1, self.config.float_precision + 1):
            if self.is_exhausted():
                break
            baseline, accepted = self._hill_climb(
                test, statement, objective, baseline, 10.0**-decimals, _float_shift(decimals)
            )
            improved |= accepted

        return improved
