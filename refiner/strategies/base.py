"""
Transactional building blocks shared by all local search strategies.

A `Backup` is the baseline of one statement: its value together with the
execution snapshot and changed flag of the test case that belong to that
value. Every phase of a strategy takes the current baseline and returns the
(possibly new) baseline, so the accept/revert transaction is visible at each
call boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from refiner.config import DEFAULT_CONFIG, RANDOM, LocalSearchConfig
from refiner.testcase import PrimitiveStatement, ValueKind

if TYPE_CHECKING:
    import random

    from refiner.budget import LocalSearchBudget
    from refiner.execution import ExecutionResult
    from refiner.health import HealthMonitor
    from refiner.objective import LocalSearchObjective
    from refiner.testcase import TestCase


@dataclass(frozen=True)
class Backup:
    """The best-known-good state of one statement."""

    value: Any
    result: "ExecutionResult | None"
    changed: bool

    @classmethod
    def capture(cls, test: "TestCase", statement: "PrimitiveStatement") -> "Backup":
        return cls(statement.value, test.last_execution_result, test.changed)

    def restore(self, test: "TestCase", statement: "PrimitiveStatement") -> None:
        statement.value = self.value
        test.last_execution_result = self.result
        test.changed = self.changed


class StatementLocalSearch:
    """
    Base class for the per-kind local search strategies.

    Subclasses implement `search()`. They must consult `is_exhausted()` before
    every candidate evaluation and leave the statement holding the value of
    the baseline they return. Every state the objective accepts goes through
    `_accept()`, so `last_accepted` always matches the objective's baseline
    fitness, even when a search is interrupted.
    """

    # The value kind handled by the strategy; None accepts any kind.
    kind: ValueKind | None = None

    def __init__(
        self,
        budget: "LocalSearchBudget",
        rng: "random.Random | None" = None,
        config: LocalSearchConfig = DEFAULT_CONFIG,
        health_monitor: "HealthMonitor | None" = None,
    ):
        self.budget = budget
        self.rng = rng if rng is not None else RANDOM
        self.config = config
        self.health_monitor = health_monitor
        self.last_accepted: Backup | None = None

    def search(
        self, test: "TestCase", index: int, objective: "LocalSearchObjective"
    ) -> bool:
        """Refine the statement at `index`; return True if fitness improved."""
        raise NotImplementedError("Subclasses must implement search()")

    def is_exhausted(self) -> bool:
        return self.budget.is_finished()

    def _statement(self, test: "TestCase", index: int) -> PrimitiveStatement:
        """Return the statement at `index`, checking it holds a value of our kind."""
        statement = test.get_statement(index)
        if not isinstance(statement, PrimitiveStatement):
            raise TypeError(
                f"{type(self).__name__} needs a value-holding statement, "
                f"statement {index} is a {type(statement).__name__}"
            )
        if self.kind is not None and statement.kind is not self.kind:
            raise TypeError(
                f"{type(self).__name__} handles {self.kind.value} values, "
                f"statement {index} holds a {statement.kind.value}"
            )
        return statement

    def _accept(self, test: "TestCase", statement: PrimitiveStatement) -> Backup:
        """Capture the installed state as the new baseline."""
        self.last_accepted = Backup.capture(test, statement)
        return self.last_accepted

    def _try_candidate(
        self,
        test: "TestCase",
        statement: PrimitiveStatement,
        objective: "LocalSearchObjective",
        baseline: Backup,
        candidate: Any,
    ) -> tuple[Backup, bool]:
        """
        Install `candidate` and keep it if the objective reports an improvement.

        Returns the new baseline and whether the candidate was accepted. On
        rejection the previous baseline is restored before returning.
        """
        statement.value = candidate
        test.changed = True
        if objective.has_improved(test):
            return self._accept(test, statement), True
        baseline.restore(test, statement)
        return baseline, False
