"""
Entry point of the local search: pick the strategy for a statement and run it.

The strategy is chosen by one exhaustive `match` over `ValueKind`, so a new
value kind cannot be added without also giving it a strategy. The dispatcher
guarantees that, whatever happens inside the strategy, the statement is left
holding the last value the objective accepted, or its original one if none
was accepted.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, assert_never

from refiner.config import DEFAULT_CONFIG, RANDOM, LocalSearchConfig
from refiner.strategies import (
    Backup,
    BooleanLocalSearch,
    CharLocalSearch,
    FloatLocalSearch,
    IntegerLocalSearch,
    StatementLocalSearch,
    StringLocalSearch,
)
from refiner.testcase import PrimitiveStatement, ValueKind

if TYPE_CHECKING:
    import random

    from refiner.budget import LocalSearchBudget
    from refiner.health import HealthMonitor
    from refiner.objective import LocalSearchObjective
    from refiner.testcase import TestCase


def get_local_search_for(
    kind: ValueKind,
    budget: "LocalSearchBudget",
    rng: "random.Random | None" = None,
    config: LocalSearchConfig = DEFAULT_CONFIG,
    health_monitor: "HealthMonitor | None" = None,
) -> StatementLocalSearch:
    """Return a fresh strategy instance for values of `kind`."""
    strategy: type[StatementLocalSearch]
    match kind:
        case ValueKind.STRING:
            strategy = StringLocalSearch
        case ValueKind.INTEGER:
            strategy = IntegerLocalSearch
        case ValueKind.FLOAT:
            strategy = FloatLocalSearch
        case ValueKind.BOOLEAN:
            strategy = BooleanLocalSearch
        case ValueKind.CHAR:
            strategy = CharLocalSearch
        case _:
            assert_never(kind)
    return strategy(budget, rng, config, health_monitor)


class StatementDispatcher:
    """
    Runs local search on single statements of a test case.

    One dispatcher may serve many refinement calls; no state survives between
    them apart from the shared budget.
    """

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

    def search(
        self, test: "TestCase", index: int, objective: "LocalSearchObjective"
    ) -> bool:
        """
        Refine the value of the statement at `index`.

        Args:
            test: The test case; mutated in place.
            index: Position of a value-holding statement.
            objective: Fitness oracle for the test.

        Returns:
            True if at least one mutation improved fitness.

        Raises:
            IndexError: If `index` does not address a statement.
            TypeError: If the statement does not hold a value.
            Anything raised by the objective or executor (including
            KeyboardInterrupt) propagates after the last accepted state is
            restored.
        """
        statement = test.get_statement(index)
        if not isinstance(statement, PrimitiveStatement):
            raise TypeError(
                f"Statement {index} is a {type(statement).__name__}, "
                "local search needs a value-holding statement"
            )

        strategy = get_local_search_for(
            statement.kind, self.budget, self.rng, self.config, self.health_monitor
        )
        original = Backup.capture(test, statement)
        try:
            improved = strategy.search(test, index, objective)
        except BaseException as e:
            # The objective's baseline fitness belongs to the last accepted state.
            (strategy.last_accepted or original).restore(test, statement)
            print(
                f"[!] Local search on statement {index} failed: {type(e).__name__}: {e}",
                file=sys.stderr,
            )
            if self.health_monitor is not None:
                self.health_monitor.record_search_error(index, f"{type(e).__name__}: {e}")
            raise

        if self.budget.is_finished():
            print(f"  [~] Budget exhausted while refining statement {index}", file=sys.stderr)
            if self.health_monitor is not None:
                self.health_monitor.record_budget_exhausted(index, statement.kind.value)
        if self.health_monitor is not None:
            self.health_monitor.record_refinement(index, improved)
        return improved


def refine(
    test: "TestCase",
    index: int,
    objective: "LocalSearchObjective",
    budget: "LocalSearchBudget",
    rng: "random.Random | None" = None,
    config: LocalSearchConfig = DEFAULT_CONFIG,
) -> bool:
    """Refine one statement of `test`; return True if fitness improved."""
    return StatementDispatcher(budget, rng, config).search(test, index, objective)
