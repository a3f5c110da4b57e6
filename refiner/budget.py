"""
The shared local search budget.

A single `LocalSearchBudget` is created by whoever schedules local search and
is handed to every dispatcher, executor and objective that takes part. The
search strategies only ever poll `is_finished()`; the counters are advanced by
the collaborators that do the work being measured (the caller counts tests,
the executor counts statements, the objective counts fitness evaluations).
"""

import threading
import time
from enum import Enum
from typing import Callable

from refiner.config import DEFAULT_BUDGET_LIMIT, DEFAULT_BUDGET_TYPE


class BudgetType(str, Enum):
    """The resource a budget is measured in."""

    TIME = "time"  # Seconds since start()
    TESTS = "tests"  # Local searches started on whole tests
    STATEMENTS = "statements"  # Statements executed
    FITNESS_EVALUATIONS = "fitness_evaluations"


class LocalSearchBudget:
    """
    A cooperative, monotonic exhaustion signal.

    Once `is_finished()` has returned True it keeps returning True until the
    scheduler calls `start()` again. Polling never blocks and needs no locking
    by the caller; counter updates are serialized internally so that
    independent workers may share one budget.
    """

    def __init__(
        self,
        budget_type: BudgetType | str = DEFAULT_BUDGET_TYPE,
        limit: float | None = DEFAULT_BUDGET_LIMIT,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize and start the budget.

        Args:
            budget_type: The resource the limit applies to.
            limit: Maximum amount of that resource, or None for no limit.
            clock: Monotonic time source in seconds, replaceable in tests.
        """
        self.budget_type = BudgetType(budget_type)
        if limit is not None and limit < 0:
            raise ValueError(f"Budget limit must be non-negative, got {limit}")
        self.limit = limit
        self._clock = clock
        self._lock = threading.Lock()
        self.start()

    def start(self) -> None:
        """Reset all counters and the start time. Called by the scheduler only."""
        with self._lock:
            self.start_time = self._clock()
            self.tests = 0
            self.statements = 0
            self.fitness_evaluations = 0
            self._finished = False

    def elapsed(self) -> float:
        """Return the seconds spent since the last start()."""
        return self._clock() - self.start_time

    def count_local_search_on_test(self) -> None:
        with self._lock:
            self.tests += 1

    def count_executed_statements(self, count: int) -> None:
        with self._lock:
            self.statements += count

    def count_fitness_evaluation(self) -> None:
        with self._lock:
            self.fitness_evaluations += 1

    def _used(self) -> float:
        """Return how much of the budgeted resource has been consumed."""
        if self.budget_type is BudgetType.TIME:
            return self.elapsed()
        if self.budget_type is BudgetType.TESTS:
            return self.tests
        if self.budget_type is BudgetType.STATEMENTS:
            return self.statements
        return self.fitness_evaluations

    def is_finished(self) -> bool:
        """Return True once the budget is exhausted. Latches until start()."""
        if self._finished:
            return True
        if self.limit is None:
            return False
        if self._used() >= self.limit:
            self._finished = True
        return self._finished

    def __repr__(self) -> str:
        return (
            f"LocalSearchBudget(budget_type={self.budget_type.value!r}, "
            f"limit={self.limit!r}, finished={self._finished})"
        )
