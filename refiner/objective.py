"""
Fitness objectives consulted by local search.

The search never computes fitness itself. It asks a `LocalSearchObjective`
whether the current state of the test case is better than the last accepted
one (`has_improved`) or, while probing, whether fitness moved at all
(`has_changed`). Both queries execute the test case.

`DefaultObjective` implements the protocol on top of a `TestExecutor` and a
list of fitness functions whose values are summed. Fitness is minimised unless
`maximize=True`.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Callable, Protocol, Sequence

from refiner.coverage import code_of, executable_lines

if TYPE_CHECKING:
    from refiner.budget import LocalSearchBudget
    from refiner.execution import ExecutionResult, TestExecutor
    from refiner.testcase import TestCase

FitnessFunction = Callable[["TestCase", "ExecutionResult"], float]


class LocalSearchObjective(Protocol):
    """What the local search needs to know about fitness."""

    def has_improved(self, test: "TestCase") -> bool:
        """
        Execute `test` and report whether it is strictly better than the
        last accepted state. Updates the test's execution snapshot.
        """
        ...

    def has_changed(self, test: "TestCase") -> int:
        """
        Execute `test` and report the direction fitness moved in.

        Returns:
            A negative number if fitness got better, zero if it did not move,
            and a positive number if it got worse.
        """
        ...


class CoverageFitness:
    """Number of executable lines of `function` left uncovered (lower is better)."""

    def __init__(self, function: Callable[..., Any]):
        code = code_of(function)
        if code is None:
            raise TypeError(f"{function!r} has no Python code object to measure")
        self.goals = executable_lines(code)

    def __call__(self, test: "TestCase", result: "ExecutionResult") -> float:
        return float(len(self.goals - result.covered_lines))


class ExceptionFitness:
    """0.0 when the execution raised, 1.0 otherwise. Drives the search toward crashes."""

    def __call__(self, test: "TestCase", result: "ExecutionResult") -> float:
        return 0.0 if result.has_exception else 1.0


class DefaultObjective:
    """
    Objective comparing summed fitness values against the last accepted one.

    The test case is executed once at construction to establish the baseline
    fitness. Afterwards `last_fitness` only moves when a query reports a
    strict improvement.
    """

    def __init__(
        self,
        test: "TestCase",
        fitness_functions: Sequence[FitnessFunction],
        executor: "TestExecutor",
        budget: "LocalSearchBudget | None" = None,
        maximize: bool = False,
    ):
        if not fitness_functions:
            raise ValueError("DefaultObjective needs at least one fitness function")
        self.fitness_functions = list(fitness_functions)
        self.executor = executor
        self.budget = budget
        self.maximize = maximize
        self.evaluations = 0
        self.last_fitness = self._evaluate(test)

    def _evaluate(self, test: "TestCase") -> float:
        result = self.executor.execute(test)
        self.evaluations += 1
        if self.budget is not None:
            self.budget.count_fitness_evaluation()
        return sum(fitness(test, result) for fitness in self.fitness_functions)

    def _is_better(self, fitness: float) -> bool:
        if math.isnan(fitness):
            return False
        if self.maximize:
            return fitness > self.last_fitness
        return fitness < self.last_fitness

    def _is_worse(self, fitness: float) -> bool:
        if math.isnan(fitness):
            return True
        if self.maximize:
            return fitness < self.last_fitness
        return fitness > self.last_fitness

    def has_improved(self, test: "TestCase") -> bool:
        fitness = self._evaluate(test)
        if self._is_better(fitness):
            self.last_fitness = fitness
            return True
        return False

    def has_changed(self, test: "TestCase") -> int:
        fitness = self._evaluate(test)
        if self._is_better(fitness):
            self.last_fitness = fitness
            return -1
        if self._is_worse(fitness):
            return 1
        return 0
