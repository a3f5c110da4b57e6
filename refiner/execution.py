"""
In-process execution of test cases.

`TestExecutor` runs the statements of a `TestCase` in order, records line and
arc coverage for the called functions, and stores the outcome on the test as
its execution snapshot (`ExecutionResult`). An exception raised by the code
under test, including `SystemExit`, is an outcome, not an error: it is
recorded in the snapshot and execution of the remaining statements stops.
Only `KeyboardInterrupt` propagates.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable

from refiner.coverage import ArcTracer, code_of
from refiner.testcase import CallStatement, TestCase

if TYPE_CHECKING:
    from types import CodeType

    from refiner.budget import LocalSearchBudget
    from refiner.health import HealthMonitor


@dataclass
class ExecutionResult:
    """The snapshot of one execution of a test case."""

    return_values: dict[int, Any] = field(default_factory=dict)
    exception: BaseException | None = None
    exception_statement: int | None = None
    executed_statements: int = 0
    covered_lines: frozenset[int] = frozenset()
    covered_arcs: frozenset[tuple[int, int]] = frozenset()
    execution_time_ms: int = 0

    @property
    def has_exception(self) -> bool:
        return self.exception is not None


class TestExecutor:
    """
    Execute test cases and attach the result to them.

    Coverage is collected for the code objects of every called target, plus
    any extra code objects passed at construction (e.g. helpers the target
    calls into).
    """

    __test__ = False  # Not a unittest/pytest class

    def __init__(
        self,
        extra_codes: Iterable["CodeType"] = (),
        budget: "LocalSearchBudget | None" = None,
        health_monitor: "HealthMonitor | None" = None,
    ):
        self.extra_codes = frozenset(extra_codes)
        self.budget = budget
        self.health_monitor = health_monitor

    def _traced_codes(self, test: TestCase) -> set["CodeType"]:
        codes = set(self.extra_codes)
        for statement in test.statements:
            if isinstance(statement, CallStatement):
                code = code_of(statement.target)
                if code is not None:
                    codes.add(code)
        return codes

    def execute(self, test: TestCase) -> ExecutionResult:
        """Run `test`, store the result as its snapshot and return it."""
        values: list[Any] = []
        result = ExecutionResult()
        start = time.perf_counter()

        with ArcTracer(self._traced_codes(test)) as tracer:
            for index, statement in enumerate(test.statements):
                result.executed_statements += 1
                if not isinstance(statement, CallStatement):
                    values.append(statement.value)
                    continue
                try:
                    value = statement.target(*(values[i] for i in statement.args))
                except KeyboardInterrupt:
                    raise
                except BaseException as e:
                    # SystemExit and friends from the target are outcomes too.
                    result.exception = e
                    result.exception_statement = index
                    if self.health_monitor is not None:
                        self.health_monitor.record_target_exception(index, type(e).__name__)
                    break
                result.return_values[index] = value
                values.append(value)

        result.execution_time_ms = int((time.perf_counter() - start) * 1000)
        result.covered_lines = frozenset(tracer.lines)
        result.covered_arcs = frozenset(tracer.arcs)

        if self.budget is not None:
            self.budget.count_executed_statements(result.executed_statements)

        test.last_execution_result = result
        test.changed = False
        return result
