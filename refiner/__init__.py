"""
refiner: budget-bounded local search over the concrete values of generated tests.

`refine()` takes a test case, the index of a value-holding statement, a
fitness objective and a shared budget, and hill-climbs the statement's value
until no neighbour improves fitness or the budget runs out.
"""

from refiner.budget import BudgetType, LocalSearchBudget
from refiner.config import DEFAULT_CONFIG, LocalSearchConfig
from refiner.dispatcher import StatementDispatcher, get_local_search_for, refine
from refiner.execution import ExecutionResult, TestExecutor
from refiner.objective import (
    CoverageFitness,
    DefaultObjective,
    ExceptionFitness,
    LocalSearchObjective,
)
from refiner.testcase import CallStatement, PrimitiveStatement, TestCase, ValueKind

__version__ = "0.1.0"

__all__ = [
    "BudgetType",
    "CallStatement",
    "CoverageFitness",
    "DEFAULT_CONFIG",
    "DefaultObjective",
    "ExceptionFitness",
    "ExecutionResult",
    "LocalSearchBudget",
    "LocalSearchConfig",
    "LocalSearchObjective",
    "PrimitiveStatement",
    "StatementDispatcher",
    "TestCase",
    "TestExecutor",
    "ValueKind",
    "get_local_search_for",
    "refine",
]
