"""Tests for the boolean local search (refiner/strategies/boolean.py)."""

import io
import unittest
from contextlib import redirect_stderr
from unittest.mock import MagicMock

from refiner.budget import BudgetType, LocalSearchBudget
from refiner.strategies.boolean import BooleanLocalSearch
from refiner.testcase import TestCase, ValueKind


class TestBooleanLocalSearch(unittest.TestCase):
    def setUp(self):
        self.test = TestCase()
        self.index = self.test.add_primitive(ValueKind.BOOLEAN, False)
        self.statement = self.test.get_statement(self.index)
        self.objective = MagicMock()
        self.budget = LocalSearchBudget(BudgetType.FITNESS_EVALUATIONS, None)

    def _search(self):
        with redirect_stderr(io.StringIO()):
            return BooleanLocalSearch(self.budget).search(
                self.test, self.index, self.objective
            )

    def test_accepts_flip(self):
        self.objective.has_improved.return_value = True
        self.assertTrue(self._search())
        self.assertIs(self.statement.value, True)
        self.objective.has_improved.assert_called_once_with(self.test)

    def test_rejected_flip_restores_state(self):
        snapshot = object()
        self.test.last_execution_result = snapshot
        self.test.changed = False
        self.objective.has_improved.return_value = False

        self.assertFalse(self._search())
        self.assertIs(self.statement.value, False)
        self.assertIs(self.test.last_execution_result, snapshot)
        self.assertFalse(self.test.changed)

    def test_exhausted_budget(self):
        self.budget = LocalSearchBudget(BudgetType.FITNESS_EVALUATIONS, 0)
        self.assertFalse(self._search())
        self.objective.has_improved.assert_not_called()


if __name__ == "__main__":
    unittest.main()
