"""Local search over boolean values: the neighbourhood is the negation."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from refiner.strategies.base import Backup, StatementLocalSearch
from refiner.testcase import ValueKind

if TYPE_CHECKING:
    from refiner.objective import LocalSearchObjective
    from refiner.testcase import TestCase


class BooleanLocalSearch(StatementLocalSearch):
    kind = ValueKind.BOOLEAN

    def search(
        self, test: "TestCase", index: int, objective: "LocalSearchObjective"
    ) -> bool:
        statement = self._statement(test, index)
        if self.is_exhausted():
            return False
        baseline = Backup.capture(test, statement)
        _, accepted = self._try_candidate(
            test, statement, objective, baseline, not baseline.value
        )
        if accepted:
            print(f"    -> Flipped boolean to {statement.value!r}", file=sys.stderr)
        return accepted
