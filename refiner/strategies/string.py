"""
Local search over string values.

Character-level search is expensive (up to one evaluation per code point per
position), so it only runs once a few cheap random probes have shown that the
string influences fitness at all. After that the string is refined by
removing, replacing and finally inserting single characters.
"""

from __future__ import annotations

import random
import sys
from typing import TYPE_CHECKING, Callable

from refiner.strategies.base import Backup, StatementLocalSearch
from refiner.testcase import PrimitiveStatement, ValueKind

if TYPE_CHECKING:
    from refiner.config import LocalSearchConfig
    from refiner.objective import LocalSearchObjective
    from refiner.testcase import TestCase


def string_successor(value: str, low: int, high: int) -> str:
    """
    Return the next string after `value` in odometer order over [low, high).

    The empty string is followed by chr(low). A last character at or above
    the top of the range wraps to chr(low) and carries into the prefix.
    """
    if not value:
        return chr(low)
    last = ord(value[-1])
    if last < low:
        return value[:-1] + chr(low)
    if last + 1 < high:
        return value[:-1] + chr(last + 1)
    return string_successor(value[:-1], low, high) + chr(low)


def random_string(rng: random.Random, config: "LocalSearchConfig") -> str:
    """Return a fresh random string of printable characters."""
    length = rng.randint(0, config.random_string_length)
    return "".join(
        chr(rng.randrange(config.random_char_min, config.max_code_point))
        for _ in range(length)
    )


class StringLocalSearch(StatementLocalSearch):
    """Probe, then remove, replace and insert characters of a string value."""

    kind = ValueKind.STRING

    def search(
        self, test: "TestCase", index: int, objective: "LocalSearchObjective"
    ) -> bool:
        statement = self._statement(test, index)
        baseline = Backup.capture(test, statement)

        baseline, affected = self._probe(test, statement, objective, baseline)
        if not affected:
            print(f"  [~] String {statement.value!r} does not affect fitness", file=sys.stderr)
            if self.health_monitor is not None and not self.is_exhausted():
                self.health_monitor.record_insensitive_string(index, statement.value)
            return False

        print(f"[+] Applying local search to string {statement.value!r}", file=sys.stderr)
        improved = False

        print("  [~] Removing characters", file=sys.stderr)
        baseline, removed = self._remove_characters(test, statement, objective, baseline)
        improved |= removed

        print("  [~] Replacing characters", file=sys.stderr)
        baseline, replaced = self._replace_characters(test, statement, objective, baseline)
        improved |= replaced

        print("  [~] Adding characters", file=sys.stderr)
        baseline, added = self._add_characters(test, statement, objective, baseline)
        improved |= added

        print(f"[+] Resulting string: {statement.value!r}", file=sys.stderr)
        return improved

    def _probe(
        self,
        test: "TestCase",
        statement: PrimitiveStatement,
        objective: "LocalSearchObjective",
        baseline: Backup,
    ) -> tuple[Backup, bool]:
        """Apply random increments/randomizations until fitness reacts."""
        for _ in range(self.config.probes):
            if self.is_exhausted():
                break
            if self.rng.random() > 0.5:
                candidate = string_successor(
                    baseline.value, self.config.min_code_point, self.config.max_code_point
                )
            else:
                candidate = random_string(self.rng, self.config)

            print(f"    -> Probing string {baseline.value!r} -> {candidate!r}", file=sys.stderr)
            statement.value = candidate
            test.changed = True
            result = objective.has_changed(test)
            if result * self.config.probe_accept_sign > 0:
                baseline = self._accept(test, statement)
            else:
                baseline.restore(test, statement)
            if result != 0:
                print("    -> String affects fitness", file=sys.stderr)
                return baseline, True
        return baseline, False

    def _remove_characters(
        self,
        test: "TestCase",
        statement: PrimitiveStatement,
        objective: "LocalSearchObjective",
        baseline: Backup,
    ) -> tuple[Backup, bool]:
        """Try deleting each character, scanning from the last position to the first."""
        improved = False
        # Positions above the current one were already visited, so removals
        # there never shift the positions still to come.
        for position in range(len(baseline.value) - 1, -1, -1):
            if self.is_exhausted():
                break
            current = baseline.value
            candidate = current[:position] + current[position + 1 :]
            baseline, accepted = self._try_candidate(
                test, statement, objective, baseline, candidate
            )
            if accepted:
                print(f"    -> Removed position {position}: {candidate!r}", file=sys.stderr)
                improved = True
        return baseline, improved

    def _replace_characters(
        self,
        test: "TestCase",
        statement: PrimitiveStatement,
        objective: "LocalSearchObjective",
        baseline: Backup,
    ) -> tuple[Backup, bool]:
        """Replace each character with the first code point that improves fitness."""
        improved = False
        for position in range(len(baseline.value)):
            original = ord(baseline.value[position])
            for code_point in range(self.config.min_code_point, self.config.max_code_point):
                if self.is_exhausted():
                    return baseline, improved
                if code_point == original:
                    continue
                current = baseline.value
                candidate = current[:position] + chr(code_point) + current[position + 1 :]
                baseline, accepted = self._try_candidate(
                    test, statement, objective, baseline, candidate
                )
                if accepted:
                    print(f"    -> Replaced position {position}: {candidate!r}", file=sys.stderr)
                    improved = True
                    break
        return baseline, improved

    def _add_characters(
        self,
        test: "TestCase",
        statement: PrimitiveStatement,
        objective: "LocalSearchObjective",
        baseline: Backup,
    ) -> tuple[Backup, bool]:
        """Grow the string at the end, then at the front, while it keeps improving."""
        baseline, appended = self._append_characters(test, statement, objective, baseline)
        if self.is_exhausted():
            return baseline, appended
        baseline, prepended = self._prepend_characters(test, statement, objective, baseline)
        return baseline, appended or prepended

    def _append_characters(
        self,
        test: "TestCase",
        statement: PrimitiveStatement,
        objective: "LocalSearchObjective",
        baseline: Backup,
    ) -> tuple[Backup, bool]:
        return self._grow(test, statement, objective, baseline, lambda value, char: value + char)

    def _prepend_characters(
        self,
        test: "TestCase",
        statement: PrimitiveStatement,
        objective: "LocalSearchObjective",
        baseline: Backup,
    ) -> tuple[Backup, bool]:
        return self._grow(test, statement, objective, baseline, lambda value, char: char + value)

    def _grow(
        self,
        test: "TestCase",
        statement: PrimitiveStatement,
        objective: "LocalSearchObjective",
        baseline: Backup,
        insert: Callable[[str, str], str],
    ) -> tuple[Backup, bool]:
        """Insert one character via `insert`, first improvement wins, until a full scan fails."""
        improved = False
        grown = True
        while grown:
            grown = False
            for code_point in range(self.config.min_code_point, self.config.max_code_point):
                if self.is_exhausted():
                    return baseline, improved
                candidate = insert(baseline.value, chr(code_point))
                baseline, accepted = self._try_candidate(
                    test, statement, objective, baseline, candidate
                )
                if accepted:
                    print(f"    -> Inserting character: {candidate!r}", file=sys.stderr)
                    improved = grown = True
                    break
        return baseline, improved
