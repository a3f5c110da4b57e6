"""
Health monitoring for refiner.

Records discrete adverse events to a JSONL log file for observability.
The HealthMonitor is designed to be non-intrusive: it never raises
exceptions and adds negligible overhead to the search loop.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


# Threshold for consecutive refinements of one statement that found nothing
CONSECUTIVE_FRUITLESS_THRESHOLD = 5


class HealthMonitor:
    """Track and record adverse local search events for observability.

    Writes events to a JSONL log file and maintains in-memory counters
    for rate-based detection (e.g. one statement that never improves).

    Write failures are ignored so that the monitor never interrupts a search.
    """

    def __init__(self, log_path: Path) -> None:
        """Initialize the HealthMonitor.

        Args:
            log_path: Path to the JSONL health events log file.
        """
        self.log_path = log_path
        self.counters: dict[str, int] = {}

        # State for consecutive fruitless refinement tracking
        self._fruitless_statement: int | None = None
        self._fruitless_streak: int = 0

    def _write_event(self, category: str, event: str, **kwargs: Any) -> None:
        """Append a single event to the JSONL log.

        Args:
            category: Event category (execution, local_search).
            event: Event type name.
            **kwargs: Additional event-specific fields.
        """
        try:
            record: dict[str, Any] = {
                "ts": datetime.now(timezone.utc).isoformat(),
                "cat": category,
                "event": event,
            }
            record.update(kwargs)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, default=str) + "\n")
        except OSError:
            pass  # A lost health event must not abort the search

        counter_key = f"{category}.{event}"
        self.counters[counter_key] = self.counters.get(counter_key, 0) + 1

    # =========================================================================
    # Execution Events
    # =========================================================================

    def record_target_exception(self, statement_index: int, exception_type: str) -> None:
        """Record an exception raised by the code under test."""
        self._write_event(
            "execution",
            "target_exception",
            statement_index=statement_index,
            exception_type=exception_type,
        )

    # =========================================================================
    # Local Search Events
    # =========================================================================

    def record_budget_exhausted(self, statement_index: int, kind: str) -> None:
        """Record a search that was cut short by the budget."""
        self._write_event(
            "local_search",
            "budget_exhausted",
            statement_index=statement_index,
            kind=kind,
        )

    def record_insensitive_string(self, statement_index: int, value: str) -> None:
        """Record a string whose probes never moved fitness."""
        self._write_event(
            "local_search",
            "insensitive_string",
            statement_index=statement_index,
            value=value[:80],
        )

    def record_search_error(self, statement_index: int, error: str) -> None:
        """Record a collaborator failure that aborted a search."""
        self._write_event(
            "local_search",
            "search_error",
            statement_index=statement_index,
            error=error,
        )

    def record_refinement(self, statement_index: int, improved: bool) -> None:
        """Track fruitless streaks per statement.

        Writes a consecutive_fruitless event when the same statement has been
        refined CONSECUTIVE_FRUITLESS_THRESHOLD times in a row without
        improving.
        """
        if improved:
            self.reset_fruitless_streak()
            return
        if statement_index == self._fruitless_statement:
            self._fruitless_streak += 1
        else:
            self._fruitless_statement = statement_index
            self._fruitless_streak = 1

        if self._fruitless_streak == CONSECUTIVE_FRUITLESS_THRESHOLD:
            self._write_event(
                "local_search",
                "consecutive_fruitless",
                statement_index=statement_index,
                count=self._fruitless_streak,
            )

    def reset_fruitless_streak(self) -> None:
        """Reset the fruitless streak (call after an improving refinement)."""
        self._fruitless_streak = 0
        self._fruitless_statement = None

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> dict[str, int]:
        """Return a copy of the in-memory event counters.

        Returns:
            Dict mapping "category.event" keys to occurrence counts.
        """
        return dict(self.counters)
