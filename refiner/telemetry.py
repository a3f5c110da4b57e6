"""
Run statistics and time-series telemetry for refinement sessions.

`RefinementTelemetry` accumulates counters about the refinements performed
during a run, persists them through `utils.save_run_stats`, and appends
JSONL datapoints that include process and system resource metrics from
psutil.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import psutil

from refiner.utils import load_run_stats, save_run_stats

if TYPE_CHECKING:
    from refiner.budget import LocalSearchBudget


class RefinementTelemetry:
    """Tracks run statistics and writes time-series datapoints."""

    def __init__(
        self,
        budget: "LocalSearchBudget",
        timeseries_log_path: Path | None = None,
        run_stats_path: Path | None = None,
    ):
        """Initialize the telemetry.

        Args:
            budget: The shared budget, read for its resource counters.
            timeseries_log_path: JSONL file for datapoints; None disables them.
            run_stats_path: Where run statistics are persisted; None uses the default.
        """
        self.budget = budget
        self.timeseries_log_path = timeseries_log_path
        self.run_stats_path = run_stats_path
        self.run_stats: dict[str, Any] = load_run_stats(run_stats_path)

    def record_refinement(self, kind: str, improved: bool) -> None:
        """Count one refinement call and its outcome."""
        self.run_stats["total_refinements"] += 1
        if improved:
            self.run_stats["improving_refinements"] += 1
        by_kind = self.run_stats["refinements_by_kind"]
        by_kind[kind] = by_kind.get(kind, 0) + 1
        if self.budget.is_finished():
            self.run_stats["budget_exhaustions"] += 1

    def update_and_save_run_stats(self) -> None:
        """Copy the budget counters into the run stats and persist them."""
        self.run_stats["last_update_time"] = datetime.now(timezone.utc).isoformat()
        self.run_stats["fitness_evaluations"] += self.budget.fitness_evaluations
        self.run_stats["executed_statements"] += self.budget.statements
        save_run_stats(self.run_stats, self.run_stats_path)

    def log_timeseries_datapoint(self) -> None:
        """Append a snapshot of the run statistics and resource usage."""
        if self.timeseries_log_path is None:
            return
        datapoint = dict(self.run_stats)
        datapoint["timestamp"] = datetime.now(timezone.utc).isoformat()
        datapoint["budget_elapsed_s"] = round(self.budget.elapsed(), 3)
        datapoint["session_fitness_evaluations"] = self.budget.fitness_evaluations

        try:
            datapoint["system_load_1min"] = psutil.getloadavg()[0]
        except (OSError, AttributeError):
            datapoint["system_load_1min"] = None

        datapoint["process_rss_mb"] = round(
            psutil.Process().memory_info().rss / (1024 * 1024), 2
        )

        try:
            with open(self.timeseries_log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(datapoint) + "\n")
        except OSError as e:
            print(
                f"[!] Warning: Could not write to time-series log file: {e}",
                file=sys.stderr,
            )
