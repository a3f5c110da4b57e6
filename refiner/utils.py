"""
Generic helpers for refiner: run statistics persistence and the TeeLogger
that mirrors console output into a log file.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

RUN_STATS_FILE = Path("refine_run_stats.json")


def _default_run_stats() -> dict[str, Any]:
    """Return the canonical default run statistics structure."""
    return {
        "start_time": datetime.now(timezone.utc).isoformat(),
        "last_update_time": None,
        "total_refinements": 0,
        "improving_refinements": 0,
        "refinements_by_kind": {},
        "budget_exhaustions": 0,
        "fitness_evaluations": 0,
        "executed_statements": 0,
    }


def load_run_stats(path: Path | None = None) -> dict[str, Any]:
    """
    Load the persistent run statistics from the JSON file.
    Returns a default structure if the file doesn't exist or is unreadable.
    """
    stats_path = path or RUN_STATS_FILE
    if not stats_path.is_file():
        return _default_run_stats()
    try:
        with open(stats_path, "r", encoding="utf-8") as f:
            stats: dict[str, Any] = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        print(
            f"[!] Warning: Could not load run stats file. Starting fresh. Error: {e}",
            file=sys.stderr,
        )
        return _default_run_stats()
    # Fill in any fields missing from older stats files
    for key, value in _default_run_stats().items():
        if key != "start_time":
            stats.setdefault(key, value)
    return stats


def save_run_stats(stats: dict[str, Any], path: Path | None = None) -> None:
    """Save the run statistics to the JSON file."""
    try:
        with open(path or RUN_STATS_FILE, "w", encoding="utf-8") as f:
            json.dump(stats, f, indent=2, sort_keys=True)
    except OSError as e:
        print(f"[!] Warning: Could not save run stats: {e}", file=sys.stderr)


class TeeLogger:
    """
    A file-like object that writes to both a file and another stream
    (like the original stdout), and flushes immediately.

    Consecutive identical lines are collapsed into one line with a (×N)
    suffix. When verbose=False, per-candidate detail lines are dropped.
    """

    # Lines starting with these prefixes are suppressed in quiet mode.
    _QUIET_SUPPRESS_PREFIXES: tuple[str, ...] = (
        "    -> Probing",
        "    -> Removed",
        "    -> Replaced",
        "    -> Inserting",
        "    -> Step",
        "    -> Boundary",
        "    -> Flipped",
        "    -> String affects",
        "  [~] Removing characters",
        "  [~] Replacing characters",
        "  [~] Adding characters",
    )

    def __init__(self, file_path: str | Path, original_stream: TextIO, verbose: bool = True):
        """Initialize the logger with a file path and an existing stream.

        Args:
            file_path: Path to the log file.
            original_stream: The original stream (e.g., sys.stdout) to tee to.
            verbose: If False, suppress detail-level messages.
        """
        self.original_stream = original_stream
        self.log_file = open(file_path, "w", encoding="utf-8")
        self.verbose = verbose
        self._last_line: str | None = None
        self._repeat_count = 0
        # print() sends the trailing "\n" as a separate write; swallow it
        # after a suppressed line.
        self._last_was_suppressed = False

    def _is_suppressed(self, message: str) -> bool:
        return not self.verbose and message.startswith(self._QUIET_SUPPRESS_PREFIXES)

    def _emit(self, text: str) -> None:
        self.original_stream.write(text)
        self.log_file.write(text)

    def _flush_repeat(self) -> None:
        """Write out the buffered line, with its repeat suffix if needed."""
        if self._last_line is None:
            return
        line = self._last_line
        if self._repeat_count > 1:
            line = f"{line} (×{self._repeat_count})"
        self._emit(line + "\n")
        self._last_line = None
        self._repeat_count = 0

    def write(self, message: str) -> None:
        """Buffer complete lines for repeat collapsing; pass anything else through."""
        if not message:
            return
        if message == "\n":
            if self._last_was_suppressed:
                self._last_was_suppressed = False
            elif self._last_line is None:
                self._emit(message)
                self._do_flush()
            return

        if self._is_suppressed(message):
            self._last_was_suppressed = True
            return
        self._last_was_suppressed = False

        line = message.rstrip("\n")
        if line == self._last_line:
            self._repeat_count += 1
            return
        self._flush_repeat()
        self._last_line = line
        self._repeat_count = 1

    def _do_flush(self) -> None:
        self.original_stream.flush()
        self.log_file.flush()

    def flush(self) -> None:
        """Flush any buffered repeat and both underlying streams."""
        self._flush_repeat()
        self._do_flush()

    def close(self) -> None:
        """Flush any buffered repeat and close the log file."""
        self.flush()
        self.log_file.close()

    @property
    def encoding(self) -> str:
        return getattr(self.original_stream, "encoding", "utf-8")

    def isatty(self) -> bool:
        return hasattr(self.original_stream, "isatty") and self.original_stream.isatty()
