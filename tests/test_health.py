"""Tests for the HealthMonitor observability layer."""

import json
import tempfile
import unittest
from pathlib import Path

from refiner.health import CONSECUTIVE_FRUITLESS_THRESHOLD, HealthMonitor


class HealthMonitorTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp_dir.cleanup)
        self.log_path = Path(self.tmp_dir.name) / "health_events.jsonl"
        self.monitor = HealthMonitor(log_path=self.log_path)

    def read_events(self):
        if not self.log_path.exists():
            return []
        return [json.loads(line) for line in self.log_path.read_text().splitlines()]


class TestHealthMonitorInit(unittest.TestCase):
    """Test HealthMonitor initialization."""

    def test_creates_with_log_path(self):
        """HealthMonitor accepts a log path and initializes empty counters."""
        monitor = HealthMonitor(log_path=Path("/tmp/test_health.jsonl"))
        self.assertEqual(monitor.counters, {})
        self.assertIsNone(monitor._fruitless_statement)
        self.assertEqual(monitor._fruitless_streak, 0)


class TestHealthMonitorWriteEvent(HealthMonitorTestCase):
    """Test the internal _write_event method."""

    def test_writes_valid_jsonl(self):
        """Events are written as valid JSONL with expected fields."""
        self.monitor._write_event("test_cat", "test_event", key1="val1")

        events = self.read_events()
        self.assertEqual(len(events), 1)
        self.assertIn("ts", events[0])
        self.assertEqual(events[0]["cat"], "test_cat")
        self.assertEqual(events[0]["event"], "test_event")
        self.assertEqual(events[0]["key1"], "val1")

    def test_increments_counters(self):
        """Each event increments the correct counter."""
        self.monitor._write_event("cat", "evt")
        self.monitor._write_event("cat", "evt")
        self.monitor._write_event("cat", "other")

        self.assertEqual(self.monitor.counters["cat.evt"], 2)
        self.assertEqual(self.monitor.counters["cat.other"], 1)

    def test_survives_oserror(self):
        """OSError during write is swallowed; the in-memory counter still moves."""
        monitor = HealthMonitor(log_path=Path("/nonexistent/dir/health.jsonl"))
        monitor._write_event("cat", "evt")
        self.assertEqual(monitor.counters["cat.evt"], 1)


class TestEventRecorders(HealthMonitorTestCase):
    """Test the public record_* methods."""

    def test_target_exception(self):
        self.monitor.record_target_exception(3, "ZeroDivisionError")
        event = self.read_events()[0]
        self.assertEqual(event["cat"], "execution")
        self.assertEqual(event["event"], "target_exception")
        self.assertEqual(event["statement_index"], 3)
        self.assertEqual(event["exception_type"], "ZeroDivisionError")

    def test_budget_exhausted(self):
        self.monitor.record_budget_exhausted(0, "string")
        event = self.read_events()[0]
        self.assertEqual(event["event"], "budget_exhausted")
        self.assertEqual(event["kind"], "string")
        self.assertEqual(self.monitor.get_summary(), {"local_search.budget_exhausted": 1})

    def test_insensitive_string_is_truncated(self):
        """Long values are cut to 80 characters in the log."""
        self.monitor.record_insensitive_string(1, "x" * 200)
        event = self.read_events()[0]
        self.assertEqual(event["event"], "insensitive_string")
        self.assertEqual(len(event["value"]), 80)

    def test_search_error(self):
        self.monitor.record_search_error(2, "RuntimeError: boom")
        event = self.read_events()[0]
        self.assertEqual(event["event"], "search_error")
        self.assertEqual(event["error"], "RuntimeError: boom")


class TestFruitlessStreak(HealthMonitorTestCase):
    """Test consecutive fruitless refinement detection."""

    def test_event_written_at_threshold(self):
        """An event is written exactly once when the streak hits the threshold."""
        for _ in range(CONSECUTIVE_FRUITLESS_THRESHOLD + 2):
            self.monitor.record_refinement(4, improved=False)

        events = self.read_events()
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]["event"], "consecutive_fruitless")
        self.assertEqual(events[0]["count"], CONSECUTIVE_FRUITLESS_THRESHOLD)

    def test_switching_statement_restarts_streak(self):
        for _ in range(CONSECUTIVE_FRUITLESS_THRESHOLD - 1):
            self.monitor.record_refinement(0, improved=False)
        self.monitor.record_refinement(1, improved=False)
        self.assertEqual(self.monitor._fruitless_streak, 1)
        self.assertEqual(self.read_events(), [])

    def test_improvement_resets_streak(self):
        for _ in range(CONSECUTIVE_FRUITLESS_THRESHOLD - 1):
            self.monitor.record_refinement(0, improved=False)
        self.monitor.record_refinement(0, improved=True)
        self.assertEqual(self.monitor._fruitless_streak, 0)
        self.assertIsNone(self.monitor._fruitless_statement)
        self.assertEqual(self.read_events(), [])


class TestGetSummary(HealthMonitorTestCase):
    def test_returns_copy(self):
        """Mutating the summary does not affect the monitor's counters."""
        self.monitor.record_search_error(0, "x")
        summary = self.monitor.get_summary()
        summary["local_search.search_error"] = 99
        self.assertEqual(self.monitor.counters["local_search.search_error"], 1)


if __name__ == "__main__":
    unittest.main()
