"""
Tests for refiner/utils.py.

This module contains unit tests for the run statistics helpers and the
TeeLogger.
"""

import json
import tempfile
import unittest
from io import StringIO
from pathlib import Path
from unittest.mock import MagicMock, patch

from refiner.utils import TeeLogger, _default_run_stats, load_run_stats, save_run_stats


class TestRunStats(unittest.TestCase):
    """Tests for load_run_stats and save_run_stats."""

    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp_dir.cleanup)
        self.path = Path(self.tmp_dir.name) / "stats.json"

    def test_returns_default_when_file_not_exists(self):
        stats = load_run_stats(self.path)
        self.assertEqual(stats["total_refinements"], 0)
        self.assertEqual(stats["refinements_by_kind"], {})
        self.assertIsNone(stats["last_update_time"])

    def test_round_trip(self):
        stats = _default_run_stats()
        stats["total_refinements"] = 7
        save_run_stats(stats, self.path)
        self.assertEqual(load_run_stats(self.path)["total_refinements"], 7)

    def test_fills_missing_fields(self):
        """Stats files from older runs gain the fields they lack."""
        self.path.write_text(json.dumps({"start_time": "then", "total_refinements": 2}))
        stats = load_run_stats(self.path)
        self.assertEqual(stats["start_time"], "then")
        self.assertEqual(stats["total_refinements"], 2)
        self.assertEqual(stats["fitness_evaluations"], 0)

    def test_corrupt_file_starts_fresh(self):
        self.path.write_text("{not json")
        with patch("sys.stderr", new_callable=StringIO) as stderr:
            stats = load_run_stats(self.path)
        self.assertEqual(stats["total_refinements"], 0)
        self.assertIn("Could not load run stats", stderr.getvalue())

    def test_default_path_is_read_at_call_time(self):
        with patch("refiner.utils.RUN_STATS_FILE", self.path):
            save_run_stats({"total_refinements": 3})
        self.assertEqual(json.loads(self.path.read_text())["total_refinements"], 3)

    def test_save_failure_is_reported(self):
        with patch("sys.stderr", new_callable=StringIO) as stderr:
            save_run_stats({}, Path(self.tmp_dir.name) / "missing" / "stats.json")
        self.assertIn("Could not save run stats", stderr.getvalue())


class TestTeeLogger(unittest.TestCase):
    """Tests for TeeLogger class."""

    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp_dir.cleanup)
        self.log_path = Path(self.tmp_dir.name) / "test.log"
        self.stream = StringIO()

    def _print(self, logger, *lines):
        for line in lines:
            print(line, file=logger)

    def test_writes_to_both_streams(self):
        logger = TeeLogger(self.log_path, self.stream)
        self._print(logger, "Hello, World!")
        logger.close()

        self.assertEqual(self.stream.getvalue(), "Hello, World!\n")
        self.assertEqual(self.log_path.read_text(), "Hello, World!\n")

    def test_collapses_repeated_lines(self):
        logger = TeeLogger(self.log_path, self.stream)
        self._print(logger, "same", "same", "same", "other")
        logger.close()

        self.assertEqual(self.stream.getvalue(), "same (×3)\nother\n")

    def test_quiet_mode_drops_detail_lines(self):
        logger = TeeLogger(self.log_path, self.stream, verbose=False)
        self._print(
            logger,
            "[+] Applying local search to string 'ab'",
            "  [~] Replacing characters",
            "    -> Replaced position 0: 'zb'",
            "[+] Resulting string: 'zb'",
        )
        logger.close()

        self.assertEqual(
            self.stream.getvalue(),
            "[+] Applying local search to string 'ab'\n[+] Resulting string: 'zb'\n",
        )

    def test_verbose_mode_keeps_detail_lines(self):
        logger = TeeLogger(self.log_path, self.stream)
        self._print(logger, "    -> Step 1 accepted: 2")
        logger.close()
        self.assertIn("-> Step", self.stream.getvalue())

    def test_blank_line_passes_through(self):
        logger = TeeLogger(self.log_path, self.stream)
        logger.write("\n")
        self.assertEqual(self.stream.getvalue(), "\n")
        logger.close()

    def test_flushes_both_streams(self):
        original_stream = MagicMock()
        logger = TeeLogger(self.log_path, original_stream)
        logger.flush()
        original_stream.flush.assert_called()
        logger.close()

    def test_isatty_and_encoding_follow_stream(self):
        original_stream = MagicMock()
        original_stream.isatty.return_value = True
        original_stream.encoding = "latin-1"
        logger = TeeLogger(self.log_path, original_stream)
        self.assertTrue(logger.isatty())
        self.assertEqual(logger.encoding, "latin-1")
        logger.close()


if __name__ == "__main__":
    unittest.main()
