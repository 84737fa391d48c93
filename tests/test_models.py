#!/usr/bin/env python3
"""Tests for records, selections and session state values."""

from __future__ import annotations

import unittest

from livesync.models import (
    ActionKind,
    AnyOf,
    FilterState,
    FollowState,
    LogEntry,
    ProcessRecord,
    Specific,
    parse_selection,
)


class SelectionTests(unittest.TestCase):
    def test_all_and_empty_parse_to_any(self) -> None:
        self.assertEqual(parse_selection("all"), AnyOf())
        self.assertEqual(parse_selection(""), AnyOf())
        self.assertEqual(parse_selection(None), AnyOf())

    def test_other_values_are_specific(self) -> None:
        sel = parse_selection(" worker-1 ")
        self.assertEqual(sel, Specific("worker-1"))
        self.assertTrue(sel.matches("worker-1"))
        self.assertFalse(sel.matches("worker-2"))
        self.assertFalse(sel.matches(None))

    def test_str_round_trips_to_ui_text(self) -> None:
        self.assertEqual(str(AnyOf()), "all")
        self.assertEqual(str(Specific("error")), "error")


class FilterStateTests(unittest.TestCase):
    def test_unknown_values_are_accepted(self) -> None:
        state = FilterState()
        with self.assertLogs("livesync.models", "DEBUG") as cm:
            sel = state.set_worker_filter("ghost", known=("w1", "w2"))
        self.assertEqual(sel, Specific("ghost"))
        self.assertIn("ghost", cm.output[0])

    def test_all_resets_filter(self) -> None:
        state = FilterState()
        state.set_level_filter("error")
        state.set_level_filter("all")
        self.assertEqual(state.level_filter, AnyOf())


class FollowStateTests(unittest.TestCase):
    def test_active_requires_target(self) -> None:
        with self.assertRaises(ValueError):
            FollowState(active=True, target_worker="")

    def test_inactive_may_keep_target(self) -> None:
        state = FollowState(active=False, target_worker="w1")
        self.assertFalse(state.active)


class RecordTests(unittest.TestCase):
    def test_process_from_dict(self) -> None:
        p = ProcessRecord.from_dict(
            {"name": "web", "status": "Running", "pid": 42, "uptime": "1h", "memory": "12MB", "cpu": "3%"}
        )
        self.assertEqual((p.name, p.status, p.pid, p.uptime, p.memory, p.cpu),
                         ("web", "running", 42, "1h", "12MB", "3%"))

    def test_process_pid_zero_means_none(self) -> None:
        p = ProcessRecord.from_dict({"name": "web", "status": "stopped", "pid": 0, "uptime": ""})
        self.assertIsNone(p.pid)
        self.assertIsNone(p.uptime)

    def test_process_without_name_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ProcessRecord.from_dict({"status": "running"})

    def test_log_entry_from_dict(self) -> None:
        e = LogEntry.from_dict({"timestamp": "2024-01-15T12:00:00Z", "level": "ERROR",
                                "message": "boom", "worker": "w1"})
        self.assertEqual((e.level, e.message, e.worker), ("error", "boom", "w1"))
        self.assertFalse(e.is_placeholder)

    def test_synthetic_entry_has_real_timestamp(self) -> None:
        e = LogEntry.synthetic("hello", "error")
        self.assertEqual(e.worker, "system")
        self.assertTrue(e.timestamp.endswith("Z"))
        self.assertFalse(e.is_placeholder)

    def test_action_past_tense(self) -> None:
        self.assertEqual([k.past_tense for k in ActionKind], ["started", "stopped", "restarted"])


if __name__ == "__main__":
    unittest.main(verbosity=2)
