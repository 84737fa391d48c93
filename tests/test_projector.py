#!/usr/bin/env python3
"""Tests for the pure view projection functions."""

from __future__ import annotations

import unittest

from livesync.models import FilterState, parse_selection
from livesync.projector import (
    NO_SYSTEM_LOGS,
    known_levels,
    new_tail,
    project,
    project_processes,
)
from tests.fakes import entry, proc


def _filters(worker: str = "all", level: str = "all") -> FilterState:
    return FilterState(worker_filter=parse_selection(worker), level_filter=parse_selection(level))


class ProjectTests(unittest.TestCase):
    def setUp(self) -> None:
        self.entries = [
            entry("A", "error", "w1"),
            entry("B", "info", "w1"),
            entry("C", "error", "w2"),
        ]

    def test_worker_and_level_filters_combine_with_and(self) -> None:
        out = project(self.entries, _filters("w1", "error"))
        self.assertEqual([e.message for e in out], ["A"])

    def test_single_filters(self) -> None:
        self.assertEqual([e.message for e in project(self.entries, _filters(worker="w1"))], ["A", "B"])
        self.assertEqual([e.message for e in project(self.entries, _filters(level="error"))], ["A", "C"])

    def test_all_filters_keep_server_order(self) -> None:
        reversed_entries = list(reversed(self.entries))
        out = project(reversed_entries, _filters())
        self.assertEqual([e.message for e in out], ["C", "B", "A"])

    def test_same_inputs_give_same_output(self) -> None:
        filters = _filters("w1")
        self.assertEqual(project(self.entries, filters), project(self.entries, filters))
        self.assertEqual(len(self.entries), 3)

    def test_empty_result_is_one_placeholder(self) -> None:
        out = project(self.entries, _filters("w3"))
        self.assertEqual(len(out), 1)
        self.assertTrue(out[0].is_placeholder)
        self.assertEqual(out[0].timestamp, "--:--:--")

    def test_placeholder_message_is_per_panel(self) -> None:
        out = project([], None, NO_SYSTEM_LOGS)
        self.assertEqual(out[0].message, NO_SYSTEM_LOGS)

    def test_no_filters_passes_everything(self) -> None:
        self.assertEqual(project(self.entries), self.entries)

    def test_entries_without_worker_fail_a_specific_worker_filter(self) -> None:
        out = project([entry("orphan")], _filters("w1"))
        self.assertTrue(out[0].is_placeholder)

    def test_processes_are_not_filtered(self) -> None:
        records = [proc("b"), proc("a", "stopped")]
        self.assertEqual(project_processes(records), records)


class NewTailTests(unittest.TestCase):
    def setUp(self) -> None:
        self.a, self.b, self.c, self.d = (entry(x) for x in "abcd")

    def test_growing_window_returns_only_new_lines(self) -> None:
        self.assertEqual(new_tail([self.a, self.b], [self.a, self.b, self.c]), [self.c])

    def test_sliding_window(self) -> None:
        self.assertEqual(new_tail([self.a, self.b, self.c], [self.b, self.c, self.d]), [self.d])

    def test_unchanged_window_returns_nothing(self) -> None:
        self.assertEqual(new_tail([self.a, self.b], [self.a, self.b]), [])

    def test_no_overlap_returns_everything(self) -> None:
        self.assertEqual(new_tail([self.a], [self.c, self.d]), [self.c, self.d])

    def test_empty_previous(self) -> None:
        self.assertEqual(new_tail([], [self.a]), [self.a])
        self.assertEqual(new_tail([self.a], []), [])


class KnownLevelsTests(unittest.TestCase):
    def test_standard_levels_then_seen_levels(self) -> None:
        levels = known_levels([entry("x", "fatal"), entry("y", "info"), entry("z", "trace")])
        self.assertEqual(levels, ("debug", "info", "warn", "error", "fatal", "trace"))


if __name__ == "__main__":
    unittest.main(verbosity=2)
