"""
View Projector
==============

Pure functions mapping raw API records plus the current filters to the exact
sequence the renderer should show. No I/O, no state.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from livesync.models import STANDARD_LEVELS, FilterState, LogEntry, ProcessRecord

NO_WORKER_LOGS = "No worker logs available."
NO_SYSTEM_LOGS = "No system logs available."
NO_DETAIL_LOGS = "No logs available for this worker."
SELECT_WORKER = "Select a worker to view logs."


def project(
    entries: Iterable[LogEntry],
    filters: FilterState | None = None,
    placeholder: str = NO_WORKER_LOGS,
) -> list[LogEntry]:
    """
    Filter ``entries`` by worker AND level, keeping server order.

    An empty result becomes a single placeholder entry so the panel shows
    "no data" instead of nothing.
    """
    out = list(entries)
    if filters is not None:
        out = [
            e for e in out
            if filters.worker_filter.matches(e.worker) and filters.level_filter.matches(e.level)
        ]
    if not out:
        return [LogEntry.placeholder(placeholder)]
    return out


def project_processes(records: Iterable[ProcessRecord]) -> list[ProcessRecord]:
    return list(records)


def new_tail(previous: Sequence[LogEntry], current: Sequence[LogEntry]) -> list[LogEntry]:
    """
    Return the part of ``current`` not already covered by ``previous``.

    The API serves a rolling window, so two consecutive fetches usually
    overlap: the end of the old window is the start of the new one. The
    longest such overlap is skipped; with no overlap everything is new.
    """
    limit = min(len(previous), len(current))
    for k in range(limit, 0, -1):
        if list(previous[-k:]) == list(current[:k]):
            return list(current[k:])
    return list(current)


def known_levels(entries: Iterable[LogEntry]) -> tuple[str, ...]:
    levels = list(STANDARD_LEVELS)
    for e in entries:
        if e.level and e.level not in levels and not e.is_placeholder:
            levels.append(e.level)
    return tuple(levels)
