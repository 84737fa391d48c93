"""Rendering boundary between the dashboard core and whatever draws it."""

from __future__ import annotations

from collections import deque
from typing import Iterable, Protocol, Sequence

from livesync.models import LogEntry, ProcessRecord, RenderMode, Target


class Renderer(Protocol):
    def render(self, target: Target, entries: Sequence[LogEntry], mode: RenderMode) -> None:
        ...

    def render_processes(self, target: Target, records: Sequence[ProcessRecord]) -> None:
        ...


class PanelBuffer:
    """Bounded list of rendered log lines with replace/append semantics."""

    def __init__(self, max_lines: int = 500):
        self.lines: deque[LogEntry] = deque(maxlen=max_lines)
        self.version = 0

    def apply(self, entries: Iterable[LogEntry], mode: RenderMode) -> None:
        if mode is RenderMode.REPLACE:
            self.lines.clear()
        self.lines.extend(entries)
        self.version += 1

    def snapshot(self) -> list[LogEntry]:
        return list(self.lines)
