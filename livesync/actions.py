"""
Action Dispatcher
=================

Runs start/stop/restart against the supervisor, reports the outcome as a
synthetic line in the worker log panel, then refreshes process status.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Protocol

from livesync.models import ActionKind, LogEntry, RenderMode, Target
from livesync.render import Renderer

logger = logging.getLogger(__name__)


class ActionClient(Protocol):
    async def run_action(self, name: str, kind: ActionKind) -> bool:
        ...


def outcome_entry(kind: ActionKind, name: str, success: bool) -> LogEntry:
    if success:
        return LogEntry.synthetic(f"Process {name} {kind.past_tense} successfully", "info")
    return LogEntry.synthetic(f"Failed to {kind.value} process {name}", "error")


class ActionDispatcher:
    """
    Dispatches process control actions.

    Each control is a ``(process name, action)`` pair with its own busy
    flag. A control that is busy ignores further dispatches until the
    pending one finishes; different controls never wait on each other.
    """

    def __init__(
        self,
        client: ActionClient,
        renderer: Renderer,
        refresh_processes: Callable[[], Awaitable[None]],
    ):
        self.client = client
        self.renderer = renderer
        self.refresh_processes = refresh_processes
        self._busy: set[tuple[str, ActionKind]] = set()

    def is_busy(self, name: str, kind: ActionKind) -> bool:
        return (name, kind) in self._busy

    @property
    def busy_controls(self) -> frozenset[tuple[str, ActionKind]]:
        return frozenset(self._busy)

    async def dispatch(self, kind: ActionKind, name: str) -> bool | None:
        """
        Returns the action's success, or None if the control was busy and
        nothing was sent.
        """
        control = (name, kind)
        if control in self._busy:
            logger.debug("%s %s already pending, ignoring", kind.value, name)
            return None
        self._busy.add(control)
        try:
            try:
                success = bool(await self.client.run_action(name, kind))
            except Exception as exc:
                logger.error("Error trying to %s process %s: %s", kind.value, name, exc)
                success = False
            self.renderer.render(Target.WORKER_LOGS, [outcome_entry(kind, name, success)], RenderMode.APPEND)
        finally:
            self._busy.discard(control)
        await self.refresh_processes()
        return success
