"""
Dashboard Session -- the live-synchronization state machine
===========================================================

One ``DashboardSession`` owns everything a running dashboard needs: the
filter and follow state, the two refresh timers, the action dispatcher and
the last fetched data. The UI layer calls its operations on user input and
receives output only through the injected renderer.

Consistency rules:
- every fetch for the worker detail panel captures the selection epoch;
  a response renders only if the epoch, the selected worker and the follow
  state still match when it arrives
- for each render target, a response older than one already rendered is
  dropped, so the panel always shows the newest issued fetch
- the baseline cycle skips the worker detail panel while following, so the
  two cycles never write that panel at the same time

Usage:
    async with SupervisorClient(cfg.base_url) as client:
        async with DashboardSession(client, renderer, cfg) as session:
            await session.start()
            await session.select_worker("worker-1")
            await session.toggle_follow()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from livesync.actions import ActionDispatcher
from livesync.config import DashboardConfig
from livesync.models import (
    ActionKind,
    FilterState,
    FollowState,
    LogEntry,
    ProcessRecord,
    RenderMode,
    Target,
)
from livesync.projector import (
    NO_DETAIL_LOGS,
    NO_SYSTEM_LOGS,
    NO_WORKER_LOGS,
    SELECT_WORKER,
    known_levels,
    new_tail,
    project,
    project_processes,
)
from livesync.render import Renderer
from livesync.scheduler import RefreshScheduler

logger = logging.getLogger(__name__)


class DataSource(Protocol):
    async def get_processes(self) -> list[ProcessRecord]: ...
    async def get_worker_logs(self) -> list[LogEntry]: ...
    async def get_system_logs(self) -> list[LogEntry]: ...
    async def get_logs_for_worker(self, worker: str) -> list[LogEntry]: ...
    async def run_action(self, name: str, kind: ActionKind) -> bool: ...


class DashboardSession:
    def __init__(
        self,
        client: DataSource,
        renderer: Renderer,
        config: DashboardConfig | None = None,
    ):
        self.client = client
        self.renderer = renderer
        self.config = config or DashboardConfig()

        self.filters = FilterState()
        self.follow = FollowState()
        self.follow_wanted = False

        self.processes: list[ProcessRecord] = []
        self.worker_logs: list[LogEntry] | None = None

        self.scheduler = RefreshScheduler(
            baseline=self.baseline_cycle,
            follow=self.follow_cycle,
            baseline_interval=self.config.refresh_interval,
            follow_interval=self.config.follow_interval,
        )
        self.dispatcher = ActionDispatcher(client, renderer, self.load_processes)

        self._epoch = 0
        self._follow_seen: list[LogEntry] = []
        self._issued: dict[Target, int] = {t: 0 for t in Target}
        self._rendered: dict[Target, int] = {t: 0 for t in Target}
        self._closed = False

    async def __aenter__(self) -> "DashboardSession":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # -- lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        await asyncio.gather(
            self.load_processes(),
            self.load_worker_logs(),
            self.load_system_logs(),
        )
        self.scheduler.start()

    async def close(self) -> None:
        self._closed = True
        await self.scheduler.close()

    @property
    def closed(self) -> bool:
        return self._closed

    # -- refresh cycles -----------------------------------------------------

    async def baseline_cycle(self) -> None:
        loads = [self.load_processes(), self.load_worker_logs(), self.load_system_logs()]
        if self.filters.selected_worker and not self.follow.active:
            loads.append(self._load_detail(RenderMode.REPLACE))
        await asyncio.gather(*loads)

    async def follow_cycle(self) -> None:
        if not self.follow.active:
            return
        await self._load_detail(RenderMode.APPEND)

    def refresh(self) -> asyncio.Task:
        """Manual refresh: one extra baseline run, timer phase untouched."""
        return self.scheduler.trigger_now()

    # -- loaders ------------------------------------------------------------

    def _next_seq(self, target: Target) -> int:
        self._issued[target] += 1
        return self._issued[target]

    def _claim(self, target: Target, seq: int) -> bool:
        if self._closed:
            return False
        if seq < self._rendered[target]:
            logger.debug("dropping out-of-order %s response #%d", target.value, seq)
            return False
        self._rendered[target] = seq
        return True

    async def load_processes(self) -> None:
        seq = self._next_seq(Target.PROCESSES)
        records = await self.client.get_processes()
        if not self._claim(Target.PROCESSES, seq):
            return
        self.processes = records
        self.renderer.render_processes(Target.PROCESSES, project_processes(records))

    async def load_worker_logs(self) -> None:
        seq = self._next_seq(Target.WORKER_LOGS)
        entries = await self.client.get_worker_logs()
        if not self._claim(Target.WORKER_LOGS, seq):
            return
        self.worker_logs = entries
        self._render_worker_logs()

    async def load_system_logs(self) -> None:
        seq = self._next_seq(Target.SYSTEM_LOGS)
        entries = await self.client.get_system_logs()
        if not self._claim(Target.SYSTEM_LOGS, seq):
            return
        self.renderer.render(Target.SYSTEM_LOGS, project(entries, None, NO_SYSTEM_LOGS), RenderMode.REPLACE)

    def _render_worker_logs(self) -> None:
        self.renderer.render(
            Target.WORKER_LOGS,
            project(self.worker_logs or [], self.filters, NO_WORKER_LOGS),
            RenderMode.REPLACE,
        )

    def _detail_current(self, epoch: int, worker: str, mode: RenderMode) -> bool:
        if epoch != self._epoch or worker != self.filters.selected_worker:
            return False
        if mode is RenderMode.APPEND:
            return self.follow.active and self.follow.target_worker == worker
        return True

    async def _load_detail(self, mode: RenderMode) -> None:
        worker = self.filters.selected_worker
        if not worker:
            return
        epoch = self._epoch
        seq = self._next_seq(Target.WORKER_DETAIL)
        entries = await self.client.get_logs_for_worker(worker)

        if not self._detail_current(epoch, worker, mode):
            logger.debug("dropping stale %s logs for worker %s", mode.value, worker)
            return
        if not self._claim(Target.WORKER_DETAIL, seq):
            return

        if mode is RenderMode.REPLACE:
            self._follow_seen = list(entries)
            self.renderer.render(Target.WORKER_DETAIL, project(entries, None, NO_DETAIL_LOGS), mode)
            return

        # A failed poll reads as an empty window; keep the last one.
        if not entries:
            return
        fresh = new_tail(self._follow_seen, entries)
        self._follow_seen = list(entries)
        if fresh:
            self.renderer.render(Target.WORKER_DETAIL, fresh, mode)

    # -- filters ------------------------------------------------------------

    def worker_names(self) -> tuple[str, ...]:
        names = [p.name for p in self.processes]
        for e in self.worker_logs or []:
            if e.worker and e.worker not in names:
                names.append(e.worker)
        return tuple(names)

    def level_names(self) -> tuple[str, ...]:
        return known_levels(self.worker_logs or [])

    async def set_worker_filter(self, text: str) -> None:
        self.filters.set_worker_filter(text, self.worker_names())
        await self._reproject()

    async def set_level_filter(self, text: str) -> None:
        self.filters.set_level_filter(text, self.level_names())
        await self._reproject()

    async def _reproject(self) -> None:
        if self.worker_logs is None:
            await self.load_worker_logs()
        else:
            self._render_worker_logs()

    def clear_worker_logs(self) -> None:
        self.renderer.render(Target.WORKER_LOGS, [], RenderMode.REPLACE)

    # -- worker selection and follow ---------------------------------------

    def _bump_epoch(self) -> int:
        self._epoch += 1
        return self._epoch

    async def select_worker(self, name: str) -> None:
        name = (name or "").strip()
        if name == self.filters.selected_worker:
            return
        self.filters.selected_worker = name
        if not name:
            self._bump_epoch()
            self.scheduler.stop_follow()
            self.follow = FollowState()
            self._follow_seen = []
            self.renderer.render(Target.WORKER_DETAIL, [LogEntry.placeholder(SELECT_WORKER)], RenderMode.REPLACE)
            return
        await self._begin_detail(name)

    async def _begin_detail(self, worker: str) -> None:
        """Stop the follow timer, load ``worker`` with a replace, then resume following."""
        epoch = self._bump_epoch()
        self.scheduler.stop_follow()
        self._follow_seen = []
        self.follow = FollowState(active=self.follow_wanted, target_worker=worker)

        await self._load_detail(RenderMode.REPLACE)

        if epoch != self._epoch or self._closed:
            return
        if self.follow.active:
            self.scheduler.restart_follow()

    async def set_follow(self, enabled: bool) -> None:
        if enabled == self.follow_wanted:
            return
        self.follow_wanted = enabled
        worker = self.filters.selected_worker
        if enabled and worker:
            await self._begin_detail(worker)
            return
        self._bump_epoch()
        self.scheduler.stop_follow()
        self.follow = FollowState()

    async def toggle_follow(self) -> bool:
        await self.set_follow(not self.follow_wanted)
        return self.follow_wanted

    # -- actions ------------------------------------------------------------

    def is_busy(self, name: str, kind: ActionKind) -> bool:
        return self.dispatcher.is_busy(name, kind)

    async def dispatch(self, kind: ActionKind, name: str) -> bool | None:
        return await self.dispatcher.dispatch(kind, name)
