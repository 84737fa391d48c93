#!/usr/bin/env python3
"""
Pupervisor Dashboard -- Rich Terminal UI
=========================================
Live view of a pupervisor instance: process status, worker logs, system
logs and a single-worker detail panel with follow mode. Polls the
supervisor HTTP API; nothing is pushed.

Usage:
    python dashboard.py                               # http://localhost:8080
    python dashboard.py --url http://10.0.0.5:8080
    python dashboard.py --refresh 5 --follow-interval 1
    PUPERVISOR_URL=http://host:8080 python dashboard.py
Controls:
    r                                                 # refresh now
    f                                                 # follow selected worker
    tab / ] / [                                       # select worker (detail panel)
    w / W                                             # cycle worker filter
    l / L                                             # cycle level filter
    up / down                                         # move process cursor
    s / x / R                                         # start / stop / restart process
    c                                                 # clear worker logs
    q                                                 # quit
"""

from __future__ import annotations

import argparse
import asyncio
import os
import select
import sys
import termios
import time
import tty
from datetime import datetime, timedelta
from typing import Any, Sequence

try:
    from rich.console import Console
    from rich.layout import Layout
    from rich.live import Live
    from rich.panel import Panel
    from rich.table import Table
    from rich.text import Text
except ImportError:
    print("Rich library required.  pip install rich")
    sys.exit(1)

from livesync.api import SupervisorClient
from livesync.config import DashboardConfig
from livesync.errors import ConfigError
from livesync.logs import DiagnosticsHandler, setup_logging
from livesync.models import ALL, ActionKind, LogEntry, ProcessRecord, RenderMode, Target
from livesync.projector import SELECT_WORKER
from livesync.render import PanelBuffer
from livesync.session import DashboardSession


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

LEVEL_STYLE: dict[str, str] = {
    "debug": "dim",
    "info": "bright_green",
    "warn": "yellow",
    "warning": "yellow",
    "error": "bold bright_red",
}

STATUS_STYLE: dict[str, str] = {
    "running": "bright_green",
    "stopped": "bright_red",
    "paused": "yellow",
}

ACTION_KEYS: dict[str, ActionKind] = {
    "s": ActionKind.START,
    "x": ActionKind.STOP,
    "R": ActionKind.RESTART,
}


def format_ts(ts: str) -> str:
    if not ts or ts.startswith("--"):
        return ts or "--:--:--"
    try:
        dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return ts
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime("%H:%M:%S")


def _cycle(current: str, options: Sequence[str], step: int) -> str:
    values = [ALL, *options]
    i = values.index(current) if current in values else 0
    return values[(i + step) % len(values)]


# ---------------------------------------------------------------------------
# Renderer -- receives fully decided data from the session
# ---------------------------------------------------------------------------

class RichRenderer:
    def __init__(self, max_lines: int):
        self.panels: dict[Target, PanelBuffer] = {
            t: PanelBuffer(max_lines) for t in Target if t is not Target.PROCESSES
        }
        self.processes: list[ProcessRecord] = []
        self.process_loads = 0
        self.last_update: float | None = None

    def render(self, target: Target, entries: Sequence[LogEntry], mode: RenderMode) -> None:
        self.panels[target].apply(entries, mode)
        self.last_update = time.time()

    def render_processes(self, target: Target, records: Sequence[ProcessRecord]) -> None:
        self.processes = list(records)
        self.process_loads += 1
        self.last_update = time.time()

    def lines(self, target: Target) -> list[LogEntry]:
        return self.panels[target].snapshot()


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

def make_layout() -> Layout:
    root = Layout(name="root")
    root.split_column(
        Layout(name="header", size=3),
        Layout(name="body", ratio=1),
        Layout(name="footer_row", size=3),
    )
    root["body"].split_row(
        Layout(name="left", ratio=2, minimum_size=40),
        Layout(name="right", ratio=3, minimum_size=40),
    )
    root["left"].split_column(
        Layout(name="processes", ratio=1),
        Layout(name="system", ratio=1),
    )
    root["right"].split_column(
        Layout(name="workers", ratio=1),
        Layout(name="detail", ratio=1),
    )
    root["footer_row"].split_row(
        Layout(name="footer", ratio=1),
        Layout(name="controls", ratio=1),
    )
    return root


# ---------------------------------------------------------------------------
# Panel renderers
# ---------------------------------------------------------------------------

def _elapsed_str(s: float) -> str:
    h = int(s // 3600)
    m = int((s % 3600) // 60)
    sec = int(s % 60)
    return f"{h:02d}:{m:02d}:{sec:02d}"


def render_header(s: dict[str, Any]) -> Panel:
    tbl = Table.grid(expand=True)
    tbl.add_column(justify="left", ratio=1)
    tbl.add_column(justify="center", ratio=1)
    tbl.add_column(justify="right", ratio=1)

    follow = "[bold bright_green]FOLLOWING[/]" if s["following"] else "[dim]follow off[/]"
    tbl.add_row(
        f"[bold bright_cyan]PUPERVISOR[/]  [dim]{s['url']}  {_elapsed_str(s['elapsed'])}[/]",
        f"[dim]worker[/] [bright_white]{s['worker_filter']}[/]  "
        f"[dim]level[/] [bright_white]{s['level_filter']}[/]",
        f"{follow}  [dim]every {s['refresh']:g}s[/]",
    )
    return Panel(tbl, style="bright_cyan", height=3)


def render_processes(s: dict[str, Any]) -> Panel:
    procs: list[ProcessRecord] = s["processes"]
    if not procs:
        body: Any = Text("  No processes found.", style="dim italic")
        return Panel(body, title="[bold]PROCESSES[/]", border_style="bright_blue")

    tbl = Table(show_header=True, header_style="dim", box=None, padding=(0, 1), expand=True)
    tbl.add_column("", width=1, no_wrap=True)
    tbl.add_column("name", no_wrap=True)
    tbl.add_column("status", no_wrap=True)
    tbl.add_column("pid", justify="right")
    tbl.add_column("uptime", justify="right")
    tbl.add_column("mem", justify="right")

    for i, p in enumerate(procs):
        style = STATUS_STYLE.get(p.status, "yellow")
        busy = [k.value for k in ActionKind if s["is_busy"](p.name, k)]
        status = f"[{style}]{p.status}[/]"
        if busy:
            status += f" [dim]({busy[0]} pending)[/]"
        tbl.add_row(
            "[reverse]>[/]" if i == s["cursor"] else " ",
            f"[bold]{p.name}[/]" if p.name == s["selected"] else p.name,
            status,
            str(p.pid) if p.pid else "[dim]N/A[/]",
            p.uptime or "[dim]N/A[/]",
            p.memory or "[dim]N/A[/]",
        )
    return Panel(tbl, title="[bold]PROCESSES[/]", border_style="bright_blue")


def _log_text(entries: list[LogEntry], height: int, show_worker: bool) -> Text:
    txt = Text()
    for e in entries[-max(1, height):]:
        txt.append(f" [{format_ts(e.timestamp)}] ", style="dim")
        if show_worker and e.worker:
            txt.append(f"[{e.worker}] ", style="cyan")
        txt.append(f"{e.message}\n", style=LEVEL_STYLE.get(e.level, ""))
    return txt


def render_log_panel(entries: list[LogEntry], title: str, border: str, height: int,
                     show_worker: bool = True) -> Panel:
    txt = _log_text(entries, height, show_worker)
    if not entries:
        txt.append("  (cleared)", style="dim italic")
    return Panel(txt, title=title, border_style=border)


def render_footer(s: dict[str, Any]) -> Panel:
    record = s["diagnostic"]
    if record is None:
        last = "never" if s["last_update"] is None else datetime.fromtimestamp(
            s["last_update"]).strftime("%H:%M:%S")
        txt = Text.from_markup(f"  [dim]updated[/] [bright_white]{last}[/]  [dim]no errors[/]")
    else:
        when = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        txt = Text.from_markup(
            f"  [bright_red]{s['diagnostic_count']} warnings[/]  [dim]{when}[/] "
        )
        txt.append(record.getMessage()[:120], style="yellow")
    return Panel(txt, style="bright_cyan", height=3)


def render_controls() -> Panel:
    txt = Text.from_markup(
        "[bold bright_white]r[/] refresh [bright_black]|[/] "
        "[bold bright_white]f[/] follow [bright_black]|[/] "
        "[bold bright_white]tab[/] worker [bright_black]|[/] "
        "[bold bright_white]w/l[/] filters [bright_black]|[/] "
        "[bold bright_white]s/x/R[/] start/stop/restart [bright_black]|[/] "
        "[bold bright_white]q[/] quit"
    )
    return Panel(txt, title="[bold bright_white]CONTROLS[/]", border_style="bright_cyan", height=3)


# ---------------------------------------------------------------------------
# Input controls
# ---------------------------------------------------------------------------

class KeyPoller:
    def __init__(self, enabled: bool):
        self.enabled = enabled and os.name == "posix" and sys.stdin.isatty()
        self.fd: int | None = None
        self._old: Any = None

    def __enter__(self):
        if self.enabled:
            self.fd = sys.stdin.fileno()
            self._old = termios.tcgetattr(self.fd)
            tty.setcbreak(self.fd)
        return self

    def __exit__(self, exc_type, exc, tb):
        if self.enabled and self.fd is not None and self._old is not None:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self._old)

    def poll(self) -> str:
        if not self.enabled or self.fd is None:
            return ""
        ready, _, _ = select.select([self.fd], [], [], 0)
        if not ready:
            return ""
        raw = os.read(self.fd, 1)
        if not raw:
            return ""
        if raw == b"\x1b":
            seq = b""
            deadline = time.time() + 0.08
            while time.time() < deadline:
                rdy, _, _ = select.select([self.fd], [], [], 0.005)
                if not rdy:
                    break
                chunk = os.read(self.fd, 1)
                if not chunk:
                    break
                seq += chunk
            if seq.endswith(b"A"):
                return "UP"
            if seq.endswith(b"B"):
                return "DOWN"
            if seq.endswith(b"C"):
                return "RIGHT"
            if seq.endswith(b"D"):
                return "LEFT"
            return "ESC"
        if raw == b"\t":
            return "TAB"
        return raw.decode("utf-8", errors="ignore")


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

class DashboardApp:
    def __init__(self, session: DashboardSession, renderer: RichRenderer,
                 diagnostics: DiagnosticsHandler):
        self.session = session
        self.renderer = renderer
        self.diagnostics = diagnostics
        self.cursor = 0
        self.start_time = time.time()
        self.actions_sent = 0
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def handle_key(self, key: str) -> bool:
        """Returns False when the user asked to quit."""
        s = self.session
        procs = self.renderer.processes
        if key in ("q", "Q"):
            return False
        if key == "r":
            s.refresh()
        elif key in ("f", "F"):
            self.spawn(s.toggle_follow())
        elif key in ("TAB", "]", "RIGHT", "[", "LEFT"):
            step = -1 if key in ("[", "LEFT") else 1
            names = list(s.worker_names())
            current = s.filters.selected_worker or ALL
            nxt = _cycle(current, names, step)
            self.spawn(s.select_worker("" if nxt == ALL else nxt))
        elif key in ("w", "W"):
            nxt = _cycle(str(s.filters.worker_filter), s.worker_names(), 1 if key == "w" else -1)
            self.spawn(s.set_worker_filter(nxt))
        elif key in ("l", "L"):
            nxt = _cycle(str(s.filters.level_filter), s.level_names(), 1 if key == "l" else -1)
            self.spawn(s.set_level_filter(nxt))
        elif key == "UP":
            self.cursor = max(0, self.cursor - 1)
        elif key == "DOWN":
            self.cursor = min(max(0, len(procs) - 1), self.cursor + 1)
        elif key in ACTION_KEYS and procs:
            name = procs[min(self.cursor, len(procs) - 1)].name
            kind = ACTION_KEYS[key]
            if not s.is_busy(name, kind):
                self.actions_sent += 1
                self.spawn(s.dispatch(kind, name))
        elif key == "c":
            s.clear_worker_logs()
        return True

    def snap(self) -> dict[str, Any]:
        s = self.session
        return {
            "url": s.config.base_url,
            "elapsed": time.time() - self.start_time,
            "refresh": s.config.refresh_interval,
            "following": s.follow.active,
            "worker_filter": str(s.filters.worker_filter),
            "level_filter": str(s.filters.level_filter),
            "selected": s.filters.selected_worker,
            "processes": self.renderer.processes,
            "cursor": self.cursor,
            "is_busy": s.is_busy,
            "last_update": self.renderer.last_update,
            "diagnostic": self.diagnostics.latest(),
            "diagnostic_count": self.diagnostics.count(),
        }

    def draw(self, layout: Layout, height: int) -> None:
        s = self.snap()
        pane_h = max(1, (height - 6) // 2 - 2)
        detail_title = (
            f"[bold]WORKER {s['selected']}[/]" if s["selected"] else "[bold]WORKER DETAIL[/]"
        )
        if s["following"]:
            detail_title += "  [bright_green](following)[/]"
        layout["header"].update(render_header(s))
        layout["processes"].update(render_processes(s))
        layout["system"].update(render_log_panel(
            self.renderer.lines(Target.SYSTEM_LOGS), "[bold]SYSTEM LOGS[/]",
            "bright_magenta", pane_h, show_worker=False))
        layout["workers"].update(render_log_panel(
            self.renderer.lines(Target.WORKER_LOGS), "[bold]WORKER LOGS[/]",
            "bright_green", pane_h))
        layout["detail"].update(render_log_panel(
            self.renderer.lines(Target.WORKER_DETAIL), detail_title, "bright_yellow", pane_h))
        layout["footer"].update(render_footer(s))
        layout["controls"].update(render_controls())

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


async def run(cfg: DashboardConfig, hz: int) -> DashboardApp:
    console = Console()
    diagnostics = DiagnosticsHandler()
    setup_logging(cfg.log_level, log_file=cfg.log_file, sink=diagnostics)

    renderer = RichRenderer(cfg.max_lines)
    renderer.render(Target.WORKER_DETAIL, [LogEntry.placeholder(SELECT_WORKER)],
                    RenderMode.REPLACE)

    async with SupervisorClient(cfg.base_url, timeout=cfg.request_timeout) as client:
        async with DashboardSession(client, renderer, cfg) as session:
            app = DashboardApp(session, renderer, diagnostics)
            layout = make_layout()
            app.draw(layout, console.size.height)
            try:
                with KeyPoller(True) as key_poller:
                    with Live(layout, console=console, refresh_per_second=hz, screen=True):
                        await session.start()
                        running = True
                        while running:
                            key = key_poller.poll()
                            while key and running:
                                running = app.handle_key(key)
                                key = key_poller.poll()
                            app.draw(layout, console.size.height)
                            await asyncio.sleep(1.0 / hz)
            finally:
                await app.close()
    return app


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Pupervisor Rich Terminal Dashboard")
    ap.add_argument("--url", help="Supervisor base URL (default $PUPERVISOR_URL or localhost:8080)")
    ap.add_argument("--refresh", type=float, help="Baseline refresh interval in seconds")
    ap.add_argument("--follow-interval", type=float, help="Follow mode interval in seconds")
    ap.add_argument("--timeout", type=float, help="Per-request timeout in seconds")
    ap.add_argument("--max-lines", type=int, help="Lines kept per log panel")
    ap.add_argument("--log-file", help="Write diagnostics to this file")
    ap.add_argument("--log-level", help="Diagnostics level (default WARNING)")
    ap.add_argument("--hz", type=int, default=4, help="Screen refresh rate Hz (default 4)")
    return ap


def main():
    args = build_parser().parse_args()
    try:
        cfg = DashboardConfig.from_env().with_overrides(
            base_url=args.url,
            refresh_interval=args.refresh,
            follow_interval=args.follow_interval,
            request_timeout=args.timeout,
            max_lines=args.max_lines,
            log_file=args.log_file,
            log_level=args.log_level,
        ).validate()
    except ConfigError as exc:
        print(f"config error: {exc}", file=sys.stderr)
        sys.exit(2)

    try:
        app = asyncio.run(run(cfg, max(1, args.hz)))
    except KeyboardInterrupt:
        return

    # final summary
    console = Console()
    console.print()
    console.print("[bold bright_cyan]Pupervisor Dashboard Session Complete[/]")
    console.print(f"  Duration    {timedelta(seconds=int(time.time() - app.start_time))}")
    console.print(f"  Processes   {len(app.renderer.processes)}")
    console.print(f"  Actions     {app.actions_sent}")
    console.print(f"  Warnings    {app.diagnostics.count()}")
    console.print()


if __name__ == "__main__":
    main()
