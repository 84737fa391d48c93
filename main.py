#!/usr/bin/env python3
"""
Pupervisor CLI -- query and control a supervisor from the shell.

Usage:
    python main.py status
    python main.py logs                       # worker logs
    python main.py logs --worker worker-1 --follow
    python main.py logs --system
    python main.py logs --level error
    python main.py restart worker-1
    python main.py health
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime
from typing import Any

from rich.console import Console

from livesync.api import SupervisorClient
from livesync.config import DashboardConfig
from livesync.errors import ConfigError
from livesync.logs import setup_logging
from livesync.models import ActionKind, FilterState, LogEntry, ProcessRecord
from livesync.projector import NO_DETAIL_LOGS, NO_SYSTEM_LOGS, NO_WORKER_LOGS, new_tail, project
from livesync.scheduler import PeriodicTask

DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"
RED = "\033[31m"
YELLOW = "\033[33m"
GREEN = "\033[32m"
CYAN = "\033[36m"

LEVEL_STYLE: dict[str, str] = {
    "debug": DIM,
    "info": GREEN,
    "warn": YELLOW,
    "error": RED,
}

STATUS_STYLE: dict[str, str] = {
    "running": GREEN,
    "stopped": RED,
    "paused": YELLOW,
}

MESSAGE_TRUNCATE_LIMIT = 500


def format_ts(ts: str) -> str:
    try:
        dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return ts
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime("%H:%M:%S")


def format_line(entry: LogEntry) -> str:
    ts = format_ts(entry.timestamp)
    lstyle = LEVEL_STYLE.get(entry.level, "")
    msg = entry.message
    if len(msg) > MESSAGE_TRUNCATE_LIMIT:
        msg = msg[:MESSAGE_TRUNCATE_LIMIT] + "…"

    parts = [
        f"{DIM}{ts}{RESET}",
        f"{lstyle}{entry.level.upper():5s}{RESET}",
    ]
    if entry.worker:
        parts.append(f"{CYAN}{entry.worker:14s}{RESET}")
    parts.append(msg if entry.is_placeholder else f"{BOLD}{msg}{RESET}")
    return " ".join(parts)


def format_process(p: ProcessRecord) -> str:
    style = STATUS_STYLE.get(p.status, YELLOW)
    return (
        f"  {BOLD}{p.name:20s}{RESET}"
        f" {style}{p.status:8s}{RESET}"
        f" {DIM}pid={RESET}{p.pid or 'N/A'}"
        f" {DIM}uptime={RESET}{p.uptime or 'N/A'}"
        f" {DIM}mem={RESET}{p.memory or 'N/A'}"
        f" {DIM}cpu={RESET}{p.cpu or 'N/A'}"
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

async def cmd_status(client: SupervisorClient) -> int:
    procs = await client.get_processes()
    if not procs:
        print(f"{DIM}No processes found.{RESET}")
        return 0
    for p in procs:
        print(format_process(p))
    running = sum(1 for p in procs if p.status == "running")
    print(f"\n  {BOLD}total={CYAN}{len(procs)}{RESET}  {BOLD}running={GREEN}{running}{RESET}")
    return 0


async def _fetch_logs(client: SupervisorClient, args: argparse.Namespace) -> tuple[list[LogEntry], str]:
    if args.worker:
        return await client.get_logs_for_worker(args.worker), NO_DETAIL_LOGS
    if args.system:
        return await client.get_system_logs(), NO_SYSTEM_LOGS
    if args.all:
        return await client.get_all_logs(), NO_WORKER_LOGS
    return await client.get_worker_logs(), NO_WORKER_LOGS


async def cmd_logs(client: SupervisorClient, args: argparse.Namespace, cfg: DashboardConfig) -> int:
    filters = FilterState()
    filters.set_level_filter(args.level or "all")
    entries, empty = await _fetch_logs(client, args)
    for e in project(entries, filters, empty):
        print(format_line(e))
    if not args.follow:
        return 0

    seen = entries

    async def tick() -> None:
        nonlocal seen
        current, _ = await _fetch_logs(client, args)
        # A failed poll reads as an empty window; keep the last one.
        if not current:
            return
        fresh = new_tail(seen, current)
        seen = current
        for e in fresh:
            if filters.level_filter.matches(e.level):
                print(format_line(e), flush=True)

    follower = PeriodicTask(cfg.follow_interval, tick, name="follow")
    follower.start()
    try:
        await asyncio.Event().wait()
    finally:
        await follower.close()
    return 0


async def cmd_action(client: SupervisorClient, kind: ActionKind, name: str) -> int:
    ok = await client.run_action(name, kind)
    if ok:
        print(f"{GREEN}✓ Process {name} {kind.past_tense} successfully{RESET}")
        return 0
    print(f"{RED}✗ Failed to {kind.value} process {name}{RESET}")
    return 1


async def cmd_health(client: SupervisorClient) -> int:
    health: dict[str, Any] | None = await client.check_health()
    if health is None:
        print(f"{RED}✗ {client.base_url} is unreachable{RESET}")
        return 1
    detail = " ".join(f"{k}={v}" for k, v in health.items())
    print(f"{GREEN}✓ {client.base_url}{RESET} {DIM}{detail}{RESET}")
    return 0


async def run(args: argparse.Namespace, cfg: DashboardConfig) -> int:
    async with SupervisorClient(cfg.base_url, timeout=cfg.request_timeout) as client:
        if args.command == "status":
            return await cmd_status(client)
        if args.command == "logs":
            return await cmd_logs(client, args, cfg)
        if args.command == "health":
            return await cmd_health(client)
        return await cmd_action(client, ActionKind(args.command), args.name)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Pupervisor CLI")
    ap.add_argument("--url", help="Supervisor base URL (default $PUPERVISOR_URL or localhost:8080)")
    ap.add_argument("--timeout", type=float, help="Per-request timeout in seconds")
    ap.add_argument("--follow-interval", type=float, help="Poll interval for logs --follow")
    ap.add_argument("--debug", action="store_true", help="Verbose diagnostics")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="List processes")
    sub.add_parser("health", help="Check the supervisor is reachable")

    logs = sub.add_parser("logs", help="Print logs")
    src = logs.add_mutually_exclusive_group()
    src.add_argument("--worker", help="Logs of one worker")
    src.add_argument("--system", action="store_true", help="System logs")
    src.add_argument("--all", action="store_true", help="All logs")
    logs.add_argument("--level", help="Only this level (debug/info/warn/error)")
    logs.add_argument("--follow", action="store_true", help="Keep printing new lines")

    for kind in ActionKind:
        p = sub.add_parser(kind.value, help=f"{kind.value.capitalize()} a process")
        p.add_argument("name", help="Process name")
    return ap


def main() -> None:
    args = build_parser().parse_args()
    try:
        cfg = DashboardConfig.from_env().with_overrides(
            base_url=args.url,
            request_timeout=args.timeout,
            follow_interval=args.follow_interval,
            log_level="DEBUG" if args.debug else None,
        ).validate()
    except ConfigError as exc:
        print(f"{RED}config error: {exc}{RESET}", file=sys.stderr)
        sys.exit(2)

    setup_logging(cfg.log_level, log_file=cfg.log_file, console=Console(stderr=True))
    try:
        sys.exit(asyncio.run(run(args, cfg)))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
