"""Logging setup: the out-of-band diagnostic sink for fetch failures."""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s"


class DiagnosticsHandler(logging.Handler):
    """
    Keeps the most recent log records in memory.

    The full-screen dashboard cannot let handlers write to the terminal
    while it owns the screen, so it reads the latest warning from here.
    """

    def __init__(self, capacity: int = 50, level: int = logging.WARNING):
        super().__init__(level)
        self.records: deque[logging.LogRecord] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def latest(self) -> logging.LogRecord | None:
        return self.records[-1] if self.records else None

    def count(self) -> int:
        return len(self.records)


def _level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level: {level!r}")
    return value


def setup_logging(
    level: int | str = logging.WARNING,
    log_file: str | None = None,
    console: Console | None = None,
    sink: DiagnosticsHandler | None = None,
) -> None:
    """
    Configure the root logger, replacing any handlers set up before.

    :param level: threshold for the console and file handlers.
    :param log_file: also write records to this file.
    :param console: attach a RichHandler printing to this console.
    :param sink: attach an in-memory DiagnosticsHandler.
    """
    threshold = _level(level)
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    if root.hasHandlers():
        root.handlers.clear()

    if console is not None:
        rich_handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
        rich_handler.setLevel(threshold)
        root.addHandler(rich_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(threshold)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root.addHandler(file_handler)

    if sink is not None:
        root.addHandler(sink)

    # aiohttp is chatty at DEBUG about connection pooling.
    logging.getLogger("aiohttp").setLevel(max(threshold, logging.INFO))
