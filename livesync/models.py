"""
Dashboard Data Model
====================

Records returned by the supervisor API, the filter/follow state owned by a
dashboard session, and the small tags that travel to the renderer.

Everything here is plain data. Nothing talks to the network.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

PLACEHOLDER_TIMESTAMP = "--:--:--"
ALL = "all"

STANDARD_LEVELS = ("debug", "info", "warn", "error")


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------

class RenderMode(enum.Enum):
    REPLACE = "replace"
    APPEND = "append"


class Target(enum.Enum):
    PROCESSES = "processes"
    WORKER_LOGS = "worker_logs"
    SYSTEM_LOGS = "system_logs"
    WORKER_DETAIL = "worker_detail"


class ActionKind(enum.Enum):
    START = "start"
    STOP = "stop"
    RESTART = "restart"

    @property
    def past_tense(self) -> str:
        return {"start": "started", "stop": "stopped", "restart": "restarted"}[self.value]


# ---------------------------------------------------------------------------
# API records
# ---------------------------------------------------------------------------

def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class ProcessRecord:
    """One supervised process as reported by ``GET /api/processes``."""
    name: str
    status: str
    pid: int | None = None
    uptime: str | None = None
    memory: str | None = None
    cpu: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessRecord":
        name = data.get("name")
        if not name:
            raise ValueError(f"process record without a name: {data!r}")
        pid = data.get("pid")
        # The API reports pid 0 for processes that are not running.
        pid = int(pid) if pid else None
        return cls(
            name=str(name),
            status=str(data.get("status") or "stopped").lower(),
            pid=pid,
            uptime=_optional_str(data.get("uptime")),
            memory=_optional_str(data.get("memory")),
            cpu=_optional_str(data.get("cpu")),
        )


@dataclass(frozen=True)
class LogEntry:
    """A single log line. Server order is authoritative; never re-sorted."""
    timestamp: str
    level: str
    message: str
    worker: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEntry":
        if "message" not in data:
            raise ValueError(f"log entry without a message: {data!r}")
        return cls(
            timestamp=str(data.get("timestamp") or ""),
            level=str(data.get("level") or "info").lower(),
            message=str(data["message"]),
            worker=_optional_str(data.get("worker")),
        )

    @classmethod
    def synthetic(cls, message: str, level: str = "info", worker: str = "system") -> "LogEntry":
        ts = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        return cls(timestamp=ts, level=level, message=message, worker=worker)

    @classmethod
    def placeholder(cls, message: str) -> "LogEntry":
        return cls(timestamp=PLACEHOLDER_TIMESTAMP, level="info", message=message)

    @property
    def is_placeholder(self) -> bool:
        return self.timestamp == PLACEHOLDER_TIMESTAMP


# ---------------------------------------------------------------------------
# Selection -- "all" or one specific value
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnyOf:
    def matches(self, value: str | None) -> bool:
        return True

    def __str__(self) -> str:
        return ALL


@dataclass(frozen=True)
class Specific:
    value: str

    def matches(self, value: str | None) -> bool:
        return value == self.value

    def __str__(self) -> str:
        return self.value


Selection = AnyOf | Specific


def parse_selection(text: str | None) -> Selection:
    text = (text or "").strip()
    if not text or text == ALL:
        return AnyOf()
    return Specific(text)


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

@dataclass
class FilterState:
    """
    What the user has chosen to look at.

    ``selected_worker`` drives the single-worker detail panel and is empty
    when no worker is selected. Unknown filter values are accepted; they
    just project to an empty result.
    """
    worker_filter: Selection = field(default_factory=AnyOf)
    level_filter: Selection = field(default_factory=AnyOf)
    selected_worker: str = ""

    def set_worker_filter(self, text: str, known: tuple[str, ...] = ()) -> Selection:
        self.worker_filter = self._checked(parse_selection(text), known, "worker")
        return self.worker_filter

    def set_level_filter(self, text: str, known: tuple[str, ...] = STANDARD_LEVELS) -> Selection:
        self.level_filter = self._checked(parse_selection(text), known, "level")
        return self.level_filter

    @staticmethod
    def _checked(sel: Selection, known: tuple[str, ...], what: str) -> Selection:
        if isinstance(sel, Specific) and known and sel.value not in known:
            logger.debug("unknown %s filter %r, known: %s", what, sel.value, ", ".join(known))
        return sel


@dataclass(frozen=True)
class FollowState:
    active: bool = False
    target_worker: str = ""

    def __post_init__(self):
        if self.active and not self.target_worker:
            raise ValueError("follow mode needs a target worker")
