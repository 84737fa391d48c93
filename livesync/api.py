"""
Supervisor API Client -- fail-soft data source for the dashboard
================================================================

Wraps the supervisor's HTTP API behind one async accessor per endpoint.
No accessor raises to its caller: transport and application failures are
logged to ``livesync.api`` and turned into an empty list (reads) or
``False`` (actions), so the refresh logic never has to branch on errors.

Usage:
    from livesync.api import SupervisorClient

    async with SupervisorClient("http://localhost:8080") as client:
        procs = await client.get_processes()
        ok = await client.run_action("worker-1", ActionKind.RESTART)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, TypeVar
from urllib.parse import quote

import aiohttp

from livesync.errors import ApplicationFailure, TransportFailure
from livesync.models import ActionKind, LogEntry, ProcessRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SupervisorClient:
    """
    Async accessor for the supervisor API.

    One ``aiohttp.ClientSession`` is shared by every call. Pass ``session``
    to reuse one owned elsewhere; it is then not closed by ``close()``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "SupervisorClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            if self.timeout is not None:
                self._session = aiohttp.ClientSession(timeout=self.timeout)
            else:
                self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    # -- transport ----------------------------------------------------------

    async def _request_json(self, method: str, path: str, decode: bool = True) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().request(method, url) as resp:
                if resp.status < 200 or resp.status >= 300:
                    body = await resp.text()
                    raise ApplicationFailure(resp.status, body.strip()[:200])
                if not decode or resp.status == 204:
                    return None
                try:
                    return await resp.json(content_type=None)
                except ValueError as exc:
                    raise ApplicationFailure(resp.status, f"invalid JSON: {exc}") from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportFailure(f"{method} {url}: {exc or type(exc).__name__}") from exc

    async def _read_list(self, path: str, what: str, parse: Callable[[dict], T]) -> list[T]:
        try:
            data = await self._request_json("GET", path)
        except TransportFailure as exc:
            logger.warning("Error fetching %s: %s", what, exc)
            return []
        except ApplicationFailure as exc:
            logger.warning("Failed to fetch %s: %s", what, exc)
            return []

        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("Failed to fetch %s: expected a list, got %s", what, type(data).__name__)
            return []

        out: list[T] = []
        for item in data:
            try:
                out.append(parse(item))
            except (TypeError, ValueError, AttributeError) as exc:
                logger.warning("Skipping malformed %s item: %s", what, exc)
        return out

    # -- read accessors -----------------------------------------------------

    async def get_processes(self) -> list[ProcessRecord]:
        return await self._read_list("/api/processes", "process status", ProcessRecord.from_dict)

    async def get_worker_logs(self) -> list[LogEntry]:
        return await self._read_list("/api/logs/worker", "worker logs", LogEntry.from_dict)

    async def get_system_logs(self) -> list[LogEntry]:
        return await self._read_list("/api/logs/system", "system logs", LogEntry.from_dict)

    async def get_all_logs(self) -> list[LogEntry]:
        return await self._read_list("/api/logs", "logs", LogEntry.from_dict)

    async def get_logs_for_worker(self, worker: str) -> list[LogEntry]:
        if not worker:
            return []
        path = f"/api/logs/worker/{quote(worker, safe='')}"
        return await self._read_list(path, f"logs for worker {worker}", LogEntry.from_dict)

    # -- write accessors ----------------------------------------------------

    async def run_action(self, name: str, kind: ActionKind) -> bool:
        """POST a start/stop/restart for ``name``. True only on a 2xx answer."""
        path = f"/api/processes/{quote(name, safe='')}/{kind.value}"
        try:
            await self._request_json("POST", path, decode=False)
        except TransportFailure as exc:
            logger.warning("Error trying to %s process %s: %s", kind.value, name, exc)
            return False
        except ApplicationFailure as exc:
            logger.warning("Failed to %s process %s: %s", kind.value, name, exc)
            return False
        return True

    async def check_health(self) -> dict | None:
        """Returns the health document, or None if the API is unreachable."""
        try:
            data = await self._request_json("GET", "/health")
        except (TransportFailure, ApplicationFailure) as exc:
            logger.warning("Health check failed: %s", exc)
            return None
        return data if isinstance(data, dict) else {"status": "ok"}
