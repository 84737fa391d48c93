"""
Dashboard configuration.

Values come from defaults, then ``PUPERVISOR_*`` environment variables,
then command line flags (see ``with_overrides``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

from livesync.errors import ConfigError

DEFAULT_URL = "http://localhost:8080"
DEFAULT_REFRESH_INTERVAL = 3.0
DEFAULT_FOLLOW_INTERVAL = 2.0
DEFAULT_MAX_LINES = 500

ENV_PREFIX = "PUPERVISOR_"


@dataclass(frozen=True)
class DashboardConfig:
    base_url: str = DEFAULT_URL
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    follow_interval: float = DEFAULT_FOLLOW_INTERVAL
    request_timeout: float | None = None
    max_lines: int = DEFAULT_MAX_LINES
    log_level: str = "WARNING"
    log_file: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DashboardConfig":
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        def num(name: str, cast=float) -> Any:
            raw = get(name)
            if raw is None:
                return None
            try:
                return cast(raw)
            except ValueError:
                raise ConfigError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None

        cfg = cls().with_overrides(
            base_url=get("URL"),
            refresh_interval=num("REFRESH_INTERVAL"),
            follow_interval=num("FOLLOW_INTERVAL"),
            request_timeout=num("TIMEOUT"),
            max_lines=num("MAX_LINES", int),
            log_level=get("LOG_LEVEL"),
            log_file=get("LOG_FILE"),
        )
        return cfg

    def with_overrides(self, **overrides: Any) -> "DashboardConfig":
        """Return a copy with every non-None override applied."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(sorted(unknown))}")
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> "DashboardConfig":
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigError(f"base URL must be http(s): {self.base_url!r}")
        if self.refresh_interval <= 0:
            raise ConfigError("refresh interval must be positive")
        if self.follow_interval <= 0:
            raise ConfigError("follow interval must be positive")
        if self.follow_interval > self.refresh_interval:
            raise ConfigError(
                f"follow interval ({self.follow_interval}s) must not exceed "
                f"the refresh interval ({self.refresh_interval}s)"
            )
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ConfigError("request timeout must be positive")
        if self.max_lines < 1:
            raise ConfigError("max lines must be at least 1")
        return self
