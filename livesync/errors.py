"""Error types for the dashboard core."""


class DashboardError(Exception):
    """Base class for dashboard errors."""


class TransportFailure(DashboardError):
    """Network, DNS or timeout failure talking to the supervisor API."""


class ApplicationFailure(DashboardError):
    """The supervisor API answered, but not with a usable success response."""

    def __init__(self, status: int, detail: str = ""):
        self.status = status
        self.detail = detail
        msg = f"HTTP {status}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class ConfigError(DashboardError):
    """Invalid dashboard configuration."""
