"""Error taxonomy shared by the directory client, the proxy routes and the CLI."""

from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    """Base class for every error raised by the dashboard services."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_envelope(self) -> dict:
        return {"error": self.message}


class ConfigurationError(DashboardError):
    """A required setting is absent or malformed."""

    status_code = 500


class UpstreamHTTPError(DashboardError):
    """The upstream answered with a non-2xx status; the status is forwarded."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message, status_code=status_code)


class UpstreamTransportError(DashboardError):
    """Network failure or timeout while reaching the upstream."""

    status_code = 502


class DiscoveryError(DashboardError):
    """The SRV lookup for directory servers failed or returned nothing."""

    status_code = 503


class AllServersFailedError(DashboardError):
    """Every failover candidate was tried and none produced a usable body."""

    status_code = 502

    def __init__(self, attempts: int) -> None:
        super().__init__("All servers failed")
        self.attempts = attempts


__all__ = [
    "DashboardError",
    "ConfigurationError",
    "UpstreamHTTPError",
    "UpstreamTransportError",
    "DiscoveryError",
    "AllServersFailedError",
]
