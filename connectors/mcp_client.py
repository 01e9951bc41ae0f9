"""Client for the operations (MCP) service and for this app's own proxy routes.

:class:`McpClient` talks to the upstream directly and raises the shared error
taxonomy; the web layer turns those errors into ``{"error": ...}`` envelopes.
:class:`LogTail` and :func:`fetch_overview` go through the proxy routes via
``NEXT_PUBLIC_APP_URL``, the same way the dashboard pages do.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import httpx

from connectors.metrics_adapters import pick_number
from core.config_models import OpsSettings
from core.errors import ConfigurationError, UpstreamHTTPError, UpstreamTransportError

LOGGER = logging.getLogger(__name__)

MAX_LOG_ROWS = 50
VISIBLE_LOG_ROWS = 20

_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}[T\s]\d{2}:\d{2}:\d{2}(?:\.\d+)?Z?")
_LEVEL_RE = re.compile(r"\b(DEBUG|INFO|WARN|WARNING|ERROR|FATAL|TRACE)\b")
_LINE_SPLIT_RE = re.compile(r"\r?\n")

HttpFactory = Callable[[], httpx.AsyncClient]

SELF_CALL_TIMEOUT = 10.0


def _default_factory() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=SELF_CALL_TIMEOUT)


def uncapped_client() -> httpx.AsyncClient:
    """Client without transport timeouts; callers cap requests with ``asyncio.wait_for``."""

    return httpx.AsyncClient(timeout=httpx.Timeout(None))


class McpClient:
    """Fetch health, metrics and logs from the operations service."""

    def __init__(self, settings: OpsSettings, http_factory: Optional[HttpFactory] = None) -> None:
        self._settings = settings
        self._http_factory = http_factory or uncapped_client

    def _require_base_url(self) -> str:
        if not self._settings.base_url:
            raise ConfigurationError("MCP_BASE_URL is not configured", status_code=500)
        return self._settings.base_url

    def _url(self, path: str) -> httpx.URL:
        return httpx.URL(self._require_base_url()).join(path)

    async def _get(self, path: str, accept: str, what: str, fallback: str, admin: bool) -> httpx.Response:
        url = self._url(path)
        headers = {"Accept": accept, "Cache-Control": "no-store"}
        if admin:
            headers.update(self._settings.admin_headers())
        try:
            async with self._http_factory() as client:
                response = await asyncio.wait_for(
                    client.get(url, headers=headers),
                    timeout=self._settings.request_timeout,
                )
        except asyncio.TimeoutError as exc:
            LOGGER.warning("Upstream %s timed out", path)
            raise UpstreamTransportError(
                f"Upstream request timed out after {self._settings.request_timeout_ms} ms"
            ) from exc
        except httpx.HTTPError as exc:
            LOGGER.warning("Upstream %s unreachable: %s", path, exc)
            raise UpstreamTransportError(str(exc) or fallback) from exc
        if not response.is_success:
            raise UpstreamHTTPError(response.status_code, f"{what} returned {response.status_code}")
        return response

    @staticmethod
    def _decode(response: httpx.Response, fallback: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamTransportError(str(exc) or fallback) from exc

    async def fetch_health(self) -> Any:
        fallback = "Failed to reach upstream health endpoint"
        response = await self._get("/health", "application/json", "Upstream health check", fallback, admin=False)
        return self._decode(response, fallback)

    async def fetch_metrics(self) -> Any:
        fallback = "Failed to reach upstream metrics endpoint"
        response = await self._get(
            "/admin/api/metrics", "application/json", "Upstream metrics endpoint", fallback, admin=True
        )
        return self._decode(response, fallback)

    async def fetch_logs(self) -> List[str]:
        self._require_base_url()
        if not self._settings.admin_token:
            raise ConfigurationError("MCP_ADMIN_TOKEN is required for log streaming", status_code=401)
        response = await self._get(
            "/admin/api/logs", "text/plain", "Upstream log feed", "Failed to reach upstream logs", admin=True
        )
        return split_log_body(response.text)


def split_log_body(body: str) -> List[str]:
    return [line.strip() for line in _LINE_SPLIT_RE.split(body) if line.strip()]


@dataclass(slots=True)
class LogRow:
    id: str
    timestamp: str
    level: str
    message: str


def parse_log_line(line: str, index: int) -> LogRow:
    """Pull timestamp, level and message out of a free-form log line."""

    timestamp_match = _TIMESTAMP_RE.search(line)
    level_match = _LEVEL_RE.search(line)
    if timestamp_match:
        timestamp = timestamp_match.group(0)
    else:
        timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    level = level_match.group(0).replace("TRACE", "DEBUG") if level_match else "INFO"
    message_start = level_match.end() if level_match else 0
    message = line[message_start:].strip() or line.strip()
    return LogRow(id=f"{timestamp}-{index}", timestamp=timestamp, level=level, message=message)


class LogTail:
    """Poll ``/api/tattty/logs`` on a fixed interval and keep parsed rows."""

    def __init__(
        self,
        app_url: str,
        interval: float = 4.0,
        http_factory: Optional[HttpFactory] = None,
    ) -> None:
        self._url = f"{app_url.rstrip('/')}/api/tattty/logs"
        self._interval = interval
        self._http_factory = http_factory or _default_factory
        self._polling = False
        self.rows: List[LogRow] = []
        self.last_updated: Optional[datetime] = None
        self.error: Optional[str] = None

    @property
    def view(self) -> List[LogRow]:
        return self.rows[:VISIBLE_LOG_ROWS]

    async def poll_once(self) -> bool:
        """One poll; returns False when skipped because a poll is in flight."""

        if self._polling:
            return False
        self._polling = True
        try:
            async with self._http_factory() as client:
                response = await client.get(self._url, headers={"Cache-Control": "no-store"})
            if not response.is_success:
                raise UpstreamHTTPError(response.status_code, f"HTTP {response.status_code}")
            data = response.json()
            lines = data.get("lines") if isinstance(data, dict) else None
            parsed = [parse_log_line(line, index) for index, line in enumerate(lines or [])]
            if parsed:
                self.rows = parsed[:MAX_LOG_ROWS]
                self.last_updated = datetime.now()
            self.error = None
        except UpstreamHTTPError as exc:
            self.error = exc.message
        except (httpx.HTTPError, ValueError) as exc:
            self.error = str(exc) or "Failed to stream logs"
        finally:
            self._polling = False
        if self.error:
            LOGGER.warning("Log tail poll failed: %s", self.error)
        return True

    async def run(self, iterations: Optional[int] = None, on_update: Optional[Callable[["LogTail"], None]] = None) -> None:
        count = 0
        while True:
            await self.poll_once()
            if on_update is not None:
                on_update(self)
            count += 1
            if iterations is not None and count >= iterations:
                return
            await asyncio.sleep(self._interval)


def _alias(source: Any, keys: Sequence[str]) -> float:
    value = pick_number(source, keys)
    return value if value is not None else 0


@dataclass(slots=True)
class SystemOverview:
    """Headline numbers for the dashboard's overview cards."""

    healthy: bool
    status: Optional[str]
    uptime_hours: int
    total_requests: float
    error_rate: float
    avg_latency: float
    active_connections: float
    path_requests: float = 0
    path_latency: float = 0.0
    health: Optional[Dict[str, Any]] = field(default=None, repr=False)
    metrics: Optional[Dict[str, Any]] = field(default=None, repr=False)


def _per_path_totals(metrics: Optional[Mapping[str, Any]]) -> Tuple[float, float]:
    per_path = metrics.get("per_path") if isinstance(metrics, Mapping) else None
    if not isinstance(per_path, Mapping):
        return 0, 0.0
    entries = [entry for entry in per_path.values() if isinstance(entry, Mapping)]
    requests = sum(_alias(entry, ["requests"]) for entry in entries)
    latencies: List[float] = []
    for entry in entries:
        latency = entry.get("latency_ms")
        if isinstance(latency, Mapping):
            latency = latency.get("avg")
        if isinstance(latency, (int, float)) and not isinstance(latency, bool) and latency > 0:
            latencies.append(float(latency))
    return requests, (sum(latencies) / len(latencies) if latencies else 0.0)


async def _self_call(client: httpx.AsyncClient, url: str) -> Optional[Dict[str, Any]]:
    try:
        response = await client.get(url, headers={"Cache-Control": "no-store"})
        if response.is_success:
            data = response.json()
            return data if isinstance(data, dict) else None
    except (httpx.HTTPError, ValueError) as exc:
        LOGGER.error("Failed to fetch %s: %s", url, exc)
    return None


async def fetch_overview(app_url: str, http_factory: Optional[HttpFactory] = None) -> SystemOverview:
    """Read ``/api/health`` and ``/api/metrics`` through this app's own routes."""

    base = app_url.rstrip("/")
    async with (http_factory or _default_factory)() as client:
        health = await _self_call(client, f"{base}/api/health")
        metrics = await _self_call(client, f"{base}/api/metrics")

    status = health.get("status") if health else None
    uptime = _alias(health, ["uptime"])
    path_requests, path_latency = _per_path_totals(metrics)
    return SystemOverview(
        healthy=status in ("ok", "healthy"),
        status=status if isinstance(status, str) else None,
        uptime_hours=int(uptime // 3600),
        total_requests=_alias(metrics, ["totalRequests", "total_requests"]),
        error_rate=_alias(metrics, ["errorRate", "error_rate"]),
        avg_latency=_alias(metrics, ["avgLatency", "avg_latency", "latency_ms"]),
        active_connections=_alias(metrics, ["activeConnections", "active_connections"]),
        path_requests=path_requests,
        path_latency=path_latency,
        health=health,
        metrics=metrics,
    )


__all__ = [
    "McpClient",
    "uncapped_client",
    "split_log_body",
    "LogRow",
    "parse_log_line",
    "LogTail",
    "SystemOverview",
    "fetch_overview",
]
