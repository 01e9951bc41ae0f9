"""Sequential failover over discovered directory servers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

import httpx

from connectors.discovery import EndpointResolver
from core.config_models import RadioSettings
from core.errors import AllServersFailedError

LOGGER = logging.getLogger(__name__)


@dataclass
class FailoverClients:
    """Injectable HTTP client factory used by :class:`FailoverFetcher`."""

    http_factory: Callable[[float], httpx.AsyncClient] = lambda timeout: httpx.AsyncClient(timeout=timeout)


class FailoverFetcher:
    """Try each candidate server in order and return the first decoded body.

    A candidate fails on a transport error, a non-2xx status or a body that
    does not decode as JSON. Failed candidates are logged and never retried.
    """

    def __init__(
        self,
        resolver: EndpointResolver,
        settings: Optional[RadioSettings] = None,
        clients: Optional[FailoverClients] = None,
    ) -> None:
        self._resolver = resolver
        self._settings = settings or RadioSettings()
        self._clients = clients or FailoverClients()

    def _headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self._settings.user_agent,
            "Content-Type": "application/json",
            "Cache-Control": f"max-age={self._settings.cache_hint_seconds}",
        }

    async def fetch_json(self, path: str, method: str = "GET") -> Any:
        """Resolve the candidate list and fetch ``path`` with failover."""

        servers = await self._resolver.resolve()
        return await self.fetch_from(servers, path, method=method)

    async def fetch_from(self, servers: Sequence[str], path: str, method: str = "GET") -> Any:
        attempts = 0
        async with self._clients.http_factory(self._settings.request_timeout) as client:
            for server in servers:
                attempts += 1
                url = f"{server.rstrip('/')}{path}"
                try:
                    response = await client.request(method, url, headers=self._headers())
                    response.raise_for_status()
                    return response.json()
                except httpx.HTTPStatusError as exc:
                    LOGGER.warning("Failed %s: HTTP %s", server, exc.response.status_code)
                except httpx.HTTPError as exc:
                    LOGGER.warning("Failed %s: %s", server, exc)
                except ValueError as exc:
                    LOGGER.warning("Failed %s: invalid JSON body (%s)", server, exc)
        LOGGER.error("All %d directory servers failed for %s", attempts, path)
        raise AllServersFailedError(attempts)


__all__ = ["FailoverClients", "FailoverFetcher"]
