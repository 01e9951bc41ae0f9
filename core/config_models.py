"""Settings objects handed to the resolver, fetchers, aggregator and web app."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class ServerOrder(str, Enum):
    """How discovered directory servers are ordered before failover."""

    FULLY_RANDOM = "fully-random"
    PRIORITY_THEN_RANDOM = "priority-then-random"


@dataclass(slots=True)
class RadioSettings:
    """Radio directory discovery and request options."""

    service_name: str = "_api._tcp.radio-browser.info"
    server_order: ServerOrder = ServerOrder.FULLY_RANDOM
    user_agent: str = "Bridgit AI/1.0"
    cache_hint_seconds: int = 3600
    cache_ttl_seconds: float = 0.0
    request_timeout: float = 10.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "RadioSettings":
        if not data:
            return cls()
        payload = dict(data)
        if "server_order" in payload:
            payload["server_order"] = ServerOrder(payload["server_order"])
        return cls(**payload)


@dataclass(slots=True)
class OpsSettings:
    """Operations (MCP) service location and probe behaviour."""

    base_url: Optional[str] = None
    admin_token: Optional[str] = None
    request_timeout_ms: int = 8000
    degraded_latency_ms: float = 1200.0
    log_poll_seconds: float = 4.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "OpsSettings":
        if not data:
            return cls()
        return cls(**data)

    @property
    def request_timeout(self) -> float:
        return self.request_timeout_ms / 1000.0

    def admin_headers(self) -> Dict[str, str]:
        if not self.admin_token:
            return {}
        return {"Authorization": f"Bearer {self.admin_token}"}


@dataclass(slots=True)
class WebSettings:
    """Where this application is served and how it reaches itself."""

    app_url: str = "http://localhost:3000"
    host: str = "127.0.0.1"
    port: int = 3000

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "WebSettings":
        if not data:
            return cls()
        return cls(**data)


@dataclass(slots=True)
class AppSettings:
    """Complete, validated configuration snapshot."""

    radio: RadioSettings = field(default_factory=RadioSettings)
    ops: OpsSettings = field(default_factory=OpsSettings)
    web: WebSettings = field(default_factory=WebSettings)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "AppSettings":
        if not data:
            return cls()
        return cls(
            radio=RadioSettings.from_dict(data.get("radio")),
            ops=OpsSettings.from_dict(data.get("ops")),
            web=WebSettings.from_dict(data.get("web")),
        )


__all__ = ["ServerOrder", "RadioSettings", "OpsSettings", "WebSettings", "AppSettings"]
