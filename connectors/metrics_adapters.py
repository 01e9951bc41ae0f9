"""Metrics snapshot adapters and probe payload extractors.

The operations service has shipped several shapes of ``/admin/api/metrics``
over time. Each known shape is a :class:`MetricsAdapter`; lookups walk the
registered adapters in priority order and the first hit wins. Supporting a
new shape means registering one more adapter.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from core.health import MetricsExtraction

LOGGER = logging.getLogger(__name__)

ERROR_RATE_THRESHOLD = 0.05


class MetricsAdapter(Protocol):
    """Locate the per-endpoint entry for ``method path`` in a metrics snapshot."""

    name: str

    def lookup(self, metrics: Mapping[str, Any], method: str, path: str) -> Optional[Dict[str, Any]]:
        ...


def candidate_keys(method: str, path: str) -> List[str]:
    keys = [f"{method} {path}", f"{method}:{path}", path]
    keys.append(path[1:] if path.startswith("/") else path)
    return keys


@dataclass
class ContainerKeyAdapter:
    """Entries keyed by method/path inside a named container (or the root)."""

    name: str
    container: Optional[str] = None

    def lookup(self, metrics: Mapping[str, Any], method: str, path: str) -> Optional[Dict[str, Any]]:
        scope = metrics if self.container is None else metrics.get(self.container)
        if not isinstance(scope, Mapping):
            return None
        for key in candidate_keys(method, path):
            entry = scope.get(key)
            if isinstance(entry, dict):
                return entry
        return None


_ADAPTERS: List[MetricsAdapter] = [
    ContainerKeyAdapter(name="per_path", container="per_path"),
    ContainerKeyAdapter(name="paths", container="paths"),
    ContainerKeyAdapter(name="endpoints", container="endpoints"),
    ContainerKeyAdapter(name="root"),
]


def register_metrics_adapter(adapter: MetricsAdapter, index: Optional[int] = None) -> None:
    """Register ``adapter``; an existing adapter with the same name is replaced."""

    for position, existing in enumerate(_ADAPTERS):
        if existing.name == adapter.name:
            _ADAPTERS[position] = adapter
            return
    if index is None:
        _ADAPTERS.append(adapter)
    else:
        _ADAPTERS.insert(index, adapter)


def registered_adapters() -> Tuple[MetricsAdapter, ...]:
    return tuple(_ADAPTERS)


def lookup_metrics_entry(metrics: Any, method: str, path: str) -> Optional[Dict[str, Any]]:
    if not isinstance(metrics, Mapping):
        return None
    for adapter in _ADAPTERS:
        entry = adapter.lookup(metrics, method, path)
        if entry is not None:
            LOGGER.debug("Metrics entry for %s %s found via %s adapter", method, path, adapter.name)
            return entry
    return None


def pick_number(source: Any, keys: Sequence[str]) -> Optional[float]:
    """First numeric value among ``keys``; booleans do not count as numbers."""

    if not isinstance(source, Mapping):
        return None
    for key in keys:
        value = source.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
    return None


def format_metric_details(entry: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Readable details and a health judgement for one metrics entry."""

    requests = pick_number(entry, ["count", "requests", "total", "hits"])
    errors = pick_number(entry, ["errors", "error_count"])
    error_rate = pick_number(entry, ["error_rate", "errorRate"])
    p95 = pick_number(entry, ["p95", "p95_ms", "latency_p95"])
    if p95 is None:
        p95 = pick_number(entry.get("latency_ms"), ["p95"])

    details: List[str] = []
    if requests is not None:
        details.append(f"Requests: {requests:,}")
    if errors is not None:
        details.append(f"Errors: {errors:,}")
    if error_rate is not None:
        details.append(f"Error rate: {error_rate * 100:.2f}%")
    if p95 is not None:
        details.append(f"p95 latency: {round(p95)} ms")
    if not details:
        details.append(json.dumps(entry)[:120])

    # An explicit error rate decides on its own; ORing it with the ratio check
    # would let a low error count mask a high reported rate.
    if error_rate is not None:
        ok = error_rate < ERROR_RATE_THRESHOLD
    elif errors is not None and requests is not None:
        ok = errors / max(1, requests) < ERROR_RATE_THRESHOLD
    else:
        ok = True
    return ok, details


def summarize_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, str):
        return value[:80]
    if isinstance(value, (bool, int, float)):
        return json.dumps(value)
    return json.dumps(value, separators=(",", ":"), default=str)[:80]


def json_highlights(payload: Any, limit: int = 3) -> List[str]:
    """Up to ``limit`` ``key: value`` lines, preferring nested status flags."""

    if isinstance(payload, list):
        payload = {str(index): item for index, item in enumerate(payload)}
    if not isinstance(payload, dict):
        return [summarize_value(payload)]

    lines: List[str] = []
    for key, value in payload.items():
        if len(lines) >= limit:
            break
        if isinstance(value, dict):
            status = value.get("status")
            if isinstance(status, str):
                lines.append(f"{key}: {status}")
                continue
            flag = value.get("ok")
            if isinstance(flag, bool):
                lines.append(f"{key}: {'ok' if flag else 'issue'}")
                continue
        lines.append(f"{key}: {summarize_value(value)}")
    return lines or ["JSON payload received"]


def extract_log_lines(payload: Any) -> List[str]:
    if not isinstance(payload, str):
        return ["Logs endpoint did not return text"]
    lines = [line for line in payload.split("\n") if line]
    if not lines:
        return ["No log lines returned"]
    return [line[:120] for line in lines[:3]]


def extract_sse_metrics(metrics: Any) -> MetricsExtraction:
    """Stream continuity judgement from the ``streams``/``sse`` block."""

    if not metrics or not isinstance(metrics, Mapping):
        return MetricsExtraction(ok=False, details=["Metrics payload missing"])

    candidate = metrics.get("streams") or metrics.get("sse") or metrics.get("sse_progress")
    if not candidate or not isinstance(candidate, Mapping):
        return MetricsExtraction(ok=False, details=["No SSE stream metrics present"])

    active = pick_number(candidate, ["active", "connections", "current"])
    auth_failures = pick_number(candidate, ["auth_failures", "auth", "unauthorized"])
    heartbeats_missed = pick_number(candidate, ["heartbeats_missed", "missed", "dropped"])

    details: List[str] = []
    if active is not None:
        details.append(f"Active streams: {active}")
    if auth_failures is not None:
        details.append(f"Auth failures: {auth_failures}")
    if heartbeats_missed is not None:
        details.append(f"Heartbeat misses: {heartbeats_missed}")

    idle = active is not None and active == 0
    return MetricsExtraction(
        ok=active > 0 if active is not None else True,
        details=details or ["Streams metrics available"],
        badge_label="No streams" if idle else None,
        badge_variant="destructive" if idle else None,
    )


__all__ = [
    "MetricsAdapter",
    "ContainerKeyAdapter",
    "candidate_keys",
    "register_metrics_adapter",
    "registered_adapters",
    "lookup_metrics_entry",
    "pick_number",
    "format_metric_details",
    "summarize_value",
    "json_highlights",
    "extract_log_lines",
    "extract_sse_metrics",
]
