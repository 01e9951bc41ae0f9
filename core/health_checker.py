"""Endpoint probes against the operations service.

Every ``probe`` descriptor becomes one HTTP request; all requests of a run are
issued together with :func:`asyncio.gather` and each is capped by the
configured timeout through cancellation. ``metrics`` descriptors never hit the
network: they are judged from the metrics snapshot one of the probes fetched.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import httpx

from connectors.metrics_adapters import format_metric_details, json_highlights, lookup_metrics_entry
from core.config_models import OpsSettings
from core.errors import ConfigurationError
from core.health import ProbeDescriptor, ProbeOutcome, ProbeResult

LOGGER = logging.getLogger(__name__)


def format_timestamp(moment: datetime) -> str:
    return moment.strftime("%H:%M:%S")


def _result(descriptor: ProbeDescriptor, timestamp: str, **fields: Any) -> ProbeResult:
    return ProbeResult(
        id=descriptor.id,
        label=descriptor.label,
        description=descriptor.description,
        method=descriptor.method,
        path=descriptor.path,
        mode=descriptor.mode,
        timestamp=timestamp,
        **fields,
    )


async def probe_endpoint(
    descriptor: ProbeDescriptor,
    client: httpx.AsyncClient,
    settings: OpsSettings,
    generated_at: Optional[datetime] = None,
) -> ProbeOutcome:
    """Issue one probe and turn whatever happens into a :class:`ProbeResult`."""

    if not settings.base_url:
        raise ConfigurationError("MCP_BASE_URL is not configured")
    generated_at = generated_at or datetime.now()

    headers: Dict[str, str] = {"Accept": "application/json" if descriptor.expect_json else "*/*"}
    if descriptor.requires_admin:
        headers.update(settings.admin_headers())
    url = httpx.URL(settings.base_url).join(descriptor.path)

    ok = False
    http_status: Optional[int] = None
    latency = 0.0
    details: List[str] = []
    badge_label = "Offline"
    badge_variant = "destructive"
    raw_data: Any = None

    start = time.perf_counter()
    try:
        response = await asyncio.wait_for(
            client.request(descriptor.method, url, headers=headers),
            timeout=settings.request_timeout,
        )
        latency = (time.perf_counter() - start) * 1000
        http_status = response.status_code
        ok = response.is_success
        badge_label = f"HTTP {response.status_code}"
        badge_variant = "secondary" if ok else "destructive"

        content_type = response.headers.get("content-type", "")
        if not descriptor.expect_json and descriptor.extractor:
            details = descriptor.extractor(response.text)
        elif "application/json" in content_type:
            try:
                raw_data = response.json()
            except ValueError as exc:
                details = [f"Invalid JSON body: {exc}"]
            else:
                details = descriptor.extractor(raw_data) if descriptor.extractor else json_highlights(raw_data)
        elif response.text:
            details = [response.text[:140]]
    except asyncio.TimeoutError as exc:
        badge_label = type(exc).__name__
        details = [f"Request timed out after {settings.request_timeout_ms} ms", "Will retry on next render."]
        LOGGER.warning("Probe %s timed out", descriptor.id)
    except httpx.HTTPError as exc:
        badge_label = type(exc).__name__
        details = [str(exc) or "Request failed", "Will retry on next render."]
        LOGGER.warning("Probe %s failed: %s", descriptor.id, exc)

    if not details:
        details = ["No additional details returned." if ok else "No response body received."]

    status = _result(
        descriptor,
        format_timestamp(generated_at),
        ok=ok,
        badge_label=badge_label,
        badge_variant=badge_variant,
        details=details,
        latency_ms=latency if ok else None,
        http_status=http_status,
    )
    return ProbeOutcome(status=status, raw_data=raw_data)


async def run_probes(
    descriptors: Iterable[ProbeDescriptor],
    client: httpx.AsyncClient,
    settings: OpsSettings,
    generated_at: Optional[datetime] = None,
) -> List[ProbeOutcome]:
    """Probe every ``probe``-mode descriptor concurrently, preserving order."""

    generated_at = generated_at or datetime.now()
    probes = [descriptor for descriptor in descriptors if descriptor.mode == "probe"]
    outcomes = await asyncio.gather(
        *(probe_endpoint(descriptor, client, settings, generated_at) for descriptor in probes)
    )
    failed = sum(1 for outcome in outcomes if not outcome.status.ok)
    LOGGER.info("Probed %d endpoints, %d failing", len(outcomes), failed)
    return list(outcomes)


def derive_metrics_status(
    descriptor: ProbeDescriptor,
    metrics_data: Any,
    generated_at: Optional[datetime] = None,
) -> ProbeResult:
    """Judge a ``metrics`` descriptor from the metrics snapshot."""

    timestamp = format_timestamp(generated_at or datetime.now())
    if not metrics_data:
        return _result(
            descriptor,
            timestamp,
            ok=False,
            badge_label="No metrics",
            badge_variant="destructive",
            details=["/admin/api/metrics unavailable"],
        )

    if descriptor.metrics_extractor:
        extraction = descriptor.metrics_extractor(metrics_data)
        return _result(
            descriptor,
            timestamp,
            ok=extraction.ok,
            badge_label=extraction.badge_label or ("Healthy" if extraction.ok else "Issue"),
            badge_variant=extraction.badge_variant or ("secondary" if extraction.ok else "destructive"),
            details=extraction.details or ["Metrics feed did not include details."],
        )

    entry = lookup_metrics_entry(metrics_data, descriptor.method, descriptor.path)
    if entry is None:
        return _result(
            descriptor,
            timestamp,
            ok=False,
            badge_label="Missing",
            badge_variant="destructive",
            details=[f"No record for {descriptor.method} {descriptor.path} in /admin/api/metrics response."],
        )

    ok, details = format_metric_details(entry)
    return _result(
        descriptor,
        timestamp,
        ok=ok,
        badge_label="Healthy" if ok else "Degraded",
        badge_variant="secondary" if ok else "destructive",
        details=details,
    )


__all__ = ["format_timestamp", "probe_endpoint", "run_probes", "derive_metrics_status"]
