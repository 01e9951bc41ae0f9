"""Mission control: the probe catalogue and the aggregated status report."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import httpx

from aggregator.summary import summarize
from connectors.mcp_client import uncapped_client
from connectors.metrics_adapters import extract_log_lines, extract_sse_metrics
from core.config_models import OpsSettings
from core.errors import ConfigurationError
from core.health import ProbeDescriptor, ProbeResult, Section, StatusSummary
from core.health_checker import derive_metrics_status, format_timestamp, run_probes

LOGGER = logging.getLogger(__name__)

METRICS_PROBE_ID = "admin-metrics"

SECTIONS: List[Section] = [
    Section(
        id="health",
        title="Health & Probes",
        description="Direct health checks consumed by uptime monitors, deep diagnostics, and Railway snapshots.",
        items=[
            ProbeDescriptor("health-alive", "Alive Probe", "GET /health", "GET", "/health", "probe"),
            ProbeDescriptor("health-deep", "Composite Health", "GET /health/deep", "GET", "/health/deep", "probe"),
            ProbeDescriptor(
                "health-railway", "Railway Snapshot", "GET /health/railway", "GET", "/health/railway", "probe"
            ),
            ProbeDescriptor(
                "admin-health-deep",
                "Admin Deep Health",
                "GET /admin/api/health/deep",
                "GET",
                "/admin/api/health/deep",
                "probe",
                requires_admin=True,
            ),
            ProbeDescriptor(
                "admin-health-railway",
                "Admin Railway Health",
                "GET /admin/api/health/railway",
                "GET",
                "/admin/api/health/railway",
                "probe",
                requires_admin=True,
            ),
        ],
    ),
    Section(
        id="runtime",
        title="Runtime & Streams",
        description="Command execution latency, SSE continuity, and raw metrics powering MCP operations.",
        items=[
            ProbeDescriptor("mcp-post", "JSON-RPC Command", "POST /mcp", "POST", "/mcp", "metrics"),
            ProbeDescriptor(
                "mcp-sse",
                "Progress Stream",
                "GET /mcp (SSE)",
                "GET",
                "/mcp",
                "metrics",
                metrics_extractor=extract_sse_metrics,
            ),
            ProbeDescriptor(
                METRICS_PROBE_ID,
                "Metrics Snapshot",
                "GET /admin/api/metrics",
                "GET",
                "/admin/api/metrics",
                "probe",
                requires_admin=True,
            ),
            ProbeDescriptor(
                "admin-logs",
                "Structured Logs",
                "GET /admin/api/logs",
                "GET",
                "/admin/api/logs",
                "probe",
                expect_json=False,
                requires_admin=True,
                extractor=extract_log_lines,
            ),
        ],
    ),
    Section(
        id="admin",
        title="Admin Surface",
        description="Privileged HTML console and configuration endpoints that influence health signals.",
        items=[
            ProbeDescriptor(
                "admin-dashboard",
                "Admin Console",
                "GET /admin",
                "GET",
                "/admin",
                "probe",
                expect_json=False,
                requires_admin=True,
            ),
            ProbeDescriptor("admin-settings", "Settings Updates", "POST /admin/settings", "POST", "/admin/settings", "metrics"),
        ],
    ),
]


@dataclass(slots=True)
class MissionControlReport:
    generated_at: datetime
    sections: List[Tuple[Section, List[ProbeResult]]]
    summary: StatusSummary

    @property
    def statuses(self) -> List[ProbeResult]:
        return [status for _, items in self.sections for status in items]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generatedAt": format_timestamp(self.generated_at),
            "sections": [
                {
                    "id": section.id,
                    "title": section.title,
                    "description": section.description,
                    "items": [status.to_dict() for status in items],
                }
                for section, items in self.sections
            ],
            "summary": self.summary.to_dict(),
        }


async def build_mission_control(
    settings: OpsSettings,
    client: Optional[httpx.AsyncClient] = None,
    sections: Optional[List[Section]] = None,
) -> MissionControlReport:
    """Probe the operations service and assemble the full status report."""

    if not settings.base_url:
        raise ConfigurationError("MCP_BASE_URL is not configured")
    sections = sections if sections is not None else SECTIONS
    generated_at = datetime.now()
    descriptors = [item for section in sections for item in section.items]

    if client is None:
        async with uncapped_client() as owned:
            outcomes = await run_probes(descriptors, owned, settings, generated_at)
    else:
        outcomes = await run_probes(descriptors, client, settings, generated_at)

    by_id = {outcome.status.id: outcome for outcome in outcomes}
    metrics_outcome = by_id.get(METRICS_PROBE_ID)
    metrics_data = metrics_outcome.raw_data if metrics_outcome else None
    if metrics_data is None:
        LOGGER.warning("Metrics snapshot unavailable; metrics-derived checks will report failing")

    resolved: List[Tuple[Section, List[ProbeResult]]] = []
    for section in sections:
        items = [
            by_id[item.id].status if item.mode == "probe" else derive_metrics_status(item, metrics_data, generated_at)
            for item in section.items
        ]
        resolved.append((section, items))

    statuses = [status for _, items in resolved for status in items]
    return MissionControlReport(
        generated_at=generated_at,
        sections=resolved,
        summary=summarize(statuses, settings.degraded_latency_ms),
    )


__all__ = ["SECTIONS", "METRICS_PROBE_ID", "MissionControlReport", "build_mission_control"]
