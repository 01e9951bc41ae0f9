"""Probe descriptors, probe outcomes and the status summary structures."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional

ProbeMethod = Literal["GET", "POST"]
ProbeMode = Literal["probe", "metrics"]
BadgeVariant = Literal["default", "secondary", "destructive", "outline"]


@dataclass(slots=True)
class MetricsExtraction:
    """Health judgement derived from the metrics snapshot for one descriptor."""

    ok: bool
    details: List[str] = field(default_factory=list)
    badge_label: Optional[str] = None
    badge_variant: Optional[BadgeVariant] = None


@dataclass(frozen=True, slots=True)
class ProbeDescriptor:
    """One endpoint check of the operations service.

    ``probe`` descriptors issue their own request; ``metrics`` descriptors are
    judged from the already-fetched metrics snapshot.
    """

    id: str
    label: str
    description: str
    method: ProbeMethod
    path: str
    mode: ProbeMode
    expect_json: bool = True
    requires_admin: bool = False
    extractor: Optional[Callable[[Any], List[str]]] = None
    metrics_extractor: Optional[Callable[[Any], MetricsExtraction]] = None


@dataclass(frozen=True, slots=True)
class Section:
    id: str
    title: str
    description: str
    items: List[ProbeDescriptor]


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Outcome of a single probe, immutable once built."""

    id: str
    label: str
    description: str
    method: ProbeMethod
    path: str
    mode: ProbeMode
    ok: bool
    badge_label: str
    badge_variant: BadgeVariant
    details: List[str]
    timestamp: str
    latency_ms: Optional[float] = None
    http_status: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class ProbeOutcome:
    """A probe result plus the decoded JSON body, when there was one."""

    status: ProbeResult
    raw_data: Any = None


@dataclass(frozen=True, slots=True)
class SummarySlice:
    key: str
    label: str
    value: float


@dataclass(frozen=True, slots=True)
class StatusSummary:
    """Aggregate view over a batch of probe results."""

    total: int
    healthy: int
    degraded: int
    failing: int
    avg_latency: Optional[float]
    p95_latency: Optional[float]
    max_latency: Optional[float]
    sample_size: int
    health_mix: List[SummarySlice]
    latency_buckets: List[SummarySlice]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "ProbeMethod",
    "ProbeMode",
    "BadgeVariant",
    "MetricsExtraction",
    "ProbeDescriptor",
    "Section",
    "ProbeResult",
    "ProbeOutcome",
    "SummarySlice",
    "StatusSummary",
]
