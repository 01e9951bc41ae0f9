"""Summary statistics over a batch of probe results."""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence

from core.health import ProbeResult, StatusSummary, SummarySlice

DEGRADED_LATENCY_MS = 1200.0
FAST_LATENCY_MS = 400.0
DEGRADED_KEYWORDS = ("degraded", "slow", "issue", "no streams")


def nearest_rank(samples: Sequence[float], percentile: float) -> Optional[float]:
    """Nearest-rank percentile; the rank is ``floor(p * n)`` (1-based), clamped."""

    if not samples:
        return None
    ordered = sorted(samples)
    # Rounding guards against 0.95 * 20 landing just below 19.
    index = math.floor(round(percentile * len(ordered), 9)) - 1
    index = max(0, min(len(ordered) - 1, index))
    return ordered[index]


def _pct(part: int, whole: int) -> float:
    return (part / whole) * 100 if whole else 0.0


def is_degraded(result: ProbeResult, threshold_ms: float = DEGRADED_LATENCY_MS) -> bool:
    if not result.ok:
        return False
    if result.latency_ms is not None and result.latency_ms > threshold_ms:
        return True
    label = result.badge_label.lower()
    return any(keyword in label for keyword in DEGRADED_KEYWORDS)


def summarize(results: Iterable[ProbeResult], degraded_latency_ms: float = DEGRADED_LATENCY_MS) -> StatusSummary:
    """Health buckets, latency envelope and percentage histograms."""

    batch = list(results)
    total = len(batch)
    failing = sum(1 for result in batch if not result.ok)
    degraded = sum(1 for result in batch if is_degraded(result, degraded_latency_ms))
    healthy = total - failing - degraded

    latencies: List[float] = [
        result.latency_ms for result in batch if result.ok and result.latency_ms is not None
    ]
    samples = len(latencies)
    fast = sum(1 for value in latencies if value < FAST_LATENCY_MS)
    slow = sum(1 for value in latencies if value > degraded_latency_ms)
    steady = samples - fast - slow

    return StatusSummary(
        total=total,
        healthy=healthy,
        degraded=degraded,
        failing=failing,
        avg_latency=sum(latencies) / samples if samples else None,
        p95_latency=nearest_rank(latencies, 0.95),
        max_latency=max(latencies) if latencies else None,
        sample_size=samples,
        health_mix=[
            SummarySlice("healthy", "Healthy", _pct(healthy, total)),
            SummarySlice("degraded", "Degraded", _pct(degraded, total)),
            SummarySlice("failing", "Failing", _pct(failing, total)),
        ],
        latency_buckets=[
            SummarySlice("fast", "< 400 ms", _pct(fast, samples)),
            SummarySlice("steady", "400-1200 ms", _pct(steady, samples)),
            SummarySlice("slow", "> 1200 ms", _pct(slow, samples)),
        ],
    )


__all__ = ["nearest_rank", "is_degraded", "summarize", "DEGRADED_KEYWORDS"]
