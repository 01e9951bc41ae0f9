"""Directory server discovery through DNS SRV records.

The radio directory publishes its API replicas as SRV records. The resolver
looks them up, orders them by priority and shuffles them according to the
configured :class:`~core.config_models.ServerOrder` policy. The default
policy shuffles the entire list, which throws the priority ordering away;
``priority-then-random`` keeps tiers intact and shuffles only inside them.
"""

from __future__ import annotations

import itertools
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

import dns.asyncresolver
import dns.exception
from cachetools import TTLCache

from core.config_models import RadioSettings, ServerOrder
from core.errors import DiscoveryError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SrvRecord:
    target: str
    priority: int = 0
    weight: int = 0
    port: int = 443


SrvLookup = Callable[[str], Awaitable[List[SrvRecord]]]


async def dns_srv_lookup(service_name: str) -> List[SrvRecord]:
    """Resolve ``service_name`` with dnspython's asyncio resolver."""

    answer = await dns.asyncresolver.resolve(service_name, "SRV")
    return [
        SrvRecord(
            target=rdata.target.to_text(omit_final_dot=True),
            priority=int(rdata.priority),
            weight=int(rdata.weight),
            port=int(rdata.port),
        )
        for rdata in answer
    ]


class EndpointResolver:
    """Turn SRV records into an ordered list of ``https://`` base URLs."""

    def __init__(
        self,
        settings: Optional[RadioSettings] = None,
        lookup: Optional[SrvLookup] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._settings = settings or RadioSettings()
        self._lookup = lookup or dns_srv_lookup
        self._rng = rng or random.Random()
        self._cache: Optional[TTLCache] = None
        if self._settings.cache_ttl_seconds > 0:
            self._cache = TTLCache(maxsize=1, ttl=self._settings.cache_ttl_seconds)

    async def resolve(self) -> List[str]:
        name = self._settings.service_name
        if self._cache is not None and name in self._cache:
            # Copy so callers never see a list reshuffled under them.
            return list(self._cache[name])

        try:
            records = await self._lookup(name)
        except (dns.exception.DNSException, OSError) as exc:
            raise DiscoveryError(f"SRV lookup for {name} failed: {exc}") from exc
        if not records:
            raise DiscoveryError(f"SRV lookup for {name} returned no records")

        servers = self._order(records)
        LOGGER.debug("Discovered %d directory servers for %s", len(servers), name)
        if self._cache is not None:
            self._cache[name] = list(servers)
        return servers

    def _order(self, records: List[SrvRecord]) -> List[str]:
        ranked = sorted(records, key=lambda record: record.priority)
        if self._settings.server_order is ServerOrder.PRIORITY_THEN_RANDOM:
            ordered: List[SrvRecord] = []
            for _, tier in itertools.groupby(ranked, key=lambda record: record.priority):
                bucket = list(tier)
                self._rng.shuffle(bucket)
                ordered.extend(bucket)
            return [_base_url(record) for record in ordered]

        servers = [_base_url(record) for record in ranked]
        self._rng.shuffle(servers)
        return servers


def _base_url(record: SrvRecord) -> str:
    return f"https://{record.target.rstrip('.')}"


__all__ = ["SrvRecord", "SrvLookup", "EndpointResolver", "dns_srv_lookup"]
