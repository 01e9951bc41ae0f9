import asyncio
import sys
from pathlib import Path
from typing import List

import dns.exception
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from connectors.discovery import EndpointResolver, SrvRecord
from core.config_models import RadioSettings, ServerOrder
from core.errors import DiscoveryError


class _KeepOrder:
    def shuffle(self, items: List) -> None:
        return None


class _Reverse:
    def shuffle(self, items: List) -> None:
        items.reverse()


RECORDS = [
    SrvRecord(target="de2.api.radio-browser.info.", priority=10),
    SrvRecord(target="at1.api.radio-browser.info", priority=1),
    SrvRecord(target="nl1.api.radio-browser.info", priority=5),
    SrvRecord(target="fi1.api.radio-browser.info", priority=1),
]


def _lookup(records):
    calls: List[str] = []

    async def lookup(name: str):
        calls.append(name)
        return list(records)

    return lookup, calls


def test_sorts_by_priority_and_maps_to_https() -> None:
    lookup, calls = _lookup(RECORDS)
    resolver = EndpointResolver(lookup=lookup, rng=_KeepOrder())

    servers = asyncio.run(resolver.resolve())

    assert calls == ["_api._tcp.radio-browser.info"]
    assert servers == [
        "https://at1.api.radio-browser.info",
        "https://fi1.api.radio-browser.info",
        "https://nl1.api.radio-browser.info",
        "https://de2.api.radio-browser.info",
    ]


def test_fully_random_policy_shuffles_across_priorities() -> None:
    lookup, _ = _lookup(RECORDS)
    resolver = EndpointResolver(lookup=lookup, rng=_Reverse())

    servers = asyncio.run(resolver.resolve())

    assert servers[0] == "https://de2.api.radio-browser.info"
    assert servers[-1] == "https://at1.api.radio-browser.info"


def test_priority_then_random_keeps_tiers() -> None:
    lookup, _ = _lookup(RECORDS)
    settings = RadioSettings(server_order=ServerOrder.PRIORITY_THEN_RANDOM)
    resolver = EndpointResolver(settings=settings, lookup=lookup, rng=_Reverse())

    servers = asyncio.run(resolver.resolve())

    assert servers == [
        "https://fi1.api.radio-browser.info",
        "https://at1.api.radio-browser.info",
        "https://nl1.api.radio-browser.info",
        "https://de2.api.radio-browser.info",
    ]


def test_shuffle_is_a_permutation_of_all_records() -> None:
    lookup, _ = _lookup(RECORDS)
    resolver = EndpointResolver(lookup=lookup)

    servers = asyncio.run(resolver.resolve())

    assert sorted(servers) == sorted(f"https://{r.target.rstrip('.')}" for r in RECORDS)


def test_no_records_is_a_discovery_error() -> None:
    lookup, _ = _lookup([])
    resolver = EndpointResolver(lookup=lookup)

    with pytest.raises(DiscoveryError):
        asyncio.run(resolver.resolve())


def test_resolver_failure_is_a_discovery_error() -> None:
    async def failing(name: str):
        raise dns.exception.DNSException("no nameservers reachable")

    resolver = EndpointResolver(lookup=failing)

    with pytest.raises(DiscoveryError) as excinfo:
        asyncio.run(resolver.resolve())
    assert "no nameservers reachable" in excinfo.value.message


def test_lookup_repeats_per_call_without_cache() -> None:
    lookup, calls = _lookup(RECORDS)
    resolver = EndpointResolver(lookup=lookup)

    asyncio.run(resolver.resolve())
    asyncio.run(resolver.resolve())

    assert len(calls) == 2


def test_ttl_cache_reuses_resolution() -> None:
    lookup, calls = _lookup(RECORDS)
    resolver = EndpointResolver(settings=RadioSettings(cache_ttl_seconds=60), lookup=lookup, rng=_KeepOrder())

    first = asyncio.run(resolver.resolve())
    first.clear()
    second = asyncio.run(resolver.resolve())

    assert len(calls) == 1
    assert len(second) == 4
