"""Radio directory client: query building, result shaping and lookups."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from connectors.failover import FailoverFetcher
from core.errors import UpstreamTransportError
from core.stations import (
    MIN_BITRATE,
    ClickResult,
    CountryInfo,
    LanguageInfo,
    SearchFilter,
    StationRecord,
    StationView,
    TagInfo,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_ORDER = "clickcount"
DEFAULT_LIMIT = 100

# wire name -> (filter attribute, kind)
_WIRE_FIELDS: Tuple[Tuple[str, str, str], ...] = (
    ("name", "name", "str"),
    ("tag", "tag", "str"),
    ("tagExact", "tag_exact", "bool"),
    ("countrycode", "countrycode", "str"),
    ("language", "language", "str"),
    ("codec", "codec", "str"),
    ("bitrateMin", "bitrate_min", "int"),
    ("bitrateMax", "bitrate_max", "int"),
    ("order", "order", "str"),
    ("reverse", "reverse", "bool"),
    ("limit", "limit", "int"),
    ("offset", "offset", "int"),
    ("hidebroken", "hidebroken", "bool"),
)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_query(filters: SearchFilter) -> str:
    """Serialise ``filters`` into a station search query string."""

    params: List[Tuple[str, str]] = []
    if filters.name:
        params.append(("name", filters.name))
    if filters.tag:
        params.append(("tag", filters.tag))
    if filters.tag_exact:
        params.append(("tagExact", "true"))
    if filters.countrycode:
        params.append(("countrycode", filters.countrycode))
    if filters.language:
        params.append(("language", filters.language))
    if filters.codec:
        params.append(("codec", filters.codec))
    if filters.bitrate_min is not None:
        params.append(("bitrateMin", str(filters.bitrate_min)))
    if filters.bitrate_max is not None:
        params.append(("bitrateMax", str(filters.bitrate_max)))

    params.append(("order", filters.order or DEFAULT_ORDER))
    params.append(("reverse", _flag(filters.reverse is not False)))
    params.append(("limit", str(filters.limit or DEFAULT_LIMIT)))
    params.append(("offset", str(filters.offset or 0)))
    params.append(("hidebroken", _flag(filters.hidebroken is not False)))
    return str(httpx.QueryParams(params))


def parse_query(query: str) -> SearchFilter:
    """Inverse of :func:`build_query` for the fields it knows about."""

    params = httpx.QueryParams(query.lstrip("?"))
    values: Dict[str, Any] = {}
    for wire, attr, kind in _WIRE_FIELDS:
        raw = params.get(wire)
        if raw is None:
            continue
        if kind == "bool":
            values[attr] = raw.lower() == "true"
        elif kind == "int":
            values[attr] = int(raw)
        else:
            values[attr] = raw
    return SearchFilter(**values)


def with_minimum_bitrate(filters: SearchFilter) -> SearchFilter:
    """Apply the default bitrate floor when the filter carries none."""

    if filters.bitrate_min:
        return filters
    return dataclasses.replace(filters, bitrate_min=MIN_BITRATE)


def transform_station(station: StationRecord) -> StationView:
    """Project a directory record into its display shape."""

    subtitle = ", ".join(station.tags.split(",")[:3]) or "Radio"
    bitrate = f"{station.bitrate} kbps" if station.bitrate else ""
    features = [
        f"{station.codec or 'Unknown'} {bitrate}".strip(),
        f"{station.clickcount:,} clicks",
        f"{station.votes} votes",
        station.countrycode or "Unknown",
    ]
    return StationView(
        id=station.stationuuid,
        title=station.name,
        subtitle=subtitle,
        description=station.homepage or f"{station.countrycode} • {station.language}",
        features=[feature for feature in features if feature],
        stationuuid=station.stationuuid,
        stream_url=station.url_resolved or station.url,
        favicon=station.favicon or "",
    )


def _as_list(payload: Any, what: str) -> List[Any]:
    """Directory list endpoints answer with JSON arrays; anything else is an upstream fault."""

    if payload is None:
        return []
    if not isinstance(payload, list):
        raise UpstreamTransportError(f"Unexpected {what} payload: {type(payload).__name__}")
    return payload


def filter_playable(payload: Any) -> List[StationView]:
    """Drop stations failing the last check or below the bitrate floor."""

    items = [item for item in _as_list(payload, "station") if isinstance(item, dict)]
    records = (StationRecord.from_dict(item) for item in items)
    return [transform_station(record) for record in records if record.playable]


class RadioBrowserClient:
    """Station search and facet lookups on top of :class:`FailoverFetcher`."""

    def __init__(self, fetcher: FailoverFetcher) -> None:
        self._fetcher = fetcher

    async def search_stations_advanced(self, filters: Optional[SearchFilter] = None) -> List[StationView]:
        effective = with_minimum_bitrate(filters or SearchFilter())
        query = build_query(effective)
        payload = await self._fetcher.fetch_json(f"/json/stations/search?{query}")
        return filter_playable(payload)

    async def search_stations(self, query: str, limit: int = 50) -> List[StationView]:
        path = (
            f"/json/stations/search?name={quote(query, safe='')}"
            f"&bitrateMin={MIN_BITRATE}&hidebroken=true&limit={limit}&order=clickcount&reverse=true"
        )
        payload = await self._fetcher.fetch_json(path)
        return filter_playable(payload)

    async def get_countries(self) -> List[CountryInfo]:
        payload = await self._fetcher.fetch_json("/json/countrycodes?order=stationcount&reverse=true&limit=500")
        countries = [CountryInfo.from_dict(item) for item in _as_list(payload, "country") if isinstance(item, dict)]
        return [country for country in countries if country.stationcount > 0]

    async def get_tags(self, limit: int = 50) -> List[TagInfo]:
        payload = await self._fetcher.fetch_json(
            f"/json/tags?order=stationcount&reverse=true&limit={limit}&hidebroken=true"
        )
        tags = [TagInfo.from_dict(item) for item in _as_list(payload, "tag") if isinstance(item, dict)]
        return [tag for tag in tags if tag.stationcount > 0]

    async def get_languages(self, limit: int = 50) -> List[LanguageInfo]:
        payload = await self._fetcher.fetch_json(
            f"/json/languages?order=stationcount&reverse=true&limit={limit}&hidebroken=true"
        )
        languages = [LanguageInfo.from_dict(item) for item in _as_list(payload, "language") if isinstance(item, dict)]
        return [language for language in languages if language.stationcount > 0]

    async def track_station_click(self, stationuuid: str) -> ClickResult:
        payload = await self._fetcher.fetch_json(f"/json/url/{quote(stationuuid, safe='')}")
        return ClickResult.from_dict(payload if isinstance(payload, dict) else {})

    async def load_filter_options(self) -> Tuple[List[CountryInfo], List[TagInfo], List[LanguageInfo]]:
        """Fetch the three facet lists used to populate search filters."""

        countries, tags, languages = await asyncio.gather(
            self.get_countries(),
            self.get_tags(100),
            self.get_languages(50),
        )
        LOGGER.debug(
            "Loaded filter options: %d countries, %d tags, %d languages",
            len(countries),
            len(tags),
            len(languages),
        )
        return countries, tags, languages


__all__ = [
    "build_query",
    "parse_query",
    "with_minimum_bitrate",
    "transform_station",
    "filter_playable",
    "RadioBrowserClient",
]
