"""Search session that keeps the station list usable when the directory is down."""

from __future__ import annotations

import logging
from typing import List, Optional

from connectors.radio_browser import RadioBrowserClient
from core.errors import DashboardError
from core.stations import SearchFilter, StationView

LOGGER = logging.getLogger(__name__)

PAGE_SIZE = 10
ALL = "all"


def _unset(value: Optional[str]) -> Optional[str]:
    if not value or value == ALL:
        return None
    return value


class StationSearchSession:
    """Current result set, search fallback and incremental pagination."""

    def __init__(self, client: RadioBrowserClient, initial: Optional[List[StationView]] = None) -> None:
        self._client = client
        self._initial: List[StationView] = list(initial or [])
        self.stations: List[StationView] = list(self._initial)
        self.query = ""
        self._shown = PAGE_SIZE

    async def search(self, query: str) -> List[StationView]:
        """Name search; falls back to filtering the initial set locally."""

        self.query = query
        if not query.strip():
            return self._replace(list(self._initial))
        try:
            results = await self._client.search_stations(query)
        except DashboardError as exc:
            LOGGER.warning("Search failed, filtering locally: %s", exc)
            needle = query.lower()
            results = [
                station
                for station in self._initial
                if needle in station.title.lower() or needle in station.subtitle.lower()
            ]
        return self._replace(results)

    async def apply_filters(
        self,
        country: Optional[str] = ALL,
        genre: Optional[str] = ALL,
        language: Optional[str] = ALL,
    ) -> List[StationView]:
        """Run the advanced search when at least one facet is selected."""

        countrycode, tag, lang = _unset(country), _unset(genre), _unset(language)
        if not (countrycode or tag or lang):
            return self.stations
        filters = SearchFilter(
            tag=tag,
            countrycode=countrycode,
            language=lang,
            bitrate_min=120,
            limit=100,
            order="clickcount",
            reverse=True,
        )
        try:
            results = await self._client.search_stations_advanced(filters)
        except DashboardError as exc:
            LOGGER.warning("Filter failed, keeping current results: %s", exc)
            return self.stations
        return self._replace(results)

    def _replace(self, stations: List[StationView]) -> List[StationView]:
        self.stations = stations
        self._shown = PAGE_SIZE
        return stations

    @property
    def displayed(self) -> List[StationView]:
        return self.stations[: self._shown]

    @property
    def has_more(self) -> bool:
        return len(self.displayed) < len(self.stations)

    def load_more(self) -> List[StationView]:
        self._shown = len(self.displayed) + PAGE_SIZE
        return self.displayed


__all__ = ["StationSearchSession", "PAGE_SIZE"]
