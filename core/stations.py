"""Radio directory data model: search filters, station records and facets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional

StationOrder = Literal["clickcount", "votes", "bitrate", "name", "random"]

MIN_BITRATE = 120


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_str(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True, slots=True)
class SearchFilter:
    """Optional search criteria; absent fields are not sent upstream."""

    name: Optional[str] = None
    tag: Optional[str] = None
    tag_exact: bool = False
    countrycode: Optional[str] = None
    language: Optional[str] = None
    codec: Optional[str] = None
    bitrate_min: Optional[int] = None
    bitrate_max: Optional[int] = None
    order: Optional[StationOrder] = None
    reverse: Optional[bool] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    hidebroken: Optional[bool] = None


@dataclass(slots=True)
class StationRecord:
    """One station as returned by the directory API."""

    stationuuid: str
    name: str
    url: str = ""
    url_resolved: str = ""
    homepage: str = ""
    favicon: str = ""
    tags: str = ""
    countrycode: str = ""
    language: str = ""
    codec: str = ""
    bitrate: int = 0
    votes: int = 0
    clickcount: int = 0
    lastcheckok: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN = (
        "stationuuid",
        "name",
        "url",
        "url_resolved",
        "homepage",
        "favicon",
        "tags",
        "countrycode",
        "language",
        "codec",
        "bitrate",
        "votes",
        "clickcount",
        "lastcheckok",
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StationRecord":
        return cls(
            stationuuid=_as_str(data.get("stationuuid")),
            name=_as_str(data.get("name")),
            url=_as_str(data.get("url")),
            url_resolved=_as_str(data.get("url_resolved")),
            homepage=_as_str(data.get("homepage")),
            favicon=_as_str(data.get("favicon")),
            tags=_as_str(data.get("tags")),
            countrycode=_as_str(data.get("countrycode")),
            language=_as_str(data.get("language")),
            codec=_as_str(data.get("codec")),
            bitrate=_as_int(data.get("bitrate")),
            votes=_as_int(data.get("votes")),
            clickcount=_as_int(data.get("clickcount")),
            lastcheckok=_as_int(data.get("lastcheckok")),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN},
        )

    @property
    def playable(self) -> bool:
        return self.lastcheckok == 1 and self.bitrate >= MIN_BITRATE


@dataclass(slots=True)
class StationView:
    """Display projection of a station."""

    id: str
    title: str
    subtitle: str
    description: str
    features: List[str]
    stationuuid: str
    stream_url: str
    favicon: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "description": self.description,
            "features": list(self.features),
            "stationuuid": self.stationuuid,
            "streamUrl": self.stream_url,
            "favicon": self.favicon,
        }


@dataclass(slots=True)
class CountryInfo:
    name: str
    stationcount: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CountryInfo":
        return cls(name=_as_str(data.get("name")), stationcount=_as_int(data.get("stationcount")))


@dataclass(slots=True)
class TagInfo:
    name: str
    stationcount: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TagInfo":
        return cls(name=_as_str(data.get("name")), stationcount=_as_int(data.get("stationcount")))


@dataclass(slots=True)
class LanguageInfo:
    name: str
    iso_639: Optional[str]
    stationcount: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LanguageInfo":
        iso = data.get("iso_639")
        return cls(
            name=_as_str(data.get("name")),
            iso_639=str(iso) if iso else None,
            stationcount=_as_int(data.get("stationcount")),
        )


@dataclass(slots=True)
class ClickResult:
    """Answer of the click-tracking endpoint (resolved stream URL)."""

    url: str
    name: str
    ok: bool
    message: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClickResult":
        return cls(
            url=_as_str(data.get("url")),
            name=_as_str(data.get("name")),
            ok=bool(data.get("ok")),
            message=_as_str(data.get("message")),
        )


__all__ = [
    "MIN_BITRATE",
    "StationOrder",
    "SearchFilter",
    "StationRecord",
    "StationView",
    "CountryInfo",
    "TagInfo",
    "LanguageInfo",
    "ClickResult",
]
