import asyncio
import sys
from pathlib import Path
from typing import List

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from connectors.failover import FailoverClients, FailoverFetcher
from connectors.radio_browser import (
    RadioBrowserClient,
    build_query,
    filter_playable,
    parse_query,
    transform_station,
    with_minimum_bitrate,
)
from core.errors import UpstreamTransportError
from core.stations import SearchFilter, StationRecord


class _StaticResolver:
    async def resolve(self) -> List[str]:
        return ["https://de1.api.radio-browser.info"]


def _client(handler) -> RadioBrowserClient:
    transport = httpx.MockTransport(handler)
    clients = FailoverClients(http_factory=lambda timeout: httpx.AsyncClient(transport=transport, timeout=timeout))
    return RadioBrowserClient(FailoverFetcher(_StaticResolver(), clients=clients))


def _station(**overrides):
    station = {
        "stationuuid": "uuid-1",
        "name": "Jazz FM",
        "url": "http://stream.example/jazz",
        "url_resolved": "https://stream.example/jazz.mp3",
        "homepage": "",
        "favicon": "https://stream.example/icon.png",
        "tags": "jazz,smooth jazz,lounge,chill",
        "countrycode": "DE",
        "language": "german",
        "codec": "MP3",
        "bitrate": 128,
        "votes": 42,
        "clickcount": 1234,
        "lastcheckok": 1,
    }
    station.update(overrides)
    return station


def test_build_query_emits_defaults_for_empty_filter():
    assert build_query(SearchFilter()) == "order=clickcount&reverse=true&limit=100&offset=0&hidebroken=true"


def test_build_query_keeps_explicit_false_and_skips_unset():
    query = build_query(SearchFilter(tag="jazz", reverse=False, hidebroken=False, limit=2, offset=20))

    assert query == "tag=jazz&order=clickcount&reverse=false&limit=2&offset=20&hidebroken=false"
    assert "name=" not in query
    assert "tagExact" not in query


def test_parse_query_recovers_filter_fields():
    filters = SearchFilter(
        name="radio one",
        tag="rock",
        tag_exact=True,
        countrycode="GB",
        language="english",
        codec="AAC",
        bitrate_min=128,
        bitrate_max=320,
        order="votes",
        reverse=False,
        limit=25,
        offset=50,
        hidebroken=True,
    )

    assert parse_query(build_query(filters)) == filters


def test_parse_query_of_defaults():
    parsed = parse_query(build_query(SearchFilter()))

    assert (parsed.order, parsed.reverse, parsed.limit, parsed.offset, parsed.hidebroken) == (
        "clickcount",
        True,
        100,
        0,
        True,
    )
    assert parsed.name is None
    assert parsed.tag_exact is False


def test_minimum_bitrate_applied_only_when_missing():
    assert with_minimum_bitrate(SearchFilter()).bitrate_min == 120
    assert with_minimum_bitrate(SearchFilter(bitrate_min=0)).bitrate_min == 120
    assert with_minimum_bitrate(SearchFilter(bitrate_min=64)).bitrate_min == 64


def test_transform_station_builds_display_fields():
    view = transform_station(StationRecord.from_dict(_station()))

    assert view.id == "uuid-1"
    assert view.title == "Jazz FM"
    assert view.subtitle == "jazz, smooth jazz, lounge"
    assert view.description == "DE • german"
    assert view.features == ["MP3 128 kbps", "1,234 clicks", "42 votes", "DE"]
    assert view.stream_url == "https://stream.example/jazz.mp3"
    assert view.to_dict()["streamUrl"] == "https://stream.example/jazz.mp3"


def test_transform_station_fallbacks():
    record = StationRecord.from_dict(
        _station(tags="", codec="", bitrate=0, countrycode="", url_resolved="", homepage="https://jazz.example")
    )

    view = transform_station(record)

    assert view.subtitle == "Radio"
    assert view.description == "https://jazz.example"
    assert view.features[0] == "Unknown"
    assert view.features[-1] == "Unknown"
    assert view.stream_url == "http://stream.example/jazz"


def test_filter_playable_drops_broken_and_low_bitrate():
    payload = [
        _station(stationuuid="ok"),
        _station(stationuuid="broken", lastcheckok=0),
        _station(stationuuid="lofi", bitrate=96),
        _station(stationuuid="edge", bitrate=120),
    ]

    assert [view.id for view in filter_playable(payload)] == ["ok", "edge"]
    assert filter_playable(None) == []


def test_advanced_search_applies_bitrate_floor_and_filters_results():
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json=[
                _station(stationuuid="a"),
                _station(stationuuid="b", lastcheckok=0),
                _station(stationuuid="c", bitrate=192),
            ],
        )

    stations = asyncio.run(_client(handler).search_stations_advanced(SearchFilter(tag="jazz", limit=2)))

    assert [station.id for station in stations] == ["a", "c"]
    params = requests[0].url.params
    assert requests[0].url.path == "/json/stations/search"
    assert params["tag"] == "jazz"
    assert params["limit"] == "2"
    assert params["bitrateMin"] == "120"
    assert params["hidebroken"] == "true"


def test_name_search_encodes_query():
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[_station()])

    stations = asyncio.run(_client(handler).search_stations("jazz & blues", limit=5))

    assert len(stations) == 1
    params = requests[0].url.params
    assert params["name"] == "jazz & blues"
    assert params["limit"] == "5"
    assert params["bitrateMin"] == "120"
    assert params["order"] == "clickcount"


def test_facet_lookups_drop_empty_entries():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/json/countrycodes":
            return httpx.Response(200, json=[{"name": "DE", "stationcount": 10}, {"name": "XX", "stationcount": 0}])
        if request.url.path == "/json/tags":
            return httpx.Response(200, json=[{"name": "jazz", "stationcount": 5}, {"name": "", "stationcount": 0}])
        return httpx.Response(
            200,
            json=[
                {"name": "german", "iso_639": "de", "stationcount": 8},
                {"name": "klingon", "iso_639": None, "stationcount": 0},
            ],
        )

    countries, tags, languages = asyncio.run(_client(handler).load_filter_options())

    assert [country.name for country in countries] == ["DE"]
    assert [tag.name for tag in tags] == ["jazz"]
    assert [(language.name, language.iso_639) for language in languages] == [("german", "de")]


def test_track_station_click_returns_resolved_url():
    paths: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(
            200,
            json={"ok": True, "message": "retrieved station url", "name": "Jazz FM", "url": "https://s.example/j"},
        )

    result = asyncio.run(_client(handler).track_station_click("uuid-1"))

    assert paths == ["/json/url/uuid-1"]
    assert result.ok is True
    assert result.url == "https://s.example/j"


def test_filter_playable_rejects_object_payloads():
    with pytest.raises(UpstreamTransportError) as excinfo:
        filter_playable({"error": "rate limited"})

    assert str(excinfo.value) == "Unexpected station payload: dict"
    assert filter_playable([_station(), "junk"])[0].id == "uuid-1"


def test_search_with_object_payload_is_an_upstream_error():
    client = _client(lambda request: httpx.Response(200, json={"error": "rate limited"}))

    with pytest.raises(UpstreamTransportError):
        asyncio.run(client.search_stations("jazz"))

    with pytest.raises(UpstreamTransportError):
        asyncio.run(client.get_countries())
