"""HTTP surface: operations proxy routes, station lookups and sample datasets.

Every failure is caught here, once, and converted into the uniform
``{"error": "..."}`` envelope with the status code carried by the error.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from connectors.discovery import EndpointResolver
from connectors.failover import FailoverFetcher
from connectors.mcp_client import McpClient
from connectors.radio_browser import RadioBrowserClient, parse_query
from core.config_models import AppSettings
from core.datasets import (
    DEFAULT_HEADERS,
    DEFAULT_ROWS,
    dataset_from_mapping,
    generate_header_dataset,
    normalise_headers,
    render_formats,
)
from core.errors import DashboardError
from core.mission_control import build_mission_control

LOGGER = logging.getLogger(__name__)


def build_radio_client(settings: AppSettings) -> RadioBrowserClient:
    resolver = EndpointResolver(settings.radio)
    return RadioBrowserClient(FailoverFetcher(resolver, settings.radio))


def create_app(
    settings: AppSettings,
    mcp_client: Optional[McpClient] = None,
    radio_client: Optional[RadioBrowserClient] = None,
) -> FastAPI:
    """Create the FastAPI application bound to an already validated ``settings``."""

    app = FastAPI(title="Bridgit Dashboard API")
    mcp = mcp_client or McpClient(settings.ops)
    radio = radio_client or build_radio_client(settings)

    app.state.settings = settings
    app.state.mcp = mcp
    app.state.radio = radio

    @app.exception_handler(DashboardError)
    async def _dashboard_error(_request: Request, exc: DashboardError) -> JSONResponse:
        LOGGER.warning("%s: %s", type(exc).__name__, exc.message)
        return JSONResponse(exc.to_envelope(), status_code=exc.status_code)

    @app.get("/api/health")
    async def health() -> Any:
        return await mcp.fetch_health()

    @app.get("/api/metrics")
    async def metrics() -> Any:
        return await mcp.fetch_metrics()

    @app.get("/api/tattty/logs")
    async def logs() -> Dict[str, List[str]]:
        return {"lines": await mcp.fetch_logs()}

    @app.get("/api/mission-control")
    async def mission_control() -> Dict[str, Any]:
        report = await build_mission_control(settings.ops)
        return report.to_dict()

    @app.get("/api/stations/search")
    async def search(request: Request) -> Any:
        text = request.query_params.get("q")
        try:
            limit = int(request.query_params.get("limit", 50))
            filters = parse_query(str(request.query_params)) if text is None else None
        except ValueError as exc:
            return JSONResponse({"error": f"Invalid search parameters: {exc}"}, status_code=400)
        if filters is None:
            stations = await radio.search_stations(text, limit=limit)
        else:
            stations = await radio.search_stations_advanced(filters)
        return [station.to_dict() for station in stations]

    @app.get("/api/stations/countries")
    async def countries() -> List[Dict[str, Any]]:
        return [{"name": c.name, "stationcount": c.stationcount} for c in await radio.get_countries()]

    @app.get("/api/stations/tags")
    async def tags(limit: int = 50) -> List[Dict[str, Any]]:
        return [{"name": t.name, "stationcount": t.stationcount} for t in await radio.get_tags(limit)]

    @app.get("/api/stations/languages")
    async def languages(limit: int = 50) -> List[Dict[str, Any]]:
        return [
            {"name": lang.name, "iso_639": lang.iso_639, "stationcount": lang.stationcount}
            for lang in await radio.get_languages(limit)
        ]

    @app.post("/api/stations/{stationuuid}/click")
    async def click(stationuuid: str) -> Dict[str, Any]:
        result = await radio.track_station_click(stationuuid)
        return {"url": result.url, "name": result.name, "ok": result.ok, "message": result.message}

    @app.get("/api/datasets/generate")
    async def generate_dataset(
        header: List[str] = Query(default=list(DEFAULT_HEADERS)),
        rows: int = DEFAULT_ROWS,
    ) -> Any:
        columns = normalise_headers(header)
        if not columns:
            return JSONResponse({"error": "At least one header is required"}, status_code=400)
        dataset = generate_header_dataset(columns, rows)
        return {**dataset.to_dict(), "formats": render_formats(dataset)}

    @app.post("/api/datasets/render")
    async def render_dataset(request: Request) -> Any:
        try:
            payload = await request.json()
        except ValueError as exc:
            return JSONResponse({"error": f"Invalid dataset body: {exc}"}, status_code=400)
        if not isinstance(payload, dict):
            return JSONResponse({"error": "Dataset body must be an object"}, status_code=400)
        return render_formats(dataset_from_mapping(payload))

    return app


__all__ = ["create_app", "build_radio_client"]
