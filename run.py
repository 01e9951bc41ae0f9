"""Command line entry point: API server, probe report, station search, log tail, datasets."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

import uvicorn

from connectors.mcp_client import LogTail
from connectors.station_search import StationSearchSession
from core.config_loader import load_settings
from core.config_models import AppSettings
from core.datasets import (
    DEFAULT_HEADERS,
    DEFAULT_ROWS,
    FORMATS,
    generate_header_dataset,
    normalise_headers,
    render_formats,
)
from core.errors import DashboardError
from core.mission_control import build_mission_control
from core.stations import SearchFilter
from web.app import build_radio_client, create_app

LOGGER = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Radio directory and operations dashboard backend")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--env-file", type=Path, default=None, help="Path to a .env file")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    sub.add_parser("probe", help="Probe the operations service once and print the report")

    search = sub.add_parser("search", help="Search radio stations")
    search.add_argument("query", nargs="?", default="")
    search.add_argument("--tag")
    search.add_argument("--country")
    search.add_argument("--language")
    search.add_argument("--limit", type=int, default=None)

    logs = sub.add_parser("logs", help="Show the operations log tail")
    logs.add_argument("--follow", action="store_true", help="Keep polling")

    dataset = sub.add_parser("dataset", help="Generate a sample dataset from column headers")
    dataset.add_argument("--header", action="append", dest="headers", help="Column header (repeatable)")
    dataset.add_argument("--rows", type=int, default=DEFAULT_ROWS)
    dataset.add_argument("--format", choices=FORMATS, default="csv")
    return parser.parse_args(argv)


async def run_probe(settings: AppSettings) -> None:
    report = await build_mission_control(settings.ops)
    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))


async def run_search(settings: AppSettings, args: argparse.Namespace) -> None:
    client = build_radio_client(settings)
    if args.query:
        session = StationSearchSession(client)
        stations = await session.search(args.query)
    else:
        filters = SearchFilter(
            tag=args.tag,
            countrycode=args.country,
            language=args.language,
            limit=args.limit,
        )
        stations = await client.search_stations_advanced(filters)
    for station in stations:
        print(f"{station.title} | {station.subtitle} | {station.stream_url}")
    LOGGER.info("%d stations", len(stations))


async def run_logs(settings: AppSettings, follow: bool) -> None:
    tail = LogTail(settings.web.app_url, interval=settings.ops.log_poll_seconds)

    def _show(current: LogTail) -> None:
        if current.error:
            print(f"Real-time logging unavailable: {current.error}")
            return
        for row in current.view:
            print(f"{row.timestamp} {row.level:<7} {row.message}")

    await tail.run(iterations=None if follow else 1, on_update=_show)


def run_dataset(args: argparse.Namespace) -> None:
    columns = normalise_headers(args.headers or DEFAULT_HEADERS)
    if not columns:
        raise SystemExit("At least one non-empty --header is required")
    dataset = generate_header_dataset(columns, args.rows)
    print(render_formats(dataset)[args.format])


def run_async(entry: Callable[[], Awaitable[None]]) -> None:
    try:
        asyncio.run(entry())
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user.")


def serve(settings: AppSettings, host: Optional[str], port: Optional[int]) -> None:
    uvicorn.run(
        create_app(settings),
        host=host or settings.web.host,
        port=port or settings.web.port,
    )


def main(argv: Optional[list] = None) -> None:
    args = parse_args(argv)
    if args.command == "dataset":
        run_dataset(args)
        return

    configure_logging(args.log_level)

    try:
        settings = load_settings(config_path=args.config, env_path=args.env_file)
        if args.command == "serve":
            serve(settings, args.host, args.port)
        elif args.command == "probe":
            run_async(lambda: run_probe(settings))
        elif args.command == "search":
            run_async(lambda: run_search(settings, args))
        elif args.command == "logs":
            run_async(lambda: run_logs(settings, args.follow))
    except DashboardError as exc:
        raise SystemExit(f"{type(exc).__name__}: {exc.message}") from exc


if __name__ == "__main__":
    main()
