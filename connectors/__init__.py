"""Connectors for the radio directory and the operations service."""

from .discovery import EndpointResolver, SrvRecord
from .failover import FailoverClients, FailoverFetcher
from .mcp_client import LogTail, McpClient, fetch_overview
from .metrics_adapters import register_metrics_adapter
from .radio_browser import RadioBrowserClient, build_query
from .station_search import StationSearchSession

__all__ = [
    "EndpointResolver",
    "SrvRecord",
    "FailoverClients",
    "FailoverFetcher",
    "LogTail",
    "McpClient",
    "fetch_overview",
    "register_metrics_adapter",
    "RadioBrowserClient",
    "build_query",
    "StationSearchSession",
]
