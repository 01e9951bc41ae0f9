"""Configuration loader: ``config.yaml`` plus ``.env`` plus process environment."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Optional, Tuple
from urllib.parse import urlparse

import yaml
from dotenv import load_dotenv

from core.config_models import AppSettings, ServerOrder
from core.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

# Server-side names take precedence over the public (browser-exposed) ones.
BASE_URL_ENV: Tuple[str, ...] = ("MCP_BASE_URL", "NEXT_PUBLIC_MCP_BASE_URL")
ADMIN_TOKEN_ENV: Tuple[str, ...] = ("MCP_ADMIN_TOKEN", "NEXT_PUBLIC_MCP_ADMIN_TOKEN")
APP_URL_ENV: Tuple[str, ...] = ("NEXT_PUBLIC_APP_URL",)


def _first_env(names: Tuple[str, ...], environ: Dict[str, str]) -> Optional[str]:
    for name in names:
        value = environ.get(name)
        if value:
            return value.strip()
    return None


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def apply_environment(settings: AppSettings, environ: Optional[Dict[str, str]] = None) -> AppSettings:
    """Overlay environment variables onto ``settings`` in place and return it."""

    env = dict(os.environ if environ is None else environ)
    base_url = _first_env(BASE_URL_ENV, env)
    if base_url:
        settings.ops.base_url = base_url
    token = _first_env(ADMIN_TOKEN_ENV, env)
    if token:
        settings.ops.admin_token = token
    app_url = _first_env(APP_URL_ENV, env)
    if app_url:
        settings.web.app_url = app_url
    return settings


def validate_settings(settings: AppSettings) -> AppSettings:
    """Check presence and well-formedness once, at startup."""

    if settings.ops.base_url is not None:
        if not _is_http_url(settings.ops.base_url):
            raise ConfigurationError(f"MCP_BASE_URL is not a valid http(s) URL: {settings.ops.base_url!r}")
        settings.ops.base_url = settings.ops.base_url.rstrip("/")
    if not _is_http_url(settings.web.app_url):
        raise ConfigurationError(f"NEXT_PUBLIC_APP_URL is not a valid http(s) URL: {settings.web.app_url!r}")
    settings.web.app_url = settings.web.app_url.rstrip("/")
    if settings.ops.request_timeout_ms <= 0:
        raise ConfigurationError("ops.request_timeout_ms must be positive")
    if settings.ops.log_poll_seconds <= 0:
        raise ConfigurationError("ops.log_poll_seconds must be positive")
    if settings.radio.request_timeout <= 0:
        raise ConfigurationError("radio.request_timeout must be positive")
    if settings.radio.cache_ttl_seconds < 0:
        raise ConfigurationError("radio.cache_ttl_seconds cannot be negative")
    if not isinstance(settings.radio.server_order, ServerOrder):
        raise ConfigurationError(f"Unknown server order policy: {settings.radio.server_order!r}")
    if not settings.radio.service_name:
        raise ConfigurationError("radio.service_name must not be empty")
    return settings


def load_settings(
    config_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> AppSettings:
    """Load application settings from YAML, ``.env`` and the environment."""

    base_path = Path(__file__).resolve().parents[1]
    if config_path is None:
        default_config = base_path / "config.yaml"
        if default_config.exists():
            config_path = default_config
    if env_path is None:
        default_env = base_path / ".env"
        if default_env.exists():
            env_path = default_env

    if env_path is not None:
        load_dotenv(dotenv_path=env_path, override=False)

    data: Dict[str, object] = {}
    if config_path is not None:
        with open(config_path, "r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp.read()) or {}
        LOGGER.debug("Loaded settings file %s", config_path)

    try:
        settings = AppSettings.from_dict(data)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    apply_environment(settings, environ)
    return validate_settings(settings)


__all__ = ["load_settings", "apply_environment", "validate_settings"]
