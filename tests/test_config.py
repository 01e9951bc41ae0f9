import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.config_loader import ADMIN_TOKEN_ENV, APP_URL_ENV, BASE_URL_ENV, load_settings
from core.config_models import ServerOrder
from core.errors import ConfigurationError

ENV_NAMES = BASE_URL_ENV + ADMIN_TOKEN_ENV + APP_URL_ENV


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    yield
    for name in ENV_NAMES:
        if name in os.environ:
            del os.environ[name]


@pytest.fixture()
def temp_files(tmp_path: Path):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "MCP_BASE_URL=https://ops.example.com/",
                "MCP_ADMIN_TOKEN=supersecret",
            ]
        ),
        encoding="utf-8",
    )

    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
radio:
  server_order: "priority-then-random"
  cache_ttl_seconds: 300
ops:
  base_url: "https://from-yaml.example.com"
  request_timeout_ms: 2500
web:
  app_url: "https://dashboard.example.com/"
  port: 8080
""",
        encoding="utf-8",
    )
    return config_path, env_path


def test_load_settings_with_env(temp_files):
    config_path, env_path = temp_files
    settings = load_settings(config_path=config_path, env_path=env_path)

    assert settings.radio.server_order is ServerOrder.PRIORITY_THEN_RANDOM
    assert settings.radio.cache_ttl_seconds == 300
    assert settings.radio.service_name == "_api._tcp.radio-browser.info"

    # Environment wins over the YAML file; trailing slashes are dropped.
    assert settings.ops.base_url == "https://ops.example.com"
    assert settings.ops.admin_token == "supersecret"
    assert settings.ops.request_timeout == 2.5
    assert settings.ops.admin_headers() == {"Authorization": "Bearer supersecret"}

    assert settings.web.app_url == "https://dashboard.example.com"
    assert settings.web.port == 8080


def test_defaults_when_sections_missing(tmp_path: Path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("radio: {}\n", encoding="utf-8")

    settings = load_settings(config_path=cfg_path, environ={})

    assert settings.radio.server_order is ServerOrder.FULLY_RANDOM
    assert settings.radio.user_agent == "Bridgit AI/1.0"
    assert settings.radio.cache_hint_seconds == 3600
    assert settings.radio.cache_ttl_seconds == 0
    assert settings.ops.base_url is None
    assert settings.ops.admin_headers() == {}
    assert settings.ops.request_timeout_ms == 8000
    assert settings.web.app_url == "http://localhost:3000"


def test_server_name_takes_precedence_over_public_name(tmp_path: Path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("", encoding="utf-8")
    environ = {
        "NEXT_PUBLIC_MCP_BASE_URL": "https://public.example.com",
        "MCP_BASE_URL": "https://private.example.com",
        "NEXT_PUBLIC_MCP_ADMIN_TOKEN": "public-token",
    }

    settings = load_settings(config_path=cfg_path, environ=environ)

    assert settings.ops.base_url == "https://private.example.com"
    assert settings.ops.admin_token == "public-token"


def test_invalid_base_url_is_rejected(tmp_path: Path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("", encoding="utf-8")

    with pytest.raises(ConfigurationError) as excinfo:
        load_settings(config_path=cfg_path, environ={"MCP_BASE_URL": "ftp://ops.example.com"})
    assert "MCP_BASE_URL" in excinfo.value.message


def test_unknown_keys_and_policies_are_configuration_errors(tmp_path: Path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("radio:\n  server_order: sideways\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(config_path=cfg_path, environ={})

    cfg_path.write_text("ops:\n  retries: 3\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(config_path=cfg_path, environ={})


def test_non_positive_timeout_is_rejected(tmp_path: Path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("ops:\n  request_timeout_ms: 0\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_settings(config_path=cfg_path, environ={})
