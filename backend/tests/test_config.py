"""Tests for settings loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from tsdb_frontend.core.config import Settings, load_settings


def test_defaults() -> None:
    settings = load_settings()
    assert settings.listen_addr == "localhost:9080"
    assert settings.opentsdb_url == "http://localhost:4242"
    assert settings.host == "localhost"
    assert settings.port == 9080
    assert settings.basic_auth is None
    assert settings.filter_mode == "native"


def test_legacy_environment_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ADDR", "0.0.0.0:9999")
    monkeypatch.setenv("OPENTSDB_URL", "http://tsdb:4242/")
    settings = load_settings()
    assert settings.listen_addr == "0.0.0.0:9999"
    assert settings.opentsdb_url == "http://tsdb:4242"


def test_prefixed_environment_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENTSDB_URL", "http://legacy:4242")
    monkeypatch.setenv("TSDBF_OPENTSDB_URL", "http://preferred:4242")
    monkeypatch.setenv("TSDBF_BASIC_AUTH_USER", "reader")
    monkeypatch.setenv("TSDBF_REQUEST_TIMEOUT", "2.5")
    settings = load_settings()
    assert settings.opentsdb_url == "http://preferred:4242"
    assert settings.basic_auth == ("reader", "")
    assert settings.request_timeout == 2.5


def test_yaml_then_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        "server:\n"
        "  listen_addr: 127.0.0.1:8000\n"
        "opentsdb:\n"
        "  url: https://tsdb.internal\n"
        "  filter_mode: regexp\n"
        "  basic_auth:\n"
        "    user: yaml-user\n"
        "    password: yaml-pass\n"
        "logging:\n"
        "  level: debug\n"
    )
    monkeypatch.setenv("ADDR", "127.0.0.1:8001")
    settings = load_settings(config)
    assert settings.listen_addr == "127.0.0.1:8001"
    assert settings.opentsdb_url == "https://tsdb.internal"
    assert settings.filter_mode == "regexp"
    assert settings.basic_auth == ("yaml-user", "yaml-pass")
    assert settings.log_level == "DEBUG"


def test_config_path_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "frontend.yaml"
    config.write_text("suggest_limit: 25\n")
    monkeypatch.setenv("TSDBF_CONFIG", str(config))
    assert load_settings().suggest_limit == 25


@pytest.mark.parametrize("field, value", [("opentsdb_url", "tsdb:4242"), ("listen_addr", "nohost"), ("filter_mode", "fuzzy")])
def test_invalid_values_rejected(field: str, value: str) -> None:
    with pytest.raises(ValidationError):
        Settings(**{field: value})
