"""Application configuration handling."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Mapping
from urllib.parse import urlsplit

import yaml
from pydantic import BaseModel, field_validator

ENV_PREFIX = "TSDBF_"
DEFAULT_CONFIG_PATH = Path("~/.config/tsdb-frontend/config.yaml")

# Unprefixed variables honoured for compatibility with existing deployments.
_LEGACY_ENV: Mapping[str, str] = {
    "ADDR": "listen_addr",
    "OPENTSDB_URL": "opentsdb_url",
}

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("server", "listen_addr"): "listen_addr",
    ("server", "query_timeout"): "query_timeout",
    ("server", "default_lookback"): "default_lookback",
    ("opentsdb", "url"): "opentsdb_url",
    ("opentsdb", "timeout"): "request_timeout",
    ("opentsdb", "filter_mode"): "filter_mode",
    ("opentsdb", "suggest_limit"): "suggest_limit",
    ("opentsdb", "basic_auth", "user"): "basic_auth_user",
    ("opentsdb", "basic_auth", "password"): "basic_auth_password",
    ("logging", "level"): "log_level",
    ("logging", "json"): "log_json",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    listen_addr: str = "localhost:9080"
    opentsdb_url: str = "http://localhost:4242"
    basic_auth_user: str | None = None
    basic_auth_password: str | None = None
    request_timeout: float = 30.0
    query_timeout: float = 120.0
    filter_mode: Literal["native", "regexp"] = "native"
    default_lookback: int = 300
    suggest_limit: int = 1000
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("opentsdb_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in {"http", "https"} or not parts.netloc:
            raise ValueError(f"opentsdb_url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")

    @field_validator("listen_addr")
    @classmethod
    def _check_listen_addr(cls, value: str) -> str:
        host, sep, port = value.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"listen_addr must look like host:port, got {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @property
    def host(self) -> str:
        host = self.listen_addr.rpartition(":")[0]
        return host or "0.0.0.0"

    @property
    def port(self) -> int:
        return int(self.listen_addr.rpartition(":")[2])

    @property
    def basic_auth(self) -> tuple[str, str] | None:
        if not self.basic_auth_user:
            return None
        return self.basic_auth_user, self.basic_auth_password or ""

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map ADDR/OPENTSDB_URL, then TSDBF_-prefixed variables, into Settings fields."""
    overrides: dict[str, Any] = {}
    for env_name, field_name in _LEGACY_ENV.items():
        value = os.environ.get(env_name)
        if value:
            overrides[field_name] = value
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


def load_settings(path: Path | None = None) -> Settings:
    """Build the settings object once at startup; callers pass it on explicitly."""
    return Settings.from_yaml(path)


__all__ = ["Settings", "load_settings"]
