"""Configuration loading utilities for the Hanbase console."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError

DEFAULT_SYSTEM_COLUMNS = ("id", "created_at", "updated_at")


@dataclass(frozen=True, slots=True)
class ApiSettings:
    """Where the Hanbase service lives and how long to wait for it."""

    base_url: str
    timeout: float


@dataclass(frozen=True, slots=True)
class SessionSettings:
    """Credential persistence configuration."""

    token_path: Path


@dataclass(frozen=True, slots=True)
class ConsoleSettings:
    """Behaviour of the data browser and statement builder."""

    row_limit: int
    system_columns: tuple[str, ...]
    parameterized_queries: bool


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    api: ApiSettings
    session: SessionSettings
    console: ConsoleSettings

    def with_base_url(self, base_url: str) -> AppConfig:
        """Return a copy pointed at a different service URL."""
        new_api = replace(self.api, base_url=_normalise_base_url(base_url))
        return replace(self, api=new_api)


def _default_config(env: Mapping[str, str]) -> dict[str, Any]:
    return {
        "api": {
            "base_url": "http://localhost:8000",
            "timeout": 10.0,
        },
        "session": {"token_path": str(paths.default_token_path(env=env))},
        "console": {
            "row_limit": 100,
            "system_columns": list(DEFAULT_SYSTEM_COLUMNS),
            "parameterized_queries": False,
        },
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "api.base_url": ("HANBASE_API_URL", str),
    "api.timeout": ("HANBASE_API_TIMEOUT", float),
    "session.token_path": (paths.TOKEN_PATH_ENV, str),
    "console.row_limit": ("HANBASE_ROW_LIMIT", int),
    "console.system_columns": ("HANBASE_SYSTEM_COLUMNS", list),
    "console.parameterized_queries": ("HANBASE_PARAMETERIZED_QUERIES", bool),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(os.environ if env is None else env)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    defaults = _default_config(env)
    merged: dict[str, Any] = _deep_merge(defaults, file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path)


def _resolve_config_path(
    config_path: str | Path | None, env: Mapping[str, str]
) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Config file at {path} is not valid YAML: {exc}") from exc
        if not isinstance(data, MutableMapping):
            raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
        return dict(data)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    config_copy = _deep_merge(config, {})
    for dotted_key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            value = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
        _assign_nested(config_copy, dotted_key.split("."), value)
    return config_copy


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    cleaned = raw.strip()
    if expected_type is bool:
        lowered = cleaned.lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError("expected boolean (true/false)")
    if expected_type is int:
        return int(cleaned)
    if expected_type is float:
        return float(cleaned)
    if expected_type is list:
        if not cleaned:
            return []
        return tuple(part.strip() for part in cleaned.split(",") if part.strip())
    return cleaned


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _normalise_base_url(raw: str) -> str:
    cleaned = str(raw).strip().rstrip("/")
    if not cleaned.startswith(("http://", "https://")):
        raise ConfigurationError(f"API base URL must start with http:// or https:// (got '{raw}').")
    return cleaned


def _build_config(data: Mapping[str, Any], source_path: Path) -> AppConfig:
    try:
        api_cfg = data["api"]
        api = ApiSettings(
            base_url=_normalise_base_url(api_cfg["base_url"]),
            timeout=float(api_cfg["timeout"]),
        )
        session = SessionSettings(token_path=paths.resolve_path(data["session"]["token_path"]))
        console_cfg = data["console"]
        console = ConsoleSettings(
            row_limit=int(console_cfg["row_limit"]),
            system_columns=tuple(str(name) for name in console_cfg["system_columns"]),
            parameterized_queries=bool(console_cfg["parameterized_queries"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if api.timeout <= 0:
        raise ConfigurationError("api.timeout must be a positive number of seconds.")
    if console.row_limit <= 0:
        raise ConfigurationError("console.row_limit must be a positive integer.")

    return AppConfig(
        source_path=source_path,
        api=api,
        session=session,
        console=console,
    )
