from __future__ import annotations

from pathlib import Path

import pytest

from hanbase_cli.shared import paths
from hanbase_cli.shared.config import AppConfig, load_config
from hanbase_cli.shared.exceptions import ConfigurationError


def test_load_config_defaults(tmp_path: Path) -> None:
    env = {paths.CONFIG_DIR_ENV: str(tmp_path / "config")}
    cfg = load_config(env=env)
    assert isinstance(cfg, AppConfig)
    assert cfg.api.base_url == "http://localhost:8000"
    assert cfg.api.timeout == 10.0
    assert cfg.session.token_path == tmp_path / "config" / "token"
    assert cfg.console.row_limit == 100
    assert cfg.console.system_columns == ("id", "created_at", "updated_at")
    assert cfg.console.parameterized_queries is False


def test_load_config_from_yaml(tmp_path: Path) -> None:
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    cfg_file = cfg_dir / "config.yaml"
    cfg_file.write_text(
        """
        api:
          base_url: https://db.example.com/
        console:
          row_limit: 25
          system_columns: [id]
          parameterized_queries: true
        """,
        encoding="utf-8",
    )
    env = {paths.CONFIG_DIR_ENV: str(cfg_dir)}
    cfg = load_config(config_path=cfg_file, env=env)
    assert cfg.source_path == cfg_file
    assert cfg.api.base_url == "https://db.example.com"
    assert cfg.api.timeout == 10.0
    assert cfg.console.row_limit == 25
    assert cfg.console.system_columns == ("id",)
    assert cfg.console.parameterized_queries is True


def test_load_config_env_overrides(tmp_path: Path) -> None:
    token_path = tmp_path / "tok"
    env = {
        paths.CONFIG_DIR_ENV: str(tmp_path / "config"),
        "HANBASE_API_URL": "http://10.0.0.5:9000",
        "HANBASE_API_TIMEOUT": "2.5",
        paths.TOKEN_PATH_ENV: str(token_path),
        "HANBASE_ROW_LIMIT": "7",
        "HANBASE_SYSTEM_COLUMNS": "id, inserted_at",
        "HANBASE_PARAMETERIZED_QUERIES": "yes",
    }
    cfg = load_config(env=env)
    assert cfg.api.base_url == "http://10.0.0.5:9000"
    assert cfg.api.timeout == 2.5
    assert cfg.session.token_path == token_path
    assert cfg.console.row_limit == 7
    assert cfg.console.system_columns == ("id", "inserted_at")
    assert cfg.console.parameterized_queries is True


def test_with_base_url_normalises(tmp_path: Path) -> None:
    cfg = load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path)})
    assert cfg.with_base_url("https://api.example.com///").api.base_url == "https://api.example.com"
    with pytest.raises(ConfigurationError):
        cfg.with_base_url("ftp://nope")


def test_invalid_env_override_raises(tmp_path: Path) -> None:
    env = {paths.CONFIG_DIR_ENV: str(tmp_path), "HANBASE_ROW_LIMIT": "lots"}
    with pytest.raises(ConfigurationError):
        load_config(env=env)


def test_non_positive_row_limit_rejected(tmp_path: Path) -> None:
    env = {paths.CONFIG_DIR_ENV: str(tmp_path), "HANBASE_ROW_LIMIT": "0"}
    with pytest.raises(ConfigurationError):
        load_config(env=env)


def test_invalid_yaml_raises_configuration_error(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("- just a list", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(config_path=cfg_file, env={})


def test_unparseable_yaml_raises_configuration_error(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("api: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(config_path=cfg_file, env={})
