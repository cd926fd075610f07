from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator

import pytest

from hanbase_cli.shared import paths
from hanbase_cli.shared.config import AppConfig, load_config
from hanbase_cli.shared.credentials import CredentialStore
from hanbase_cli.shared.session import Session

BASE_URL = "http://localhost:8000"


class StubLogger:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def info(self, message: str, *args) -> None:
        self.messages.append(("info", message % args if args else message))

    def warning(self, message: str, *args) -> None:
        self.messages.append(("warning", message % args if args else message))

    def debug(self, message: str, *args) -> None:
        self.messages.append(("debug", message % args if args else message))

    def error(self, message: str, *args) -> None:
        self.messages.append(("error", message % args if args else message))

    def success(self, message: str, *args) -> None:
        self.messages.append(("success", message % args if args else message))

    def request(self, method: str, path: str, status: int | None) -> None:
        self.messages.append(("request", f"{method} {path} {status}"))

    def levels(self, level: str) -> list[str]:
        return [message for lvl, message in self.messages if lvl == level]


@pytest.fixture
def logger() -> StubLogger:
    return StubLogger()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path)})


@pytest.fixture
async def session(config: AppConfig, logger: StubLogger) -> AsyncIterator[Session]:
    CredentialStore(config.session.token_path).save("admin-token")
    async with Session(config, logger=logger) as active:
        yield active
