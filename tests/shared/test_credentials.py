from __future__ import annotations

import stat
from pathlib import Path

from hanbase_cli.shared.credentials import CredentialStore


def test_load_returns_none_when_missing(tmp_path: Path) -> None:
    assert CredentialStore(tmp_path / "token").load() is None


def test_save_then_load_round_trip(tmp_path: Path) -> None:
    store = CredentialStore(tmp_path / "nested" / "token")
    store.save("abc.def")

    assert store.path.exists()
    assert store.load() == "abc.def"
    assert stat.S_IMODE(store.path.stat().st_mode) == 0o600


def test_save_replaces_previous_token(tmp_path: Path) -> None:
    store = CredentialStore(tmp_path / "token")
    store.save("first")
    store.save("second")
    assert store.load() == "second"
    assert [p.name for p in tmp_path.iterdir()] == ["token"]


def test_blank_file_counts_as_no_token(tmp_path: Path) -> None:
    path = tmp_path / "token"
    path.write_text("  \n", encoding="utf-8")
    assert CredentialStore(path).load() is None


def test_clear_is_idempotent(tmp_path: Path) -> None:
    store = CredentialStore(tmp_path / "token")
    store.save("abc")
    store.clear()
    store.clear()
    assert store.load() is None
