"""Durable storage for the admin credential token.

The token is the only piece of local state that survives between console runs.
It lives in a single file (``~/.hanbase/token`` by default) written atomically
with owner-only permissions.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CredentialStore:
    """Reads, writes and forgets the persisted token."""

    path: Path

    def load(self) -> str | None:
        """Return the stored token, or None when nothing usable is persisted."""
        if not self.path.exists():
            return None
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            logger.warning("Failed to read token from %s: %s", self.path, exc)
            return None
        return token or None

    def save(self, token: str) -> Path:
        """Persist the token using temp file + rename."""
        parent = self.path.parent
        if not parent.exists():
            parent.mkdir(parents=True, exist_ok=True, mode=0o700)

        fd, temp_path = tempfile.mkstemp(suffix=".tmp", prefix=".token_", dir=parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(token)
                handle.write("\n")
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(temp_path, 0o600)
            os.replace(temp_path, self.path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
        logger.debug("Saved token to %s", self.path)
        return self.path

    def clear(self) -> None:
        """Remove the persisted token if present."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
