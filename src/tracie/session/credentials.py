"""
On-disk credential store.

The session directory holds a single ``creds.json``. Its absence is not an
error: it means the bridge has to walk through interactive (QR / pairing)
authentication, which happens outside this process.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from pathlib import Path

from tracie.config import core
from tracie.errors import CredentialPersistError

logger = logging.getLogger(__name__)

CREDS_FILE = "creds.json"


class CredentialStore:
    def __init__(self, session_dir: str | Path | None = None) -> None:
        self.session_dir = Path(session_dir if session_dir is not None else core.SESSION_DIR)

    @property
    def path(self) -> Path:
        return self.session_dir / CREDS_FILE

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> dict | None:
        """Return stored credential material, or ``None`` when there is none."""

        if not self.exists():
            logger.info("No stored credentials in %s; interactive login required.", self.session_dir)
            return None
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to read credentials from %s: %s", self.path, exc)
            return None

    def save(self, creds: dict) -> None:
        """Atomically overwrite the stored credentials."""

        tmp = self.path.with_suffix(".tmp")
        try:
            self.session_dir.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as handle:
                json.dump(creds, handle)
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise CredentialPersistError(f"Could not persist credentials to {self.path}: {exc}") from exc

    def wipe(self) -> None:
        """Remove the whole session directory."""

        shutil.rmtree(self.session_dir, ignore_errors=True)
        logger.warning("Cleared session state in %s", self.session_dir)


__all__ = ["CREDS_FILE", "CredentialStore"]
