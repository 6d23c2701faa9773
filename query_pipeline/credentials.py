"""
Credential store collaborator.

The pipeline only ever calls get(); the settings surface writes the token.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional, Protocol

from logging_setup import Component, get_logger


logger = get_logger(Component.CREDENTIALS)


class CredentialStore(Protocol):
    def get(self) -> str: ...

    def set(self, token: str) -> None: ...

    def clear(self) -> None: ...


class InMemoryCredentialStore:
    def __init__(self, token: Optional[str] = None):
        self._token = (token or "").strip()

    def get(self) -> str:
        return self._token

    def set(self, token: str) -> None:
        self._token = token.strip()

    def clear(self) -> None:
        self._token = ""


class FileCredentialStore:
    """
    Token persisted as {"token": "..."} in a JSON file.

    Read once on construction; writes go to disk immediately with
    owner-only permissions where the platform supports it.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._token = self._read()

    def _read(self) -> str:
        if not self.path.exists():
            return ""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Credential file unreadable, ignoring it", path=str(self.path), error=str(e))
            return ""
        token = data.get("token") if isinstance(data, dict) else None
        return token.strip() if isinstance(token, str) else ""

    def get(self) -> str:
        return self._token

    def set(self, token: str) -> None:
        token = token.strip()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"token": token}), encoding="utf-8")
        try:
            os.chmod(self.path, 0o600)
        except OSError as e:
            logger.debug("Could not restrict credential file permissions", path=str(self.path), error=str(e))
        self._token = token
        logger.info("Credential stored", path=str(self.path))

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
        self._token = ""
        logger.info("Credential cleared", path=str(self.path))
