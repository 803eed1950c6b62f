from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from appauth.constants import LOGGER
from appauth.models import Session

DEFAULT_SESSION_PATH = ".appauth/auth_state.json"


class SessionStore(ABC):
    @abstractmethod
    async def load(self) -> Session | None:
        raise NotImplementedError

    @abstractmethod
    async def save(self, session: Session) -> None:
        raise NotImplementedError

    @abstractmethod
    async def clear(self) -> None:
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._record: dict | None = None

    async def load(self) -> Session | None:
        if self._record is None:
            return None
        return Session.from_dict(self._record)

    async def save(self, session: Session) -> None:
        self._record = session.to_dict()

    async def clear(self) -> None:
        self._record = None


class FileSessionStore(SessionStore):
    """Keeps the session as a single JSON record on disk.

    Writes go through a temporary file that replaces the record atomically, so
    a crash mid-write leaves either the old record or the new one. A record
    that cannot be decoded is discarded and reported as no session.
    """

    def __init__(self, path: str | Path = DEFAULT_SESSION_PATH) -> None:
        self._path = Path(path)

    async def load(self) -> Session | None:
        if not self._path.exists():
            return None

        try:
            raw = self._path.read_text(encoding="utf-8")
            if not raw.strip():
                return None
            return Session.from_dict(json.loads(raw))
        except (ValueError, TypeError, RecursionError) as error:
            LOGGER.warning("Discarding unreadable session record %s: %s", self._path, error)
            self._remove()
            return None

    async def save(self, session: Session) -> None:
        self._write(session.to_dict())

    async def clear(self) -> None:
        self._remove()

    def _remove(self) -> None:
        self._path.unlink(missing_ok=True)

    def _write(self, payload: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f"{self._path.name}.",
            suffix=".tmp",
            dir=self._path.parent,
        )
        tmp_path = Path(tmp_name)

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
