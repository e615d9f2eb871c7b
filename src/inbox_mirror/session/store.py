"""Cookie stores backing the session state.

A cookie is a string value with a wall-clock expiry fixed at write time.
Stores only persist and return cookies; expiry is evaluated by the reader.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

logger = structlog.get_logger()


class Cookie(BaseModel):
    """A stored string value with a typed expiry."""

    value: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class CookieStore(Protocol):
    """Minimal key/value interface used by SessionState."""

    def get(self, name: str) -> Cookie | None: ...

    def set(self, name: str, cookie: Cookie) -> None: ...

    def delete(self, name: str) -> None: ...


class MemoryCookieStore:
    """Process-local cookie store."""

    def __init__(self) -> None:
        self._cookies: dict[str, Cookie] = {}

    def get(self, name: str) -> Cookie | None:
        return self._cookies.get(name)

    def set(self, name: str, cookie: Cookie) -> None:
        self._cookies[name] = cookie

    def delete(self, name: str) -> None:
        self._cookies.pop(name, None)


_COOKIE_MAP = TypeAdapter(dict[str, Cookie])


class FileCookieStore:
    """Cookie store persisted as a JSON document on disk.

    The whole file is rewritten on every change. An unreadable file is
    treated as empty so a corrupt session only forces a new login.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    def get(self, name: str) -> Cookie | None:
        return self._load().get(name)

    def set(self, name: str, cookie: Cookie) -> None:
        cookies = self._load()
        cookies[name] = cookie
        self._save(cookies)

    def delete(self, name: str) -> None:
        cookies = self._load()
        if cookies.pop(name, None) is not None:
            self._save(cookies)

    def _load(self) -> dict[str, Cookie]:
        if not self._path.exists():
            return {}
        try:
            return _COOKIE_MAP.validate_json(self._path.read_bytes())
        except (OSError, ValidationError) as exc:
            logger.warning("session_file_unreadable", path=str(self._path), error=str(exc))
            return {}

    def _save(self, cookies: dict[str, Cookie]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {name: cookie.model_dump(mode="json") for name, cookie in cookies.items()}
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
