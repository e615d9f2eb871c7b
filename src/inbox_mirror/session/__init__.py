"""Client-local session state (active account, account list, expiry)."""

from .state import SessionState
from .store import Cookie, CookieStore, FileCookieStore, MemoryCookieStore

__all__ = ["Cookie", "CookieStore", "FileCookieStore", "MemoryCookieStore", "SessionState"]
