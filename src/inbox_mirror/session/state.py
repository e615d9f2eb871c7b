"""Session state: the active mailbox and the remembered account list.

Three cookies are kept, all with the same fixed lifetime from the moment they
are written:

- ``mail_tm_token``: bearer token of the active account;
- ``mail_tm_account``: ``{"id": ..., "email": ...}`` of the active account;
- ``mail_tm_accounts``: list of ``{"email", "token", "label"}`` entries.

There is no silent refresh. Once the cookies expire the user has to log in
again.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import structlog

from inbox_mirror.exceptions import AuthenticationError
from inbox_mirror.models import Account, StoredAccount
from inbox_mirror.session.store import Cookie, CookieStore, MemoryCookieStore

logger = structlog.get_logger()

TOKEN_COOKIE = "mail_tm_token"
ACCOUNT_COOKIE = "mail_tm_account"
ACCOUNTS_COOKIE = "mail_tm_accounts"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionState:
    """Holds and rotates the active account's identity and token."""

    def __init__(
        self,
        store: CookieStore | None = None,
        ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Create a session over a cookie store.

        Args:
            store: Cookie storage. Defaults to an in-memory store.
            ttl: Lifetime given to every cookie at write time.
            clock: Returns the current time (timezone-aware).
        """

        self._store = store or MemoryCookieStore()
        self._ttl = ttl
        self._clock = clock

    # -- reading -----------------------------------------------------------

    @property
    def token(self) -> str | None:
        """Bearer token of the active account, or None when absent/expired."""
        return self._read(TOKEN_COOKIE)

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def active_account(self) -> Account | None:
        """Return the active identity, or None if no complete identity is stored."""

        token = self.token
        raw = self._read(ACCOUNT_COOKIE)
        if token is None or raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("session_account_cookie_invalid")
            return None
        email = data.get("email") if isinstance(data, dict) else None
        if not email:
            return None
        return Account(id=data.get("id"), address=email, token=token)

    def accounts(self) -> list[StoredAccount]:
        raw = self._read(ACCOUNTS_COOKIE)
        if raw is None:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("session_accounts_cookie_invalid")
            return []
        return [StoredAccount.model_validate(item) for item in items if isinstance(item, dict)]

    # -- writing -----------------------------------------------------------

    def activate(self, account: Account) -> None:
        """Make ``account`` the active identity."""

        self._write(TOKEN_COOKIE, account.token)
        self._write(ACCOUNT_COOKIE, json.dumps({"id": account.id, "email": account.address}))
        logger.info("session_account_activated", email=account.address)

    def add_account(self, account: Account, label: str | None = None) -> StoredAccount:
        """Remember ``account`` in the account list and make it active.

        An existing entry for the same address is replaced.
        """

        entry = StoredAccount(
            email=account.address,
            token=account.token,
            label=label or account.address.split("@")[0],
        )
        remaining = [a for a in self.accounts() if a.email != entry.email]
        self._save_accounts([*remaining, entry])
        self.activate(account)
        return entry

    def switch_account(self, email: str) -> Account:
        """Activate a remembered account by address.

        Raises:
            AuthenticationError: If no remembered account has this address.
        """

        for entry in self.accounts():
            if entry.email == email:
                account = Account(address=entry.email, token=entry.token)
                self.activate(account)
                return account
        raise AuthenticationError(f"No stored account for {email}")

    def remove_account(self, email: str) -> None:
        """Forget an account; clears the active identity if it was the one removed."""

        accounts = self.accounts()
        self._save_accounts([a for a in accounts if a.email != email])
        active = self.active_account()
        if active is not None and active.address == email:
            self.clear_active()
        logger.info("session_account_removed", email=email)

    def clear_active(self) -> None:
        """Drop the active identity and token, keeping the account list."""
        self._store.delete(TOKEN_COOKIE)
        self._store.delete(ACCOUNT_COOKIE)

    def clear(self) -> None:
        """Drop everything, including the account list."""
        self.clear_active()
        self._store.delete(ACCOUNTS_COOKIE)

    # -- helpers -----------------------------------------------------------

    def _read(self, name: str) -> str | None:
        cookie = self._store.get(name)
        if cookie is None:
            return None
        if cookie.is_expired(self._clock()):
            logger.debug("session_cookie_expired", cookie=name)
            return None
        return cookie.value

    def _write(self, name: str, value: str) -> None:
        self._store.set(name, Cookie(value=value, expires_at=self._clock() + self._ttl))

    def _save_accounts(self, accounts: list[StoredAccount]) -> None:
        self._write(ACCOUNTS_COOKIE, json.dumps([a.model_dump() for a in accounts]))
