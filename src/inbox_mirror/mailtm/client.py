"""mail.tm API client implementation.

This module provides a client for the mail.tm REST API (and API-compatible
providers such as mail.gw).

Notes:
    ``requests`` is synchronous. Calls are wrapped using `asyncio.to_thread`
    so the rest of the codebase can remain async-friendly. Every request goes
    through a bounded retry with exponential backoff; the client does not
    tell retryable and non-retryable statuses apart.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import requests
import structlog

from inbox_mirror.config import Settings
from inbox_mirror.exceptions import AuthenticationError, ProviderAPIError, TokenExpiredError
from inbox_mirror.models import Account, Domain, Message, MessagePage, ProviderAccount
from inbox_mirror.session import SessionState
from inbox_mirror.utils import retry_async

logger = structlog.get_logger()

JSON_CONTENT_TYPE = "application/json"
MERGE_PATCH_CONTENT_TYPE = "application/merge-patch+json"


class MailTmClient:
    """mail.tm API client for account and message operations.

    The bearer token is read from the session on every call, so switching
    the active account takes effect immediately.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        session: SessionState | None = None,
        http: requests.Session | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Application settings. If None, uses default settings.
            session: Session state holding the active token. If None, an
                in-memory session is created.
            http: HTTP session to send requests with.
            sleep: Sleep used between retries (injectable for tests).
        """
        from inbox_mirror.config import get_settings

        self.settings = settings or get_settings()
        self.session = session or SessionState()
        self._http = http or requests.Session()
        self._sleep = sleep
        self._base_url = self.settings.mail_tm_api_url.rstrip("/")
        logger.info("mail_tm_client_initialized", base_url=self._base_url)

    # -- provider operations -------------------------------------------------

    async def list_domains(self) -> list[Domain]:
        """List domains that accept new accounts."""

        data = await self._request("GET", "/domains", auth=False)
        return [Domain.model_validate(d) for d in data.get("hydra:member", [])]

    async def create_account(self, address: str, password: str) -> ProviderAccount:
        """Create a new mailbox."""

        logger.info("creating_account", address=address)
        data = await self._request(
            "POST",
            "/accounts",
            auth=False,
            json={"address": address, "password": password},
        )
        return ProviderAccount.model_validate(data)

    async def get_token(self, address: str, password: str) -> str:
        """Exchange credentials for a bearer token."""

        data = await self._request(
            "POST",
            "/token",
            auth=False,
            json={"address": address, "password": password},
        )
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise ProviderAPIError("Token response did not contain a token")
        return token

    async def get_me(self, token: str | None = None) -> ProviderAccount:
        """Return the account the token belongs to."""

        data = await self._request("GET", "/me", token=token)
        return ProviderAccount.model_validate(data)

    async def list_messages(self, page: int = 1, items_per_page: int | None = None) -> MessagePage:
        """Fetch one page of message summaries.

        Raises:
            AuthenticationError: If no token is active.
            ProviderAPIError: If the request fails after all retries.
        """

        per_page = items_per_page or self.settings.items_per_page
        logger.info("listing_messages", page=page, items_per_page=per_page)
        data = await self._request(
            "GET",
            "/messages",
            params={"page": page, "itemsPerPage": per_page},
        )
        messages = [Message.model_validate(m) for m in data.get("hydra:member", [])]
        total = data.get("hydra:totalItems", len(messages))
        return MessagePage(messages=messages, total=int(total))

    async def get_message(self, message_id: str) -> Message:
        """Fetch a single message including its text and HTML bodies."""

        logger.info("getting_message", message_id=message_id)
        data = await self._request("GET", f"/messages/{message_id}")
        if isinstance(data.get("html"), list):
            # mail.tm returns html as a list of parts.
            data = {**data, "html": "".join(str(part) for part in data["html"])}
        return Message.model_validate(data)

    async def mark_seen(self, message_id: str) -> None:
        await self._request(
            "PATCH",
            f"/messages/{message_id}",
            json={"seen": True},
            content_type=MERGE_PATCH_CONTENT_TYPE,
        )

    async def delete_message(self, message_id: str) -> None:
        await self._request("DELETE", f"/messages/{message_id}")

    async def delete_account(self, account_id: str) -> None:
        logger.info("deleting_account", account_id=account_id)
        await self._request("DELETE", f"/accounts/{account_id}")

    # -- composite flows ----------------------------------------------------

    async def login(self, address: str, password: str) -> Account:
        """Obtain a token, resolve the identity and make it the active session.

        The account is also added to the session's account list.
        """

        token = await self.get_token(address, password)
        me = await self.get_me(token=token)
        account = Account(id=me.id, address=me.address, token=token)
        self.session.add_account(account)
        logger.info("login_completed", address=account.address)
        return account

    async def register(self, username: str, password: str, domain: str | None = None) -> Account:
        """Create an account and log into it.

        Args:
            username: Local part of the new address.
            password: Account password.
            domain: Domain to register under. Defaults to the first active
                domain the provider lists.

        Raises:
            ProviderAPIError: If no domain is available or a call fails.
        """

        if domain is None:
            domains = [d for d in await self.list_domains() if d.is_active]
            if not domains:
                raise ProviderAPIError("No domain available for registration")
            domain = domains[0].domain

        address = f"{username}@{domain}"
        await self.create_account(address, password)
        return await self.login(address, password)

    # -- transport ----------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        auth: bool = True,
        token: str | None = None,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        content_type: str = JSON_CONTENT_TYPE,
    ) -> Any:
        headers = {"Accept": "application/ld+json", "Content-Type": content_type}
        if auth:
            bearer = token or self.session.token
            if bearer is None:
                raise AuthenticationError("No active mail.tm token. Log in first.")
            headers["Authorization"] = f"Bearer {bearer}"

        async def attempt() -> Any:
            return await asyncio.to_thread(
                self._request_sync, method, path, headers, json, params
            )

        try:
            return await retry_async(
                attempt,
                max_attempts=self.settings.max_attempts,
                delay=self.settings.retry_base_delay,
                name=f"{method} {path}",
                sleep=self._sleep,
            )
        except ProviderAPIError as exc:
            if exc.status_code == 401 and auth:
                raise TokenExpiredError(str(exc)) from exc
            raise

    def _request_sync(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        json: dict[str, Any] | None,
        params: dict[str, Any] | None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = self._http.request(
                method,
                url,
                headers=headers,
                json=json,
                params=params,
                timeout=self.settings.request_timeout,
            )
        except requests.RequestException as exc:
            raise ProviderAPIError(f"{method} {path} failed: {exc}") from exc

        if not response.ok:
            raise ProviderAPIError(
                f"{method} {path} returned {response.status_code}: {_error_detail(response)}",
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderAPIError(
                f"{method} {path} returned a non-JSON body: {response.text[:200]}",
                status_code=response.status_code,
            ) from exc


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        for key in ("hydra:description", "detail", "message", "title"):
            if body.get(key):
                return str(body[key])
    return str(body)[:200]
