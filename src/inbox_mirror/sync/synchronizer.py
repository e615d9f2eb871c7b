"""Inbox synchronization and merge.

One refresh cycle:

1. fetch the current page from the provider (failure ends the cycle);
2. mirror every fetched message (best-effort);
3. without an active account, return the provider page unchanged;
4. otherwise load the account's mirror records and drop soft-deleted ids;
5. merge: provider messages first, then mirror-only records;
6. sort by ``created_at`` descending (stable);
7. report the merged size as the total.

Provider data wins for ids present in both stores. Mirror-only records are
messages the provider has purged and are kept visible.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import Protocol

import structlog

from inbox_mirror.config import Settings
from inbox_mirror.exceptions import (
    AuthenticationError,
    InboxMirrorError,
    MessageNotFoundError,
    TokenExpiredError,
)
from inbox_mirror.mirror import PersistenceMirror
from inbox_mirror.mirror.mapping import ensure_utc, record_to_message
from inbox_mirror.models import InboxView, Message, MessagePage
from inbox_mirror.search import BodyCache, filter_messages
from inbox_mirror.session import SessionState
from inbox_mirror.utils import SingleFlight

logger = structlog.get_logger()


class MessageProvider(Protocol):
    """The provider calls the synchronizer depends on."""

    async def list_messages(self, page: int = 1, items_per_page: int | None = None) -> MessagePage: ...

    async def get_message(self, message_id: str) -> Message: ...

    async def mark_seen(self, message_id: str) -> None: ...

    async def delete_message(self, message_id: str) -> None: ...


def merge_messages(provider: Iterable[Message], mirrored: Iterable[Message]) -> list[Message]:
    """Combine provider and mirror messages without duplicate ids.

    Provider entries come first and take precedence; a mirrored message is
    appended only if its id has not been seen yet.
    """

    merged: list[Message] = []
    seen_ids: set[str] = set()
    for message in (*provider, *mirrored):
        if message.id in seen_ids:
            continue
        seen_ids.add(message.id)
        merged.append(message)
    return merged


def sort_by_recency(messages: Iterable[Message]) -> list[Message]:
    """Sort newest first; equal timestamps keep their input order."""

    return sorted(messages, key=lambda m: ensure_utc(m.created_at), reverse=True)


class InboxSynchronizer:
    """Produces the unified inbox view for the active account.

    The synchronizer keeps the last successful view and a cache of fetched
    bodies for search. A failed refresh leaves the previous view in place.
    """

    def __init__(
        self,
        client: MessageProvider,
        mirror: PersistenceMirror,
        session: SessionState,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            client: Provider client.
            mirror: Best-effort persistence mirror.
            session: Session holding the active account.
            settings: Application settings. If None, uses default settings.
        """
        from inbox_mirror.config import get_settings

        self.settings = settings or get_settings()
        self.client = client
        self.mirror = mirror
        self.session = session
        self.bodies = BodyCache()
        self._view: InboxView | None = None
        self._provider_ids: set[str] | None = None
        self._refresh_flight: SingleFlight[InboxView] = SingleFlight()

    @property
    def view(self) -> InboxView | None:
        return self._view

    @property
    def messages(self) -> list[Message]:
        return list(self._view.messages) if self._view is not None else []

    async def refresh(self, page: int = 1) -> InboxView:
        """Run one synchronization cycle and return the merged view.

        Raises:
            AuthenticationError: If no token is active.
            TokenExpiredError: If the provider rejected the token; the active
                session is cleared so the user has to log in again.
            ProviderAPIError: If the provider listing failed after retries.
        """

        try:
            fetched = await self.client.list_messages(page=page)
        except TokenExpiredError:
            logger.warning("session_token_rejected")
            self.session.clear_active()
            raise

        self._provider_ids = {m.id for m in fetched.messages}
        account = self.session.active_account()
        if account is None:
            logger.info("mirror_skipped_no_account", fetched=len(fetched.messages))
            self._view = InboxView(messages=fetched.messages, total=fetched.total)
            return self._view

        for message in fetched.messages:
            await self.mirror.mirror_message(message, account.address)

        records = await self.mirror.list_for_account(account.address, include_deleted=True)
        deleted_ids = {r.message_id for r in records if r.is_deleted}
        mirrored = [record_to_message(r) for r in records if not r.is_deleted]
        for message in mirrored:
            if message.has_body and message.id not in self.bodies:
                self.bodies.remember(message)

        # A soft delete in the mirror hides the message even if the provider still lists it.
        provider_messages = [m for m in fetched.messages if m.id not in deleted_ids]
        merged = sort_by_recency(merge_messages(provider_messages, mirrored))
        self._view = InboxView(
            messages=merged,
            total=len(merged),
            account_email=account.address,
            mirrored=True,
        )
        logger.info(
            "inbox_refreshed",
            account_email=account.address,
            provider_count=len(provider_messages),
            mirror_count=len(mirrored),
            total=len(merged),
        )
        return self._view

    async def refresh_once(self) -> InboxView:
        """Refresh (and prefetch bodies if enabled), coalescing overlapping calls."""

        return await self._refresh_flight.run(self._refresh_and_prefetch)

    async def _refresh_and_prefetch(self) -> InboxView:
        view = await self.refresh()
        if self.settings.prefetch_bodies:
            await self.prefetch_bodies(view.messages)
        return view

    async def get_message(self, message_id: str) -> Message:
        """Fetch a full message, falling back to the mirror.

        Raises:
            MessageNotFoundError: If neither the provider nor the mirror has it.
        """

        account = self.session.active_account()
        try:
            message = await self.client.get_message(message_id)
        except InboxMirrorError as exc:
            logger.warning("provider_get_message_failed", message_id=message_id, error=str(exc))
            account_email = account.address if account is not None else None
            record = await self.mirror.find(message_id, account_email)
            if record is None:
                raise MessageNotFoundError(f"Message {message_id} not found") from exc
            message = record_to_message(record)
            logger.info("message_served_from_mirror", message_id=message_id)
        else:
            if account is not None:
                await self.mirror.mirror_message(message, account.address)

        if message.has_body:
            self.bodies.remember(message)
        return message

    async def mark_as_read(self, message_id: str) -> None:
        """Mark a message seen in both stores; failures are only logged."""

        try:
            await self.client.mark_seen(message_id)
        except InboxMirrorError as exc:
            logger.warning("provider_mark_seen_failed", message_id=message_id, error=str(exc))

        if not await self.mirror.mark_seen(message_id):
            logger.warning("partial_write_failure", operation="mark_as_read", message_id=message_id)

        if self._view is not None:
            self._view.messages = [
                m.model_copy(update={"seen": True}) if m.id == message_id else m
                for m in self._view.messages
            ]

    async def delete_message(self, message_id: str) -> None:
        """Hard-delete at the provider (best-effort) and soft-delete in the mirror."""

        try:
            await self.client.delete_message(message_id)
        except InboxMirrorError as exc:
            logger.warning("provider_delete_failed", message_id=message_id, error=str(exc))

        if not await self.mirror.mark_deleted(message_id):
            logger.warning("partial_write_failure", operation="delete", message_id=message_id)

        self.bodies.pop(message_id, None)
        if self._view is not None:
            self._view.messages = [m for m in self._view.messages if m.id != message_id]
            self._view.total = len(self._view.messages)

    async def prefetch_bodies(self, messages: Iterable[Message] | None = None) -> int:
        """Fetch missing bodies with bounded concurrency.

        Only messages on the last provider page are fetched. Mirror-only
        messages have been purged upstream and can't gain a body.

        Returns:
            Number of bodies added to the cache.
        """

        targets = [
            m
            for m in (self.messages if messages is None else messages)
            if m.id not in self.bodies
            and (self._provider_ids is None or m.id in self._provider_ids)
        ]
        if not targets:
            return 0

        semaphore = asyncio.Semaphore(max(1, self.settings.prefetch_concurrency))

        async def fetch_one(message: Message) -> bool:
            async with semaphore:
                try:
                    full = await self.get_message(message.id)
                except InboxMirrorError as exc:
                    logger.warning("prefetch_failed", message_id=message.id, error=str(exc))
                    return False
                return full.has_body

        results = await asyncio.gather(*(fetch_one(m) for m in targets))
        fetched = sum(1 for ok in results if ok)
        logger.info("bodies_prefetched", requested=len(targets), fetched=fetched)
        return fetched

    async def switch_account(self, email: str) -> InboxView:
        """Activate another remembered account and reload everything."""

        self.session.switch_account(email)
        self._view = None
        self.bodies.clear()
        self._provider_ids = None
        logger.info("account_switched", email=email)
        return await self.refresh_once()

    def search(self, query: str) -> list[Message]:
        return filter_messages(self.messages, query, self.bodies)

    async def auto_refresh(
        self,
        stop: asyncio.Event,
        on_refresh: Callable[[InboxView], None] | None = None,
        interval: float | None = None,
    ) -> None:
        """Refresh every ``interval`` seconds until ``stop`` is set.

        Failed cycles are logged and the loop continues. Authentication
        failures end the loop because they need a new login.
        """

        period = self.settings.refresh_interval if interval is None else interval
        logger.info("auto_refresh_started", interval=period)

        while not stop.is_set():
            try:
                view = await self.refresh_once()
            except AuthenticationError:
                logger.warning("auto_refresh_stopped_unauthenticated")
                raise
            except InboxMirrorError as exc:
                logger.warning("auto_refresh_failed", error=str(exc))
            else:
                if on_refresh is not None:
                    on_refresh(view)

            try:
                await asyncio.wait_for(stop.wait(), timeout=period)
            except asyncio.TimeoutError:
                pass

        logger.info("auto_refresh_stopped")
