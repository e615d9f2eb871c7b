"""Async, failure-tolerant facade over a mirror repository.

Mirroring is a durability feature, not a requirement for displaying the
inbox. Every repository error is logged here and turned into a neutral
result, so callers never see a mirror exception.
"""

from __future__ import annotations

import asyncio

import structlog

from inbox_mirror.config import Settings
from inbox_mirror.mirror.mapping import message_to_record
from inbox_mirror.mirror.repository import MirrorRepository, SqliteMirrorRepository
from inbox_mirror.mirror.supabase import SupabaseMirrorRepository
from inbox_mirror.models import Message, MirroredMessage

logger = structlog.get_logger()


class PersistenceMirror:
    """Best-effort access to the persisted message mirror."""

    def __init__(self, repository: MirrorRepository) -> None:
        self.repository = repository

    async def mirror_message(self, message: Message, account_email: str) -> bool:
        """Insert ``message`` if absent, then fill in its body if it carries one.

        Returns:
            True if anything was written.
        """

        record = message_to_record(message, account_email)
        try:
            inserted = await asyncio.to_thread(self.repository.insert_if_absent, record)
            attached = False
            if not inserted and message.has_body:
                attached = await asyncio.to_thread(
                    self.repository.attach_body, message.id, message.text, message.html
                )
        except Exception as exc:  # noqa: BLE001
            logger.warning("mirror_write_failed", message_id=message.id, error=str(exc))
            return False

        if inserted or attached:
            logger.debug(
                "message_mirrored", message_id=message.id, inserted=inserted, body=attached
            )
        return inserted or attached

    async def list_for_account(
        self, account_email: str, include_deleted: bool = False
    ) -> list[MirroredMessage]:
        try:
            return await asyncio.to_thread(
                self.repository.list_for_account, account_email, include_deleted
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("mirror_query_failed", account_email=account_email, error=str(exc))
            return []

    async def find(self, message_id: str, account_email: str | None = None) -> MirroredMessage | None:
        try:
            return await asyncio.to_thread(self.repository.get, message_id, account_email)
        except Exception as exc:  # noqa: BLE001
            logger.warning("mirror_lookup_failed", message_id=message_id, error=str(exc))
            return None

    async def mark_seen(self, message_id: str) -> bool:
        return await self._set_flag(message_id, "seen", True)

    async def mark_deleted(self, message_id: str) -> bool:
        return await self._set_flag(message_id, "is_deleted", True)

    async def _set_flag(self, message_id: str, field: str, value: bool) -> bool:
        try:
            return await asyncio.to_thread(self.repository.set_flag, message_id, field, value)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "mirror_flag_update_failed", message_id=message_id, field=field, error=str(exc)
            )
            return False


def build_repository(settings: Settings) -> MirrorRepository:
    """Create and initialize the repository selected by ``mirror_backend``."""

    repository: MirrorRepository
    if settings.mirror_backend == "supabase":
        repository = SupabaseMirrorRepository(
            settings.supabase_url,
            settings.supabase_key,
            table=settings.supabase_table,
        )
    else:
        repository = SqliteMirrorRepository(settings.mirror_db_path)

    repository.initialize()
    return repository
