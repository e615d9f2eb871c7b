"""Supabase backed mirror of provider messages.

Uses the Supabase client SDK against a hosted ``emails`` table with the same
layout as the SQLite mirror; ``to_addresses`` is a JSON column.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from postgrest.exceptions import APIError
from supabase import Client, create_client

from inbox_mirror.exceptions import ConfigurationError, MirrorStoreError
from inbox_mirror.mirror.repository import check_flag
from inbox_mirror.models import MirroredMessage

logger = structlog.get_logger()

# Postgres unique_violation
_UNIQUE_VIOLATION = "23505"


class SupabaseMirrorRepository:
    """Repository storing mirrored messages in a hosted Supabase table."""

    def __init__(
        self,
        url: str | None,
        key: str | None,
        table: str = "emails",
        client: Client | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            url: Supabase project URL.
            key: Supabase anon or service key.
            table: Name of the mirror table.
            client: Preconfigured Supabase client. If None, one is created
                from ``url`` and ``key``.
        """
        if client is None:
            if not url or not key:
                raise ConfigurationError(
                    "The supabase mirror backend needs INBOX_MIRROR_SUPABASE_URL "
                    "and INBOX_MIRROR_SUPABASE_KEY."
                )
            try:
                client = create_client(url, key)
            except Exception as exc:
                raise ConfigurationError(f"Invalid Supabase configuration: {exc}") from exc

        self._client = client
        self._table = table

    def initialize(self) -> None:
        # The hosted schema is managed by migrations on the Supabase side.
        logger.info("mirror_supabase_ready", table=self._table)

    def insert_if_absent(self, record: MirroredMessage) -> bool:
        if self._select_one({"message_id": record.message_id}) is not None:
            return False

        try:
            self._execute(self._query().insert(record.model_dump(mode="json")), "insert")
        except MirrorStoreError as exc:
            # Inserted concurrently by another client; the existing row wins.
            if isinstance(exc.__cause__, APIError) and exc.__cause__.code == _UNIQUE_VIOLATION:
                return False
            raise
        return True

    def attach_body(self, message_id: str, text: str | None, html: str | None) -> bool:
        if text is None and html is None:
            return False

        rows = self._execute(
            self._query()
            .update({"text_content": text, "html_content": html})
            .eq("message_id", message_id)
            .is_("text_content", "null")
            .is_("html_content", "null"),
            "update",
        )
        return bool(rows)

    def list_for_account(
        self, account_email: str, include_deleted: bool = False
    ) -> list[MirroredMessage]:
        query = self._query().select("*").eq("account_email", account_email)
        if not include_deleted:
            query = query.is_("is_deleted", "false")
        query = query.order("created_at", desc=True).order("message_id")

        rows = self._execute(query, "select")
        return [MirroredMessage.model_validate(row) for row in rows]

    def get(self, message_id: str, account_email: str | None = None) -> MirroredMessage | None:
        filters = {"message_id": message_id}
        if account_email is not None:
            filters["account_email"] = account_email
        row = self._select_one(filters)
        return MirroredMessage.model_validate(row) if row is not None else None

    def set_flag(self, message_id: str, field: str, value: bool) -> bool:
        check_flag(field)
        rows = self._execute(
            self._query().update({field: value}).eq("message_id", message_id), "update"
        )
        return bool(rows)

    def _query(self) -> Any:
        return self._client.table(self._table)

    def _select_one(self, filters: dict[str, str]) -> dict[str, Any] | None:
        query = self._query().select("*")
        for column, value in filters.items():
            query = query.eq(column, value)
        rows = self._execute(query.limit(1), "select")
        return rows[0] if rows else None

    def _execute(self, query: Any, operation: str) -> list[dict[str, Any]]:
        try:
            response = query.execute()
        except APIError as exc:
            raise MirrorStoreError(f"Supabase {operation} failed: {exc.message}") from exc
        except httpx.HTTPError as exc:
            raise MirrorStoreError(f"Supabase {operation} failed: {exc}") from exc
        return response.data or []
