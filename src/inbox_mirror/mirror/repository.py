"""SQLite-backed mirror of provider messages.

Rows are inserted once and their content is never rewritten. The only
mutations are the one-time body fill-in and the ``seen``/``is_deleted`` flags.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Protocol

import structlog

from inbox_mirror.exceptions import MirrorStoreError
from inbox_mirror.models import MirroredMessage

logger = structlog.get_logger()


_SCHEMA_VERSION = 1

MUTABLE_FLAGS = frozenset({"seen", "is_deleted"})


class MirrorRepository(Protocol):
    """Storage contract shared by every mirror backend."""

    def initialize(self) -> None: ...

    def insert_if_absent(self, record: MirroredMessage) -> bool: ...

    def attach_body(self, message_id: str, text: str | None, html: str | None) -> bool: ...

    def list_for_account(
        self, account_email: str, include_deleted: bool = False
    ) -> list[MirroredMessage]: ...

    def get(self, message_id: str, account_email: str | None = None) -> MirroredMessage | None: ...

    def set_flag(self, message_id: str, field: str, value: bool) -> bool: ...


def check_flag(field: str) -> None:
    if field not in MUTABLE_FLAGS:
        raise ValueError(f"Only {sorted(MUTABLE_FLAGS)} can be updated, got {field!r}")


class SqliteMirrorRepository:
    """Repository storing mirrored messages in a local SQLite file."""

    def __init__(self, db_path: Path) -> None:
        """Create a repository.

        Args:
            db_path: Path to the SQLite database file.
        """

        self._db_path = db_path

    def initialize(self) -> None:
        """Create or verify the mirror schema."""

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS _schema_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )

            current_version = self._get_schema_version(conn)
            if current_version is None:
                self._create_schema_v1(conn)
                self._set_schema_version(conn, _SCHEMA_VERSION)
                conn.commit()
                logger.info("mirror_schema_created", version=_SCHEMA_VERSION)
                return

            if current_version != _SCHEMA_VERSION:
                raise MirrorStoreError(
                    f"Unsupported schema version {current_version}; expected {_SCHEMA_VERSION}"
                )

    def insert_if_absent(self, record: MirroredMessage) -> bool:
        """Insert ``record`` unless a row with its message_id exists.

        Returns:
            True if a row was inserted.
        """

        with self._connect() as conn:
            exists = conn.execute(
                "SELECT 1 FROM emails WHERE message_id = ?", (record.message_id,)
            ).fetchone()
            if exists is not None:
                return False

            conn.execute(
                """
                INSERT INTO emails (
                    message_id,
                    account_email,
                    from_address,
                    from_name,
                    to_addresses,
                    subject,
                    intro,
                    text_content,
                    html_content,
                    seen,
                    is_deleted,
                    has_attachments,
                    size,
                    created_at,
                    updated_at
                )
                VALUES (
                    :message_id,
                    :account_email,
                    :from_address,
                    :from_name,
                    :to_addresses,
                    :subject,
                    :intro,
                    :text_content,
                    :html_content,
                    :seen,
                    :is_deleted,
                    :has_attachments,
                    :size,
                    :created_at,
                    :updated_at
                )
                """,
                {
                    "message_id": record.message_id,
                    "account_email": record.account_email,
                    "from_address": record.from_address,
                    "from_name": record.from_name,
                    "to_addresses": json.dumps(record.to_addresses),
                    "subject": record.subject,
                    "intro": record.intro,
                    "text_content": record.text_content,
                    "html_content": record.html_content,
                    "seen": 1 if record.seen else 0,
                    "is_deleted": 1 if record.is_deleted else 0,
                    "has_attachments": 1 if record.has_attachments else 0,
                    "size": record.size,
                    "created_at": record.created_at.isoformat(),
                    "updated_at": record.updated_at.isoformat(),
                },
            )
            conn.commit()
        return True

    def attach_body(self, message_id: str, text: str | None, html: str | None) -> bool:
        """Fill in the body of a row that has none yet.

        Returns:
            True if the row was updated; False if it already had a body or
            does not exist.
        """

        if text is None and html is None:
            return False

        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE emails
                SET text_content = ?, html_content = ?
                WHERE message_id = ?
                  AND text_content IS NULL
                  AND html_content IS NULL
                """,
                (text, html, message_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def list_for_account(
        self, account_email: str, include_deleted: bool = False
    ) -> list[MirroredMessage]:
        """Return all rows of one account, most recent first."""

        sql = "SELECT * FROM emails WHERE account_email = ?"
        if not include_deleted:
            sql += " AND is_deleted = 0"
        sql += " ORDER BY created_at DESC, message_id ASC"

        with self._connect() as conn:
            rows = conn.execute(sql, (account_email,)).fetchall()

        return [self._row_to_record(row) for row in rows]

    def get(self, message_id: str, account_email: str | None = None) -> MirroredMessage | None:
        sql = "SELECT * FROM emails WHERE message_id = ?"
        params: tuple[str, ...] = (message_id,)
        if account_email is not None:
            sql += " AND account_email = ?"
            params = (message_id, account_email)

        with self._connect() as conn:
            row = conn.execute(sql, params).fetchone()

        return self._row_to_record(row) if row is not None else None

    def set_flag(self, message_id: str, field: str, value: bool) -> bool:
        """Update the ``seen`` or ``is_deleted`` flag of one row."""

        check_flag(field)
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE emails SET {field} = ? WHERE message_id = ?",
                (1 if value else 0, message_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise MirrorStoreError(str(exc)) from exc
        try:
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as exc:
            raise MirrorStoreError(str(exc)) from exc
        finally:
            conn.close()

    def _get_schema_version(self, conn: sqlite3.Connection) -> int | None:
        row = conn.execute(
            "SELECT value FROM _schema_meta WHERE key = 'schema_version'"
        ).fetchone()
        if row is None:
            return None
        return int(row[0])

    def _set_schema_version(self, conn: sqlite3.Connection, version: int) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO _schema_meta(key, value) VALUES('schema_version', ?)",
            (str(version),),
        )

    def _create_schema_v1(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS emails (
                message_id TEXT PRIMARY KEY,
                account_email TEXT NOT NULL,
                from_address TEXT NOT NULL,
                from_name TEXT,
                to_addresses TEXT NOT NULL,
                subject TEXT NOT NULL,
                intro TEXT,
                text_content TEXT,
                html_content TEXT,
                seen INTEGER NOT NULL DEFAULT 0,
                is_deleted INTEGER NOT NULL DEFAULT 0,
                has_attachments INTEGER NOT NULL DEFAULT 0,
                size INTEGER,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_emails_account_created
                ON emails(account_email, created_at);
            """
        )

    def _row_to_record(self, row: sqlite3.Row) -> MirroredMessage:
        return MirroredMessage(
            message_id=row["message_id"],
            account_email=row["account_email"],
            from_address=row["from_address"],
            from_name=row["from_name"],
            to_addresses=json.loads(row["to_addresses"]),
            subject=row["subject"],
            intro=row["intro"],
            text_content=row["text_content"],
            html_content=row["html_content"],
            seen=bool(row["seen"]),
            is_deleted=bool(row["is_deleted"]),
            has_attachments=bool(row["has_attachments"]),
            size=row["size"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
