"""Mirror-side message record.

Matches one row of the ``emails`` table. Rows are keyed by ``message_id`` and
scoped by ``account_email``; body columns stay NULL until the message has been
opened once.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class MirroredMessage(BaseModel):
    """A persisted copy of a provider message."""

    message_id: str = Field(description="Provider message ID")
    account_email: str = Field(description="Address of the owning mailbox")

    from_address: str = Field(default="", description="Sender address")
    from_name: str | None = Field(default=None, description="Sender display name")

    # Stored as a JSON list of {"address": ..., "name": ...} objects.
    to_addresses: list[dict[str, str | None]] = Field(default_factory=list)

    subject: str = Field(default="")
    intro: str | None = Field(default=None)

    text_content: str | None = Field(default=None, description="Plain-text body")
    html_content: str | None = Field(default=None, description="HTML body")

    seen: bool = Field(default=False)
    is_deleted: bool = Field(default=False)
    has_attachments: bool = Field(default=False)
    size: int | None = Field(default=None)

    created_at: datetime
    updated_at: datetime
