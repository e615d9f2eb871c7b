"""Helpers for converting between provider messages and mirror records."""

from __future__ import annotations

from datetime import datetime, timezone

from inbox_mirror.models import EmailAddress, Message, MirroredMessage


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def message_to_record(message: Message, account_email: str) -> MirroredMessage:
    """Convert a provider message to a mirror record.

    Body columns are only set when the message carries a body, so a record
    built from a listing summary leaves them empty.
    """

    created_at = ensure_utc(message.created_at)
    updated_at = ensure_utc(message.updated_at) if message.updated_at else created_at

    return MirroredMessage(
        message_id=message.id,
        account_email=account_email,
        from_address=message.sender.address,
        from_name=message.sender.name,
        to_addresses=[{"address": r.address, "name": r.name} for r in message.recipients],
        subject=message.subject,
        intro=message.intro,
        text_content=message.text,
        html_content=message.html,
        seen=message.seen,
        is_deleted=message.is_deleted,
        has_attachments=message.has_attachments,
        size=message.size,
        created_at=created_at,
        updated_at=updated_at,
    )


def record_to_message(record: MirroredMessage) -> Message:
    """Rebuild the provider-shaped message from a mirror record."""

    recipients = [
        EmailAddress(address=str(r.get("address") or ""), name=r.get("name"))
        for r in record.to_addresses
        if r.get("address")
    ]

    return Message(
        id=record.message_id,
        sender=EmailAddress(address=record.from_address, name=record.from_name),
        recipients=recipients,
        subject=record.subject,
        intro=record.intro or "",
        seen=record.seen,
        is_deleted=record.is_deleted,
        has_attachments=record.has_attachments,
        size=record.size or 0,
        created_at=ensure_utc(record.created_at),
        updated_at=ensure_utc(record.updated_at),
        text=record.text_content,
        html=record.html_content,
    )
