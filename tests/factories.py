"""Message factories and in-memory test doubles shared by the unit tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from inbox_mirror.exceptions import MirrorStoreError, ProviderAPIError
from inbox_mirror.models import EmailAddress, Message, MessagePage


def make_message(
    message_id: str,
    minutes: int = 0,
    subject: str = "Hello",
    text: str | None = None,
    html: str | None = None,
    **kwargs,
) -> Message:
    """Build a message received ``minutes`` after a fixed base time."""

    created = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc) + timedelta(minutes=minutes)
    return Message(
        id=message_id,
        sender=kwargs.pop("sender", EmailAddress(address="sender@example.com", name="Sender")),
        recipients=kwargs.pop("recipients", [EmailAddress(address="me@mail.test")]),
        subject=subject,
        intro=kwargs.pop("intro", f"Intro of {subject}"),
        created_at=created,
        updated_at=created,
        text=text,
        html=html,
        **kwargs,
    )


class FakeProvider:
    """In-memory stand-in for MailTmClient."""

    def __init__(self, messages: list[Message] | None = None) -> None:
        self.messages: dict[str, Message] = {m.id: m for m in messages or []}
        self.fail_listing = False
        self.fail_get = False
        self.fail_writes = False
        self.list_calls = 0
        self.get_calls: list[str] = []
        self.seen_calls: list[str] = []
        self.deleted: list[str] = []

    async def list_messages(self, page: int = 1, items_per_page: int | None = None) -> MessagePage:
        self.list_calls += 1
        if self.fail_listing:
            raise ProviderAPIError("listing failed", status_code=503)
        summaries = [m.model_copy(update={"text": None, "html": None}) for m in self.messages.values()]
        return MessagePage(messages=summaries, total=len(summaries))

    async def get_message(self, message_id: str) -> Message:
        self.get_calls.append(message_id)
        if self.fail_get or message_id not in self.messages:
            raise ProviderAPIError("not found", status_code=404)
        return self.messages[message_id]

    async def mark_seen(self, message_id: str) -> None:
        self.seen_calls.append(message_id)
        if self.fail_writes:
            raise ProviderAPIError("patch failed", status_code=500)

    async def delete_message(self, message_id: str) -> None:
        if self.fail_writes:
            raise ProviderAPIError("delete failed", status_code=404)
        self.deleted.append(message_id)
        self.messages.pop(message_id, None)


class BrokenRepository:
    """Mirror repository whose every call fails."""

    def initialize(self) -> None:
        pass

    def insert_if_absent(self, record):
        raise MirrorStoreError("database unavailable")

    def attach_body(self, message_id, text, html):
        raise MirrorStoreError("database unavailable")

    def list_for_account(self, account_email, include_deleted=False):
        raise MirrorStoreError("database unavailable")

    def get(self, message_id, account_email=None):
        raise MirrorStoreError("database unavailable")

    def set_flag(self, message_id, field, value):
        raise MirrorStoreError("database unavailable")

