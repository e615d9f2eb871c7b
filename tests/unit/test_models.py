"""Unit tests for data models."""

from datetime import datetime, timezone

from inbox_mirror.models import Domain, Message, MessageBody, StoredAccount


class TestMessage:
    """Test suite for the provider Message model."""

    def test_message_from_provider_json(self, sample_message_data) -> None:
        """Provider camelCase names map onto snake_case attributes."""
        data = {**sample_message_data, "html": "<p>Invoice</p>"}
        message = Message.model_validate(data)

        assert message.id == "msg-1"
        assert message.sender.address == "billing@example.com"
        assert message.sender.name == "Billing"
        assert message.recipients[0].address == "me@mail.test"
        assert message.has_attachments is False
        assert message.created_at == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert message.has_body is True

    def test_summary_has_no_body(self, sample_message_data) -> None:
        data = {k: v for k, v in sample_message_data.items() if k not in ("text", "html")}
        message = Message.model_validate(data)

        assert message.text is None
        assert message.html is None
        assert message.has_body is False

    def test_dump_by_alias_uses_provider_names(self, sample_message_data) -> None:
        data = {**sample_message_data, "html": None}
        dumped = Message.model_validate(data).model_dump(mode="json", by_alias=True)

        assert dumped["from"]["address"] == "billing@example.com"
        assert "createdAt" in dumped
        assert "isDeleted" in dumped


class TestSmallModels:
    """Test suite for the remaining models."""

    def test_domain_aliases(self) -> None:
        domain = Domain.model_validate(
            {"id": "d1", "domain": "mail.test", "isActive": True, "isPrivate": False}
        )

        assert domain.domain == "mail.test"
        assert domain.is_active is True

    def test_message_body_defaults(self) -> None:
        body = MessageBody()

        assert body.text == ""
        assert body.html == ""

    def test_stored_account_roundtrip(self) -> None:
        entry = StoredAccount(email="me@mail.test", token="t", label="me")

        assert StoredAccount.model_validate(entry.model_dump()) == entry
