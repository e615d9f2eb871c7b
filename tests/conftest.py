"""Pytest configuration and shared fixtures."""

import pytest

from inbox_mirror.models import Account


@pytest.fixture
def test_settings(tmp_path):
    """Provide settings isolated from the environment and the home directory."""
    from inbox_mirror.config import Settings

    return Settings(
        mail_tm_api_url="https://api.mail.test",
        retry_base_delay=0.0,
        session_path=tmp_path / "session.json",
        mirror_db_path=tmp_path / "mirror.sqlite3",
        prefetch_concurrency=2,
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def session():
    """Provide an in-memory session with an active account."""
    from inbox_mirror.session import SessionState

    state = SessionState()
    state.add_account(Account(id="acc1", address="me@mail.test", token="tok-1"))
    return state


@pytest.fixture
def sqlite_repository(tmp_path):
    from inbox_mirror.mirror import SqliteMirrorRepository

    repo = SqliteMirrorRepository(tmp_path / "mirror.sqlite3")
    repo.initialize()
    return repo


@pytest.fixture
def sample_message_data() -> dict:
    """Provide a message as returned by GET /messages/{id}."""
    return {
        "@id": "/messages/msg-1",
        "@type": "Message",
        "id": "msg-1",
        "accountId": "/accounts/acc1",
        "msgid": "<abc@example.com>",
        "from": {"address": "billing@example.com", "name": "Billing"},
        "to": [{"address": "me@mail.test", "name": ""}],
        "subject": "Your invoice",
        "intro": "Invoice #42 is ready",
        "seen": False,
        "isDeleted": False,
        "hasAttachments": False,
        "size": 2048,
        "downloadUrl": "/messages/msg-1/download",
        "createdAt": "2025-01-01T12:00:00+00:00",
        "updatedAt": "2025-01-01T12:00:05+00:00",
        "text": "Invoice #42 is ready. Total: 10 EUR",
        "html": ["<p>Invoice <b>#42</b> is ready.</p>"],
    }
