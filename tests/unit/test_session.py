"""Unit tests for session state and cookie stores."""

from datetime import datetime, timedelta, timezone

import pytest

from inbox_mirror.exceptions import AuthenticationError
from inbox_mirror.models import Account
from inbox_mirror.session import FileCookieStore, MemoryCookieStore, SessionState


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestSessionState:
    """Test suite for SessionState."""

    def test_empty_session_is_unauthenticated(self) -> None:
        state = SessionState()

        assert state.token is None
        assert state.is_authenticated is False
        assert state.active_account() is None
        assert state.accounts() == []

    def test_add_account_activates_and_remembers(self) -> None:
        state = SessionState()
        entry = state.add_account(Account(id="a1", address="alice@mail.test", token="t1"))

        assert entry.label == "alice"
        assert state.token == "t1"
        assert state.active_account() == Account(id="a1", address="alice@mail.test", token="t1")
        assert [a.email for a in state.accounts()] == ["alice@mail.test"]

    def test_add_account_replaces_same_address(self) -> None:
        state = SessionState()
        state.add_account(Account(address="alice@mail.test", token="old"))
        state.add_account(Account(address="alice@mail.test", token="new"))

        accounts = state.accounts()
        assert len(accounts) == 1
        assert accounts[0].token == "new"

    def test_switch_account_replaces_active_identity(self) -> None:
        state = SessionState()
        state.add_account(Account(address="alice@mail.test", token="t1"))
        state.add_account(Account(address="bob@mail.test", token="t2"))

        account = state.switch_account("alice@mail.test")

        assert account.token == "t1"
        assert state.token == "t1"
        assert state.active_account().address == "alice@mail.test"

    def test_switch_to_unknown_account_raises(self) -> None:
        with pytest.raises(AuthenticationError):
            SessionState().switch_account("nobody@mail.test")

    def test_cookies_expire_after_ttl(self, clock: FakeClock) -> None:
        state = SessionState(ttl=timedelta(hours=24), clock=clock)
        state.add_account(Account(address="alice@mail.test", token="t1"))

        clock.advance(hours=23, minutes=59)
        assert state.is_authenticated is True

        clock.advance(minutes=1)
        assert state.is_authenticated is False
        assert state.active_account() is None
        assert state.accounts() == []

    def test_remove_active_account_clears_identity(self) -> None:
        state = SessionState()
        state.add_account(Account(address="alice@mail.test", token="t1"))
        state.add_account(Account(address="bob@mail.test", token="t2"))

        state.remove_account("bob@mail.test")

        assert state.active_account() is None
        assert [a.email for a in state.accounts()] == ["alice@mail.test"]

    def test_clear_active_keeps_account_list(self) -> None:
        state = SessionState()
        state.add_account(Account(address="alice@mail.test", token="t1"))

        state.clear_active()

        assert state.token is None
        assert len(state.accounts()) == 1

        state.clear()
        assert state.accounts() == []


class TestCookieStores:
    """Test suite for cookie store implementations."""

    def test_file_store_persists_between_instances(self, tmp_path) -> None:
        path = tmp_path / "nested" / "session.json"
        SessionState(FileCookieStore(path)).add_account(
            Account(id="a1", address="alice@mail.test", token="t1")
        )

        reloaded = SessionState(FileCookieStore(path))

        assert reloaded.token == "t1"
        assert reloaded.active_account().id == "a1"

    def test_corrupt_file_reads_as_empty(self, tmp_path) -> None:
        path = tmp_path / "session.json"
        path.write_text("{not json", encoding="utf-8")

        assert SessionState(FileCookieStore(path)).token is None

    def test_memory_store_delete_missing_is_noop(self) -> None:
        store = MemoryCookieStore()
        store.delete("missing")

        assert store.get("missing") is None
