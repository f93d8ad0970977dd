from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

import pytest

from taskboard.accounts import AccountService
from taskboard.auth import AuthGate
from taskboard.errors import Conflict, InvalidCredentials, NotFound, Unauthorized, ValidationError
from taskboard.models import SESSIONS, TASKS, USERS, Identity
from taskboard.profiles import ProfileService
from taskboard.repositories import InMemoryRecordStore
from taskboard.security import hash_password, token_digest, verify_password
from taskboard.tasks import TaskFilter, TaskService


class FakeClock:
    def __init__(self):
        self.now = datetime(2030, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


@pytest.fixture
def store():
    s = InMemoryRecordStore()
    s.open()
    yield s
    s.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gate(store, clock):
    return AuthGate(store, ttl_hours=24, clock=clock)


@pytest.fixture
def accounts(store, gate):
    return AccountService(store, gate, hash_iterations=1000)


@pytest.fixture
def tasks(store):
    return TaskService(store)


def register(accounts, email="a@b.com", name="Alice"):
    result = accounts.register({"name": name, "email": email, "password": "secret"})
    return Identity(user_id=result.user.id), result.token


def track_lock(monkeypatch, store):
    """Patch store.atomic so the returned list is non-empty while the lock is held."""
    held = []
    original = store.atomic

    @contextmanager
    def tracking():
        with original():
            held.append(True)
            try:
                yield
            finally:
                held.pop()

    monkeypatch.setattr(store, "atomic", tracking)
    return held


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("secret", iterations=1000)
        assert hashed.startswith("pbkdf2_sha256$1000$")
        assert verify_password("secret", hashed)
        assert not verify_password("Secret", hashed)

    def test_same_password_gets_distinct_salts(self):
        assert hash_password("secret", 1000) != hash_password("secret", 1000)

    def test_malformed_hash_never_verifies(self):
        assert not verify_password("secret", "garbage")


class TestAccountService:
    def test_register_stores_hash_not_password(self, accounts, store):
        identity, _ = register(accounts)
        stored = store.get(USERS, identity.user_id)
        assert stored["password_hash"] != "secret"
        assert verify_password("secret", stored["password_hash"])

    def test_register_conflict_on_normalized_email(self, accounts):
        register(accounts, email="a@b.com")
        with pytest.raises(Conflict):
            accounts.register({"name": "Other", "email": "  A@B.COM", "password": "secret"})

    def test_register_validation_from_plain_dict(self, accounts):
        with pytest.raises(ValidationError) as excinfo:
            accounts.register({"name": "A", "email": "a@b.com", "password": "secret"})
        assert excinfo.value.details
        assert excinfo.value.details[0]["loc"] == ["name"]

    def test_login_case_insensitive(self, accounts):
        register(accounts, email="a@b.com")
        result = accounts.login({"email": "A@B.com", "password": "secret"})
        assert result.user.email == "a@b.com"

    def test_login_failures_are_indistinguishable(self, accounts):
        register(accounts)
        with pytest.raises(InvalidCredentials) as wrong:
            accounts.login({"email": "a@b.com", "password": "wrong!"})
        with pytest.raises(InvalidCredentials) as unknown:
            accounts.login({"email": "x@y.com", "password": "secret"})
        assert wrong.value.message == unknown.value.message

    def test_unknown_email_still_verifies_a_password(self, accounts, monkeypatch):
        checked = []

        def recording_verify(password, stored):
            checked.append(stored)
            return verify_password(password, stored)

        monkeypatch.setattr("taskboard.accounts.verify_password", recording_verify)
        with pytest.raises(InvalidCredentials):
            accounts.login({"email": "nobody@example.com", "password": "secret"})
        assert checked == [accounts._dummy_hash]

    def test_password_hashing_runs_outside_the_store_lock(self, accounts, store, monkeypatch):
        held = track_lock(monkeypatch, store)
        calls = []

        def unlocked_hash(password, iterations):
            calls.append("hash")
            assert not held
            return hash_password(password, iterations)

        def unlocked_verify(password, stored):
            calls.append("verify")
            assert not held
            return verify_password(password, stored)

        monkeypatch.setattr("taskboard.accounts.hash_password", unlocked_hash)
        monkeypatch.setattr("taskboard.accounts.verify_password", unlocked_verify)
        register(accounts)
        accounts.login({"email": "a@b.com", "password": "secret"})
        with pytest.raises(InvalidCredentials):
            accounts.login({"email": "x@y.com", "password": "secret"})
        assert calls == ["hash", "verify", "verify"]


class TestAuthGate:
    def test_resolve_issued_token(self, accounts, gate):
        identity, token = register(accounts)
        assert gate.resolve(token) == identity

    def test_missing_and_unknown_tokens(self, gate):
        for credential in (None, "", "unknown"):
            with pytest.raises(Unauthorized):
                gate.resolve(credential)

    def test_raw_token_is_not_stored(self, accounts, store):
        _, token = register(accounts)
        assert store.get(SESSIONS, token) is None
        assert store.get(SESSIONS, token_digest(token)) is not None

    def test_session_expires_after_ttl(self, accounts, gate, clock, store):
        _, token = register(accounts)
        clock.now += timedelta(hours=23)
        gate.resolve(token)
        clock.now += timedelta(hours=1)
        with pytest.raises(Unauthorized):
            gate.resolve(token)
        # Expired sessions are removed on first use
        assert store.get(SESSIONS, token_digest(token)) is None

    def test_zero_ttl_never_expires(self, store, clock):
        gate = AuthGate(store, ttl_hours=0, clock=clock)
        accounts = AccountService(store, gate, hash_iterations=1000)
        _, token = register(accounts)
        clock.now += timedelta(days=3650)
        gate.resolve(token)

    def test_expired_sessions_are_purged_on_issue(self, store, clock):
        gate = AuthGate(store, ttl_hours=1, clock=clock)
        accounts = AccountService(store, gate, hash_iterations=1000)
        register(accounts)
        for _ in range(5):
            accounts.login({"email": "a@b.com", "password": "secret"})
        assert len(store.list(SESSIONS)) == 6

        clock.now += timedelta(days=30)
        token = accounts.login({"email": "a@b.com", "password": "secret"}).token
        assert len(store.list(SESSIONS)) == 1
        gate.resolve(token)

    def test_purge_expired_keeps_live_sessions(self, accounts, gate, clock, store):
        identity, old = register(accounts)
        clock.now += timedelta(hours=12)
        fresh = gate.issue(identity.user_id)
        clock.now += timedelta(hours=13)
        assert gate.purge_expired() == 1
        assert gate.purge_expired() == 0
        assert store.get(SESSIONS, token_digest(old)) is None
        assert gate.resolve(fresh) == identity

    def test_revoke(self, accounts, gate):
        _, token = register(accounts)
        assert gate.revoke(token) is True
        assert gate.revoke(token) is False
        with pytest.raises(Unauthorized):
            gate.resolve(token)

    def test_token_of_vanished_user_is_rejected(self, accounts, gate, store):
        identity, token = register(accounts)
        store.remove(USERS, identity.user_id)
        with pytest.raises(Unauthorized):
            gate.resolve(token)


class TestProfileService:
    def test_get_missing_user(self, store):
        with pytest.raises(NotFound):
            ProfileService(store).get(Identity(user_id="missing"))

    def test_update_merges_profile_fields(self, accounts, store):
        identity, _ = register(accounts)
        profiles = ProfileService(store)
        profiles.update(identity, {"profile": {"bio": "Hi", "avatar": "https://a.example/x.png"}})
        user = profiles.update(identity, {"profile": {"bio": "Bye"}})
        assert user.profile.bio == "Bye"
        assert user.profile.avatar == "https://a.example/x.png"
        assert user.name == "Alice"

    def test_update_missing_user(self, store):
        with pytest.raises(NotFound):
            ProfileService(store).update(Identity(user_id="missing"), {"name": "Valid"})

    def test_update_invalid_avatar(self, accounts, store):
        identity, _ = register(accounts)
        with pytest.raises(ValidationError):
            ProfileService(store).update(identity, {"profile": {"avatar": "ftp//broken"}})


class TestTaskService:
    def test_create_defaults_and_owner(self, accounts, tasks):
        identity, _ = register(accounts)
        task = tasks.create(identity, {"title": "  Buy milk  "})
        assert task.title == "Buy milk"
        assert task.status.value == "pending"
        assert task.priority.value == "medium"
        assert task.owner_id == identity.user_id

    def test_create_validation(self, accounts, tasks):
        identity, _ = register(accounts)
        for payload in ({"title": ""}, {"title": "x" * 201}, {"title": "ok", "due_date": "31/01/2025"}):
            with pytest.raises(ValidationError):
                tasks.create(identity, payload)

    def test_due_date_normalized_to_utc(self, accounts, tasks):
        identity, _ = register(accounts)
        task = tasks.create(identity, {"title": "Due", "due_date": "2030-05-01T12:00:00+02:00"})
        assert task.due_date == datetime(2030, 5, 1, 10, 0, tzinfo=timezone.utc)

    def test_update_ignores_immutable_fields(self, accounts, tasks):
        identity, _ = register(accounts)
        task = tasks.create(identity, {"title": "Original"})
        updated = tasks.update(
            identity, task.id, {"owner_id": "intruder", "created_at": "2000-01-01", "id": "other"}
        )
        assert updated.id == task.id
        assert updated.owner_id == identity.user_id
        assert updated.created_at == task.created_at
        assert updated.updated_at >= task.updated_at

    def test_cross_user_access_is_not_found(self, accounts, tasks, store):
        alice, _ = register(accounts, email="alice@example.com")
        bob, _ = register(accounts, email="bob@example.com", name="Bob")
        task = tasks.create(alice, {"title": "Private"})

        assert tasks.list(bob) == []
        with pytest.raises(NotFound):
            tasks.get(bob, task.id)
        with pytest.raises(NotFound):
            tasks.update(bob, task.id, {"title": "Mine now"})
        with pytest.raises(NotFound):
            tasks.delete(bob, task.id)
        assert store.get(TASKS, task.id)["title"] == "Private"

    def test_filter_accepts_plain_strings(self, accounts, tasks):
        identity, _ = register(accounts)
        tasks.create(identity, {"title": "One", "status": "completed"})
        tasks.create(identity, {"title": "Two"})
        found = tasks.list(identity, TaskFilter(status="completed"))
        assert [t.title for t in found] == ["One"]
        with pytest.raises(ValidationError):
            tasks.list(identity, TaskFilter(priority="urgent"))

    def test_blank_search_is_ignored(self, accounts, tasks):
        identity, _ = register(accounts)
        tasks.create(identity, {"title": "One"})
        assert len(tasks.list(identity, TaskFilter(search="   "))) == 1

    def test_search_keeps_inner_whitespace(self, accounts, tasks):
        identity, _ = register(accounts)
        tasks.create(identity, {"title": "Buy milk today"})
        tasks.create(identity, {"title": "Milky way photo"})
        found = tasks.list(identity, TaskFilter(search="milk "))
        assert [t.title for t in found] == ["Buy milk today"]
        assert len(tasks.list(identity, TaskFilter(search="milk"))) == 2

    def test_same_instant_ordered_by_latest_insertion(self, accounts, tasks, monkeypatch):
        identity, _ = register(accounts)
        instant = datetime(2030, 1, 1, tzinfo=timezone.utc)
        monkeypatch.setattr("taskboard.tasks.utcnow", lambda: instant)
        first = tasks.create(identity, {"title": "First"})
        tasks.create(identity, {"title": "Second"})
        tasks.create(identity, {"title": "Third"})
        assert [t.title for t in tasks.list(identity)] == ["Third", "Second", "First"]

        tasks.update(identity, first.id, {"status": "completed"})
        assert [t.title for t in tasks.list(identity)] == ["Third", "Second", "First"]

    def test_delete_then_delete_again(self, accounts, tasks):
        identity, _ = register(accounts)
        task = tasks.create(identity, {"title": "Gone soon"})
        tasks.delete(identity, task.id)
        with pytest.raises(NotFound):
            tasks.delete(identity, task.id)
