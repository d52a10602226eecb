from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from sewcraft.application.dto.auth import AuthChangeEvent, AuthEvent, AuthStatus, SignUpOutput
from sewcraft.application.ports.identity_service_port import RemoteAuthError, RemoteServiceError
from sewcraft.application.stores.session_store import SessionStore
from sewcraft.domain.entities.identity import Identity, RemoteSession, Role
from sewcraft.domain.exceptions import ErrorCode
from sewcraft.domain.services.role_guard import AccessDecision, authorize


def _identity(user_id: str = "user-1", *, role: Role = Role.USER, is_blocked: bool = False) -> Identity:
    return Identity(
        id=user_id,
        email=f"{user_id}@example.com",
        name="Ana",
        role=role,
        phone=None,
        address=None,
        avatar=None,
        is_blocked=is_blocked,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class FakeIdentityService:
    """In-memory identity service that emits auth events before returning."""

    def __init__(self):
        self.accounts = {"ana@example.com": "user-1"}
        self.profiles: dict[str, Identity] = {"user-1": _identity()}
        self.current: RemoteSession | None = None
        self.handlers = []
        self.healthy = True
        self.health_error: Exception | None = None
        self.health_calls = 0
        self.sign_in_error: Exception | None = None
        self.sign_in_calls = 0
        self.sign_in_gate: asyncio.Event | None = None
        self.sign_up_calls: list[dict] = []
        self.sign_up_error: Exception | None = None
        self.issue_session_on_sign_up = False
        self.sign_out_error: Exception | None = None
        self.sign_out_gate: asyncio.Event | None = None
        self.on_sign_out = None
        self.signed_out: list[str] = []
        self.revoked: list[str] = []
        self.fetch_calls = 0
        self.fetch_started = asyncio.Event()
        self.profile_gate: asyncio.Event | None = None
        self.update_error: Exception | None = None
        self.updates: list[dict] = []
        self._token_seq = 0

    def subscribe(self, handler):
        self.handlers.append(handler)

        def _unsubscribe():
            self.handlers.remove(handler)

        return _unsubscribe

    def emit(self, event: AuthEvent, session: RemoteSession | None) -> None:
        for handler in list(self.handlers):
            handler(AuthChangeEvent(event=event, session=session))

    def new_session(self, user_id: str) -> RemoteSession:
        self._token_seq += 1
        return RemoteSession(
            user_id=user_id,
            access_token=f"token-{self._token_seq}",
            refresh_token=f"refresh-{self._token_seq}",
            expires_at=None,
        )

    async def health_check(self) -> bool:
        self.health_calls += 1
        if self.health_error is not None:
            raise self.health_error
        return self.healthy

    async def sign_in_with_password(self, *, email: str, password: str) -> RemoteSession:
        self.sign_in_calls += 1
        if self.sign_in_gate is not None:
            await self.sign_in_gate.wait()
        if self.sign_in_error is not None:
            raise self.sign_in_error
        session = self.new_session(self.accounts[email])
        self.current = session
        self.emit(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_up(self, *, email: str, password: str, metadata) -> SignUpOutput:
        self.sign_up_calls.append({"email": email, "password": password, "metadata": dict(metadata)})
        if self.sign_up_error is not None:
            raise self.sign_up_error
        if not self.issue_session_on_sign_up:
            return SignUpOutput(user_id="user-new", session=None)
        session = self.new_session("user-1")
        self.current = session
        self.emit(AuthEvent.SIGNED_IN, session)
        return SignUpOutput(user_id="user-1", session=session)

    async def sign_out(self, *, access_token: str) -> None:
        self.signed_out.append(access_token)
        if self.on_sign_out is not None:
            self.on_sign_out()
        if self.sign_out_gate is not None:
            await self.sign_out_gate.wait()
        if self.sign_out_error is not None:
            raise self.sign_out_error
        self.current = None
        self.emit(AuthEvent.SIGNED_OUT, None)

    async def revoke_session(self, *, access_token: str) -> None:
        self.revoked.append(access_token)
        if self.current is not None and self.current.access_token == access_token:
            self.current = None

    async def get_session(self) -> RemoteSession | None:
        return self.current

    async def fetch_profile(self, *, user_id: str, access_token: str) -> Identity | None:
        self.fetch_calls += 1
        self.fetch_started.set()
        if self.profile_gate is not None:
            await self.profile_gate.wait()
        return self.profiles.get(user_id)

    async def update_profile_row(self, *, user_id: str, fields, access_token: str) -> None:
        self.updates.append({"user_id": user_id, "fields": dict(fields)})
        if self.update_error is not None:
            raise self.update_error


async def _started_store(fake: FakeIdentityService, **kwargs) -> SessionStore:
    kwargs.setdefault("health_check_retry_delay_seconds", 0)
    store = SessionStore(identity_service=fake, **kwargs)
    await store.start()
    return store


@pytest.mark.asyncio
async def test_login_resolves_identity_and_notifies_once():
    fake = FakeIdentityService()
    store = await _started_store(fake)
    seen = []
    store.on_session_change(lambda session: seen.append(session.user_id if session else None))

    result = await store.login(" Ana@Example.com ", "secret123")

    assert result.status == AuthStatus.SIGNED_IN
    assert result.identity == _identity()
    assert store.get_session().identity == _identity()
    assert store.loading is False
    assert seen == ["user-1"]
    assert fake.fetch_calls == 1
    store.close()


@pytest.mark.asyncio
async def test_logout_clears_session_and_notifies_once():
    fake = FakeIdentityService()
    store = await _started_store(fake)
    await store.login("ana@example.com", "secret123")
    seen = []
    store.on_session_change(seen.append)

    await store.logout()

    assert store.get_session() is None
    assert seen == [None]
    assert fake.signed_out == ["token-1"]
    store.close()


@pytest.mark.asyncio
async def test_login_with_invalid_credentials():
    fake = FakeIdentityService()
    fake.sign_in_error = RemoteAuthError("Invalid login credentials", status_code=400)
    store = await _started_store(fake)

    result = await store.login("ana@example.com", "wrong-pass1")

    assert result.ok is False
    assert result.reason == ErrorCode.INVALID_CREDENTIALS
    assert store.get_session() is None
    store.close()


@pytest.mark.asyncio
async def test_login_with_unconfirmed_email():
    fake = FakeIdentityService()
    fake.sign_in_error = RemoteAuthError("Email not confirmed", status_code=400)
    store = await _started_store(fake)

    result = await store.login("ana@example.com", "secret123")

    assert result.reason == ErrorCode.EMAIL_UNCONFIRMED
    store.close()


@pytest.mark.asyncio
async def test_blocked_account_is_signed_out_immediately():
    fake = FakeIdentityService()
    fake.profiles["user-1"] = _identity(is_blocked=True)
    store = await _started_store(fake)

    result = await store.login("ana@example.com", "secret123")

    assert result.reason == ErrorCode.ACCOUNT_BLOCKED
    assert store.get_session() is None
    assert fake.signed_out == ["token-1"]
    store.close()


@pytest.mark.asyncio
async def test_missing_profile_row_fails_login():
    fake = FakeIdentityService()
    fake.profiles.clear()
    store = await _started_store(fake)

    result = await store.login("ana@example.com", "secret123")

    assert result.reason == ErrorCode.NOT_FOUND
    assert store.get_session() is None
    store.close()


@pytest.mark.asyncio
async def test_unhealthy_service_blocks_login_after_retries():
    fake = FakeIdentityService()
    fake.healthy = False
    store = await _started_store(fake, health_check_max_attempts=3)

    result = await store.login("ana@example.com", "secret123")

    assert result.reason == ErrorCode.SERVICE_UNAVAILABLE
    assert fake.health_calls == 3
    assert fake.sign_in_calls == 0
    assert store.service_available is False
    assert store.can_submit is False
    store.close()


@pytest.mark.asyncio
async def test_invalid_api_key_stops_health_retries():
    fake = FakeIdentityService()
    fake.health_error = RemoteAuthError("Invalid API key", status_code=401)
    store = await _started_store(fake, health_check_max_attempts=5)

    assert await store.check_health() is False
    assert fake.health_calls == 1
    store.close()


@pytest.mark.asyncio
async def test_logout_started_during_login_wins():
    fake = FakeIdentityService()
    fake.sign_in_gate = asyncio.Event()
    store = await _started_store(fake)

    login_task = asyncio.create_task(store.login("ana@example.com", "secret123"))
    await asyncio.sleep(0)
    assert fake.sign_in_calls == 1

    await store.logout()
    fake.sign_in_gate.set()
    result = await login_task

    assert result.reason == ErrorCode.SESSION_SUPERSEDED
    assert store.get_session() is None
    assert fake.revoked == ["token-1"]
    store.close()


@pytest.mark.asyncio
async def test_profile_resolved_after_logout_is_discarded():
    fake = FakeIdentityService()
    fake.profile_gate = asyncio.Event()
    store = await _started_store(fake)

    login_task = asyncio.create_task(store.login("ana@example.com", "secret123"))
    await fake.fetch_started.wait()

    await store.logout()
    fake.profile_gate.set()
    result = await login_task

    assert result.reason == ErrorCode.SESSION_SUPERSEDED
    assert store.get_session() is None
    store.close()


@pytest.mark.asyncio
async def test_register_without_session_awaits_confirmation():
    fake = FakeIdentityService()
    store = await _started_store(fake)

    result = await store.register(" Ana ", "NEW@example.com", "secret123")

    assert result.status == AuthStatus.PENDING_CONFIRMATION
    assert fake.sign_up_calls == [
        {
            "email": "new@example.com",
            "password": "secret123",
            "metadata": {"name": "Ana", "role": "USER"},
        }
    ]
    assert store.get_session() is None
    store.close()


@pytest.mark.asyncio
async def test_register_with_issued_session_signs_in():
    fake = FakeIdentityService()
    fake.issue_session_on_sign_up = True
    store = await _started_store(fake)

    result = await store.register("Ana", "ana@example.com", "secret123")

    assert result.status == AuthStatus.SIGNED_IN
    assert store.get_session().identity == _identity()
    store.close()


@pytest.mark.asyncio
async def test_register_rejects_weak_password_locally():
    fake = FakeIdentityService()
    store = await _started_store(fake)

    result = await store.register("Ana", "ana@example.com", "short")

    assert result.reason == ErrorCode.WEAK_PASSWORD
    assert fake.sign_up_calls == []
    store.close()


@pytest.mark.asyncio
async def test_register_with_taken_email():
    fake = FakeIdentityService()
    fake.sign_up_error = RemoteAuthError("User already registered", status_code=422)
    store = await _started_store(fake)

    result = await store.register("Ana", "ana@example.com", "secret123")

    assert result.reason == ErrorCode.EMAIL_TAKEN
    store.close()


@pytest.mark.asyncio
async def test_logout_clears_locally_when_remote_sign_out_fails():
    fake = FakeIdentityService()
    store = await _started_store(fake)
    await store.login("ana@example.com", "secret123")
    fake.sign_out_error = RemoteServiceError("connection reset")

    await store.logout()

    assert store.get_session() is None
    store.close()


@pytest.mark.asyncio
async def test_update_profile_merges_applied_fields():
    fake = FakeIdentityService()
    store = await _started_store(fake)
    await store.login("ana@example.com", "secret123")

    result = await store.update_profile({"phone": "2222", "address": "Rua B"})

    assert result.status == AuthStatus.UPDATED
    assert result.identity.phone == "2222"
    assert store.get_session().identity.address == "Rua B"
    assert fake.updates == [{"user_id": "user-1", "fields": {"phone": "2222", "address": "Rua B"}}]
    store.close()


@pytest.mark.asyncio
async def test_update_profile_failure_keeps_local_identity():
    fake = FakeIdentityService()
    store = await _started_store(fake)
    await store.login("ana@example.com", "secret123")
    fake.update_error = RemoteServiceError("timeout")

    result = await store.update_profile({"phone": "2222"})

    assert result.reason == ErrorCode.SERVICE_UNAVAILABLE
    assert store.get_session().identity.phone is None
    store.close()


@pytest.mark.asyncio
async def test_update_profile_requires_session():
    store = await _started_store(FakeIdentityService())

    result = await store.update_profile({"phone": "2222"})

    assert result.reason == ErrorCode.UNAUTHORIZED
    store.close()


@pytest.mark.asyncio
async def test_start_restores_existing_session():
    fake = FakeIdentityService()
    fake.current = fake.new_session("user-1")
    store = SessionStore(identity_service=fake)
    assert store.loading is True

    async with store:
        assert store.loading is False
        assert store.get_session().identity == _identity()

    assert fake.handlers == []


@pytest.mark.asyncio
async def test_token_refresh_keeps_resolved_identity():
    fake = FakeIdentityService()
    store = await _started_store(fake)
    await store.login("ana@example.com", "secret123")

    refreshed = fake.new_session("user-1")
    fake.emit(AuthEvent.TOKEN_REFRESHED, refreshed)

    session = store.get_session()
    assert session.access_token == refreshed.access_token
    assert session.identity == _identity()
    assert fake.fetch_calls == 1
    store.close()


@pytest.mark.asyncio
async def test_blocked_account_is_never_visible_while_signing_out():
    fake = FakeIdentityService()
    fake.profiles["user-1"] = _identity(is_blocked=True)
    store = await _started_store(fake)
    during_sign_out = []
    fake.on_sign_out = lambda: during_sign_out.append(
        (store.get_session(), authorize(store.get_session(), Role.USER))
    )
    seen = []
    store.on_session_change(seen.append)

    result = await store.login("ana@example.com", "secret123")

    assert result.reason == ErrorCode.ACCOUNT_BLOCKED
    assert during_sign_out == [(None, AccessDecision.DENY_UNAUTHENTICATED)]
    assert all(session is None or session.identity is None for session in seen)
    store.close()


@pytest.mark.asyncio
async def test_start_signs_out_restored_session_of_blocked_account():
    fake = FakeIdentityService()
    fake.profiles["user-1"] = _identity(is_blocked=True)
    fake.current = fake.new_session("user-1")
    store = SessionStore(identity_service=fake)

    await store.start()

    assert store.get_session() is None
    assert authorize(store.get_session(), Role.USER) == AccessDecision.DENY_UNAUTHENTICATED
    assert fake.signed_out == ["token-1"]
    assert store.loading is False
    store.close()


@pytest.mark.asyncio
async def test_stream_sign_in_of_blocked_account_is_signed_out():
    fake = FakeIdentityService()
    fake.profiles["user-1"] = _identity(is_blocked=True)
    store = await _started_store(fake)

    session = fake.new_session("user-1")
    fake.current = session
    fake.emit(AuthEvent.SIGNED_IN, session)
    for _ in range(5):
        await asyncio.sleep(0)

    assert store.get_session() is None
    assert fake.signed_out == [session.access_token]
    store.close()


@pytest.mark.asyncio
async def test_cancelled_logout_still_clears_local_session():
    fake = FakeIdentityService()
    store = await _started_store(fake)
    await store.login("ana@example.com", "secret123")
    fake.sign_out_gate = asyncio.Event()

    logout_task = asyncio.create_task(store.logout())
    await asyncio.sleep(0)
    assert fake.signed_out == ["token-1"]
    logout_task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await logout_task
    assert store.get_session() is None
    store.close()
