from __future__ import annotations

from datetime import datetime, timezone

import pytest

from sewcraft.domain.entities.identity import Identity, RemoteSession, Role, Session
from sewcraft.domain.services.role_guard import (
    ADMIN_HOME_PATH,
    LOGIN_PATH,
    USER_HOME_PATH,
    AccessDecision,
    authorize,
    landing_path,
    redirect_for,
)


def _session(role: Role | None, *, metadata_role: str | None = None) -> Session:
    remote = RemoteSession(
        user_id="user-1",
        access_token="token-1",
        refresh_token=None,
        expires_at=None,
        user_metadata={"role": metadata_role} if metadata_role else {},
    )
    if role is None:
        return Session(remote=remote)
    identity = Identity(
        id="user-1",
        email="ana@example.com",
        name="Ana",
        role=role,
        phone=None,
        address=None,
        avatar=None,
        is_blocked=False,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    return Session(remote=remote, identity=identity)


def test_anonymous_caller_is_sent_to_login():
    assert authorize(None) == AccessDecision.DENY_UNAUTHENTICATED
    assert authorize(None, Role.ADMIN) == AccessDecision.DENY_UNAUTHENTICATED
    assert redirect_for(None, Role.USER) == LOGIN_PATH


def test_any_session_passes_when_no_role_is_required():
    assert authorize(_session(Role.USER)) == AccessDecision.ALLOW
    assert redirect_for(_session(Role.ADMIN)) is None


@pytest.mark.parametrize(
    ("role", "required", "expected"),
    [
        (Role.USER, Role.USER, AccessDecision.ALLOW),
        (Role.ADMIN, Role.ADMIN, AccessDecision.ALLOW),
        (Role.ADMIN, Role.USER, AccessDecision.DENY_FORBIDDEN),
        (Role.USER, Role.ADMIN, AccessDecision.DENY_FORBIDDEN),
        (Role.ADMIN, "ADMIN", AccessDecision.ALLOW),
    ],
)
def test_roles_match_exactly(role, required, expected):
    assert authorize(_session(role), required) == expected


def test_forbidden_caller_is_sent_to_own_home():
    assert redirect_for(_session(Role.USER), Role.ADMIN) == USER_HOME_PATH
    assert redirect_for(_session(Role.ADMIN), Role.USER) == ADMIN_HOME_PATH


def test_landing_path_by_role():
    assert landing_path(None) == LOGIN_PATH
    assert landing_path(_session(Role.USER)) == USER_HOME_PATH
    assert landing_path(_session(Role.ADMIN)) == ADMIN_HOME_PATH


def test_unresolved_identity_falls_back_to_token_metadata_role():
    assert _session(None).role == Role.USER
    assert _session(None, metadata_role="ADMIN").role == Role.ADMIN
    assert authorize(_session(None, metadata_role="admin"), Role.ADMIN) == AccessDecision.ALLOW


def test_unknown_required_role_is_rejected():
    with pytest.raises(ValueError):
        authorize(_session(Role.USER), "superuser")
