"""Access decisions for protected views.

Roles match exactly: an admin does not satisfy a ``user`` requirement and a
user does not satisfy an ``admin`` one. Everything here is pure.
"""

from __future__ import annotations

from enum import Enum

from sewcraft.domain.entities.identity import Role, Session


LOGIN_PATH = "/login"
USER_HOME_PATH = "/dashboard"
ADMIN_HOME_PATH = "/admin/dashboard"


class AccessDecision(str, Enum):
    ALLOW = "allow"
    DENY_UNAUTHENTICATED = "deny_unauthenticated"
    DENY_FORBIDDEN = "deny_forbidden"


def authorize(session: Session | None, required_role: Role | str | None = None) -> AccessDecision:
    if session is None:
        return AccessDecision.DENY_UNAUTHENTICATED
    if required_role is None:
        return AccessDecision.ALLOW
    if session.role != Role.parse(required_role):
        return AccessDecision.DENY_FORBIDDEN
    return AccessDecision.ALLOW


def landing_path(session: Session | None) -> str:
    if session is None:
        return LOGIN_PATH
    if session.role == Role.ADMIN:
        return ADMIN_HOME_PATH
    return USER_HOME_PATH


def redirect_for(session: Session | None, required_role: Role | str | None = None) -> str | None:
    """Path to send the caller to, or ``None`` when access is allowed.

    Forbidden callers go to their own home rather than an error page.
    """
    decision = authorize(session, required_role)
    if decision == AccessDecision.ALLOW:
        return None
    return landing_path(session)
