from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sewcraft.domain.entities.identity import Identity, RemoteSession
from sewcraft.domain.exceptions import DomainError, ErrorCode


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class AuthChangeEvent:
    event: AuthEvent
    session: RemoteSession | None


@dataclass(frozen=True)
class SignUpOutput:
    user_id: str
    session: RemoteSession | None


class AuthStatus(str, Enum):
    SIGNED_IN = "signed_in"
    PENDING_CONFIRMATION = "pending_confirmation"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass(frozen=True)
class AuthResult:
    status: AuthStatus
    identity: Identity | None = None
    error: DomainError | None = None

    @property
    def ok(self) -> bool:
        return self.status != AuthStatus.FAILED

    @property
    def reason(self) -> ErrorCode | None:
        return self.error.code if self.error is not None else None

    @property
    def message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    @classmethod
    def failure(cls, error: DomainError) -> AuthResult:
        return cls(status=AuthStatus.FAILED, error=error)


@dataclass(frozen=True)
class AccessTokenPayload:
    user_id: str
    email: str | None


@dataclass(frozen=True)
class ProfileUpdateOutput:
    identity: Identity
    applied_fields: dict
