from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: object, *, default: Role | None = None) -> Role:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for role in cls:
                if role.value == normalized:
                    return role
        if default is not None:
            return default
        raise ValueError(f"Unknown role: {value!r}")


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    name: str
    role: Role
    phone: str | None
    address: str | None
    avatar: str | None
    is_blocked: bool
    created_at: datetime


@dataclass(frozen=True)
class RemoteSession:
    user_id: str
    access_token: str
    refresh_token: str | None
    expires_at: datetime | None
    email: str | None = None
    user_metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Session:
    """Binding of the current client to an identity.

    Replaced wholesale on every transition. ``identity`` is ``None`` while
    the profile row for ``remote.user_id`` is still being resolved.
    """

    remote: RemoteSession
    identity: Identity | None = None

    @property
    def user_id(self) -> str:
        return self.remote.user_id

    @property
    def access_token(self) -> str:
        return self.remote.access_token

    @property
    def role(self) -> Role:
        if self.identity is not None:
            return self.identity.role
        return Role.parse(self.remote.user_metadata.get("role"), default=Role.USER)
