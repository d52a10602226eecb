from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class CallerContext:
    user_id: str
    is_admin: bool


@dataclass(frozen=True)
class PatchUserInput:
    """Partial update. Keys present in ``fields`` were provided by the caller."""

    user_id: str | None
    fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PutUserInput:
    user_id: str | None
    email: str | None
    name: str | None
    role: str | None
    password: str | None = None


@dataclass(frozen=True)
class UpdateUserOutput:
    message: str
    email_changed: bool = False
    password_changed: bool = False


@dataclass(frozen=True)
class UserStatsOutput:
    total_users: int
    active_users: int
    blocked_users: int
    admin_users: int
