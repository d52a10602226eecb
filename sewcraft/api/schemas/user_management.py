from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PatchUserRequest(BaseModel):
    """Fields left out of the body are left untouched."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    password: str | None = None

    def provided_fields(self) -> dict:
        return {
            key: getattr(self, key)
            for key in ("name", "email", "phone", "address", "password")
            if key in self.model_fields_set
        }


class PutUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")
    email: str | None = None
    name: str | None = None
    role: str | None = None
    password: str | None = None


class UpdateUserResponse(BaseModel):
    message: str
    email_changed: bool
    password_changed: bool


class SetBlockedRequest(BaseModel):
    is_blocked: bool


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: str
    phone: str | None
    address: str | None
    avatar: str | None
    is_blocked: bool
    created_at: datetime


class UserStatsResponse(BaseModel):
    total_users: int
    active_users: int
    blocked_users: int
    admin_users: int
