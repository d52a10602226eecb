from __future__ import annotations

from typing import Any, Mapping, Protocol

from sewcraft.application.dto.user_management import UserStatsOutput
from sewcraft.domain.entities.identity import Identity


class ProfileStorePort(Protocol):
    def get_user_by_id(self, *, user_id: str) -> Identity | None:
        ...

    def email_in_use(self, *, email: str, exclude_user_id: str) -> bool:
        ...

    def update_user(self, *, user_id: str, fields: Mapping[str, Any]) -> bool:
        ...

    def list_users(self, *, search: str | None = None) -> list[Identity]:
        ...

    def set_blocked(self, *, user_id: str, is_blocked: bool) -> bool:
        ...

    def get_user_stats(self) -> UserStatsOutput:
        ...
