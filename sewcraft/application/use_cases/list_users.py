from __future__ import annotations

from sewcraft.application.dto.user_management import CallerContext
from sewcraft.application.ports.profile_store_port import ProfileStorePort
from sewcraft.domain.entities.identity import Identity

from .auth_common import require_admin


class ListUsersUseCase:
    def __init__(self, *, profile_store: ProfileStorePort):
        self._profile_store = profile_store

    def execute(self, *, caller: CallerContext, search: str | None = None) -> list[Identity]:
        require_admin(caller)
        return self._profile_store.list_users(search=search)
