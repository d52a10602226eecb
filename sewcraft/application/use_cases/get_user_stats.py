from __future__ import annotations

from sewcraft.application.dto.user_management import CallerContext, UserStatsOutput
from sewcraft.application.ports.profile_store_port import ProfileStorePort

from .auth_common import require_admin


class GetUserStatsUseCase:
    def __init__(self, *, profile_store: ProfileStorePort):
        self._profile_store = profile_store

    def execute(self, *, caller: CallerContext) -> UserStatsOutput:
        require_admin(caller)
        return self._profile_store.get_user_stats()
