from __future__ import annotations

import logging

from sewcraft.application.dto.user_management import CallerContext
from sewcraft.application.ports.profile_store_port import ProfileStorePort
from sewcraft.domain.exceptions import InvalidInputError, NotFoundError

from .auth_common import require_admin


logger = logging.getLogger(__name__)


class SetUserBlockedUseCase:
    def __init__(self, *, profile_store: ProfileStorePort):
        self._profile_store = profile_store

    def execute(self, *, caller: CallerContext, user_id: str, is_blocked: bool) -> None:
        require_admin(caller)
        if is_blocked and user_id == caller.user_id:
            raise InvalidInputError("Admins cannot block themselves.")
        if not self._profile_store.set_blocked(user_id=user_id, is_blocked=is_blocked):
            raise NotFoundError("User not found.")
        logger.info("set_user_blocked: user_id=%s is_blocked=%s by=%s", user_id, is_blocked, caller.user_id)
