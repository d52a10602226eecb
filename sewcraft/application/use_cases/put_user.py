from __future__ import annotations

import logging
from typing import Any

from sewcraft.application.dto.user_management import CallerContext, PutUserInput, UpdateUserOutput
from sewcraft.application.ports.identity_admin_port import IdentityAdminError, IdentityAdminPort
from sewcraft.application.ports.profile_store_port import ProfileStorePort
from sewcraft.domain.entities.identity import Role
from sewcraft.domain.exceptions import EmailTakenError, InvalidInputError, NotFoundError, PartialSuccessError
from sewcraft.domain.services.password_policy import validate_password

from .auth_common import normalize_email, require_admin


logger = logging.getLogger(__name__)


class PutUserUseCase:
    def __init__(self, *, profile_store: ProfileStorePort, identity_admin: IdentityAdminPort):
        self._profile_store = profile_store
        self._identity_admin = identity_admin

    def execute(self, *, caller: CallerContext, command: PutUserInput) -> UpdateUserOutput:
        require_admin(caller, "Only admins can perform full user updates.")

        user_id = (command.user_id or "").strip()
        email = normalize_email(command.email or "")
        name = (command.name or "").strip()
        if not user_id or not email or not name or not command.role:
            raise InvalidInputError("Missing required fields: userId, email, name, role.")
        try:
            role = Role.parse(command.role)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc
        if command.password:
            validate_password(command.password)

        if self._profile_store.email_in_use(email=email, exclude_user_id=user_id):
            raise EmailTakenError("Email is already in use.")

        updated = self._profile_store.update_user(
            user_id=user_id,
            fields={"name": name, "email": email, "role": role.value.upper()},
        )
        if not updated:
            raise NotFoundError("User not found.")

        auth_update: dict[str, Any] = {
            "email": email,
            "email_confirm": True,
            "user_metadata": {"name": name, "role": role.value},
        }
        if command.password:
            auth_update["password"] = command.password
        try:
            self._identity_admin.update_user_by_id(user_id=user_id, attributes=auth_update)
        except IdentityAdminError as exc:
            logger.warning("put_user: auth_sync_failed user_id=%s error=%s", user_id, exc)
            raise PartialSuccessError(f"Profile updated but auth sync failed: {exc}") from exc

        logger.info("put_user: updated user_id=%s by=%s role=%s", user_id, caller.user_id, role.value)
        return UpdateUserOutput(
            message="User updated successfully",
            email_changed=True,
            password_changed=bool(command.password),
        )
