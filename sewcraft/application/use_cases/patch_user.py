from __future__ import annotations

import logging
from typing import Any

from sewcraft.application.dto.user_management import CallerContext, PatchUserInput, UpdateUserOutput
from sewcraft.application.ports.identity_admin_port import IdentityAdminError, IdentityAdminPort
from sewcraft.application.ports.profile_store_port import ProfileStorePort
from sewcraft.domain.exceptions import (
    EmailTakenError,
    InvalidInputError,
    NotFoundError,
    PartialSuccessError,
    UnauthorizedError,
)
from sewcraft.domain.services.password_policy import validate_password

from .auth_common import normalize_email


logger = logging.getLogger(__name__)


def _text_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class PatchUserUseCase:
    """Partial update of one identity: profile row first, then the identity service."""

    def __init__(self, *, profile_store: ProfileStorePort, identity_admin: IdentityAdminPort):
        self._profile_store = profile_store
        self._identity_admin = identity_admin

    def execute(self, *, caller: CallerContext, command: PatchUserInput) -> UpdateUserOutput:
        user_id = (command.user_id or "").strip()
        if not user_id:
            raise InvalidInputError("Missing userId.")
        if not caller.is_admin and user_id != caller.user_id:
            raise UnauthorizedError("Unauthorized: You can only update your own profile.")

        fields = command.fields
        name = _text_or_none(fields.get("name"))
        email = normalize_email(fields.get("email") or "") or None
        password = fields.get("password") or None
        if password is not None:
            validate_password(password)

        if email and self._profile_store.email_in_use(email=email, exclude_user_id=user_id):
            raise EmailTakenError("Email is already in use by another user.")

        profile_update: dict[str, Any] = {}
        if name:
            profile_update["name"] = name
        if email:
            profile_update["email"] = email
        for key in ("phone", "address"):
            if key in fields:
                profile_update[key] = _text_or_none(fields[key])

        if not self._profile_store.update_user(user_id=user_id, fields=profile_update):
            raise NotFoundError("User not found.")

        if email or password:
            auth_update: dict[str, Any] = {}
            if email:
                auth_update["email"] = email
                auth_update["email_confirm"] = True
            if password:
                auth_update["password"] = password
            if name:
                auth_update["user_metadata"] = {"name": name}
            try:
                self._identity_admin.update_user_by_id(user_id=user_id, attributes=auth_update)
            except IdentityAdminError as exc:
                logger.warning("patch_user: auth_sync_failed user_id=%s error=%s", user_id, exc)
                raise PartialSuccessError(f"Profile updated but auth sync failed: {exc}") from exc

        logger.info(
            "patch_user: updated user_id=%s by=%s email_changed=%s password_changed=%s",
            user_id,
            caller.user_id,
            bool(email),
            bool(password),
        )
        return UpdateUserOutput(
            message="User updated successfully",
            email_changed=bool(email),
            password_changed=bool(password),
        )
