from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping

from sewcraft.application.dto.auth import ProfileUpdateOutput
from sewcraft.application.ports.identity_service_port import (
    IdentityServicePort,
    RemoteAuthError,
    RemoteServiceError,
)
from sewcraft.domain.entities.identity import Identity
from sewcraft.domain.exceptions import InvalidInputError

from .auth_common import translate_remote_error


logger = logging.getLogger(__name__)


MUTABLE_PROFILE_FIELDS = ("name", "phone", "address", "avatar")
NULLABLE_PROFILE_FIELDS = ("phone", "address", "avatar")


def build_profile_updates(changes: Mapping[str, Any]) -> dict[str, str | None]:
    """Keep only the provided mutable fields.

    A key present in ``changes`` means "provided". Empty optional values are
    sent as an explicit ``None`` so they clear the stored value.
    """
    updates: dict[str, str | None] = {}
    for key in MUTABLE_PROFILE_FIELDS:
        if key not in changes:
            continue
        value = changes[key]
        if key == "name":
            name = str(value).strip() if value is not None else ""
            if not name:
                raise InvalidInputError("name is required.")
            updates[key] = name
            continue
        text = str(value).strip() if value is not None else ""
        updates[key] = text or None
    return updates


class ProfileUpdater:
    def __init__(self, *, identity_service: IdentityServicePort):
        self._identity_service = identity_service

    async def execute(
        self,
        *,
        identity: Identity,
        changes: Mapping[str, Any],
        access_token: str,
    ) -> ProfileUpdateOutput:
        updates = build_profile_updates(changes)
        if not updates:
            return ProfileUpdateOutput(identity=identity, applied_fields={})

        try:
            await self._identity_service.update_profile_row(
                user_id=identity.id,
                fields=updates,
                access_token=access_token,
            )
        except (RemoteAuthError, RemoteServiceError) as exc:
            logger.warning(
                "profile_updater: update_failed user_id=%s fields=%s error=%s",
                identity.id,
                sorted(updates),
                exc,
            )
            raise translate_remote_error(exc) from exc

        logger.info("profile_updater: updated user_id=%s fields=%s", identity.id, sorted(updates))
        return ProfileUpdateOutput(identity=replace(identity, **updates), applied_fields=updates)
