from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol

from sewcraft.application.dto.auth import AuthChangeEvent, SignUpOutput
from sewcraft.domain.entities.identity import Identity, RemoteSession


AuthChangeHandler = Callable[[AuthChangeEvent], None]


class RemoteAuthError(RuntimeError):
    """The identity service answered and rejected the request."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteServiceError(RuntimeError):
    """Transport failure or an unexpected answer from the identity service."""


class IdentityServicePort(Protocol):
    """Hosted auth + profile table, as seen from one client.

    ``sign_in_with_password``, ``sign_up`` (when a session is issued),
    ``sign_out`` and token refreshes deliver the matching ``AuthChangeEvent``
    to every subscriber before the call returns. ``revoke_session`` never
    emits.
    """

    async def sign_in_with_password(self, *, email: str, password: str) -> RemoteSession:
        ...

    async def sign_up(self, *, email: str, password: str, metadata: Mapping[str, Any]) -> SignUpOutput:
        ...

    async def sign_out(self, *, access_token: str) -> None:
        ...

    async def revoke_session(self, *, access_token: str) -> None:
        ...

    async def get_session(self) -> RemoteSession | None:
        ...

    async def health_check(self) -> bool:
        ...

    async def fetch_profile(self, *, user_id: str, access_token: str) -> Identity | None:
        ...

    async def update_profile_row(
        self,
        *,
        user_id: str,
        fields: Mapping[str, Any],
        access_token: str,
    ) -> None:
        ...

    def subscribe(self, handler: AuthChangeHandler) -> Callable[[], None]:
        ...
