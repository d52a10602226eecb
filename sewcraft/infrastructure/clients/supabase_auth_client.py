from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Callable, Mapping

import httpx

from sewcraft.application.dto.auth import AuthChangeEvent, AuthEvent, SignUpOutput
from sewcraft.application.ports.identity_service_port import (
    AuthChangeHandler,
    IdentityServicePort,
    RemoteAuthError,
    RemoteServiceError,
)
from sewcraft.domain.entities.identity import Identity, RemoteSession
from sewcraft.infrastructure.db.mappers.identity_mapper import map_row_to_identity


logger = logging.getLogger(__name__)


PROFILE_COLUMNS = "id,email,name,role,phone,address,avatar,created_at,is_blocked"


@dataclass(frozen=True)
class SupabaseAuthClientSettings:
    base_url: str
    anon_key: str
    timeout_seconds: float


class SupabaseAuthClient(IdentityServicePort):
    """Async client for the hosted auth (``/auth/v1``) and REST (``/rest/v1``) APIs.

    Keeps the current session in memory and emits auth-change events to
    subscribers the way the browser SDK does.
    """

    def __init__(
        self,
        settings: SupabaseAuthClientSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._settings = settings
        self._http_client = http_client
        self._current: RemoteSession | None = None
        self._handlers: list[AuthChangeHandler] = []

    def subscribe(self, handler: AuthChangeHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    async def sign_in_with_password(self, *, email: str, password: str) -> RemoteSession:
        payload = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = _parse_session(payload)
        self._current = session
        self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_up(self, *, email: str, password: str, metadata: Mapping[str, Any]) -> SignUpOutput:
        payload = await self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": dict(metadata)},
        )
        if payload.get("access_token"):
            session = _parse_session(payload)
            self._current = session
            self._emit(AuthEvent.SIGNED_IN, session)
            return SignUpOutput(user_id=session.user_id, session=session)

        user = payload.get("user") if isinstance(payload.get("user"), dict) else payload
        user_id = user.get("id")
        if not user_id:
            raise RemoteServiceError("Sign-up response missing user id.")
        return SignUpOutput(user_id=str(user_id), session=None)

    async def sign_out(self, *, access_token: str) -> None:
        await self._request("POST", "/auth/v1/logout", access_token=access_token, expect_json=False)
        self._current = None
        self._emit(AuthEvent.SIGNED_OUT, None)

    async def revoke_session(self, *, access_token: str) -> None:
        await self._request(
            "POST",
            "/auth/v1/logout",
            params={"scope": "local"},
            access_token=access_token,
            expect_json=False,
        )
        if self._current is not None and self._current.access_token == access_token:
            self._current = None

    async def get_session(self) -> RemoteSession | None:
        session = self._current
        if session is None:
            return None
        if session.expires_at is not None and session.expires_at <= _utcnow():
            if not session.refresh_token:
                self._current = None
                return None
            return await self.refresh_session(refresh_token=session.refresh_token)
        return session

    async def refresh_session(self, *, refresh_token: str) -> RemoteSession:
        payload = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        session = _parse_session(payload)
        self._current = session
        self._emit(AuthEvent.TOKEN_REFRESHED, session)
        return session

    async def health_check(self) -> bool:
        try:
            await self._request("GET", "/auth/v1/health", expect_json=False)
        except RemoteServiceError as exc:
            logger.warning("supabase_auth_client: health_check_failed error=%s", exc)
            return False
        return True

    async def fetch_profile(self, *, user_id: str, access_token: str) -> Identity | None:
        rows = await self._request(
            "GET",
            "/rest/v1/users",
            params={"id": f"eq.{user_id}", "select": PROFILE_COLUMNS, "limit": "1"},
            access_token=access_token,
        )
        if not isinstance(rows, list):
            raise RemoteServiceError("Unexpected users payload.")
        if not rows:
            return None
        return map_row_to_identity(rows[0])

    async def update_profile_row(
        self,
        *,
        user_id: str,
        fields: Mapping[str, Any],
        access_token: str,
    ) -> None:
        await self._request(
            "PATCH",
            "/rest/v1/users",
            params={"id": f"eq.{user_id}"},
            json=dict(fields),
            access_token=access_token,
            headers={"Prefer": "return=minimal"},
            expect_json=False,
        )

    def _emit(self, event: AuthEvent, session: RemoteSession | None) -> None:
        change = AuthChangeEvent(event=event, session=session)
        for handler in list(self._handlers):
            handler(change)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        access_token: str | None = None,
        headers: Mapping[str, str] | None = None,
        expect_json: bool = True,
    ) -> Any:
        url = f"{self._settings.base_url.rstrip('/')}{path}"
        request_headers = {
            "apikey": self._settings.anon_key,
            "Authorization": f"Bearer {access_token or self._settings.anon_key}",
        }
        if headers:
            request_headers.update(headers)

        try:
            if self._http_client is not None:
                response = await self._http_client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=request_headers,
                )
            else:
                async with httpx.AsyncClient(timeout=self._settings.timeout_seconds) as client:
                    response = await client.request(
                        method,
                        url,
                        params=params,
                        json=json,
                        headers=request_headers,
                    )
        except httpx.HTTPError as exc:
            raise RemoteServiceError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 500:
            raise RemoteServiceError(f"{method} {path} returned {response.status_code}.")
        if response.status_code >= 400:
            raise RemoteAuthError(_error_message(response), status_code=response.status_code)

        if not expect_json:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteServiceError(f"{method} {path} returned invalid JSON.") from exc


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return f"HTTP {response.status_code}"


def _parse_session(payload: Mapping[str, Any]) -> RemoteSession:
    access_token = payload.get("access_token")
    user = payload.get("user") or {}
    user_id = user.get("id")
    if not access_token or not user_id:
        raise RemoteServiceError("Session payload missing access_token or user id.")

    expires_at = None
    if payload.get("expires_at") is not None:
        expires_at = datetime.fromtimestamp(int(payload["expires_at"]), tz=timezone.utc)
    elif payload.get("expires_in") is not None:
        expires_at = _utcnow() + timedelta(seconds=int(payload["expires_in"]))

    metadata = user.get("user_metadata") if isinstance(user.get("user_metadata"), dict) else {}
    return RemoteSession(
        user_id=str(user_id),
        access_token=str(access_token),
        refresh_token=payload.get("refresh_token"),
        expires_at=expires_at,
        email=user.get("email"),
        user_metadata=dict(metadata),
    )
