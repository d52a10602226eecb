from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from sewcraft.application.ports.identity_admin_port import IdentityAdminError, IdentityAdminPort


logger = logging.getLogger(__name__)


class SupabaseAdminClient(IdentityAdminPort):
    """Service-role client for the identity service's admin user API."""

    def __init__(
        self,
        *,
        base_url: str,
        service_role_key: str,
        timeout_seconds: float,
        transport: httpx.BaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._service_role_key = service_role_key
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def update_user_by_id(self, *, user_id: str, attributes: Mapping[str, Any]) -> None:
        url = f"{self._base_url}/auth/v1/admin/users/{user_id}"
        headers = {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
        }
        try:
            with httpx.Client(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = client.put(url, json=dict(attributes), headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = _error_message(exc.response)
            logger.warning(
                "supabase_admin_client: update_user_failed user_id=%s status=%s error=%s",
                user_id,
                exc.response.status_code,
                message,
            )
            raise IdentityAdminError(message) from exc
        except httpx.HTTPError as exc:
            logger.warning("supabase_admin_client: update_user_failed user_id=%s error=%s", user_id, exc)
            raise IdentityAdminError(str(exc)) from exc

        logger.info(
            "supabase_admin_client: user_updated user_id=%s attributes=%s",
            user_id,
            sorted(k for k in attributes if k != "password"),
        )


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        for key in ("msg", "message", "error_description", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return f"HTTP {response.status_code}"
