from __future__ import annotations

import httpx

from sewcraft.application.stores.session_store import SessionStore
from sewcraft.infrastructure.clients.supabase_auth_client import SupabaseAuthClient, SupabaseAuthClientSettings
from sewcraft.shared.config import Settings, get_settings


def build_session_store(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> SessionStore:
    """Wire a ``SessionStore`` to the hosted identity service."""
    settings = settings or get_settings()
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY are required.")
    identity_service = SupabaseAuthClient(
        SupabaseAuthClientSettings(
            base_url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
            timeout_seconds=settings.remote_timeout_seconds,
        ),
        http_client=http_client,
    )
    return SessionStore(
        identity_service=identity_service,
        health_check_max_attempts=settings.health_check_max_attempts,
        health_check_retry_delay_seconds=settings.health_check_retry_delay_seconds,
    )
