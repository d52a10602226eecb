from __future__ import annotations

from functools import lru_cache

from fastapi import Header, HTTPException

from sewcraft.application.dto.user_management import CallerContext
from sewcraft.application.use_cases.get_user_stats import GetUserStatsUseCase
from sewcraft.application.use_cases.list_users import ListUsersUseCase
from sewcraft.application.use_cases.patch_user import PatchUserUseCase
from sewcraft.application.use_cases.put_user import PutUserUseCase
from sewcraft.application.use_cases.set_user_blocked import SetUserBlockedUseCase
from sewcraft.domain.entities.identity import Role
from sewcraft.infrastructure.clients.supabase_admin_client import SupabaseAdminClient
from sewcraft.infrastructure.db.engine import get_engine
from sewcraft.infrastructure.db.repositories.users_repository import SqlUsersRepository
from sewcraft.infrastructure.security.token_service import JwtTokenService
from sewcraft.shared.config import get_settings


def _get_db_engine():
    settings = get_settings()
    if not settings.postgres_dsn:
        raise HTTPException(status_code=500, detail="POSTGRES_DSN is required.")
    return get_engine(settings.postgres_dsn)


def _get_users_repository() -> SqlUsersRepository:
    return SqlUsersRepository(_get_db_engine())


@lru_cache(maxsize=1)
def _get_token_service() -> JwtTokenService:
    settings = get_settings()
    if not settings.supabase_jwt_secret:
        raise HTTPException(status_code=500, detail="SUPABASE_JWT_SECRET is required.")
    return JwtTokenService(jwt_secret=settings.supabase_jwt_secret)


@lru_cache(maxsize=1)
def _get_admin_client() -> SupabaseAdminClient:
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise HTTPException(
            status_code=500,
            detail="SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required.",
        )
    return SupabaseAdminClient(
        base_url=settings.supabase_url,
        service_role_key=settings.supabase_service_role_key,
        timeout_seconds=settings.remote_timeout_seconds,
    )


def get_patch_user_use_case() -> PatchUserUseCase:
    return PatchUserUseCase(
        profile_store=_get_users_repository(),
        identity_admin=_get_admin_client(),
    )


def get_put_user_use_case() -> PutUserUseCase:
    return PutUserUseCase(
        profile_store=_get_users_repository(),
        identity_admin=_get_admin_client(),
    )


def get_list_users_use_case() -> ListUsersUseCase:
    return ListUsersUseCase(profile_store=_get_users_repository())


def get_set_user_blocked_use_case() -> SetUserBlockedUseCase:
    return SetUserBlockedUseCase(profile_store=_get_users_repository())


def get_user_stats_use_case() -> GetUserStatsUseCase:
    return GetUserStatsUseCase(profile_store=_get_users_repository())


def get_current_caller(
    authorization: str | None = Header(default=None),
) -> CallerContext:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized: Missing authorization header.")
    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized: Missing access token.")

    token_service = _get_token_service()
    try:
        payload = token_service.decode_access_token(token=token)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=f"Unauthorized: {exc}") from exc

    identity = _get_users_repository().get_user_by_id(user_id=payload.user_id)
    if identity is None:
        raise HTTPException(status_code=404, detail="User profile not found.")
    return CallerContext(user_id=identity.id, is_admin=identity.role == Role.ADMIN)
