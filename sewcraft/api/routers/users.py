from __future__ import annotations

from fastapi import APIRouter, Depends

from sewcraft.api.deps import (
    get_current_caller,
    get_list_users_use_case,
    get_set_user_blocked_use_case,
    get_user_stats_use_case,
)
from sewcraft.api.routers.user_management import raise_http_error
from sewcraft.api.schemas.user_management import SetBlockedRequest, UserResponse, UserStatsResponse
from sewcraft.application.dto.user_management import CallerContext
from sewcraft.application.use_cases.get_user_stats import GetUserStatsUseCase
from sewcraft.application.use_cases.list_users import ListUsersUseCase
from sewcraft.application.use_cases.set_user_blocked import SetUserBlockedUseCase
from sewcraft.domain.exceptions import DomainError


router = APIRouter()


@router.get("/v1/users", response_model=list[UserResponse])
def list_users(
    search: str | None = None,
    caller: CallerContext = Depends(get_current_caller),
    use_case: ListUsersUseCase = Depends(get_list_users_use_case),
):
    try:
        identities = use_case.execute(caller=caller, search=search)
    except DomainError as exc:
        raise_http_error(exc)
    return [
        UserResponse(
            id=identity.id,
            email=identity.email,
            name=identity.name,
            role=identity.role.value,
            phone=identity.phone,
            address=identity.address,
            avatar=identity.avatar,
            is_blocked=identity.is_blocked,
            created_at=identity.created_at,
        )
        for identity in identities
    ]


@router.get("/v1/users/stats", response_model=UserStatsResponse)
def user_stats(
    caller: CallerContext = Depends(get_current_caller),
    use_case: GetUserStatsUseCase = Depends(get_user_stats_use_case),
):
    try:
        stats = use_case.execute(caller=caller)
    except DomainError as exc:
        raise_http_error(exc)
    return UserStatsResponse(
        total_users=stats.total_users,
        active_users=stats.active_users,
        blocked_users=stats.blocked_users,
        admin_users=stats.admin_users,
    )


@router.post("/v1/users/{user_id}/block")
def set_user_blocked(
    user_id: str,
    req: SetBlockedRequest,
    caller: CallerContext = Depends(get_current_caller),
    use_case: SetUserBlockedUseCase = Depends(get_set_user_blocked_use_case),
):
    try:
        use_case.execute(caller=caller, user_id=user_id, is_blocked=req.is_blocked)
    except DomainError as exc:
        raise_http_error(exc)
    return {"ok": True, "is_blocked": req.is_blocked}
