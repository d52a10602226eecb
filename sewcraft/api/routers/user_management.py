from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from sewcraft.api.deps import get_current_caller, get_patch_user_use_case, get_put_user_use_case
from sewcraft.api.schemas.user_management import PatchUserRequest, PutUserRequest, UpdateUserResponse
from sewcraft.application.dto.user_management import (
    CallerContext,
    PatchUserInput,
    PutUserInput,
    UpdateUserOutput,
)
from sewcraft.application.use_cases.patch_user import PatchUserUseCase
from sewcraft.application.use_cases.put_user import PutUserUseCase
from sewcraft.domain.exceptions import (
    DomainError,
    EmailTakenError,
    InvalidInputError,
    NotFoundError,
    PartialSuccessError,
    UnauthorizedError,
    WeakPasswordError,
)


router = APIRouter()


def raise_http_error(exc: DomainError) -> None:
    if isinstance(exc, (InvalidInputError, EmailTakenError, WeakPasswordError)):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(exc, UnauthorizedError):
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, PartialSuccessError):
        raise HTTPException(
            status_code=500,
            detail={"error": str(exc), "partial_success": True},
        ) from exc
    raise HTTPException(status_code=500, detail=str(exc)) from exc


def _to_response(output: UpdateUserOutput) -> UpdateUserResponse:
    return UpdateUserResponse(
        message=output.message,
        email_changed=output.email_changed,
        password_changed=output.password_changed,
    )


@router.patch("/v1/user-management", response_model=UpdateUserResponse)
def patch_user(
    req: PatchUserRequest,
    caller: CallerContext = Depends(get_current_caller),
    use_case: PatchUserUseCase = Depends(get_patch_user_use_case),
):
    try:
        output = use_case.execute(
            caller=caller,
            command=PatchUserInput(user_id=req.user_id, fields=req.provided_fields()),
        )
    except DomainError as exc:
        raise_http_error(exc)
    return _to_response(output)


@router.put("/v1/user-management", response_model=UpdateUserResponse)
def put_user(
    req: PutUserRequest,
    caller: CallerContext = Depends(get_current_caller),
    use_case: PutUserUseCase = Depends(get_put_user_use_case),
):
    try:
        output = use_case.execute(
            caller=caller,
            command=PutUserInput(
                user_id=req.user_id,
                email=req.email,
                name=req.name,
                role=req.role,
                password=req.password,
            ),
        )
    except DomainError as exc:
        raise_http_error(exc)
    return _to_response(output)
