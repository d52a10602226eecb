from __future__ import annotations

from sewcraft.application.dto.user_management import CallerContext
from sewcraft.application.ports.identity_service_port import RemoteAuthError, RemoteServiceError
from sewcraft.domain.exceptions import (
    DomainError,
    EmailTakenError,
    EmailUnconfirmedError,
    InvalidCredentialsError,
    InvalidInputError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
    WeakPasswordError,
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def translate_remote_error(exc: RemoteAuthError | RemoteServiceError) -> DomainError:
    if isinstance(exc, RemoteServiceError):
        return ServiceUnavailableError(f"Identity service unavailable: {exc}")

    message = str(exc)
    lower_msg = message.lower()
    if "invalid login credentials" in lower_msg:
        return InvalidCredentialsError("Invalid email or password.")
    if "email not confirmed" in lower_msg:
        return EmailUnconfirmedError("Please confirm your email address before logging in.")
    if "already registered" in lower_msg or "already exists" in lower_msg:
        return EmailTakenError("This email is already registered.")
    if "password should" in lower_msg or "weak password" in lower_msg:
        return WeakPasswordError(message)

    if exc.status_code in (401, 403):
        return UnauthorizedError(message)
    if exc.status_code == 404:
        return NotFoundError(message)
    if exc.status_code in (400, 422):
        return InvalidInputError(message)
    return ServiceUnavailableError(message)


def require_admin(caller: CallerContext, message: str = "Admin role required.") -> None:
    if not caller.is_admin:
        raise UnauthorizedError(message)
