from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    INVALID_CREDENTIALS = "InvalidCredentials"
    EMAIL_UNCONFIRMED = "EmailUnconfirmed"
    EMAIL_TAKEN = "EmailTaken"
    WEAK_PASSWORD = "WeakPassword"
    ACCOUNT_BLOCKED = "AccountBlocked"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    UNAUTHORIZED = "Unauthorized"
    NOT_FOUND = "NotFound"
    PARTIAL_SUCCESS = "PartialSuccess"
    INVALID_INPUT = "InvalidInput"
    INVALID_IDENTITY_ROW = "InvalidIdentityRow"
    SESSION_SUPERSEDED = "SessionSuperseded"


class DomainError(Exception):
    """Base for domain errors."""

    code: ErrorCode = ErrorCode.SERVICE_UNAVAILABLE


class InvalidCredentialsError(DomainError):
    """Email/password pair rejected by the identity service."""

    code = ErrorCode.INVALID_CREDENTIALS


class EmailUnconfirmedError(DomainError):
    """Account exists but the email was never confirmed."""

    code = ErrorCode.EMAIL_UNCONFIRMED


class EmailTakenError(DomainError):
    """Email already belongs to another identity."""

    code = ErrorCode.EMAIL_TAKEN


class WeakPasswordError(DomainError):
    """Password fails the minimum policy."""

    code = ErrorCode.WEAK_PASSWORD


class AccountBlockedError(DomainError):
    """Identity is blocked by an administrator."""

    code = ErrorCode.ACCOUNT_BLOCKED


class ServiceUnavailableError(DomainError):
    """Remote service failed its health check or could not be reached."""

    code = ErrorCode.SERVICE_UNAVAILABLE


class UnauthorizedError(DomainError):
    """Caller lacks permission for the requested target."""

    code = ErrorCode.UNAUTHORIZED


class NotFoundError(DomainError):
    """Target identity does not exist."""

    code = ErrorCode.NOT_FOUND


class PartialSuccessError(DomainError):
    """Profile row updated but the identity-service sync failed."""

    code = ErrorCode.PARTIAL_SUCCESS


class InvalidInputError(DomainError):
    code = ErrorCode.INVALID_INPUT


class InvalidIdentityRowError(DomainError):
    """Remote row is missing required columns or has malformed values."""

    code = ErrorCode.INVALID_IDENTITY_ROW


class SessionSupersededError(DomainError):
    """A newer session transition made this result stale."""

    code = ErrorCode.SESSION_SUPERSEDED
