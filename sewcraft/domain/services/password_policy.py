from __future__ import annotations

from sewcraft.domain.exceptions import WeakPasswordError


MIN_PASSWORD_LENGTH = 8


def validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError(f"Password must have at least {MIN_PASSWORD_LENGTH} characters.")
    if not any(ch.isalpha() for ch in password):
        raise WeakPasswordError("Password must contain at least one letter.")
    if not any(ch.isdigit() for ch in password):
        raise WeakPasswordError("Password must contain at least one digit.")
