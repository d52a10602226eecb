from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from sewcraft.domain.entities.identity import Identity, Role
from sewcraft.domain.exceptions import InvalidIdentityRowError


def _as_str(value: Any) -> str:
    return str(value)


def _required_str(row: Mapping[str, Any], key: str) -> str:
    value = row.get(key)
    if value is None or not _as_str(value).strip():
        raise InvalidIdentityRowError(f"users row missing '{key}'.")
    return _as_str(value).strip()


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = _as_str(value).strip()
    return text or None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "t", "1", "yes"}
    return bool(value)


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError as exc:
            raise InvalidIdentityRowError(f"users row has malformed created_at: {value!r}.") from exc
    else:
        raise InvalidIdentityRowError("users row missing 'created_at'.")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def map_row_to_identity(row: Mapping[str, Any]) -> Identity:
    """Validate a ``users`` row and build an ``Identity``.

    ``id``, ``email`` and ``created_at`` are required. A blank ``name`` falls
    back to the local part of the email, an unknown ``role`` becomes
    ``user`` and a missing ``is_blocked`` is ``False``.
    """
    email = _required_str(row, "email")
    name = _optional_str(row.get("name")) or email.split("@", 1)[0]
    return Identity(
        id=_required_str(row, "id"),
        email=email,
        name=name,
        role=Role.parse(row.get("role"), default=Role.USER),
        phone=_optional_str(row.get("phone")),
        address=_optional_str(row.get("address")),
        avatar=_optional_str(row.get("avatar")),
        is_blocked=_as_bool(row.get("is_blocked", False)),
        created_at=_as_datetime(row.get("created_at")),
    )
