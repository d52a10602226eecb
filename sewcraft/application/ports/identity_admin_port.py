from __future__ import annotations

from typing import Any, Mapping, Protocol


class IdentityAdminError(RuntimeError):
    pass


class IdentityAdminPort(Protocol):
    def update_user_by_id(self, *, user_id: str, attributes: Mapping[str, Any]) -> None:
        ...
