from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import text

from sewcraft.application.dto.user_management import UserStatsOutput
from sewcraft.application.ports.profile_store_port import ProfileStorePort
from sewcraft.infrastructure.db.mappers.identity_mapper import map_row_to_identity
from sewcraft.infrastructure.db.models.users import USER_COLUMNS


logger = logging.getLogger(__name__)


UPDATABLE_COLUMNS = frozenset({"name", "email", "role", "phone", "address", "avatar", "is_blocked"})

_SELECT_COLUMNS = ", ".join(USER_COLUMNS)


class SqlUsersRepository(ProfileStorePort):
    def __init__(self, engine):
        self._engine = engine

    def get_user_by_id(self, *, user_id: str):
        sql = f"""
            SELECT {_SELECT_COLUMNS}
            FROM public.users
            WHERE id = CAST(:user_id AS uuid)
            LIMIT 1
        """
        with self._engine.connect() as conn:
            row = conn.execute(text(sql), {"user_id": user_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_identity(row)

    def email_in_use(self, *, email: str, exclude_user_id: str) -> bool:
        sql = """
            SELECT 1
            FROM public.users
            WHERE lower(email) = :email
              AND id <> CAST(:user_id AS uuid)
            LIMIT 1
        """
        with self._engine.connect() as conn:
            row = conn.execute(
                text(sql),
                {"email": email.strip().lower(), "user_id": exclude_user_id},
            ).first()
        return row is not None

    def update_user(self, *, user_id: str, fields: Mapping[str, Any]) -> bool:
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported users columns: {sorted(unknown)}")

        assignments = [
            f"{column} = CAST(:{column} AS user_role)" if column == "role" else f"{column} = :{column}"
            for column in sorted(fields)
        ]
        assignments.append("updated_at = now()")
        sql = f"""
            UPDATE public.users
            SET {", ".join(assignments)}
            WHERE id = CAST(:user_id AS uuid)
            RETURNING id
        """
        params = dict(fields)
        params["user_id"] = user_id
        with self._engine.begin() as conn:
            row = conn.execute(text(sql), params).first()
        logger.info(
            "users_repository: update_user user_id=%s columns=%s found=%s",
            user_id,
            sorted(fields),
            row is not None,
        )
        return row is not None

    def list_users(self, *, search: str | None = None):
        params: dict[str, Any] = {}
        where = ""
        term = (search or "").strip()
        if term:
            where = "WHERE name ILIKE :pattern OR email ILIKE :pattern"
            params["pattern"] = f"%{term}%"
        sql = f"""
            SELECT {_SELECT_COLUMNS}
            FROM public.users
            {where}
            ORDER BY created_at DESC
        """
        with self._engine.connect() as conn:
            rows = conn.execute(text(sql), params).mappings().all()
        return [map_row_to_identity(row) for row in rows]

    def set_blocked(self, *, user_id: str, is_blocked: bool) -> bool:
        return self.update_user(user_id=user_id, fields={"is_blocked": is_blocked})

    def get_user_stats(self) -> UserStatsOutput:
        sql = """
            SELECT
                count(*) AS total_users,
                count(*) FILTER (WHERE is_blocked) AS blocked_users,
                count(*) FILTER (WHERE role = 'ADMIN') AS admin_users
            FROM public.users
        """
        with self._engine.connect() as conn:
            row = conn.execute(text(sql)).mappings().one()
        total = int(row["total_users"] or 0)
        blocked = int(row["blocked_users"] or 0)
        return UserStatsOutput(
            total_users=total,
            active_users=total - blocked,
            blocked_users=blocked,
            admin_users=int(row["admin_users"] or 0),
        )
