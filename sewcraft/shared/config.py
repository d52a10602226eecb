from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_anon_key: str
    supabase_service_role_key: str
    supabase_jwt_secret: str
    postgres_dsn: str
    remote_timeout_seconds: float
    health_check_max_attempts: int
    health_check_retry_delay_seconds: float
    log_level: str


def get_settings() -> Settings:
    return Settings(
        supabase_url=_env("SUPABASE_URL", ""),
        supabase_anon_key=_env("SUPABASE_ANON_KEY", ""),
        supabase_service_role_key=_env("SUPABASE_SERVICE_ROLE_KEY", ""),
        supabase_jwt_secret=_env("SUPABASE_JWT_SECRET", ""),
        postgres_dsn=_env("POSTGRES_DSN", ""),
        remote_timeout_seconds=float(_env("REMOTE_TIMEOUT_SECONDS", "10")),
        health_check_max_attempts=int(_env("HEALTH_CHECK_MAX_ATTEMPTS", "5")),
        health_check_retry_delay_seconds=float(_env("HEALTH_CHECK_RETRY_DELAY_SECONDS", "1")),
        log_level=_env("LOG_LEVEL", "INFO"),
    )
