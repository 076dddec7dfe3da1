from __future__ import annotations

import os
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from referral_portal.core.paths import resolve_repo_path


def _env_files() -> list[str]:
    env = os.getenv("REFERRAL_ENVIRONMENT", "").strip().lower()
    files = [str(resolve_repo_path(".env"))]
    if env and env != "development":
        files.append(str(resolve_repo_path(f".env.{env}")))
    else:
        files.append(str(resolve_repo_path(".env.local")))
    return files


def _parse_origins(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    app_name: str = "Employee Referral Portal"
    environment: str = "development"

    database_url: str

    auth_mode: Literal["dev", "session"] = "session"
    session_ttl_hours: int = 24
    password_hash_iterations: int = 240_000
    min_password_length: int = 6
    allow_self_registration: bool = True
    allow_hr_self_registration: bool = False
    auth_rate_limit_per_min: int = 20
    auth_rate_limit_window_seconds: int = 60

    redis_url: str = Field(
        default="",
        validation_alias=AliasChoices("REFERRAL_REDIS_URL", "REDIS_URL"),
    )
    event_channel: str = "referrals:changes"

    upload_dir: str = "local_uploads/resumes"
    max_resume_bytes: int = 5 * 1024 * 1024
    how_know_max_length: int = 500

    cors_origins_csv: str = "http://localhost:5173,http://127.0.0.1:5173"

    model_config = SettingsConfigDict(env_prefix="REFERRAL_", env_file=_env_files(), extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        return _parse_origins(self.cors_origins_csv)


settings = Settings()
