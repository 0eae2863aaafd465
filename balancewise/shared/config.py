from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _bool(name: str, default: str = "false") -> bool:
    return (_env(name, default) or "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    postgres_dsn: str
    db_create_tables: bool
    jwt_secret: str
    jwt_ttl_days: int
    server_url: str
    google_client_id: str
    google_client_secret: str
    google_auth_url: str
    google_token_url: str
    google_userinfo_url: str
    google_timeout_seconds: float
    avatar_timeout_seconds: float
    openai_api_key: str
    openai_model: str
    openai_timeout_seconds: float
    cleanup_interval_seconds: float
    log_level: str
    http_log: bool

    @property
    def google_redirect_url(self) -> str:
        return f"{self.server_url.rstrip('/')}/auth/callback"

    @property
    def google_drive_redirect_url(self) -> str:
        return f"{self.google_redirect_url}-drive"


def get_settings() -> Settings:
    return Settings(
        postgres_dsn=_env("POSTGRES_DSN", ""),
        db_create_tables=_bool("DB_CREATE_TABLES"),
        jwt_secret=_env("JWT_SECRET", ""),
        jwt_ttl_days=int(_env("JWT_TTL_DAYS", "30")),
        server_url=_env("SERVER_URL", "http://localhost:8080"),
        google_client_id=_env("GOOGLE_CLIENT_ID", ""),
        google_client_secret=_env("GOOGLE_CLIENT_SECRET", ""),
        google_auth_url=_env("GOOGLE_AUTH_URL", "https://accounts.google.com/o/oauth2/auth"),
        google_token_url=_env("GOOGLE_TOKEN_URL", "https://oauth2.googleapis.com/token"),
        google_userinfo_url=_env("GOOGLE_USERINFO_URL", "https://www.googleapis.com/oauth2/v2/userinfo"),
        google_timeout_seconds=float(_env("GOOGLE_TIMEOUT_SECONDS", "10")),
        avatar_timeout_seconds=float(_env("AVATAR_TIMEOUT_SECONDS", "5")),
        openai_api_key=_env("OPENAI_API_KEY", ""),
        openai_model=_env("OPENAI_MODEL", "gpt-5-mini"),
        openai_timeout_seconds=float(_env("OPENAI_TIMEOUT_SECONDS", "60")),
        cleanup_interval_seconds=float(_env("CLEANUP_INTERVAL_SECONDS", "300")),
        log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper(),
        http_log=_bool("HTTP_LOG"),
    )
