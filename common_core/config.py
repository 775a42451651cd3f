from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(default="dev", alias="APP_ENV")

    database_url: str = Field(
        default="sqlite+pysqlite:///./data/visits.db",
        alias="DATABASE_URL",
    )
    # Run "alembic upgrade head" when the API starts
    auto_migrate: bool = Field(default=True, alias="AUTO_MIGRATE")

    # Comma-separated list, empty means allow all
    cors_origin: str = Field(default="", alias="CORS_ORIGIN")
    # Behind a proxy/CDN the client address comes from X-Forwarded-For
    trust_proxy: bool = Field(default=True, alias="TRUST_PROXY")

    rate_limit_max: int = Field(default=5, alias="RATE_LIMIT_MAX")
    rate_limit_window_sec: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SEC")

    # Email / SMTP
    smtp_host: str = Field(default="", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_secure: bool = Field(default=False, alias="SMTP_SECURE")
    smtp_user: str = Field(default="", alias="SMTP_USER")
    smtp_pass: str = Field(default="", alias="SMTP_PASS")
    smtp_from: str = Field(default="Wind Tracker <noreply@example.com>", alias="SMTP_FROM")

    # JSON object: {"<power plant>": "a@x.com,b@x.com", "OTHER": "..."}
    notify_matrix: str = Field(default="{}", alias="NOTIFY_MATRIX")

    # Sites where check-in is refused (SITE_BLOCKED)
    blocked_sites: str = Field(default="", alias="BLOCKED_SITES")


settings = Settings()
