from __future__ import annotations

import json

from common_core.config import Settings, settings


class ConfigError(RuntimeError):
    pass


def _must_be_positive(name: str, value: int) -> None:
    if value <= 0:
        raise ConfigError(f"{name} must be a positive integer")


def validate_runtime_config(cfg: Settings | None = None) -> None:
    cfg = cfg or settings
    if not (cfg.database_url or "").strip():
        raise ConfigError("DATABASE_URL is required")

    try:
        matrix = json.loads(cfg.notify_matrix or "{}")
    except ValueError as e:
        raise ConfigError("NOTIFY_MATRIX must be valid JSON") from e
    if not isinstance(matrix, dict):
        raise ConfigError("NOTIFY_MATRIX must be a JSON object")

    _must_be_positive("RATE_LIMIT_MAX", cfg.rate_limit_max)
    _must_be_positive("RATE_LIMIT_WINDOW_SEC", cfg.rate_limit_window_sec)
