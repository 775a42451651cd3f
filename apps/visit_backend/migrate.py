from __future__ import annotations

import logging
import os

from alembic import command
from alembic.config import Config

from common_core.config import settings

log = logging.getLogger("windtrack.migrate")

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def alembic_config(db_url: str | None = None) -> Config:
    ini_path = os.path.join(BASE_DIR, "alembic.ini")
    cfg = Config(ini_path) if os.path.exists(ini_path) else Config()
    cfg.set_main_option("script_location", os.path.join(BASE_DIR, "alembic"))
    # configparser interpolation
    cfg.set_main_option("sqlalchemy.url", (db_url or settings.database_url).replace("%", "%%"))
    # Logging is already configured by the app; keep alembic from resetting it
    cfg.attributes["configure_logger"] = False
    return cfg


def upgrade_head(db_url: str | None = None) -> None:
    command.upgrade(alembic_config(db_url), "head")
    log.info("migrations_applied", extra={"component": "visit_backend"})
