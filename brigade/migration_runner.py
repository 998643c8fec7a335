from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine

from .config import get_settings

logger = logging.getLogger(__name__)
PROJECT_ROOT = Path(__file__).resolve().parents[1]
_run_lock = Lock()
_has_run = False


def alembic_config(database_url: Optional[str] = None) -> Config:
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    url = database_url or get_settings().database_url
    # ConfigParser treats % as interpolation.
    cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return cfg


def pending_revision(database_url: Optional[str] = None) -> Optional[str]:
    """Return the head revision when the database lags behind it, else ``None``."""
    cfg = alembic_config(database_url)
    head = ScriptDirectory.from_config(cfg).get_current_head()
    engine = create_engine(database_url or get_settings().database_url)
    try:
        with engine.connect() as connection:
            current = MigrationContext.configure(connection).get_current_revision()
    finally:
        engine.dispose()
    return None if current == head else head


def run_migrations_once() -> None:
    """Upgrade the schema to head the first time this process asks for it."""
    global _has_run
    if _has_run:
        return

    with _run_lock:
        if _has_run:
            return
        logger.info("Applying database migrations...")
        command.upgrade(alembic_config(), "head")
        _has_run = True
        logger.info("Database schema is up to date.")
