from __future__ import annotations

import logging
import os
from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Engine

from pos_backend.core.config import DATABASE_URL, ENV_NORMALIZED

logger = logging.getLogger(__name__)
MIGRATIONS_PREFIX = "[MIGRATIONS]"


def _current_env() -> str:
    return os.getenv("ENV", ENV_NORMALIZED).strip().lower()


def validate_database_environment() -> None:
    if _current_env() in {"prod", "production"} and DATABASE_URL.startswith("sqlite"):
        logger.critical("%s SQLite is forbidden in production", MIGRATIONS_PREFIX)
        raise RuntimeError("SQLite is forbidden in production environment")


def expected_heads(alembic_config_path: Path) -> set[str]:
    alembic_cfg = Config(str(alembic_config_path))
    # script_location in the ini is relative to the ini, not to the cwd
    alembic_cfg.set_main_option("script_location", str(alembic_config_path.parent / "alembic"))
    return set(ScriptDirectory.from_config(alembic_cfg).get_heads())


def current_heads(engine: Engine) -> set[str]:
    with engine.connect() as connection:
        return set(MigrationContext.configure(connection).get_current_heads())


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path) -> None:
    """Refuse to start unless the database is stamped at the newest revision."""
    if _current_env() == "test":
        logger.info("%s skipped migration check in test environment", MIGRATIONS_PREFIX)
        return

    if not alembic_config_path.exists():
        logger.critical("%s alembic config not found path=%s", MIGRATIONS_PREFIX, alembic_config_path)
        raise RuntimeError("alembic config not found")

    expected = expected_heads(alembic_config_path)
    current = current_heads(engine)
    if not current:
        logger.critical("%s database has no alembic revision", MIGRATIONS_PREFIX)
        raise RuntimeError("Database has no migration state")

    if current != expected:
        logger.critical(
            "%s pending migration detected current=%s expected=%s",
            MIGRATIONS_PREFIX,
            sorted(current),
            sorted(expected),
        )
        raise RuntimeError("Pending migrations detected")

    logger.info("%s migration state verified head=%s", MIGRATIONS_PREFIX, ",".join(sorted(current)))
