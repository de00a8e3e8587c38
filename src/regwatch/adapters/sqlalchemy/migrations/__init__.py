"""Programmatic Alembic entry point for the regwatch schema.

The ``alembic`` CLI reads ``[tool.alembic]`` from ``pyproject.toml``; code
paths build their own ``Config`` pointing at this directory, so migrating
works from an installed wheel as well as from a checkout.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from regwatch.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent


def _alembic_config(database_uri: str | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Upgrade the database schema to the latest revision.

    With ``engine`` the migration runs on one of its connections inside a
    single transaction; otherwise Alembic connects to ``database_uri`` (or the
    configured database) itself.
    """

    if engine is None:
        config = _alembic_config(database_uri or get_database_config().uri)
        command.upgrade(config, "head")
        return

    config = _alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
