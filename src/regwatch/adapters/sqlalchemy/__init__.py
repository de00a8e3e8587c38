"""SQLAlchemy adapter package for regwatch."""

from __future__ import annotations

from .mappings import metadata
from .repositories import (
    SqlAlchemyAliasRepository,
    SqlAlchemyCanonicalEventStore,
    SqlAlchemyEntityRepository,
    SqlAlchemyQuarantineSink,
    SqlAlchemyRollupStore,
    SqlAlchemySchemaMapRepository,
)
from .session import StartupError, build_repositories, shutdown, startup

__all__ = [
    "SqlAlchemyAliasRepository",
    "SqlAlchemyCanonicalEventStore",
    "SqlAlchemyEntityRepository",
    "SqlAlchemyQuarantineSink",
    "SqlAlchemyRollupStore",
    "SqlAlchemySchemaMapRepository",
    "StartupError",
    "build_repositories",
    "metadata",
    "shutdown",
    "startup",
]
