"""Engine lifecycle and repository wiring for the SQLAlchemy adapter."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from regwatch.adapters.sqlalchemy.migrations import upgrade_head
from regwatch.adapters.sqlalchemy.repositories import (
    SqlAlchemyAliasRepository,
    SqlAlchemyCanonicalEventStore,
    SqlAlchemyEntityRepository,
    SqlAlchemyQuarantineSink,
    SqlAlchemyRollupStore,
    SqlAlchemySchemaMapRepository,
)
from regwatch.config import DatabaseConfig, get_database_config
from regwatch.domain.ports import IngestRepositories

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT = 30.0


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy adapter is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call regwatch.adapters.sqlalchemy."
                "session.startup() before requesting repositories."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
    migrate: bool = True,
) -> None:
    """Initialise the engine and bring the schema to the latest revision."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        database = DatabaseConfig(uri=database_uri) if database_uri else get_database_config()
        engine = _create_engine(database)
    if migrate:
        upgrade_head(engine=engine)
    if _STATE.engine is not None and _STATE.engine is not engine:
        _STATE.engine.dispose()
    _STATE.engine = engine
    log.debug("SQLAlchemy adapter started on %s", engine.url.render_as_string())


def _create_engine(database: DatabaseConfig) -> Engine:
    if database.is_sqlite:
        # Concurrent batch workers share one file; wait on the write lock before
        # the store reports a transient conflict.
        return create_engine(database.uri, connect_args={"timeout": SQLITE_BUSY_TIMEOUT})
    return create_engine(database.uri, pool_pre_ping=True)


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


def build_repositories(*, atomic_merge: bool = True) -> IngestRepositories:
    """Return repositories bound to the started engine's session factory."""

    factory = _STATE.session_factory
    return IngestRepositories(
        schema_maps=SqlAlchemySchemaMapRepository(factory),
        entities=SqlAlchemyEntityRepository(factory),
        aliases=SqlAlchemyAliasRepository(factory),
        events=SqlAlchemyCanonicalEventStore(factory, atomic_merge=atomic_merge),
        rollups=SqlAlchemyRollupStore(factory),
        quarantine=SqlAlchemyQuarantineSink(factory),
    )
