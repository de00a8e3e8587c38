from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.pool import StaticPool

from regwatch.adapters.memory import build_memory_repositories
from regwatch.adapters.sqlalchemy.migrations import upgrade_head
from regwatch.adapters.sqlalchemy.session import build_repositories, shutdown, startup
from tests.helpers.ingest import seed_reference_data

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

    from regwatch.domain.ports import IngestRepositories


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("REGWATCH_"):
            monkeypatch.delenv(name)


@pytest.fixture
def memory_repositories() -> IngestRepositories:
    return build_memory_repositories()


@pytest.fixture
def seeded_repositories() -> IngestRepositories:
    return seed_reference_data(build_memory_repositories())


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_repositories(sqlite_engine: Engine) -> Iterator[IngestRepositories]:
    startup(engine=sqlite_engine, force=True, migrate=False)
    try:
        yield build_repositories()
    finally:
        shutdown()
