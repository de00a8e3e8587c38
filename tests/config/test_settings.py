from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest

from regwatch.config import (
    MAX_BATCH_SIZE,
    ConfigurationError,
    EnrichmentConfig,
    IngestConfig,
    MissingConfigurationError,
    StorageConfig,
    download_resilience_config,
    get_database_config,
    get_enrichment_config,
    get_ingest_config,
    get_storage_config,
)

_INGEST_VARS = (
    "REGWATCH_BATCH_SIZE",
    "REGWATCH_RECENT_LIMIT",
    "REGWATCH_WORKERS",
    "REGWATCH_ROW_WORKERS",
    "REGWATCH_STRICT_IDENTITY",
    "REGWATCH_LEARN_ALIASES",
    "REGWATCH_MERGE_MAX_ATTEMPTS",
    "REGWATCH_MERGE_BASE_DELAY",
    "REGWATCH_MERGE_MAX_DELAY",
    "REGWATCH_MERGE_JITTER",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _INGEST_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_ingest_defaults(clean_env: pytest.MonkeyPatch) -> None:
    config = get_ingest_config()

    assert config.batch_size == MAX_BATCH_SIZE == 10
    assert config.recent_limit == 5
    assert config.strict_identity is False
    assert config.learn_aliases is True
    assert config.merge_retry.max_attempts == 5


def test_ingest_environment_overrides(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("REGWATCH_BATCH_SIZE", "4")
    clean_env.setenv("REGWATCH_WORKERS", "8")
    clean_env.setenv("REGWATCH_STRICT_IDENTITY", "true")
    clean_env.setenv("REGWATCH_MERGE_MAX_ATTEMPTS", "2")
    clean_env.setenv("REGWATCH_MERGE_JITTER", "0")

    config = get_ingest_config()

    assert (config.batch_size, config.workers, config.strict_identity) == (4, 8, True)
    assert config.merge_retry.max_attempts == 2
    assert config.merge_retry.jitter_seconds == 0.0


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("REGWATCH_BATCH_SIZE", "11"),
        ("REGWATCH_BATCH_SIZE", "0"),
        ("REGWATCH_RECENT_LIMIT", "0"),
        ("REGWATCH_ROW_WORKERS", "0"),
        ("REGWATCH_MERGE_MAX_ATTEMPTS", "0"),
        ("REGWATCH_MERGE_BASE_DELAY", "-1"),
    ],
)
def test_invalid_ingest_settings_are_rejected(
    clean_env: pytest.MonkeyPatch, name: str, value: str
) -> None:
    clean_env.setenv(name, value)

    with pytest.raises(ConfigurationError):
        get_ingest_config()


def test_ingest_config_bounds_batch_size() -> None:
    with pytest.raises(ConfigurationError, match="between 1 and 10"):
        IngestConfig(batch_size=12)


def test_storage_prefers_explicit_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("REGWATCH_DATA_DIR", str(custom))

    storage = get_storage_config()

    assert storage.resolve_data_dir() == custom.resolve()
    assert storage.http_cache_path() == custom.resolve() / "http_cache.db"


def test_database_uri_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://localhost/regwatch")

    config = get_database_config()

    assert config.uri == "postgresql+psycopg://localhost/regwatch"
    assert config.is_sqlite is False


def test_database_uri_creates_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    storage = StorageConfig(data_dir=tmp_path / "data-dir")

    config = get_database_config(storage=storage)

    expected_path = (tmp_path / "data-dir" / "regwatch.db").resolve()
    assert config.uri == f"sqlite+pysqlite:///{expected_path}"
    assert config.is_sqlite is True
    assert expected_path.parent.exists()


def test_enrichment_is_disabled_without_endpoint(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("REGWATCH_ENRICHMENT_TOKEN", raising=False)
    monkeypatch.delenv("REGWATCH_ENRICHMENT_URL", raising=False)

    assert get_enrichment_config().enabled is False


def test_enrichment_token_requires_an_endpoint(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("REGWATCH_ENRICHMENT_URL", raising=False)
    monkeypatch.setenv("REGWATCH_ENRICHMENT_TOKEN", "secret")

    with pytest.raises(MissingConfigurationError) as exc:
        get_enrichment_config()

    assert exc.value.names == ("REGWATCH_ENRICHMENT_URL",)


def test_enrichment_resilience_carries_the_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REGWATCH_ENRICHMENT_URL", "https://enrich.example.com/events")
    monkeypatch.setenv("REGWATCH_ENRICHMENT_TOKEN", "secret")
    monkeypatch.setenv("REGWATCH_ENRICHMENT_RATE", "3")

    config = get_enrichment_config()
    resilience = config.resilience()

    assert config.enabled is True
    assert resilience.cache is None
    assert resilience.ratelimit is not None
    assert resilience.ratelimit.max_calls == 3
    assert dict(resilience.default_headers or {}) == {"Authorization": "Bearer secret"}
    assert EnrichmentConfig(endpoint="x").resilience().default_headers is None


def test_download_resilience_caches_to_the_given_path() -> None:
    config = download_resilience_config(cache_path="/tmp/cache.db")  # noqa: S108

    assert config.cache is not None
    assert config.cache.sqlite_path == "/tmp/cache.db"  # noqa: S108
    assert config.ratelimit is not None
