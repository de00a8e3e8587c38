"""Pydantic models for queue messages, storage notifications and seed files."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from urllib.parse import unquote_plus

from pydantic import BaseModel, ConfigDict, Field, field_validator

from regwatch.domain.model import MAX_BATCH_ROWS, DatasetKey, RawRow, RowBatch
from regwatch.domain.schema_registry import SchemaMap


class SourceBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RowBatchMessage(SourceBaseModel):
    """One queue message: up to ten raw rows sharing a source object."""

    batch_id: str = Field(min_length=1)
    source_url: str = Field(min_length=1)
    dataset: str | None = None
    ingested_at: datetime | None = None
    rows: list[dict[str, Any]] = Field(max_length=MAX_BATCH_ROWS)

    @field_validator("ingested_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def dataset_key(self) -> DatasetKey:
        if self.dataset:
            return DatasetKey.parse(self.dataset)
        return DatasetKey.from_object_key(self.source_url)

    def to_batch(self, *, now: datetime | None = None) -> RowBatch:
        dataset = self.dataset_key()
        stamp = self.ingested_at or now or datetime.now(UTC)
        return RowBatch(
            batch_id=self.batch_id,
            rows=tuple(
                RawRow(values=row, dataset=dataset, source_url=self.source_url, ingested_at=stamp)
                for row in self.rows
            ),
        )


class StorageBucket(SourceBaseModel):
    name: str


class StorageObject(SourceBaseModel):
    key: str
    size: int | None = None

    @field_validator("key")
    @classmethod
    def _decode_key(cls, value: str) -> str:
        return unquote_plus(value)


class StorageEntity(SourceBaseModel):
    bucket: StorageBucket
    object: StorageObject


class NotificationRecord(SourceBaseModel):
    event_name: str | None = Field(default=None, alias="eventName")
    s3: StorageEntity

    @property
    def url(self) -> str:
        return f"s3://{self.s3.bucket.name}/{self.s3.object.key}"

    @property
    def dataset(self) -> DatasetKey:
        return DatasetKey.from_object_key(self.s3.object.key)


class ObjectCreatedNotification(SourceBaseModel):
    """Object-storage "object created" notification (S3 event layout)."""

    records: list[NotificationRecord] = Field(default_factory=list, alias="Records")

    def object_urls(self) -> list[str]:
        return [record.url for record in self.records]


class SchemaMapDocument(SourceBaseModel):
    source: str = Field(min_length=1)
    variant: str = Field(min_length=1)
    header_map: dict[str, list[str]]

    @field_validator("header_map")
    @classmethod
    def _require_aliases(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        empty = [key for key, aliases in value.items() if not [a for a in aliases if a]]
        if empty:
            raise ValueError(f"canonical keys without aliases: {', '.join(sorted(empty))}")
        return value

    def to_schema_map(self) -> SchemaMap:
        return SchemaMap(DatasetKey(self.source, self.variant), self.header_map)


class SchemaMapSeedFile(SourceBaseModel):
    maps: list[SchemaMapDocument]

    def to_schema_maps(self) -> list[SchemaMap]:
        return [document.to_schema_map() for document in self.maps]
