"""Durable key/value rows. Each row holds one serialized blob."""

from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class StoredValue(SQLModel, table=True):
    __tablename__ = "stored_value"

    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
