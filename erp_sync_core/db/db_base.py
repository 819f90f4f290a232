"""
Base column types and mixins for the sync tables.

Keeps the store portable between PostgreSQL (production) and SQLite (tests).
"""

import json
import uuid
from datetime import UTC, datetime

from pydantic_core import to_jsonable_python
from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.dialects.postgresql import BYTEA, JSONB
from sqlalchemy.types import TypeDecorator


def utc_now():
    """Return current UTC time with timezone info attached."""
    return datetime.now(UTC)


def ensure_utc(value):
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that always comes back as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return ensure_utc(value).astimezone(UTC)

    def process_result_value(self, value, dialect):
        return ensure_utc(value)


class JSON(TypeDecorator):
    """JSONB on PostgreSQL, TEXT on SQLite. Decimals and datetimes go through pydantic."""

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "postgresql":
            return to_jsonable_python(value)
        return json.dumps(to_jsonable_python(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        return json.loads(value)


class EncryptedBinary(TypeDecorator):
    """pgcrypto ciphertext (BYTEA) on PostgreSQL, plaintext TEXT on SQLite."""

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(BYTEA())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if dialect.name == "postgresql":
            return value
        # SQLite stores the plaintext in a TEXT column
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def process_result_value(self, value, dialect):
        # Decryption happens in utils.encryption_utils
        return value


class TimestampMixin:
    """created_at/updated_at timestamps."""

    created_at = Column(UTCDateTime, default=utc_now, nullable=False)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False)


class UUIDMixin:
    """UUID string primary key."""

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
