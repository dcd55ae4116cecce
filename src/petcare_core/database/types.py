"""
Database-agnostic column types for petcare-core.

JSON columns use JSONB on PostgreSQL and plain JSON elsewhere (SQLite in
tests).
"""

from datetime import date
from typing import Any

from sqlalchemy import JSON, TypeDecorator
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.sql.type_api import TypeEngine


class JSONType(TypeDecorator):
    """
    Database-agnostic JSON column type.

    Dates nested inside lists or dicts are stored as ``YYYY-MM-DD`` strings.
    """

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value: Any, dialect: Dialect) -> Any:
        if value is None:
            return None
        return _serialize_dates(value)


def _serialize_dates(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list):
        return [_serialize_dates(item) for item in value]
    if isinstance(value, dict):
        return {key: _serialize_dates(item) for key, item in value.items()}
    return value
