"""Database layer for tramita application."""

from tramita.database.base import Database
from tramita.database.errors import (
    StoreError,
    SchemaNotProvisionedError,
    SchemaMismatchError,
    PermissionDeniedError,
    StoreUnavailableError,
)
from tramita.database.factories import create_sqlite_database

__all__ = [
    "Database",
    "create_sqlite_database",
    "StoreError",
    "SchemaNotProvisionedError",
    "SchemaMismatchError",
    "PermissionDeniedError",
    "StoreUnavailableError",
]
