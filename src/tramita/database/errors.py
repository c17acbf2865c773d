"""Store error taxonomy.

Callers branch on these: a missing schema gets a setup hint, a mismatched
schema or a permission problem gets a specific message, everything else is
a transient failure the caller may retry.
"""

from sqlalchemy.exc import SQLAlchemyError


class StoreError(Exception):
    """Base class for store failures."""

    reason = "store_error"


class SchemaNotProvisionedError(StoreError):
    """A table the store needs does not exist."""

    reason = "schema_not_provisioned"


class SchemaMismatchError(StoreError):
    """A table exists but lacks a column the store needs."""

    reason = "schema_mismatch"


class PermissionDeniedError(StoreError):
    """The database refused the operation for the current credentials."""

    reason = "permission_denied"


class StoreUnavailableError(StoreError):
    """Generic, possibly transient, store failure."""

    reason = "unavailable"


# PostgreSQL SQLSTATE codes
UNDEFINED_TABLE = "42P01"
UNDEFINED_COLUMN = "42703"
INSUFFICIENT_PRIVILEGE = "42501"


def translate_store_error(exc: SQLAlchemyError) -> StoreError:
    """Map a SQLAlchemy exception onto the store error taxonomy."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    message = str(orig if orig is not None else exc)
    lowered = message.lower()

    if code == UNDEFINED_TABLE:
        return SchemaNotProvisionedError(f"Schema not provisioned: {message}")
    if code == UNDEFINED_COLUMN:
        return SchemaMismatchError(f"Schema mismatch: {message}")
    if code == INSUFFICIENT_PRIVILEGE:
        return PermissionDeniedError(f"Permission denied: {message}")

    # Drivers without SQLSTATE codes (SQLite) only give us the message.
    # Column checks come first: "column x of relation y does not exist".
    if "no such column" in lowered or "has no column named" in lowered or (
        "column" in lowered and "does not exist" in lowered
    ):
        return SchemaMismatchError(f"Schema mismatch: {message}")
    if "no such table" in lowered or ("relation" in lowered and "does not exist" in lowered):
        return SchemaNotProvisionedError(f"Schema not provisioned: {message}")
    if "permission denied" in lowered or "readonly database" in lowered:
        return PermissionDeniedError(f"Permission denied: {message}")

    return StoreUnavailableError(f"Store operation failed: {message}")
