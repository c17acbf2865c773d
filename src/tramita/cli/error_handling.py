"""CLI error handling helpers."""

import click

from tramita.database.errors import (
    PermissionDeniedError,
    SchemaMismatchError,
    SchemaNotProvisionedError,
    StoreError,
)
from tramita.domain.errors import (
    AuthorizationError,
    CaseLockedError,
    ConfirmationRequiredError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)

EXIT_FAILURE = 1
EXIT_LOCKED = 3
EXIT_CONFIRMATION = 4
EXIT_FORBIDDEN = 5
EXIT_STORE = 6
EXIT_SETUP = 7
EXIT_VALIDATION = 8

SETUP_HINT = "Run 'tramita setup init-defaults' to create the tables and default configuration."

CLI_ERRORS = (DomainError, StoreError)


def describe_error(error: Exception) -> tuple[str, int]:
    """Return the message and exit code used to report ``error``."""
    if isinstance(error, CaseLockedError):
        return f"Locked: {error}", EXIT_LOCKED
    if isinstance(error, ConfirmationRequiredError):
        return f"Confirmation required: {error}. Re-run with --yes.", EXIT_CONFIRMATION
    if isinstance(error, AuthorizationError):
        return f"Forbidden: {error}", EXIT_FORBIDDEN
    if isinstance(error, SchemaNotProvisionedError):
        return f"Setup needed: {error}\n{SETUP_HINT}", EXIT_SETUP
    if isinstance(error, SchemaMismatchError):
        return f"Setup needed: database schema is out of date: {error}", EXIT_SETUP
    if isinstance(error, PermissionDeniedError):
        return f"Store error: permission denied: {error}", EXIT_STORE
    if isinstance(error, StoreError):
        return f"Store error: database unavailable: {error}", EXIT_STORE
    if isinstance(error, ValidationError):
        return f"Validation error: {error}", EXIT_VALIDATION
    if isinstance(error, NotFoundError):
        return f"Not found: {error}", EXIT_FAILURE
    if isinstance(error, ConflictError):
        return f"Conflict: {error}", EXIT_FAILURE
    return f"Error: {error}", EXIT_FAILURE


def handle_domain_error(ctx: click.Context, error: Exception) -> None:
    """Render a domain or store error and exit with its code."""
    message, code = describe_error(error)
    click.echo(message, err=True)
    ctx.exit(code)
