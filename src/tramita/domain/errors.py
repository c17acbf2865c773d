"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling. ``reason`` is a stable code
    callers can branch on without parsing the message.
    """

    reason = "domain_error"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""

    reason = "validation"

    def __init__(self, message: str, field: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message, reason)
        self.field = field


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""

    reason = "not_found"


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""

    reason = "conflict"


class CaseLockedError(DomainError):
    """Mutation attempted on a case in a terminal status.

    Not retryable: the case only changes again through a confirmed
    retroactive edit or an explicit unlock.
    """

    reason = "locked"

    def __init__(self, case_id: Optional[int], status: str):
        super().__init__(case_locked(case_id, status))
        self.case_id = case_id
        self.status = status


class ConfirmationRequiredError(DomainError):
    """Irreversible operation submitted without explicit confirmation."""

    reason = "confirmation_required"


class AuthorizationError(DomainError):
    """Actor role does not allow the operation."""

    reason = "forbidden"


def case_not_found(case_id: int) -> str:
    """Return message for missing case."""
    return f"Case {case_id} not found"


def unit_not_found(name: str) -> str:
    """Return message for missing unit by name."""
    return f"Unit '{name}' not found"


def status_not_found(name: str) -> str:
    """Return message for a status that is not configured."""
    return f"Status '{name}' is not configured"


def case_locked(case_id: Optional[int], status: str) -> str:
    """Return message for a locked case."""
    return f"Case {case_id} is locked in terminal status '{status}'"


def duplicate_sei_number(sei_number: str) -> str:
    """Return message for duplicate SEI number."""
    return f"Case with SEI number '{sei_number}' already exists"


def missing_field(field_name: str) -> str:
    return f"Field '{field_name}' is required"


def role_not_allowed(role: str, operation: str) -> str:
    return f"Role {role} is not allowed to {operation}"
