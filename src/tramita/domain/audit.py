"""Audit entry construction and actor permission checks."""

from datetime import datetime
from typing import Optional

from tramita.domain.entities import Actor, AuditAction, AuditEntry, AuditSeverity, Role
from tramita.domain.errors import AuthorizationError, role_not_allowed

EDITOR_ROLES = (Role.ADMIN, Role.OPERATOR)
PRIVILEGED_ROLES = (Role.ADMIN,)


def build_audit(
    actor: Actor,
    action: AuditAction,
    severity: AuditSeverity,
    details: str,
    timestamp: datetime,
    target_resource: Optional[str] = None,
) -> AuditEntry:
    """Build an unsaved audit entry for ``actor``'s tenant."""
    return AuditEntry(
        id=None,
        tenant_id=actor.tenant_id,
        actor_id=actor.id,
        actor_name=actor.name,
        action=action,
        details=details,
        severity=severity,
        timestamp=timestamp,
        target_resource=target_resource,
    )


def require_role(actor: Actor, allowed: tuple[Role, ...], operation: str) -> None:
    """Raise AuthorizationError unless the actor has one of ``allowed`` roles."""
    if actor.role not in allowed:
        raise AuthorizationError(role_not_allowed(actor.role.value, operation))
