"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, including the datetime
normalisation: SQLite drops tzinfo, so everything is written as UTC and
read back as aware UTC.
"""

from datetime import datetime, UTC
from decimal import Decimal
from typing import Optional

from tramita.domain import entities as domain
from tramita.database.models import (
    Case as ORMCase,
    Movement as ORMMovement,
    Unit as ORMUnit,
    Status as ORMStatus,
    User as ORMUser,
    AuditEntry as ORMAuditEntry,
)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def movement_to_domain(orm_movement: ORMMovement) -> domain.Movement:
    """Convert SQLAlchemy Movement model to domain Movement entity."""
    return domain.Movement(
        id=orm_movement.id,
        case_id=orm_movement.case_id,
        from_unit=orm_movement.from_unit,
        to_unit=orm_movement.to_unit,
        date_in=as_utc(orm_movement.date_in),
        date_out=as_utc(orm_movement.date_out),
        deadline=as_utc(orm_movement.deadline),
        days_spent=orm_movement.days_spent,
        handled_by=orm_movement.handled_by,
        remarks=orm_movement.remarks,
        analysis_type=orm_movement.analysis_type,
    )


def case_to_domain(orm_case: ORMCase) -> domain.Case:
    """Convert SQLAlchemy Case model (with movements) to domain Case entity."""
    return domain.Case(
        id=orm_case.id,
        tenant_id=orm_case.tenant_id,
        sei_number=orm_case.sei_number,
        type=domain.AmendmentType(orm_case.type),
        value=Decimal(orm_case.value),
        municipality=orm_case.municipality,
        object=orm_case.object,
        status=orm_case.status,
        author_name=orm_case.author_name,
        current_unit=orm_case.current_unit or "",
        movements=tuple(movement_to_domain(m) for m in orm_case.movements),
        year=orm_case.year,
        code=orm_case.code,
        notes=orm_case.notes,
        created_at=as_utc(orm_case.created_at),
        updated_at=as_utc(orm_case.updated_at),
    )


def apply_movement(orm_movement: ORMMovement, movement: domain.Movement, position: int) -> None:
    """Copy a domain Movement onto an ORM row."""
    orm_movement.position = position
    orm_movement.from_unit = movement.from_unit
    orm_movement.to_unit = movement.to_unit
    orm_movement.date_in = as_utc(movement.date_in)
    orm_movement.date_out = as_utc(movement.date_out)
    orm_movement.deadline = as_utc(movement.deadline)
    orm_movement.days_spent = movement.days_spent
    orm_movement.handled_by = movement.handled_by
    orm_movement.remarks = movement.remarks
    orm_movement.analysis_type = movement.analysis_type


def apply_case_fields(orm_case: ORMCase, case: domain.Case) -> None:
    """Copy the scalar fields of a domain Case onto an ORM row."""
    orm_case.tenant_id = case.tenant_id
    orm_case.sei_number = case.sei_number
    orm_case.code = case.code
    orm_case.year = case.year
    orm_case.type = case.type.value
    orm_case.value = case.value
    orm_case.municipality = case.municipality
    orm_case.object = case.object
    orm_case.author_name = case.author_name
    orm_case.status = case.status
    orm_case.current_unit = case.current_unit
    orm_case.notes = case.notes


def unit_to_domain(orm_unit: ORMUnit) -> domain.UnitConfig:
    """Convert SQLAlchemy Unit model to domain UnitConfig entity."""
    return domain.UnitConfig(
        id=orm_unit.id,
        tenant_id=orm_unit.tenant_id,
        name=orm_unit.name,
        default_sla_days=orm_unit.default_sla_days,
        analysis_type=orm_unit.analysis_type,
    )


def status_to_domain(orm_status: ORMStatus) -> domain.StatusDef:
    """Convert SQLAlchemy Status model to domain StatusDef entity."""
    return domain.StatusDef(
        id=orm_status.id,
        tenant_id=orm_status.tenant_id,
        name=orm_status.name,
        color=orm_status.color,
        is_final=orm_status.is_final,
        position=orm_status.position,
    )


def user_to_domain(orm_user: ORMUser) -> domain.User:
    """Convert SQLAlchemy User model to domain User entity."""
    return domain.User(
        id=orm_user.id,
        tenant_id=orm_user.tenant_id,
        name=orm_user.name,
        email=orm_user.email,
        role=domain.Role(orm_user.role),
        department=orm_user.department,
        lgpd_accepted=orm_user.lgpd_accepted,
    )


def audit_to_domain(orm_entry: ORMAuditEntry) -> domain.AuditEntry:
    """Convert SQLAlchemy AuditEntry model to domain AuditEntry entity."""
    return domain.AuditEntry(
        id=orm_entry.id,
        tenant_id=orm_entry.tenant_id,
        actor_id=orm_entry.actor_id,
        actor_name=orm_entry.actor_name,
        action=domain.AuditAction(orm_entry.action),
        details=orm_entry.details,
        severity=domain.AuditSeverity(orm_entry.severity),
        timestamp=as_utc(orm_entry.timestamp),
        target_resource=orm_entry.target_resource,
    )


def audit_to_orm(entry: domain.AuditEntry) -> ORMAuditEntry:
    """Build an ORM row for a new audit entry."""
    return ORMAuditEntry(
        tenant_id=entry.tenant_id,
        actor_id=entry.actor_id,
        actor_name=entry.actor_name,
        action=entry.action.value,
        severity=entry.severity.value,
        target_resource=entry.target_resource,
        details=entry.details,
        timestamp=as_utc(entry.timestamp),
    )
