"""Case registration and transition engine."""

import logging
from dataclasses import replace
from datetime import datetime, UTC
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, Sequence

from tramita.database.base import Database
from tramita.domain.audit import EDITOR_ROLES, PRIVILEGED_ROLES, build_audit, require_role
from tramita.domain.configuration import WorkflowConfig
from tramita.domain.entities import (
    UNIT_SEPARATOR,
    Actor,
    AmendmentType,
    AuditAction,
    AuditSeverity,
    Case,
    CaseDraft,
    Movement,
    Priority,
)
from tramita.domain.errors import (
    CaseLockedError,
    ConflictError,
    NotFoundError,
    ValidationError,
    case_not_found,
    duplicate_sei_number,
    missing_field,
)
from tramita.domain.lock import ensure_unlocked
from tramita.domain.sla import compute_days_spent, compute_deadline

logger = logging.getLogger(__name__)

PRIORITY_TAGS = {
    Priority.NORMAL: "",
    Priority.URGENT: "[URGENTE] ",
    Priority.VERY_URGENT: "[URGENTISSIMO] ",
}

EDITABLE_FIELDS = (
    "sei_number",
    "type",
    "value",
    "municipality",
    "object",
    "author_name",
    "year",
    "code",
    "notes",
)


def priority_tag(priority: Priority) -> str:
    """Prefix prepended to the remarks of a prioritised transition."""
    return PRIORITY_TAGS[Priority(priority)]


def close_movement(movement: Movement, when: datetime) -> Movement:
    """Return ``movement`` closed at ``when`` with its days spent fixed."""
    date_out = max(when, movement.date_in)
    return replace(movement, date_out=date_out, days_spent=compute_days_spent(movement.date_in, date_out))


def _parse_value(value) -> Decimal:
    if value is None or value == "":
        raise ValidationError(missing_field("value"), field="value")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid value '{value}'", field="value")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"Value must be a non-negative amount, got {value}", field="value")
    return amount


class CaseService:
    """Service for registering cases and moving them between units."""

    def __init__(self, db: Database, actor: Actor, clock: Optional[Callable[[], datetime]] = None):
        """Initialize case service.

        Args:
            db: Database instance
            actor: User performing the operations
            clock: Optional callable returning the current time (UTC)
        """
        self.db = db
        self.actor = actor
        self.clock = clock or (lambda: datetime.now(UTC))

    def _require_case(self, case_id: int) -> Case:
        case = self.db.get_case(self.actor.tenant_id, case_id)
        if case is None:
            raise NotFoundError(case_not_found(case_id))
        return case

    def _ensure_unlocked(self, case: Case, workflow: WorkflowConfig) -> None:
        try:
            ensure_unlocked(case, workflow.status_defs)
        except CaseLockedError:
            logger.warning("Rejected change to locked case %s (status %s)", case.id, case.status)
            raise

    def get_case(self, case_id: int) -> Optional[Case]:
        """Get case by ID.

        Args:
            case_id: Case ID

        Returns:
            Case entity or None if not found
        """
        return self.db.get_case(self.actor.tenant_id, case_id)

    def list_cases(self) -> list[Case]:
        return self.db.list_cases(self.actor.tenant_id)

    def create_case(self, draft: CaseDraft) -> Case:
        """Register a new case.

        The case starts without movements, so it has no deadline until its
        first transition.

        Args:
            draft: Case fields supplied by the caller

        Returns:
            Persisted case

        Raises:
            ValidationError: If a required field is missing or invalid
            ConflictError: If the SEI number is already registered
        """
        require_role(self.actor, EDITOR_ROLES, "register cases")

        for field_name in ("sei_number", "municipality", "object"):
            if not (getattr(draft, field_name) or "").strip():
                raise ValidationError(missing_field(field_name), field=field_name)
        value = _parse_value(draft.value)

        workflow = WorkflowConfig.load(self.db, self.actor.tenant_id)
        if draft.status is not None:
            status = workflow.require_status(draft.status)
        else:
            status = workflow.default_status
            if status is None:
                raise ValidationError("No status configured for new cases", field="status")

        sei_number = draft.sei_number.strip()
        if self.db.get_case_by_sei(self.actor.tenant_id, sei_number) is not None:
            raise ConflictError(duplicate_sei_number(sei_number))

        now = self.clock()
        case = Case(
            id=None,
            tenant_id=self.actor.tenant_id,
            sei_number=sei_number,
            type=AmendmentType(draft.type),
            value=value,
            municipality=draft.municipality.strip(),
            object=draft.object.strip(),
            status=status,
            author_name=draft.author_name,
            current_unit="",
            movements=(),
            year=draft.year,
            code=draft.code,
            notes=draft.notes,
            created_at=now,
        )
        audit = build_audit(
            self.actor,
            AuditAction.CREATE,
            AuditSeverity.INFO,
            f"Case {sei_number} registered with status '{status}'",
            now,
            target_resource=sei_number,
        )
        stored = self.db.upsert_case(case, audit=audit)
        logger.info("Created case %s (SEI %s)", stored.id, stored.sei_number)
        return stored

    def transition(
        self,
        case_id: int,
        destination_units: Sequence[str],
        new_status: Optional[str] = None,
        priority: Priority = Priority.NORMAL,
        remarks: Optional[str] = None,
    ) -> Case:
        """Move a case to one or more units.

        One movement is appended per destination, in order, all entering at
        the same instant. Movements still open are closed at that instant;
        no other past movement is touched.

        Args:
            case_id: Case ID
            destination_units: Names of the receiving units (fan-out when more than one)
            new_status: Status after the move. When None, the status named by the
                last destination's analysis type is used if configured, otherwise
                the status is kept
            priority: Transition priority, tagged onto the remarks
            remarks: Optional free text

        Returns:
            Case as persisted after the move

        Raises:
            CaseLockedError: If the case is in a terminal status
            ValidationError: If no destination is given or the status is unknown
            NotFoundError: If the case or a unit does not exist
        """
        require_role(self.actor, EDITOR_ROLES, "move cases")
        case = self._require_case(case_id)
        workflow = WorkflowConfig.load(self.db, self.actor.tenant_id)
        self._ensure_unlocked(case, workflow)

        if not destination_units:
            raise ValidationError("At least one destination unit is required", field="destination_units")
        if len(set(destination_units)) != len(destination_units):
            raise ValidationError("Destination units must not repeat", field="destination_units")
        units = [workflow.require_unit(name) for name in destination_units]
        if new_status is not None:
            workflow.require_status(new_status)

        now = self.clock()
        tagged_remarks = priority_tag(priority) + (remarks or "")
        from_unit = case.current_unit or None

        history = tuple(close_movement(m, now) if m.is_open else m for m in case.movements)
        new_movements = tuple(
            Movement(
                id=None,
                case_id=case.id,
                from_unit=from_unit,
                to_unit=unit.name,
                date_in=now,
                date_out=None,
                deadline=compute_deadline(now, unit.default_sla_days),
                days_spent=0,
                handled_by=self.actor.name,
                remarks=tagged_remarks or None,
                analysis_type=unit.analysis_type,
            )
            for unit in units
        )

        status = new_status or workflow.suggested_status(units[-1].analysis_type) or case.status
        current_unit = UNIT_SEPARATOR.join(unit.name for unit in units)
        updated = replace(
            case,
            movements=history + new_movements,
            current_unit=current_unit,
            status=status,
        )

        details = f"Case {case.sei_number} (id {case.id}) moved to: {current_unit}; status '{status}'"
        if workflow.is_terminal(status):
            details += " (case locked)"
        audit = build_audit(
            self.actor,
            AuditAction.MOVE,
            AuditSeverity.INFO,
            details,
            now,
            target_resource=str(case.id),
        )
        stored = self.db.upsert_case(updated, audit=audit)
        logger.info("Moved case %s to %s", stored.id, current_unit)
        return stored

    def update_case(self, case_id: int, **changes) -> Case:
        """Edit the registration fields of an unlocked case.

        Status, units and movements are not editable here.

        Raises:
            CaseLockedError: If the case is in a terminal status
            ValidationError: If a field is unknown or invalid
            ConflictError: If the new SEI number is already registered
        """
        require_role(self.actor, EDITOR_ROLES, "edit cases")
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}", field=sorted(unknown)[0])

        case = self._require_case(case_id)
        workflow = WorkflowConfig.load(self.db, self.actor.tenant_id)
        self._ensure_unlocked(case, workflow)

        if "value" in changes:
            changes["value"] = _parse_value(changes["value"])
        if "type" in changes:
            changes["type"] = AmendmentType(changes["type"])
        for field_name in ("sei_number", "municipality", "object"):
            if field_name in changes:
                changes[field_name] = (changes[field_name] or "").strip()
                if not changes[field_name]:
                    raise ValidationError(missing_field(field_name), field=field_name)
        if "sei_number" in changes and changes["sei_number"] != case.sei_number:
            if self.db.get_case_by_sei(self.actor.tenant_id, changes["sei_number"]) is not None:
                raise ConflictError(duplicate_sei_number(changes["sei_number"]))

        if not changes:
            return case

        updated = replace(case, **changes)
        audit = build_audit(
            self.actor,
            AuditAction.UPDATE,
            AuditSeverity.INFO,
            f"Case {case.sei_number} fields updated: {', '.join(sorted(changes))}",
            self.clock(),
            target_resource=str(case.id),
        )
        return self.db.upsert_case(updated, audit=audit)

    def delete_case(self, case_id: int, justification: str) -> None:
        """Delete a case. Privileged, and recorded with CRITICAL severity.

        Args:
            case_id: Case ID to delete
            justification: Mandatory reason, stored in the audit trail

        Raises:
            AuthorizationError: If the actor is not an administrator
            ValidationError: If the justification is empty
            CaseLockedError: If the case is in a terminal status
            NotFoundError: If the case doesn't exist
        """
        require_role(self.actor, PRIVILEGED_ROLES, "delete cases")
        justification = (justification or "").strip()
        if not justification:
            raise ValidationError("A justification is required to delete a case", field="justification")

        case = self._require_case(case_id)
        workflow = WorkflowConfig.load(self.db, self.actor.tenant_id)
        self._ensure_unlocked(case, workflow)

        audit = build_audit(
            self.actor,
            AuditAction.DELETE,
            AuditSeverity.CRITICAL,
            f"Case {case.sei_number} (id {case.id}) deleted. Justification: {justification}",
            self.clock(),
            target_resource=case.sei_number,
        )
        self.db.delete_case(self.actor.tenant_id, case.id, audit=audit)
        logger.warning("Deleted case %s (SEI %s)", case.id, case.sei_number)
