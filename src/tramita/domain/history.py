"""Retroactive correction of a case's movement history."""

import logging
from dataclasses import replace
from datetime import datetime, UTC
from typing import Callable, Optional, Sequence

from tramita.database.base import Database
from tramita.domain.audit import PRIVILEGED_ROLES, build_audit, require_role
from tramita.domain.configuration import WorkflowConfig
from tramita.domain.entities import (
    Actor,
    AuditAction,
    AuditSeverity,
    Case,
    Movement,
    MovementEdit,
)
from tramita.domain.errors import (
    CaseLockedError,
    ConfirmationRequiredError,
    NotFoundError,
    ValidationError,
    case_not_found,
)
from tramita.domain.sla import DEFAULT_SLA_DAYS, compute_days_spent, compute_deadline

logger = logging.getLogger(__name__)


class HistoryService:
    """Administrative edits that bypass the normal transition flow."""

    def __init__(self, db: Database, actor: Actor, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.actor = actor
        self.clock = clock or (lambda: datetime.now(UTC))

    def _require_case(self, case_id: int) -> Case:
        case = self.db.get_case(self.actor.tenant_id, case_id)
        if case is None:
            raise NotFoundError(case_not_found(case_id))
        return case

    def _rebuild_movement(
        self, case: Case, edit: MovementEdit, previous: Optional[Movement], workflow: WorkflowConfig
    ) -> Movement:
        to_unit = (edit.to_unit or "").strip()
        if not to_unit:
            raise ValidationError("Every movement needs a destination unit", field="to_unit")
        if edit.date_in is None:
            raise ValidationError(f"Movement to '{to_unit}' has no entry date", field="date_in")
        if edit.date_out is not None and edit.date_out < edit.date_in:
            logger.warning("Movement to %s of case %s exits before it enters", to_unit, case.id)

        deadline = edit.deadline
        if deadline is None:
            unit = workflow.unit(to_unit)
            sla_days = unit.default_sla_days if unit is not None else DEFAULT_SLA_DAYS
            deadline = compute_deadline(edit.date_in, sla_days)

        days_spent = 0
        if edit.date_out is not None:
            days_spent = compute_days_spent(edit.date_in, edit.date_out)

        from_unit = edit.from_unit
        if from_unit is None and previous is not None:
            from_unit = previous.to_unit

        analysis_type = edit.analysis_type
        if analysis_type is None:
            unit = workflow.unit(to_unit)
            analysis_type = unit.analysis_type if unit is not None else None

        return Movement(
            id=edit.id,
            case_id=case.id,
            from_unit=from_unit,
            to_unit=to_unit,
            date_in=edit.date_in,
            date_out=edit.date_out,
            deadline=deadline,
            days_spent=days_spent,
            handled_by=edit.handled_by or self.actor.name,
            remarks=edit.remarks,
            analysis_type=analysis_type,
        )

    def retroactive_edit(
        self,
        case_id: int,
        edited_movements: Sequence[MovementEdit],
        finalizing: bool = False,
        final_status: Optional[str] = None,
        confirmed: bool = False,
    ) -> Case:
        """Replace the movement history of a case.

        The submitted list becomes the whole history: rows that carry the id
        of a stored movement update it, rows without id are added, stored
        movements missing from the list are removed. ``days_spent`` is
        recomputed for every closed row; a row that exits before it enters
        gets 0.

        Args:
            case_id: Case ID
            edited_movements: Complete, ordered movement list after the edit
            finalizing: Set the case to ``final_status`` as part of the edit
            final_status: Status applied when finalizing
            confirmed: Explicit confirmation, required when the case is locked
                or the resulting status locks it

        Returns:
            Case as persisted after the edit

        Raises:
            AuthorizationError: If the actor is not an administrator
            ValidationError: If the list is empty, a row lacks its unit or
                entry date, or the final status is unknown
            CaseLockedError: If the case is locked and the edit is not finalizing
            ConfirmationRequiredError: If the case is locked or the result is
                terminal, and the edit is not confirmed
        """
        require_role(self.actor, PRIVILEGED_ROLES, "edit case history")
        case = self._require_case(case_id)
        workflow = WorkflowConfig.load(self.db, self.actor.tenant_id)

        if not edited_movements:
            raise ValidationError("A case history needs at least one movement", field="movements")
        if workflow.is_terminal(case.status):
            if not finalizing:
                logger.warning("Rejected history edit of locked case %s", case.id)
                raise CaseLockedError(case.id, case.status)
            if not confirmed:
                raise ConfirmationRequiredError(
                    f"Case {case.id} is locked in status '{case.status}'; editing it requires confirmation"
                )

        movements: list[Movement] = []
        for edit in edited_movements:
            previous = movements[-1] if movements else None
            movements.append(self._rebuild_movement(case, edit, previous, workflow))

        last = movements[-1]
        if finalizing:
            if not final_status:
                raise ValidationError("A final status is required when finalizing", field="final_status")
            status = workflow.require_status(final_status)
        else:
            status = workflow.suggested_status(last.analysis_type) or case.status

        locks = workflow.is_terminal(status)
        if locks and not confirmed:
            raise ConfirmationRequiredError(
                f"Case {case.id} would be locked in status '{status}'; confirmation required"
            )

        updated = replace(
            case,
            movements=tuple(movements),
            current_unit=last.to_unit,
            status=status,
        )
        details = (
            f"History of case {case.sei_number} (id {case.id}) edited: "
            f"{len(case.movements)} -> {len(movements)} movements; status '{status}'"
        )
        if finalizing:
            details += " (finalized)"
        audit = build_audit(
            self.actor,
            AuditAction.UPDATE,
            AuditSeverity.CRITICAL if finalizing else AuditSeverity.WARN,
            details,
            self.clock(),
            target_resource=str(case.id),
        )
        stored = self.db.upsert_case(updated, audit=audit)
        logger.info("Edited history of case %s (%d movements)", stored.id, len(stored.movements))
        return stored

    def unlock(self, case_id: int, status: str, justification: str) -> Case:
        """Move a locked case back to a non-terminal status.

        Raises:
            AuthorizationError: If the actor is not an administrator
            ValidationError: If the justification is empty, the case is not
                locked or the target status is unknown or terminal
        """
        require_role(self.actor, PRIVILEGED_ROLES, "unlock cases")
        justification = (justification or "").strip()
        if not justification:
            raise ValidationError("A justification is required to unlock a case", field="justification")

        case = self._require_case(case_id)
        workflow = WorkflowConfig.load(self.db, self.actor.tenant_id)
        if not workflow.is_terminal(case.status):
            raise ValidationError(f"Case {case.id} is not locked", field="case_id")
        workflow.require_status(status)
        if workflow.is_terminal(status):
            raise ValidationError(f"Status '{status}' would keep the case locked", field="status")

        audit = build_audit(
            self.actor,
            AuditAction.SECURITY,
            AuditSeverity.CRITICAL,
            f"Case {case.sei_number} (id {case.id}) unlocked: '{case.status}' -> '{status}'. "
            f"Justification: {justification}",
            self.clock(),
            target_resource=str(case.id),
        )
        stored = self.db.upsert_case(replace(case, status=status), audit=audit)
        logger.warning("Unlocked case %s into status %s", stored.id, status)
        return stored
