"""Tests for retroactive history edits and administrative unlock."""

from dataclasses import replace
from datetime import timedelta

import pytest

from tramita.domain.entities import AuditAction, AuditSeverity, MovementEdit
from tramita.domain.errors import (
    AuthorizationError,
    CaseLockedError,
    ConfirmationRequiredError,
    ValidationError,
)
from tramita.domain.history import HistoryService

CONVENIOS = "Gerência de Convênios"
ENGENHARIA = "SUINFRA - Engenharia"


@pytest.fixture
def moved_case(case_service, sample_case, clock):
    """Case that went through two units and is sitting in the second."""
    case_service.transition(sample_case.id, [CONVENIOS])
    clock.advance(days=3)
    case = case_service.transition(sample_case.id, [ENGENHARIA])
    clock.advance(days=1)
    return case


def edits_of(case):
    return [MovementEdit.from_movement(m) for m in case.movements]


class TestRetroactiveEdit:
    def test_days_spent_recomputed(self, history_service, moved_case):
        edits = edits_of(moved_case)
        first = edits[0]
        edits[0] = replace(first, date_out=first.date_in + timedelta(days=7, hours=2))

        case = history_service.retroactive_edit(moved_case.id, edits)

        assert case.movements[0].days_spent == 8
        assert case.movements[0].id == moved_case.movements[0].id

    def test_open_movement_has_provisional_days(self, history_service, moved_case):
        case = history_service.retroactive_edit(moved_case.id, edits_of(moved_case))
        assert case.movements[-1].days_spent == 0
        assert case.movements[-1].is_open

    def test_exit_before_entry_counts_zero_days(self, history_service, moved_case):
        edits = edits_of(moved_case)
        edits[0] = replace(edits[0], date_out=edits[0].date_in - timedelta(days=1))

        case = history_service.retroactive_edit(moved_case.id, edits)

        assert case.movements[0].days_spent == 0
        assert case.movements[0].date_out == edits[0].date_out

    def test_empty_history_rejected(self, history_service, moved_case):
        with pytest.raises(ValidationError):
            history_service.retroactive_edit(moved_case.id, [])

    def test_missing_entry_date_rejected(self, history_service, moved_case):
        with pytest.raises(ValidationError):
            history_service.retroactive_edit(moved_case.id, [MovementEdit(to_unit=CONVENIOS, date_in=None)])

    def test_added_row_gets_deadline_from_unit_sla(self, history_service, moved_case, clock):
        edits = edits_of(moved_case)
        edits.append(MovementEdit(to_unit=CONVENIOS, date_in=clock.now))

        case = history_service.retroactive_edit(moved_case.id, edits)

        added = case.movements[-1]
        assert added.id is not None
        assert added.deadline == clock.now + timedelta(days=5)
        assert added.from_unit == ENGENHARIA
        assert case.current_unit == CONVENIOS

    def test_unknown_unit_gets_default_sla(self, history_service, moved_case, clock):
        edits = edits_of(moved_case) + [MovementEdit(to_unit="Legacy Unit", date_in=clock.now)]
        case = history_service.retroactive_edit(moved_case.id, edits)
        assert case.movements[-1].deadline == clock.now + timedelta(days=5)

    def test_removed_rows_are_deleted(self, history_service, moved_case, case_service):
        case = history_service.retroactive_edit(moved_case.id, edits_of(moved_case)[:1])

        assert len(case.movements) == 1
        assert case.current_unit == CONVENIOS
        assert len(case_service.get_case(moved_case.id).movements) == 1

    def test_status_follows_last_movement(self, history_service, moved_case):
        case = history_service.retroactive_edit(moved_case.id, edits_of(moved_case)[:1])
        assert case.status == "EM DILIGÊNCIA"

    def test_writes_warn_audit(self, history_service, moved_case, temp_db, admin):
        history_service.retroactive_edit(moved_case.id, edits_of(moved_case))

        entry = temp_db.list_audit(admin.tenant_id, limit=1)[0]
        assert entry.action == AuditAction.UPDATE
        assert entry.severity == AuditSeverity.WARN

    def test_operator_cannot_edit_history(self, temp_db, operator, moved_case):
        with pytest.raises(AuthorizationError):
            HistoryService(temp_db, operator).retroactive_edit(moved_case.id, edits_of(moved_case))


class TestFinalizing:
    def test_requires_confirmation(self, history_service, moved_case, case_service):
        with pytest.raises(ConfirmationRequiredError):
            history_service.retroactive_edit(
                moved_case.id, edits_of(moved_case), finalizing=True, final_status="LIQUIDADO / PAGO"
            )
        assert case_service.get_case(moved_case.id).status == moved_case.status

    def test_confirmed_finalize_locks_case(self, history_service, moved_case, case_service, temp_db, admin):
        case = history_service.retroactive_edit(
            moved_case.id,
            edits_of(moved_case),
            finalizing=True,
            final_status="LIQUIDADO / PAGO",
            confirmed=True,
        )

        assert case.status == "LIQUIDADO / PAGO"
        entry = temp_db.list_audit(admin.tenant_id, limit=1)[0]
        assert entry.severity == AuditSeverity.CRITICAL
        with pytest.raises(CaseLockedError):
            case_service.transition(moved_case.id, [CONVENIOS])

    def test_legacy_commitment_label_allowed(self, history_service, moved_case):
        case = history_service.retroactive_edit(
            moved_case.id,
            edits_of(moved_case),
            finalizing=True,
            final_status="EMPENHO / LIQUIDAÇÃO",
            confirmed=True,
        )
        assert case.status == "EMPENHO / LIQUIDAÇÃO"

    def test_unknown_final_status_rejected(self, history_service, moved_case):
        with pytest.raises(ValidationError):
            history_service.retroactive_edit(
                moved_case.id, edits_of(moved_case), finalizing=True, final_status="INVENTED", confirmed=True
            )

    def test_locked_case_rejects_plain_edit(self, history_service, moved_case):
        locked = history_service.retroactive_edit(
            moved_case.id, edits_of(moved_case), finalizing=True, final_status="LIQUIDADO / PAGO", confirmed=True
        )
        with pytest.raises(CaseLockedError):
            history_service.retroactive_edit(locked.id, edits_of(locked))

    def test_locked_case_accepts_confirmed_finalizing_edit(self, history_service, moved_case):
        locked = history_service.retroactive_edit(
            moved_case.id, edits_of(moved_case), finalizing=True, final_status="LIQUIDADO / PAGO", confirmed=True
        )
        edits = edits_of(locked)
        edits[-1] = replace(edits[-1], date_out=edits[-1].date_in + timedelta(days=2))

        case = history_service.retroactive_edit(
            locked.id, edits, finalizing=True, final_status="LIQUIDADO / PAGO", confirmed=True
        )
        assert case.movements[-1].days_spent == 2

    def test_locked_case_unconfirmed_reopening_edit_rejected(self, history_service, moved_case, case_service):
        locked = history_service.retroactive_edit(
            moved_case.id, edits_of(moved_case), finalizing=True, final_status="LIQUIDADO / PAGO", confirmed=True
        )

        with pytest.raises(ConfirmationRequiredError):
            history_service.retroactive_edit(
                locked.id, edits_of(locked)[:1], finalizing=True, final_status="EM TRAMITAÇÃO TÉCNICA"
            )

        stored = case_service.get_case(locked.id)
        assert stored.status == "LIQUIDADO / PAGO"
        assert stored.movements == locked.movements

    def test_locked_case_confirmed_reopening_edit(self, history_service, moved_case):
        locked = history_service.retroactive_edit(
            moved_case.id, edits_of(moved_case), finalizing=True, final_status="LIQUIDADO / PAGO", confirmed=True
        )

        case = history_service.retroactive_edit(
            locked.id, edits_of(locked), finalizing=True, final_status="EM TRAMITAÇÃO TÉCNICA", confirmed=True
        )
        assert case.status == "EM TRAMITAÇÃO TÉCNICA"


class TestUnlock:
    def _lock(self, history_service, case):
        return history_service.retroactive_edit(
            case.id, edits_of(case), finalizing=True, final_status="ARQUIVADO / REJEITADO", confirmed=True
        )

    def test_unlock(self, history_service, moved_case, case_service, temp_db, admin):
        self._lock(history_service, moved_case)

        case = history_service.unlock(moved_case.id, "EM TRAMITAÇÃO TÉCNICA", "Archived by mistake")

        assert case.status == "EM TRAMITAÇÃO TÉCNICA"
        entry = temp_db.list_audit(admin.tenant_id, limit=1)[0]
        assert entry.action == AuditAction.SECURITY
        assert entry.severity == AuditSeverity.CRITICAL
        case_service.transition(moved_case.id, [CONVENIOS])

    def test_requires_justification(self, history_service, moved_case):
        self._lock(history_service, moved_case)
        with pytest.raises(ValidationError):
            history_service.unlock(moved_case.id, "EM TRAMITAÇÃO TÉCNICA", "")

    def test_target_status_must_not_be_terminal(self, history_service, moved_case):
        self._lock(history_service, moved_case)
        with pytest.raises(ValidationError):
            history_service.unlock(moved_case.id, "LIQUIDADO / PAGO", "Wrong archive")

    def test_case_must_be_locked(self, history_service, moved_case):
        with pytest.raises(ValidationError):
            history_service.unlock(moved_case.id, "EM TRAMITAÇÃO TÉCNICA", "Nothing to unlock")
