"""Tests for SLA deadline arithmetic and urgency classification."""

from datetime import datetime, timedelta, UTC
from decimal import Decimal

import pytest

from tramita.domain.entities import AmendmentType, Case, Movement, Urgency
from tramita.domain.errors import ValidationError
from tramita.domain.sla import (
    case_urgency,
    classify_urgency,
    compute_days_spent,
    compute_deadline,
    elapsed_days,
    movement_urgency,
)

T0 = datetime(2024, 3, 4, 12, 0, tzinfo=UTC)


def make_movement(date_in=T0, sla_days=5, date_out=None, days_spent=0):
    return Movement(
        id=None,
        case_id=1,
        from_unit=None,
        to_unit="Gerência de Convênios",
        date_in=date_in,
        date_out=date_out,
        deadline=compute_deadline(date_in, sla_days),
        days_spent=days_spent,
    )


class TestComputeDeadline:
    @pytest.mark.parametrize("sla_days", [0, 1, 5, 15, 30])
    def test_adds_calendar_days(self, sla_days):
        assert compute_deadline(T0, sla_days) == T0 + timedelta(days=sla_days)

    def test_weekends_count(self):
        friday = datetime(2024, 3, 8, 9, 0, tzinfo=UTC)
        assert compute_deadline(friday, 3) == datetime(2024, 3, 11, 9, 0, tzinfo=UTC)

    def test_negative_sla_rejected(self):
        with pytest.raises(ValidationError):
            compute_deadline(T0, -1)


class TestClassifyUrgency:
    def test_on_time_with_days_remaining(self):
        deadline = T0 + timedelta(days=5)
        result = classify_urgency(deadline, None, T0 + timedelta(days=2))
        assert result.urgency == Urgency.ON_TIME
        assert result.delay_days == 0
        assert result.days_remaining == 3

    def test_critical_inside_two_day_window(self):
        deadline = T0 + timedelta(days=5)
        result = classify_urgency(deadline, None, T0 + timedelta(days=4))
        assert result.urgency == Urgency.CRITICAL
        assert result.days_remaining == 1

    def test_critical_at_exact_window_boundary(self):
        deadline = T0 + timedelta(days=5)
        result = classify_urgency(deadline, None, deadline - timedelta(days=2))
        assert result.urgency == Urgency.CRITICAL

    def test_critical_on_deadline_instant(self):
        deadline = T0 + timedelta(days=5)
        result = classify_urgency(deadline, None, deadline)
        assert result.urgency == Urgency.CRITICAL
        assert result.days_remaining == 0

    def test_overdue_rounds_delay_up(self):
        deadline = T0 + timedelta(days=5)
        result = classify_urgency(deadline, None, deadline + timedelta(hours=1))
        assert result.urgency == Urgency.OVERDUE
        assert result.delay_days == 1
        assert result.days_remaining == -1

    def test_closed_late_movement_stays_overdue(self):
        deadline = T0 + timedelta(days=2)
        date_out = deadline + timedelta(days=3)
        result = classify_urgency(deadline, date_out, date_out + timedelta(days=100))
        assert result.urgency == Urgency.OVERDUE
        assert result.delay_days == 3

    def test_closed_movement_is_never_critical(self):
        deadline = T0 + timedelta(days=5)
        date_out = deadline - timedelta(hours=1)
        result = classify_urgency(deadline, date_out, deadline + timedelta(days=10))
        assert result.urgency == Urgency.ON_TIME

    def test_zero_day_sla_is_critical_immediately(self):
        result = classify_urgency(T0, None, T0)
        assert result.urgency == Urgency.CRITICAL


class TestDaysSpent:
    def test_rounds_partial_days_up(self):
        assert compute_days_spent(T0, T0 + timedelta(days=2, hours=1)) == 3

    def test_same_instant_is_zero(self):
        assert compute_days_spent(T0, T0) == 0

    def test_clamped_at_zero(self):
        assert compute_days_spent(T0, T0 - timedelta(days=1)) == 0

    def test_elapsed_days_of_open_movement_is_provisional(self):
        movement = make_movement()
        assert elapsed_days(movement, T0 + timedelta(days=3)) == 3

    def test_elapsed_days_of_closed_movement_uses_stored_value(self):
        movement = make_movement(date_out=T0 + timedelta(days=2), days_spent=2)
        assert elapsed_days(movement, T0 + timedelta(days=30)) == 2


class TestCaseUrgency:
    def _case(self, movements):
        return Case(
            id=1,
            tenant_id="T-01",
            sei_number="5000.0001/2024",
            type=AmendmentType.IMPOSITIVA,
            value=Decimal("10"),
            municipality="Goiânia",
            object="Object",
            status="EM TRAMITAÇÃO TÉCNICA",
            movements=tuple(movements),
        )

    def test_case_without_movements_has_no_badge(self):
        assert case_urgency(self._case([]), T0) is None

    def test_badge_uses_last_movement(self):
        first = make_movement(sla_days=1, date_out=T0 + timedelta(days=3), days_spent=3)
        last = make_movement(date_in=T0 + timedelta(days=3), sla_days=10)
        case = self._case([first, last])
        now = T0 + timedelta(days=4)
        assert case_urgency(case, now) == movement_urgency(last, now)
        assert case_urgency(case, now).urgency == Urgency.ON_TIME
