"""Tests for dashboard aggregation and SLA alerting."""

from datetime import datetime, timedelta, UTC
from decimal import Decimal

import pytest

from tramita.domain.dashboard import (
    build_dashboard,
    calendar_buckets,
    current_movements,
    status_histogram,
    top_groups,
    totals_by_type,
    unit_load,
    urgency_worklist,
)
from tramita.domain.entities import (
    UNIT_SEPARATOR,
    AmendmentType,
    Case,
    GroupBy,
    Movement,
    StatusDef,
    Urgency,
)
from tramita.domain.sla import case_urgency, compute_deadline

NOW = datetime(2024, 3, 20, 12, 0, tzinfo=UTC)

STATUSES = [
    StatusDef(id=1, tenant_id="T-01", name="ANÁLISE", color="#111111", position=0),
    StatusDef(id=2, tenant_id="T-01", name="TRAMITAÇÃO", color="#222222", position=1),
    StatusDef(id=3, tenant_id="T-01", name="PAGO", color="#333333", is_final=True, position=2),
]


def movement(to_unit, entered_days_ago, sla_days, closed_days_ago=None):
    date_in = NOW - timedelta(days=entered_days_ago)
    date_out = NOW - timedelta(days=closed_days_ago) if closed_days_ago is not None else None
    return Movement(
        id=None,
        case_id=None,
        from_unit=None,
        to_unit=to_unit,
        date_in=date_in,
        date_out=date_out,
        deadline=compute_deadline(date_in, sla_days),
    )


def make_case(
    case_id,
    value="100",
    type=AmendmentType.IMPOSITIVA,
    status="TRAMITAÇÃO",
    municipality="Goiânia",
    author="Dep. A",
    movements=(),
):
    current_unit = UNIT_SEPARATOR.join(
        m.to_unit for m in movements if movements and m.date_in == movements[-1].date_in
    )
    return Case(
        id=case_id,
        tenant_id="T-01",
        sei_number=f"5000.{case_id:04d}/2024",
        type=type,
        value=Decimal(value),
        municipality=municipality,
        object="Object",
        status=status,
        author_name=author,
        current_unit=current_unit,
        movements=tuple(movements),
    )


class TestTotalsByType:
    def test_totals_conserve_value(self):
        cases = [
            make_case(1, "100", AmendmentType.IMPOSITIVA),
            make_case(2, "300", AmendmentType.RECURSO_PROPRIO),
            make_case(3, "600", AmendmentType.IMPOSITIVA),
        ]
        totals = {t.type: t for t in totals_by_type(cases)}

        assert sum(t.value for t in totals.values()) == Decimal("1000")
        assert totals[AmendmentType.IMPOSITIVA].value == Decimal("700")
        assert totals[AmendmentType.IMPOSITIVA].count == 2
        assert totals[AmendmentType.IMPOSITIVA].percentage == pytest.approx(70.0)
        assert sum(t.percentage for t in totals.values()) == pytest.approx(100.0)

    def test_zero_total_gives_zero_percentages(self):
        totals = totals_by_type([make_case(1, "0")])
        assert all(t.percentage == 0 for t in totals)

    def test_empty_portfolio(self):
        totals = totals_by_type([])
        assert len(totals) == len(AmendmentType)
        assert all(t.count == 0 for t in totals)


class TestStatusHistogram:
    def test_configuration_order_and_zero_omitted(self):
        cases = [make_case(1, status="TRAMITAÇÃO"), make_case(2, status="ANÁLISE"), make_case(3, status="TRAMITAÇÃO")]
        histogram = status_histogram(cases, STATUSES)

        assert [(s.status, s.count) for s in histogram] == [("ANÁLISE", 1), ("TRAMITAÇÃO", 2)]
        assert histogram[0].color == "#111111"

    def test_unknown_statuses_appended(self):
        histogram = status_histogram([make_case(1, status="OLD STATUS"), make_case(2, status="PAGO")], STATUSES)
        assert [s.status for s in histogram] == ["PAGO", "OLD STATUS"]
        assert histogram[-1].color is None


class TestTopGroups:
    def test_sorted_by_value_and_truncated(self):
        cases = [
            make_case(1, "100", municipality="A"),
            make_case(2, "500", municipality="B"),
            make_case(3, "250", municipality="A"),
            make_case(4, "50", municipality="C"),
        ]
        groups = top_groups(cases, GroupBy.MUNICIPALITY, limit=2)

        assert [(g.key, g.value, g.count) for g in groups] == [("B", Decimal("500"), 1), ("A", Decimal("350"), 2)]

    def test_group_by_author_handles_missing(self):
        groups = top_groups([make_case(1, author=None), make_case(2, author="Dep. B", value="10")], GroupBy.AUTHOR)
        assert groups[0].key == "(unassigned)"

    def test_group_by_type(self):
        groups = top_groups([make_case(1, type=AmendmentType.GOIAS_CRESCIMENTO)], GroupBy.TYPE)
        assert groups[0].key == AmendmentType.GOIAS_CRESCIMENTO.value


class TestUrgencyWorklist:
    def test_only_critical_and_overdue_sorted(self):
        cases = [
            make_case(1, movements=[movement("U1", 1, 10)]),  # on time
            make_case(2, movements=[movement("U2", 4, 5)]),  # critical, 1 day left
            make_case(3, movements=[movement("U3", 8, 5)]),  # overdue by 3
            make_case(4, movements=[movement("U4", 7, 5)]),  # overdue by 2
        ]
        worklist = urgency_worklist(cases, STATUSES, NOW)

        assert [e.case_id for e in worklist.entries] == [3, 4, 2]
        assert [e.urgency for e in worklist.entries] == [Urgency.OVERDUE, Urgency.OVERDUE, Urgency.CRITICAL]
        assert worklist.overdue_count == 2
        assert worklist.critical_count == 1
        assert worklist.on_time_count == 1

    def test_limit_caps_entries_not_counts(self):
        cases = [make_case(i, movements=[movement("U", 10 + i, 5)]) for i in range(1, 8)]
        worklist = urgency_worklist(cases, STATUSES, NOW, limit=5)

        assert len(worklist.entries) == 5
        assert worklist.overdue_count == 7
        assert worklist.entries[0].case_id == 7

    def test_locked_cases_excluded(self):
        cases = [make_case(1, status="PAGO", movements=[movement("U", 30, 5)])]
        worklist = urgency_worklist(cases, STATUSES, NOW)
        assert worklist.entries == ()
        assert worklist.overdue_count == 0

    def test_cases_without_movements_counted_as_awaiting(self):
        worklist = urgency_worklist([make_case(1), make_case(2)], STATUSES, NOW)
        assert worklist.entries == ()
        assert worklist.awaiting_count == 2

    def test_fan_out_branches_listed_separately(self):
        batch = [movement("SUINFRA", 9, 10), movement("SUTIS", 9, 7)]
        worklist = urgency_worklist([make_case(1, movements=batch)], STATUSES, NOW)

        assert [(e.unit, e.urgency) for e in worklist.entries] == [("SUTIS", Urgency.OVERDUE), ("SUINFRA", Urgency.CRITICAL)]
        assert (worklist.overdue_count, worklist.critical_count, worklist.on_time_count) == (1, 0, 0)

    def test_closed_fan_out_branch_not_listed(self):
        batch = [movement("SUINFRA", 9, 10, closed_days_ago=5), movement("SUTIS", 9, 7)]
        assert [m.to_unit for m in current_movements(make_case(1, movements=batch))] == ["SUTIS"]


class TestCalendar:
    def test_day_severity_is_worst_case(self):
        overdue = make_case(1, movements=[movement("U", 6, 5)])
        critical = make_case(2, movements=[movement("U", 4, 5)])
        closed_on_time = make_case(3, movements=[movement("U", 6, 5, closed_days_ago=2)])
        days = calendar_buckets([overdue, critical, closed_on_time], STATUSES, NOW)

        by_day = {d.day: d for d in days}
        assert by_day[(NOW - timedelta(days=1)).date()].severity == Urgency.OVERDUE
        assert by_day[(NOW - timedelta(days=1)).date()].case_ids == (1, 3)
        assert by_day[(NOW + timedelta(days=1)).date()].severity == Urgency.CRITICAL
        assert [d.day for d in days] == sorted(by_day)

    def test_locked_and_unmoved_cases_excluded(self):
        cases = [make_case(1), make_case(2, status="PAGO", movements=[movement("U", 1, 5)])]
        assert calendar_buckets(cases, STATUSES, NOW) == []


class TestUnitLoad:
    def test_fan_out_counted_per_unit(self):
        cases = [
            make_case(1, movements=[movement("SUINFRA", 1, 10), movement("SUTIS", 1, 7)]),
            make_case(2, movements=[movement("SUINFRA", 1, 10)]),
            make_case(3, status="PAGO", movements=[movement("SUTIS", 1, 7)]),
        ]
        loads = unit_load(cases, STATUSES)
        assert [(l.unit, l.count) for l in loads] == [("SUINFRA", 2), ("SUTIS", 1)]


def test_views_agree_on_urgency():
    cases = [
        make_case(1, movements=[movement("U1", 1, 10)]),
        make_case(2, movements=[movement("U2", 4, 5)]),
        make_case(3, movements=[movement("U3", 8, 5)]),
    ]
    worklist = {e.case_id: e.urgency for e in urgency_worklist(cases, STATUSES, NOW).entries}
    calendar = {case_id: d.severity for d in calendar_buckets(cases, STATUSES, NOW) for case_id in d.case_ids}

    for case in cases:
        badge = case_urgency(case, NOW).urgency
        assert calendar[case.id] == badge
        if case.id in worklist:
            assert worklist[case.id] == badge


def test_build_dashboard_is_deterministic():
    cases = [make_case(1, "100", movements=[movement("U", 8, 5)]), make_case(2, "300")]
    first = build_dashboard(cases, STATUSES, NOW)

    assert first == build_dashboard(cases, STATUSES, NOW)
    assert first.total_value == Decimal("400")
    assert first.total_count == 2
    assert first.worklist.overdue_count == 1
    assert first.worklist.awaiting_count == 1


def test_dashboard_service_reads_store(dashboard_service, case_service, sample_case, clock):
    case_service.transition(sample_case.id, ["Gerência de Convênios"])
    clock.advance(days=6)

    report = dashboard_service.build()

    assert report.total_count == 1
    assert report.worklist.entries[0].case_id == sample_case.id
    assert report.worklist.entries[0].result.delay_days == 1
    assert [(l.unit, l.count) for l in report.unit_loads] == [("Gerência de Convênios", 1)]
