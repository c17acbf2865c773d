"""Dashboard aggregation and SLA alerting.

The functions here are pure: they take a snapshot of cases and the status
configuration and recompute everything on each call. ``DashboardService``
only loads the snapshot.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence

from tramita.database.base import Database
from tramita.domain.entities import (
    Actor,
    AmendmentType,
    CalendarDay,
    Case,
    DashboardReport,
    GroupBy,
    GroupTotal,
    Movement,
    StatusCount,
    StatusDef,
    TypeTotal,
    UnitLoad,
    Urgency,
    Worklist,
    WorklistEntry,
    split_units,
)
from tramita.domain.lock import is_terminal_status
from tramita.domain.sla import case_urgency, movement_urgency

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5
UNASSIGNED_AUTHOR = "(unassigned)"


def _active_cases(cases: Iterable[Case], status_defs: Sequence[StatusDef]) -> list[Case]:
    return [c for c in cases if not is_terminal_status(c.status, status_defs)]


def current_movements(case: Case) -> list[Movement]:
    """Movements a case is currently sitting in.

    The last movement, plus the still-open movements that entered together
    with it in the same fan-out.
    """
    last = case.last_movement
    if last is None:
        return []
    batch = [
        m for m in case.movements[:-1]
        if m.is_open and m.date_in == last.date_in
    ]
    return batch + [last]


def totals_by_type(cases: Sequence[Case]) -> list[TypeTotal]:
    """Value sum, count and share of the grand total for every amendment type."""
    values: dict[AmendmentType, Decimal] = {t: Decimal("0") for t in AmendmentType}
    counts: dict[AmendmentType, int] = {t: 0 for t in AmendmentType}
    for case in cases:
        values[case.type] += case.value
        counts[case.type] += 1

    grand_total = sum(values.values(), Decimal("0"))
    divisor = grand_total if grand_total != 0 else Decimal("1")
    return [
        TypeTotal(
            type=amendment_type,
            value=values[amendment_type],
            count=counts[amendment_type],
            percentage=float(values[amendment_type] / divisor * 100),
        )
        for amendment_type in AmendmentType
    ]


def status_histogram(cases: Sequence[Case], status_defs: Sequence[StatusDef]) -> list[StatusCount]:
    """Case count per status in configuration order.

    Statuses without cases are left out; statuses that are not configured
    come last, in order of first appearance.
    """
    counts: dict[str, int] = {}
    for case in cases:
        counts[case.status] = counts.get(case.status, 0) + 1

    result = []
    for status_def in sorted(status_defs, key=lambda s: (s.position, s.id or 0)):
        count = counts.pop(status_def.name, 0)
        if count:
            result.append(StatusCount(status=status_def.name, count=count, color=status_def.color))
    for status, count in counts.items():
        result.append(StatusCount(status=status, count=count))
    return result


def _group_key(case: Case, group_by: GroupBy) -> str:
    if group_by == GroupBy.TYPE:
        return case.type.value
    if group_by == GroupBy.AUTHOR:
        return case.author_name or UNASSIGNED_AUTHOR
    return case.municipality


def top_groups(
    cases: Sequence[Case], group_by: GroupBy = GroupBy.MUNICIPALITY, limit: int = DEFAULT_LIMIT
) -> list[GroupTotal]:
    """Rank groups of cases by summed value, highest first."""
    values: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    counts: dict[str, int] = defaultdict(int)
    for case in cases:
        key = _group_key(case, GroupBy(group_by))
        values[key] += case.value
        counts[key] += 1

    ranked = sorted(values, key=lambda k: (-values[k], k))
    return [GroupTotal(key=k, value=values[k], count=counts[k]) for k in ranked[:limit]]


def urgency_worklist(
    cases: Sequence[Case],
    status_defs: Sequence[StatusDef],
    now: datetime,
    limit: int = DEFAULT_LIMIT,
) -> Worklist:
    """Critical and overdue movements of active cases, most urgent first.

    Every open branch of a fan-out gets its own entry, but the counts are
    per case: a case counts once, under the worst urgency of its branches.

    Args:
        cases: Case snapshot
        status_defs: Configured statuses, to leave locked cases out
        now: Reference timestamp
        limit: Maximum number of entries returned

    Returns:
        Worklist with at most ``limit`` entries and the uncapped counts
    """
    entries: list[WorklistEntry] = []
    counts = {urgency: 0 for urgency in Urgency}
    awaiting = 0

    for case in _active_cases(cases, status_defs):
        movements = current_movements(case)
        if not movements:
            awaiting += 1
            continue
        results = [(movement, movement_urgency(movement, now)) for movement in movements]
        counts[max((r.urgency for _, r in results), key=lambda u: u.rank)] += 1
        for movement, result in results:
            if result.urgency == Urgency.ON_TIME:
                continue
            entries.append(
                WorklistEntry(
                    case_id=case.id,
                    sei_number=case.sei_number,
                    unit=movement.to_unit,
                    deadline=movement.deadline,
                    result=result,
                )
            )

    entries.sort(
        key=lambda e: (e.result.days_remaining, -e.urgency.rank, e.deadline, e.case_id or 0)
    )
    return Worklist(
        entries=tuple(entries[:limit]),
        overdue_count=counts[Urgency.OVERDUE],
        critical_count=counts[Urgency.CRITICAL],
        on_time_count=counts[Urgency.ON_TIME],
        awaiting_count=awaiting,
    )


def calendar_buckets(
    cases: Sequence[Case], status_defs: Sequence[StatusDef], now: datetime
) -> list[CalendarDay]:
    """Active cases indexed by the day their current deadline falls on.

    Each day carries the worst urgency among its cases.
    """
    days: dict[date, list[tuple[int, Urgency]]] = defaultdict(list)
    for case in _active_cases(cases, status_defs):
        result = case_urgency(case, now)
        if result is None:
            continue
        day = case.last_movement.deadline.astimezone(UTC).date()
        days[day].append((case.id, result.urgency))

    return [
        CalendarDay(
            day=day,
            severity=max((urgency for _, urgency in items), key=lambda u: u.rank),
            case_ids=tuple(case_id for case_id, _ in items),
        )
        for day, items in sorted(days.items())
    ]


def unit_load(cases: Sequence[Case], status_defs: Sequence[StatusDef]) -> list[UnitLoad]:
    """Number of active cases per current unit, busiest first."""
    counts: dict[str, int] = defaultdict(int)
    for case in _active_cases(cases, status_defs):
        for unit in split_units(case.current_unit):
            counts[unit] += 1
    return [UnitLoad(unit=u, count=counts[u]) for u in sorted(counts, key=lambda u: (-counts[u], u))]


def build_dashboard(
    cases: Sequence[Case],
    status_defs: Sequence[StatusDef],
    now: datetime,
    group_by: GroupBy = GroupBy.MUNICIPALITY,
    limit: int = DEFAULT_LIMIT,
) -> DashboardReport:
    """Compute every dashboard section from one snapshot."""
    type_totals = totals_by_type(cases)
    return DashboardReport(
        generated_at=now,
        total_value=sum((t.value for t in type_totals), Decimal("0")),
        total_count=len(cases),
        type_totals=tuple(type_totals),
        status_counts=tuple(status_histogram(cases, status_defs)),
        top_groups=tuple(top_groups(cases, group_by, limit)),
        worklist=urgency_worklist(cases, status_defs, now, limit),
        unit_loads=tuple(unit_load(cases, status_defs)),
    )


class DashboardService:
    """Service that loads a tenant snapshot for the dashboard views."""

    def __init__(self, db: Database, actor: Actor, clock: Optional[Callable[[], datetime]] = None):
        """Initialize dashboard service.

        Args:
            db: Database instance
            actor: User whose tenant is reported on
            clock: Optional callable returning the current time
        """
        self.db = db
        self.actor = actor
        self.clock = clock or (lambda: datetime.now(UTC))

    def _snapshot(self) -> tuple[list[Case], list[StatusDef]]:
        tenant_id = self.actor.tenant_id
        cases = self.db.list_cases(tenant_id)
        status_defs = self.db.list_statuses(tenant_id)
        logger.debug("Aggregating %d cases for tenant %s", len(cases), tenant_id)
        return cases, status_defs

    def build(self, group_by: GroupBy = GroupBy.MUNICIPALITY, limit: int = DEFAULT_LIMIT) -> DashboardReport:
        cases, status_defs = self._snapshot()
        return build_dashboard(cases, status_defs, self.clock(), group_by=group_by, limit=limit)

    def worklist(self, limit: int = DEFAULT_LIMIT) -> Worklist:
        cases, status_defs = self._snapshot()
        return urgency_worklist(cases, status_defs, self.clock(), limit=limit)

    def calendar(self) -> list[CalendarDay]:
        cases, status_defs = self._snapshot()
        return calendar_buckets(cases, status_defs, self.clock())
