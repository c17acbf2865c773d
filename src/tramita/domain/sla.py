"""SLA deadline arithmetic and urgency classification.

Every view that shows an SLA state (worklist, calendar cell, per-case
badge) goes through :func:`classify_urgency`, so all of them agree for the
same inputs. Deadlines are plain calendar-day offsets: weekends and
holidays count like any other day.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

from tramita.domain.entities import Case, Movement, Urgency, UrgencyResult
from tramita.domain.errors import ValidationError

ONE_DAY = timedelta(days=1)
CRITICAL_WINDOW = timedelta(days=2)
DEFAULT_SLA_DAYS = 5


def _ceil_days(delta: timedelta) -> int:
    return math.ceil(delta / ONE_DAY)


def compute_deadline(date_in: datetime, sla_days: int) -> datetime:
    """Return the deadline for a stay starting at ``date_in``.

    Args:
        date_in: Entry timestamp in the unit
        sla_days: Calendar days allotted by the unit

    Returns:
        ``date_in`` shifted by ``sla_days`` calendar days

    Raises:
        ValidationError: If sla_days is negative
    """
    if sla_days < 0:
        raise ValidationError(f"SLA days must be non-negative, got {sla_days}", field="sla_days")
    return date_in + timedelta(days=sla_days)


def classify_urgency(
    deadline: datetime, date_out: Optional[datetime], now: datetime
) -> UrgencyResult:
    """Classify a deadline against the movement exit (or now, while open).

    Args:
        deadline: Movement deadline
        date_out: Exit timestamp, None while the case is still in the unit
        now: Reference timestamp

    Returns:
        UrgencyResult with the category, the overrun in whole days (0 unless
        overdue) and the signed day count used to sort worklists
    """
    reference_end = date_out if date_out is not None else now

    if reference_end > deadline:
        delay = _ceil_days(reference_end - deadline)
        return UrgencyResult(urgency=Urgency.OVERDUE, delay_days=delay, days_remaining=-delay)

    remaining = _ceil_days(deadline - reference_end)
    # Critical only applies while the case is still sitting in the unit
    if date_out is None and deadline - now <= CRITICAL_WINDOW:
        return UrgencyResult(urgency=Urgency.CRITICAL, delay_days=0, days_remaining=remaining)

    return UrgencyResult(urgency=Urgency.ON_TIME, delay_days=0, days_remaining=remaining)


def compute_days_spent(date_in: datetime, date_out: datetime) -> int:
    """Whole days between entry and exit, rounded up and clamped at zero."""
    return max(0, _ceil_days(date_out - date_in))


def elapsed_days(movement: Movement, now: datetime) -> int:
    """Days spent so far.

    Authoritative once the movement is closed; provisional otherwise.
    """
    if movement.date_out is not None:
        return movement.days_spent
    return compute_days_spent(movement.date_in, now)


def movement_urgency(movement: Movement, now: datetime) -> UrgencyResult:
    return classify_urgency(movement.deadline, movement.date_out, now)


def case_urgency(case: Case, now: datetime) -> Optional[UrgencyResult]:
    """SLA badge for a case, from its last movement.

    Returns None for a case awaiting its first movement.
    """
    movement = case.last_movement
    if movement is None:
        return None
    return movement_urgency(movement, now)
