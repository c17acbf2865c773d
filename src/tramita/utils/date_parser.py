"""Date and timestamp parsing utilities."""

import re
from datetime import date, datetime, timedelta, UTC
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_RELATIVE_PATTERN = re.compile(r"^(\d+)\s+(day|days|week|weeks|month|months)\s+(ago|from now)$")


def parse_datetime(value: str, now: Optional[datetime] = None) -> datetime:
    """Parse a timestamp string into an aware UTC datetime.

    Supports various formats including relative expressions:
    - Absolute: "2024-01-15", "2024-01-15T14:30", "2024-01-15 14:30-03:00"
    - Relative: "now", "today", "yesterday", "tomorrow", "3 days ago",
      "2 weeks from now"

    Values without an offset are taken as UTC. "today", "yesterday" and
    "tomorrow" keep the time of day of ``now``.

    Args:
        value: Timestamp string
        now: Reference time for relative expressions, defaults to the current time

    Returns:
        Aware datetime in UTC

    Raises:
        ValueError: If the string cannot be parsed
    """
    text = value.strip().lower()
    now = now or datetime.now(UTC)

    relative = {
        "now": now,
        "today": now,
        "yesterday": now - timedelta(days=1),
        "tomorrow": now + timedelta(days=1),
    }
    if text in relative:
        return relative[text].astimezone(UTC)

    match = _RELATIVE_PATTERN.match(text)
    if match:
        amount = int(match.group(1))
        unit = match.group(2).rstrip("s") + "s"
        delta = relativedelta(**{unit: amount})
        shifted = now - delta if match.group(3) == "ago" else now + delta
        return shifted.astimezone(UTC)

    try:
        parsed = date_parser.parse(value.strip())
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{value}': {e}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def parse_date(value: str, now: Optional[datetime] = None) -> date:
    """Parse a date string (absolute or relative) into a UTC calendar date."""
    return parse_datetime(value, now=now).date()
