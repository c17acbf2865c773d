"""Text rendering helpers shared by commands."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

import click

from tramita.domain.entities import Case, Urgency, UrgencyResult

URGENCY_LABELS = {
    Urgency.ON_TIME: "On time",
    Urgency.CRITICAL: "Critical",
    Urgency.OVERDUE: "Overdue",
}

URGENCY_COLORS = {
    Urgency.ON_TIME: "green",
    Urgency.CRITICAL: "yellow",
    Urgency.OVERDUE: "red",
}


def format_money(value: Decimal) -> str:
    return f"R$ {value:,.2f}"


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M")


def format_badge(result: Optional[UrgencyResult]) -> str:
    """SLA badge text, colored for terminals that support it."""
    if result is None:
        return "Awaiting"
    label = URGENCY_LABELS[result.urgency]
    if result.urgency == Urgency.OVERDUE:
        label = f"{label} ({result.delay_days}d late)"
    else:
        label = f"{label} ({result.days_remaining}d left)"
    return click.style(label, fg=URGENCY_COLORS[result.urgency])


def truncate(text: Optional[str], width: int) -> str:
    text = text or ""
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


def echo_case_header(case: Case) -> None:
    click.echo(f"\nCase {case.id}: SEI {case.sei_number}")
    click.echo("=" * 80)
    click.echo(f"Type:         {case.type.value}")
    click.echo(f"Value:        {format_money(case.value)}")
    click.echo(f"Municipality: {case.municipality}")
    click.echo(f"Object:       {case.object}")
    click.echo(f"Author:       {case.author_name or '-'}")
    click.echo(f"Status:       {case.status}")
    click.echo(f"Current unit: {case.current_unit or '-'}")
    if case.year or case.code:
        click.echo(f"Year/code:    {case.year or '-'} / {case.code or '-'}")
    if case.notes:
        click.echo(f"Notes:        {case.notes}")
