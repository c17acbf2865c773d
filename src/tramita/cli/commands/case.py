"""Case management commands."""

import asyncio
import json
from datetime import datetime, UTC

import click

from tramita.cli.error_handling import CLI_ERRORS, handle_domain_error
from tramita.cli.output import (
    echo_case_header,
    format_badge,
    format_money,
    format_timestamp,
    truncate,
)
from tramita.domain.case import CaseService
from tramita.domain.entities import AmendmentType, CaseDraft, MovementEdit, Priority
from tramita.domain.errors import ConfirmationRequiredError
from tramita.domain.history import HistoryService
from tramita.domain.sla import case_urgency, elapsed_days, movement_urgency
from tramita.services.summarizer import CaseSummaryService, GeminiSummarizer
from tramita.utils.date_parser import parse_datetime

TYPE_CHOICES = {t.name.lower(): t for t in AmendmentType}
PRIORITY_CHOICES = {p.name.lower(): p for p in Priority}
EDIT_FIELDS = ("id", "to_unit", "from_unit", "date_in", "date_out", "deadline", "handled_by", "remarks", "analysis_type")
DATE_FIELDS = ("date_in", "date_out", "deadline")


def _movement_edits_from_json(raw: str) -> list[MovementEdit]:
    """Parse the movement list of an ``edit-history`` file."""
    rows = json.loads(raw)
    if not isinstance(rows, list):
        raise ValueError("History file must contain a JSON list of movements")
    edits = []
    for index, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            raise ValueError(f"Movement {index} must be a JSON object")
        unknown = set(row) - set(EDIT_FIELDS)
        if unknown:
            raise ValueError(f"Movement {index} has unknown field(s): {', '.join(sorted(unknown))}")
        values = dict(row)
        for field_name in DATE_FIELDS:
            if values.get(field_name):
                values[field_name] = parse_datetime(values[field_name])
            else:
                values[field_name] = None
        values.setdefault("to_unit", "")
        edits.append(MovementEdit(**values))
    return edits


def _movement_edits_to_json(movements) -> str:
    rows = []
    for m in movements:
        rows.append(
            {
                "id": m.id,
                "from_unit": m.from_unit,
                "to_unit": m.to_unit,
                "date_in": m.date_in.isoformat(),
                "date_out": m.date_out.isoformat() if m.date_out else None,
                "deadline": m.deadline.isoformat(),
                "handled_by": m.handled_by,
                "remarks": m.remarks,
                "analysis_type": m.analysis_type,
            }
        )
    return json.dumps(rows, indent=2, ensure_ascii=False)


@click.group()
def case_group():
    """Manage cases."""
    pass


@case_group.command("create")
@click.option("--sei", "sei_number", required=True, help="SEI process number")
@click.option("--value", required=True, help="Amendment value (e.g., 150000.00)")
@click.option("--municipality", required=True, help="Beneficiary municipality")
@click.option("--object", "object_", required=True, help="Object of the amendment")
@click.option(
    "--type",
    "amendment_type",
    type=click.Choice(list(TYPE_CHOICES), case_sensitive=False),
    default="impositiva",
    show_default=True,
    help="Amendment type",
)
@click.option("--author", help="Parliamentary author")
@click.option("--status", help="Initial status (defaults to the first configured status)")
@click.option("--year", type=int, help="Budget year")
@click.option("--code", help="Amendment code")
@click.option("--notes", help="Notes")
@click.pass_context
def create_case(
    ctx,
    sei_number: str,
    value: str,
    municipality: str,
    object_: str,
    amendment_type: str,
    author: str | None,
    status: str | None,
    year: int | None,
    code: str | None,
    notes: str | None,
):
    """Register a new case.

    Examples:
        tramita case create --sei 5000.0001/2024 --value 150000 --municipality Anápolis --object "Paving"
    """
    service = CaseService(ctx.obj["db"], ctx.obj["actor"])

    draft = CaseDraft(
        sei_number=sei_number,
        value=value,
        municipality=municipality,
        object=object_,
        type=TYPE_CHOICES[amendment_type.lower()],
        author_name=author,
        status=status,
        year=year,
        code=code,
        notes=notes,
    )
    try:
        case = service.create_case(draft)
        click.echo(f"Created case {case.id} (SEI {case.sei_number}) with status '{case.status}'")
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)


@case_group.command("list")
@click.option("--status", help="Only cases in this status")
@click.option("--unit", help="Only cases currently in this unit")
@click.pass_context
def list_cases(ctx, status: str | None, unit: str | None):
    """List cases with their SLA badge."""
    service = CaseService(ctx.obj["db"], ctx.obj["actor"])

    cases = service.list_cases()
    if status:
        cases = [c for c in cases if c.status == status]
    if unit:
        cases = [c for c in cases if unit in c.current_units]

    if not cases:
        click.echo("No cases found.")
        return

    now = datetime.now(UTC)
    click.echo(f"\n{'ID':<5} {'SEI':<22} {'Municipality':<18} {'Value':>18}  {'Status':<28} {'Unit':<30} SLA")
    click.echo("-" * 140)
    for case in cases:
        click.echo(
            f"{case.id:<5} {truncate(case.sei_number, 22):<22} {truncate(case.municipality, 18):<18} "
            f"{format_money(case.value):>18}  {truncate(case.status, 28):<28} "
            f"{truncate(case.current_unit or '-', 30):<30} {format_badge(case_urgency(case, now))}"
        )
    click.echo(f"\nTotal: {len(cases)} case(s)")


@case_group.command("show")
@click.argument("case_id", type=int)
@click.pass_context
def show_case(ctx, case_id: int):
    """Show a case with its movement history."""
    service = CaseService(ctx.obj["db"], ctx.obj["actor"])

    case = service.get_case(case_id)
    if case is None:
        click.echo(f"Error: Case {case_id} not found", err=True)
        ctx.exit(1)

    now = datetime.now(UTC)
    echo_case_header(case)
    click.echo(f"SLA:          {format_badge(case_urgency(case, now))}")

    if not case.movements:
        click.echo("\nNo movements yet.")
        return

    click.echo(f"\nMovements ({len(case.movements)}):")
    click.echo(f"{'#':<3} {'To unit':<30} {'In':<17} {'Out':<17} {'Deadline':<17} {'Days':>4}  SLA")
    click.echo("-" * 120)
    for index, movement in enumerate(case.movements, start=1):
        click.echo(
            f"{index:<3} {truncate(movement.to_unit, 30):<30} {format_timestamp(movement.date_in):<17} "
            f"{format_timestamp(movement.date_out):<17} {format_timestamp(movement.deadline):<17} "
            f"{elapsed_days(movement, now):>4}  {format_badge(movement_urgency(movement, now))}"
        )
        if movement.remarks:
            click.echo(f"    {movement.remarks}")


@case_group.command("move")
@click.argument("case_id", type=int)
@click.option("--to", "destinations", multiple=True, required=True, help="Destination unit (repeat to fan out)")
@click.option("--status", "new_status", help="Status after the move")
@click.option(
    "--priority",
    type=click.Choice(list(PRIORITY_CHOICES), case_sensitive=False),
    default="normal",
    show_default=True,
)
@click.option("--remarks", help="Dispatch remarks")
@click.pass_context
def move_case(ctx, case_id: int, destinations: tuple[str, ...], new_status: str | None, priority: str, remarks: str | None):
    """Move a case to one or more units.

    Examples:
        tramita case move 1 --to "SUINFRA - Engenharia"
        tramita case move 1 --to "SUINFRA - Engenharia" --to "SUTIS - Tecnologia" --priority urgent
    """
    service = CaseService(ctx.obj["db"], ctx.obj["actor"])

    try:
        case = service.transition(
            case_id,
            list(destinations),
            new_status=new_status,
            priority=PRIORITY_CHOICES[priority.lower()],
            remarks=remarks,
        )
        click.echo(f"Moved case {case.id} to {case.current_unit} (status '{case.status}')")
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)


@case_group.command("update")
@click.argument("case_id", type=int)
@click.option("--sei", "sei_number", help="SEI process number")
@click.option("--value", help="Amendment value")
@click.option("--municipality", help="Beneficiary municipality")
@click.option("--object", "object_", help="Object of the amendment")
@click.option("--type", "amendment_type", type=click.Choice(list(TYPE_CHOICES), case_sensitive=False))
@click.option("--author", help="Parliamentary author")
@click.option("--year", type=int, help="Budget year")
@click.option("--code", help="Amendment code")
@click.option("--notes", help="Notes")
@click.pass_context
def update_case(
    ctx,
    case_id: int,
    sei_number: str | None,
    value: str | None,
    municipality: str | None,
    object_: str | None,
    amendment_type: str | None,
    author: str | None,
    year: int | None,
    code: str | None,
    notes: str | None,
):
    """Update the registration data of a case.

    Updates only the fields that are provided.
    """
    service = CaseService(ctx.obj["db"], ctx.obj["actor"])

    changes = {
        "sei_number": sei_number,
        "value": value,
        "municipality": municipality,
        "object": object_,
        "type": TYPE_CHOICES[amendment_type.lower()] if amendment_type else None,
        "author_name": author,
        "year": year,
        "code": code,
        "notes": notes,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        click.echo("Nothing to update.")
        return

    try:
        service.update_case(case_id, **changes)
        click.echo(f"Updated case {case_id}")
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)


@case_group.command("delete")
@click.argument("case_id", type=int)
@click.option("--justification", required=True, help="Reason for the deletion, kept in the audit trail")
@click.pass_context
def delete_case(ctx, case_id: int, justification: str):
    """Delete a case (administrators only)."""
    service = CaseService(ctx.obj["db"], ctx.obj["actor"])

    try:
        service.delete_case(case_id, justification)
        click.echo(f"Deleted case {case_id}")
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)


@case_group.command("history")
@click.argument("case_id", type=int)
@click.pass_context
def export_history(ctx, case_id: int):
    """Print the movement history as JSON, ready for edit-history."""
    service = CaseService(ctx.obj["db"], ctx.obj["actor"])

    case = service.get_case(case_id)
    if case is None:
        click.echo(f"Error: Case {case_id} not found", err=True)
        ctx.exit(1)
    click.echo(_movement_edits_to_json(case.movements))


@case_group.command("edit-history")
@click.argument("case_id", type=int)
@click.option("--file", "history_file", type=click.File("r", encoding="utf-8"), required=True, help="JSON movement list")
@click.option("--finalize", "final_status", help="Finalize the case in this status")
@click.option("--yes", "confirmed", is_flag=True, help="Confirm edits that lock or touch a locked case")
@click.pass_context
def edit_history(ctx, case_id: int, history_file, final_status: str | None, confirmed: bool):
    """Replace the movement history of a case (administrators only).

    The file holds the complete movement list, as printed by 'case history'.
    Rows without "id" are added; stored movements left out are removed.
    """
    service = HistoryService(ctx.obj["db"], ctx.obj["actor"])

    try:
        edits = _movement_edits_from_json(history_file.read())
    except ValueError as e:
        click.echo(f"Error: Invalid history file: {e}", err=True)
        ctx.exit(1)

    def submit(confirm: bool):
        return service.retroactive_edit(
            case_id,
            edits,
            finalizing=final_status is not None,
            final_status=final_status,
            confirmed=confirm,
        )

    try:
        try:
            case = submit(confirmed)
        except ConfirmationRequiredError as e:
            click.confirm(f"{e}. Continue?", abort=True)
            case = submit(True)
        click.echo(f"Edited history of case {case.id}: {len(case.movements)} movement(s), status '{case.status}'")
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)


@case_group.command("unlock")
@click.argument("case_id", type=int)
@click.option("--status", required=True, help="Non-final status the case returns to")
@click.option("--justification", required=True, help="Reason for the unlock, kept in the audit trail")
@click.pass_context
def unlock_case(ctx, case_id: int, status: str, justification: str):
    """Unlock a case in a final status (administrators only)."""
    service = HistoryService(ctx.obj["db"], ctx.obj["actor"])

    try:
        case = service.unlock(case_id, status, justification)
        click.echo(f"Unlocked case {case.id}; status is now '{case.status}'")
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)


@case_group.command("summary")
@click.argument("case_id", type=int)
@click.pass_context
def summarize_case(ctx, case_id: int):
    """Print an AI-generated summary of a case (needs GEMINI_API_KEY)."""
    case = CaseService(ctx.obj["db"], ctx.obj["actor"]).get_case(case_id)
    if case is None:
        click.echo(f"Error: Case {case_id} not found", err=True)
        ctx.exit(1)

    service = CaseSummaryService(GeminiSummarizer.from_config())
    click.echo(asyncio.run(service.summarize_case(case, datetime.now(UTC))))


def register_commands(cli):
    """Register case commands with main CLI."""
    cli.add_command(case_group, name="case")
