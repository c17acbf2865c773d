"""Dashboard, worklist and deadline calendar commands."""

import click

from tramita.cli.error_handling import CLI_ERRORS, handle_domain_error
from tramita.cli.output import URGENCY_COLORS, URGENCY_LABELS, format_badge, format_money, format_timestamp, truncate
from tramita.domain.dashboard import DEFAULT_LIMIT, DashboardService
from tramita.domain.entities import GroupBy, Worklist


def _echo_worklist(worklist: Worklist) -> None:
    click.echo(
        f"Overdue: {worklist.overdue_count}  Critical: {worklist.critical_count}  "
        f"On time: {worklist.on_time_count}  Awaiting first movement: {worklist.awaiting_count}"
    )
    if not worklist.entries:
        click.echo("No critical or overdue cases.")
        return
    click.echo(f"\n{'Case':<6} {'SEI':<22} {'Unit':<30} {'Deadline':<17} SLA")
    click.echo("-" * 100)
    for entry in worklist.entries:
        click.echo(
            f"{entry.case_id:<6} {truncate(entry.sei_number, 22):<22} {truncate(entry.unit, 30):<30} "
            f"{format_timestamp(entry.deadline):<17} {format_badge(entry.result)}"
        )


@click.command("dashboard")
@click.option(
    "--group-by",
    type=click.Choice([g.value for g in GroupBy], case_sensitive=False),
    default=GroupBy.MUNICIPALITY.value,
    show_default=True,
    help="Grouping of the top ranking",
)
@click.option("--limit", type=int, default=DEFAULT_LIMIT, show_default=True, help="Rows in rankings and worklist")
@click.pass_context
def dashboard(ctx, group_by: str, limit: int):
    """Show totals, status distribution, rankings and the SLA worklist."""
    service = DashboardService(ctx.obj["db"], ctx.obj["actor"])

    try:
        report = service.build(group_by=GroupBy(group_by.lower()), limit=limit)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nPortfolio: {report.total_count} case(s), {format_money(report.total_value)}")
    click.echo("=" * 80)

    click.echo("\nBy type:")
    for total in report.type_totals:
        click.echo(
            f"  {total.type.value:<28} {format_money(total.value):>20} {total.count:>5}  {total.percentage:5.1f}%"
        )

    click.echo("\nBy status:")
    for status_count in report.status_counts:
        click.echo(f"  {status_count.status:<35} {status_count.count:>5}")

    click.echo(f"\nTop {limit} by {group_by.lower()}:")
    for group in report.top_groups:
        click.echo(f"  {truncate(group.key, 35):<35} {format_money(group.value):>20} {group.count:>5}")

    if report.unit_loads:
        click.echo("\nActive cases per unit:")
        for load in report.unit_loads:
            click.echo(f"  {truncate(load.unit, 35):<35} {load.count:>5}")

    click.echo("\nSLA worklist:")
    _echo_worklist(report.worklist)


@click.command("worklist")
@click.option("--limit", type=int, default=DEFAULT_LIMIT, show_default=True, help="Maximum number of entries")
@click.pass_context
def worklist(ctx, limit: int):
    """Show the most urgent critical and overdue cases."""
    service = DashboardService(ctx.obj["db"], ctx.obj["actor"])

    try:
        result = service.worklist(limit=limit)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)
    _echo_worklist(result)


@click.command("calendar")
@click.pass_context
def calendar(ctx):
    """Show upcoming deadlines of active cases grouped by day."""
    service = DashboardService(ctx.obj["db"], ctx.obj["actor"])

    try:
        days = service.calendar()
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    if not days:
        click.echo("No deadlines to show.")
        return

    for day in days:
        label = click.style(URGENCY_LABELS[day.severity], fg=URGENCY_COLORS[day.severity])
        case_ids = ", ".join(str(case_id) for case_id in day.case_ids)
        click.echo(f"{day.day.isoformat()}  {label:<20}  case(s): {case_ids}")


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(dashboard)
    cli.add_command(worklist)
    cli.add_command(calendar)
