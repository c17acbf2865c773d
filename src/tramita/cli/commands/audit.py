"""Audit trail command."""

import click

from tramita.cli.error_handling import CLI_ERRORS, handle_domain_error
from tramita.cli.output import format_timestamp
from tramita.domain.entities import AuditSeverity

SEVERITY_COLORS = {
    AuditSeverity.INFO: None,
    AuditSeverity.WARN: "yellow",
    AuditSeverity.CRITICAL: "red",
}


@click.command("audit")
@click.option("--limit", type=int, default=50, show_default=True, help="Number of entries")
@click.option(
    "--severity",
    type=click.Choice([s.value for s in AuditSeverity], case_sensitive=False),
    help="Only entries with this severity",
)
@click.pass_context
def audit(ctx, limit: int, severity: str | None):
    """Show the most recent audit trail entries."""
    db = ctx.obj["db"]
    actor = ctx.obj["actor"]

    try:
        entries = db.list_audit(actor.tenant_id, limit=limit)
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    if severity:
        entries = [e for e in entries if e.severity == AuditSeverity(severity.upper())]
    if not entries:
        click.echo("No audit entries found.")
        return

    for entry in entries:
        level = click.style(f"{entry.severity.value:<8}", fg=SEVERITY_COLORS[entry.severity])
        click.echo(f"{format_timestamp(entry.timestamp)}  {level} {entry.action.value:<8} {entry.actor_name:<12} {entry.details}")


def register_commands(cli):
    """Register audit command with main CLI."""
    cli.add_command(audit)
