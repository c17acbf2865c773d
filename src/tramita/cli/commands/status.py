"""Workflow status management commands."""

import click

from tramita.cli.error_handling import CLI_ERRORS, handle_domain_error
from tramita.domain.configuration import ConfigurationService
from tramita.domain.lock import COMMITMENT_LIQUIDATION_LABEL


@click.group()
def status_group():
    """Manage workflow statuses."""
    pass


@status_group.command("list")
@click.pass_context
def list_statuses(ctx):
    """List statuses in workflow order."""
    service = ConfigurationService(ctx.obj["db"], ctx.obj["actor"])

    statuses = service.list_statuses()
    if not statuses:
        click.echo("No statuses found. Run 'setup init-defaults' to create the default statuses.")
        return

    click.echo(f"\n{'ID':<5} {'Status':<35} {'Color':<9} Final")
    click.echo("-" * 60)
    for status in statuses:
        final = "yes" if status.is_final or status.name == COMMITMENT_LIQUIDATION_LABEL else "no"
        click.echo(f"{status.id:<5} {status.name:<35} {status.color:<9} {final}")


@status_group.command("create")
@click.argument("name")
@click.option("--color", default="#0d457a", show_default=True, help="Display color")
@click.option("--final", "is_final", is_flag=True, help="Cases reaching this status are locked")
@click.pass_context
def create_status(ctx, name: str, color: str, is_final: bool):
    """Create a new status at the end of the workflow order."""
    service = ConfigurationService(ctx.obj["db"], ctx.obj["actor"])

    try:
        status = service.create_status(name, color=color, is_final=is_final)
        final_str = " (final)" if status.is_final else ""
        click.echo(f"Created status '{status.name}'{final_str} (ID: {status.id})")
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)


@status_group.command("update")
@click.argument("name")
@click.option("--color", help="New display color")
@click.option("--final/--not-final", "is_final", default=None, help="Change the final flag")
@click.pass_context
def update_status(ctx, name: str, color: str | None, is_final: bool | None):
    """Update the color or final flag of a status."""
    service = ConfigurationService(ctx.obj["db"], ctx.obj["actor"])

    status = service.get_status_by_name(name)
    if status is None:
        click.echo(f"Error: Status '{name}' not found", err=True)
        ctx.exit(1)

    try:
        updated = service.update_status(status.id, color=color, is_final=is_final)
        click.echo(f"Updated status '{updated.name}' (final: {'yes' if updated.is_final else 'no'})")
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register status commands with main CLI."""
    cli.add_command(status_group, name="status")
