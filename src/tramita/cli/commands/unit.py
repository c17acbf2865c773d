"""Receiving unit management commands."""

import click

from tramita.cli.error_handling import CLI_ERRORS, handle_domain_error
from tramita.domain.configuration import ConfigurationService


@click.group()
def unit_group():
    """Manage receiving units."""
    pass


@unit_group.command("list")
@click.pass_context
def list_units(ctx):
    """List all units with their SLA."""
    service = ConfigurationService(ctx.obj["db"], ctx.obj["actor"])

    units = service.list_units()
    if not units:
        click.echo("No units found. Run 'setup init-defaults' to create the default units.")
        return

    click.echo(f"\n{'ID':<5} {'Unit':<35} {'SLA (days)':>10}  Analysis type")
    click.echo("-" * 90)
    for unit in units:
        click.echo(f"{unit.id:<5} {unit.name:<35} {unit.default_sla_days:>10}  {unit.analysis_type or '-'}")


@unit_group.command("create")
@click.argument("name")
@click.option("--sla", "sla_days", type=int, required=True, help="Default SLA in calendar days")
@click.option("--analysis-type", help="Status suggested when a case enters this unit")
@click.pass_context
def create_unit(ctx, name: str, sla_days: int, analysis_type: str | None):
    """Create a new receiving unit."""
    service = ConfigurationService(ctx.obj["db"], ctx.obj["actor"])

    try:
        unit = service.create_unit(name, sla_days, analysis_type)
        click.echo(f"Created unit '{unit.name}' with SLA {unit.default_sla_days} days (ID: {unit.id})")
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)


@unit_group.command("update")
@click.argument("name")
@click.option("--sla", "sla_days", type=int, help="New default SLA in calendar days")
@click.option("--analysis-type", help="New analysis type")
@click.pass_context
def update_unit(ctx, name: str, sla_days: int | None, analysis_type: str | None):
    """Update the SLA or analysis type of a unit.

    Only movements created afterwards use the new SLA.
    """
    service = ConfigurationService(ctx.obj["db"], ctx.obj["actor"])

    unit = service.get_unit_by_name(name)
    if unit is None:
        click.echo(f"Error: Unit '{name}' not found", err=True)
        ctx.exit(1)

    try:
        updated = service.update_unit(unit.id, default_sla_days=sla_days, analysis_type=analysis_type)
        click.echo(f"Updated unit '{updated.name}': SLA {updated.default_sla_days} days")
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register unit commands with main CLI."""
    cli.add_command(unit_group, name="unit")
