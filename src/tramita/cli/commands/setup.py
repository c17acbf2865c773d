"""Database setup commands."""

import click

from tramita.cli.error_handling import CLI_ERRORS, handle_domain_error
from tramita.domain.configuration import ConfigurationService


@click.group()
def setup_group():
    """Prepare the database."""
    pass


@setup_group.command("init-defaults")
@click.pass_context
def init_defaults(ctx):
    """Create the tables and the default units and statuses.

    Existing units and statuses are kept; only missing ones are added.
    """
    db = ctx.obj["db"]
    service = ConfigurationService(db, ctx.obj["actor"])

    try:
        db.initialize_schema()
        units_created, statuses_created = service.load_defaults()
    except CLI_ERRORS as e:
        handle_domain_error(ctx, e)

    if units_created == 0 and statuses_created == 0:
        click.echo("Default configuration already present. Nothing to do.")
        return
    click.echo(f"Created {statuses_created} status(es) and {units_created} unit(s).")


def register_commands(cli):
    """Register setup commands with main CLI."""
    cli.add_command(setup_group, name="setup")
