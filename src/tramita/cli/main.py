"""Main CLI entry point."""

import click

from tramita import config
from tramita.cli.error_handling import handle_domain_error
from tramita.database.errors import StoreError
from tramita.database.factories import create_sqlite_database
from tramita.domain.entities import Actor, Role

# Import and register all commands at module level
from tramita.cli.commands import (
    audit,
    case,
    reports,
    setup,
    status,
    unit,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides TRAMITA_DB_PATH environment variable)",
    envvar="TRAMITA_DB_PATH",
)
@click.option("--tenant", envvar="TRAMITA_TENANT", default=config.DEFAULT_TENANT, show_default=True, help="Tenant id")
@click.option("--actor", envvar="TRAMITA_ACTOR", default=config.DEFAULT_ACTOR, show_default=True, help="Acting user")
@click.option(
    "--role",
    envvar="TRAMITA_ROLE",
    type=click.Choice([r.value for r in Role], case_sensitive=False),
    default=config.DEFAULT_ROLE,
    show_default=True,
    help="Role of the acting user",
)
@click.option(
    "--log-level",
    envvar="TRAMITA_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=config.DEFAULT_LOG_LEVEL,
    show_default=True,
)
@click.pass_context
def cli(ctx, db_path: str | None, tenant: str, actor: str, role: str, log_level: str):
    """Tramita - Budget amendment workflow tracking.

    Register SEI cases, move them between receiving units with per-unit
    SLAs, and follow deadlines through the dashboard and worklist.
    """
    ctx.ensure_object(dict)
    config.configure_logging(log_level)
    ctx.obj["actor"] = Actor(id=actor, name=actor, tenant_id=tenant, role=Role(role.upper()))

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            db = create_sqlite_database(database_path=db_path)
            db.connect()
            db.initialize_schema()
        except StoreError as e:
            handle_domain_error(ctx, e)
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
setup.register_commands(cli)
unit.register_commands(cli)
status.register_commands(cli)
case.register_commands(cli)
reports.register_commands(cli)
audit.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
