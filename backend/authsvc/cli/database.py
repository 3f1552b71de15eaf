"""Flask CLI commands for creating and dropping the identity tables."""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from authsvc.core.extensions import db

LOGGER = logging.getLogger(__name__)


def _ensure_non_production() -> None:
    """Abort destructive commands when running in production."""
    config = current_app.config
    if not (config.get("DEBUG") or config.get("TESTING")):
        raise click.UsageError(
            "The 'flask drop-db' command is restricted to non-production environments."
        )


@click.command("init-db")
@with_appcontext
def init_db_command() -> None:
    """Create all tables that do not exist yet."""
    db.create_all()
    LOGGER.info("cli.init_db")
    click.echo("Database tables created.")


@click.command("drop-db")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@with_appcontext
def drop_db_command(yes: bool) -> None:
    """Drop every table (development and testing only)."""
    _ensure_non_production()
    if not yes:
        click.confirm("Drop all tables?", abort=True)
    db.drop_all()
    LOGGER.warning("cli.drop_db")
    click.echo("Database tables dropped.")
