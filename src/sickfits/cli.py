#!/usr/bin/env python3
"""
Command line entry point: run the API and manage the schema.
"""

import asyncio
import os
import sys
from collections.abc import Callable
from pathlib import Path

import click
import uvicorn

from alembic import command
from alembic.config import Config
from sickfits import __version__
from sickfits.config import settings
from sickfits.logging import configure_logging, get_logger

logger = get_logger(__name__)

PROJECT_DIR = Path(__file__).resolve().parents[2]


def get_alembic_config() -> Config:
    """Alembic config from the project's alembic.ini, with an absolute script location."""
    alembic_ini = PROJECT_DIR / "alembic.ini"
    if not alembic_ini.exists():
        raise FileNotFoundError(f"alembic.ini not found at {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(PROJECT_DIR / "alembic"))
    return config


def _run_alembic(description: str, action: Callable[[Config], object], **log_fields) -> None:
    """Run an Alembic command, exiting with status 1 if it fails."""
    logger.info(description, **log_fields)
    try:
        action(get_alembic_config())
    except Exception as e:
        logger.error(f"{description} failed", error=str(e), **log_fields)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="sickfits")
def cli() -> None:
    """Sick Fits storefront backend."""


@cli.command()
@click.option("--host", default=settings.api_host, show_default=True, help="Interface to bind")
@click.option("--port", default=settings.api_port, type=int, show_default=True)
@click.option("--reload", is_flag=True, default=False, help="Restart on code changes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    show_default=True,
)
def serve(host: str, port: int, reload: bool, log_level: str) -> None:
    """Serve the GraphQL API with uvicorn."""
    configure_logging(debug=log_level == "debug", log_level=log_level)

    # Read by sickfits.config when uvicorn imports the app
    os.environ["SICKFITS_LOG_LEVEL"] = log_level.upper()
    if log_level == "debug":
        os.environ["SICKFITS_DEBUG"] = "true"

    logger.info("Starting server", host=host, port=port, reload=reload)
    uvicorn.run(
        "sickfits.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


@cli.group()
def db() -> None:
    """Database schema and connectivity."""
    configure_logging(debug=settings.debug, log_level=settings.log_level)


@db.command()
@click.argument("revision", default="head")
def upgrade(revision: str) -> None:
    """Migrate up to REVISION (default: head)."""
    _run_alembic("Database upgrade", lambda cfg: command.upgrade(cfg, revision), revision=revision)


@db.command()
@click.argument("revision", default="-1")
def downgrade(revision: str) -> None:
    """Migrate down to REVISION (default: one step)."""
    _run_alembic(
        "Database downgrade", lambda cfg: command.downgrade(cfg, revision), revision=revision
    )


@db.command()
def current() -> None:
    """Show the revision the database is at."""
    _run_alembic("Reading current revision", lambda cfg: command.current(cfg, verbose=True))


@db.command()
@click.option("-m", "--message", required=True, help="Revision message")
@click.option("--autogenerate/--no-autogenerate", default=True)
def revision(message: str, autogenerate: bool) -> None:
    """Create a new migration script."""
    _run_alembic(
        "Creating migration",
        lambda cfg: command.revision(cfg, message=message, autogenerate=autogenerate),
        message=message,
    )


@db.command()
def check() -> None:
    """Verify that the configured database accepts connections."""
    from sickfits.database.connection import (
        get_async_engine,
        init_database,
        test_database_connection,
    )

    async def _check() -> tuple[bool, str | None]:
        init_database()
        try:
            return await test_database_connection()
        finally:
            await get_async_engine().dispose()

    ok, error = asyncio.run(_check())
    if not ok:
        click.echo(f"Database unreachable: {error}", err=True)
        sys.exit(1)
    click.echo("Database connection OK")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
