"""TodoApp CLI — database bootstrap and the two servers.

Usage:
    todoapp init-db                      # Create tables, seed roles and admin
    todoapp serve-api                    # API tier on settings.port
    todoapp serve-web --port 8001        # Front-end tier on settings.web_port
"""

import asyncio
from typing import Optional

import click

from todoapp import __version__
from todoapp.config import settings

# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="todoapp")
def cli():
    """TodoApp — to-do lists behind a token issuer, access guard and rate limiter."""


# ---------------------------------------------------------------------------
# todoapp init-db
# ---------------------------------------------------------------------------


@cli.command("init-db")
@click.option("--admin-email", default=None, help="Override TODOAPP_ADMIN_EMAIL")
@click.option("--admin-password", default=None, help="Override TODOAPP_ADMIN_PASSWORD")
def init_db_command(admin_email: Optional[str], admin_password: Optional[str]):
    """Create the schema and seed default roles and the admin account."""
    from todoapp.db.engine import engine
    from todoapp.db.init_db import init_db
    from todoapp.log import configure_logging

    configure_logging(settings.log_level)

    async def _impl():
        try:
            await init_db(
                engine,
                admin_email or settings.admin_email,
                admin_password or settings.admin_password,
            )
        finally:
            await engine.dispose()

    asyncio.run(_impl())
    if not (admin_password or settings.admin_password):
        click.secho("No admin password configured; admin account not seeded.", fg="yellow")
    click.secho("Database initialized.", fg="green")


# ---------------------------------------------------------------------------
# todoapp serve-api / serve-web
# ---------------------------------------------------------------------------


def _serve(target: str, host: str, port: int, reload: bool) -> None:
    import uvicorn

    uvicorn.run(target, host=host, port=port, reload=reload, log_config=None)


@cli.command("serve-api")
@click.option("--host", default=None, help="Bind address (default: TODOAPP_HOST)")
@click.option("--port", "-p", type=int, default=None, help="Port (default: TODOAPP_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve_api(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API tier."""
    _serve("todoapp.main:app", host or settings.host, port or settings.port, reload)


@cli.command("serve-web")
@click.option("--host", default=None, help="Bind address (default: TODOAPP_HOST)")
@click.option("--port", "-p", type=int, default=None, help="Port (default: TODOAPP_WEB_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve_web(host: Optional[str], port: Optional[int], reload: bool):
    """Run the front-end tier."""
    _serve("todoapp.web.main:app", host or settings.host, port or settings.web_port, reload)


if __name__ == "__main__":
    cli()
