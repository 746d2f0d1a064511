"""Dianji CLI — run the server and inspect auth state.

Usage:
    dianji serve                       # Run the API with uvicorn
    dianji serve --memory              # ...with in-process stores (no Postgres/Redis)
    dianji init-db                     # Create tables on DIANJI_DATABASE_URL
    dianji token decode <token>        # Verify a token, print its claims
    dianji invite-code                 # Print a fresh invite code
    dianji health                      # Query a running server's /api/health
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from datetime import datetime, timezone

import click
import httpx

from dianji.auth.invite import generate_invite_code
from dianji.auth.jwt import verify_token
from dianji.config import Settings

DEFAULT_API_URL = "http://localhost:8787"


def _api_url() -> str:
    return os.environ.get("DIANJI_API_URL", DEFAULT_API_URL).rstrip("/")


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


@click.group()
def cli():
    """Dianji backend tools."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: DIANJI_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: DIANJI_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
@click.option("--memory", is_flag=True, help="Use in-process stores")
def serve(host: str | None, port: int | None, reload: bool, memory: bool):
    """Run the API server."""
    import uvicorn

    if memory:
        os.environ["DIANJI_STORAGE_BACKEND"] = "memory"
    settings = Settings()
    uvicorn.run(
        "dianji.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("init-db")
def init_db():
    """Create missing tables on the configured database."""
    from dianji.db.engine import build_engine, create_tables

    settings = Settings()

    async def _create():
        engine = build_engine(settings)
        try:
            await create_tables(engine)
        finally:
            await engine.dispose()

    asyncio.run(_create())
    click.secho("Tables created.", fg="green")


@cli.group()
def token():
    """Inspect session tokens."""


@token.command("decode")
@click.argument("value")
def decode(value: str):
    """Verify VALUE with DIANJI_JWT_SECRET and print its claims."""
    claims = verify_token(value, Settings().jwt_secret)
    if claims is None:
        click.secho("Token is invalid or expired.", fg="red", err=True)
        sys.exit(1)
    claims["expires_at"] = datetime.fromtimestamp(claims["exp"], tz=timezone.utc).isoformat()
    click.echo(_pretty_json(claims))


@cli.command("invite-code")
def invite_code():
    """Print a freshly generated invite code."""
    click.echo(generate_invite_code())


@cli.command()
def health():
    """Query /api/health on a running server (DIANJI_API_URL)."""
    try:
        resp = httpx.get(f"{_api_url()}/api/health", timeout=10.0)
    except httpx.HTTPError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)
    data = resp.json()
    click.echo(_pretty_json(data))
    if data.get("status") != "healthy":
        sys.exit(1)


if __name__ == "__main__":
    cli()
