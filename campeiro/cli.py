# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Command Line Interface

Usage:
    campeiro serve                     # Start API server
    campeiro user create-admin         # Create an admin account
    campeiro user revoke-sessions      # Log a user out everywhere
    campeiro audit tail                # Show the newest audit entries
    campeiro db migrate                # Run database migrations
"""

import asyncio
import json

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(name="campeiro", help="Campeiro - Photo Marketplace API")
console = Console()


async def _open():
    from .core.settings import get_settings
    from .data.store import open_store

    settings = get_settings()
    return settings, await open_store(settings)


async def _close(store) -> None:
    from .data.database import close_database

    await store.audit_sink.drain()
    await close_database()


# ============================================================
# SERVER
# ============================================================


@app.command()
def serve(
    host: str = typer.Option(None, help="Host to bind to [default: settings.host]"),
    port: int = typer.Option(None, help="Port to bind to [default: settings.port]"),
    workers: int = typer.Option(1, help="Number of worker processes"),
    reload: bool = typer.Option(False, help="Enable auto-reload (development)"),
):
    """Start the API server."""
    import uvicorn

    from .core.settings import get_settings

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    console.print(f"[bold green]Starting Campeiro on {host}:{port}[/]")

    uvicorn.run(
        "campeiro.gateway.app:create_app",
        factory=True,
        host=host,
        port=port,
        workers=workers if not reload else 1,
        reload=reload,
    )


# ============================================================
# USER COMMANDS
# ============================================================

user_app = typer.Typer(help="User management commands")
app.add_typer(user_app, name="user")


@user_app.command("create-admin")
def user_create_admin(
    name: str = typer.Option(..., prompt=True, help="Full name"),
    email: str = typer.Option(..., prompt=True, help="E-mail (login)"),
    cpf: str = typer.Option(..., prompt=True, help="CPF, 11 digits"),
    phone: str = typer.Option(None, help="Phone, 10 or 11 digits"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Password"
    ),
):
    """Create an admin account. The write is audited like any other."""
    from .core.exceptions import ConflictError
    from .gateway.auth import Role
    from .gateway.auth_service import AuthService, public_user

    async def _create():
        settings, store = await _open()
        try:
            service = AuthService(store.users, store.sessions, settings.security)
            try:
                user = await service.create_user(
                    {"name": name, "email": email, "cpf": cpf, "phone": phone, "password": password},
                    role=Role.ADMIN,
                )
            except ConflictError as e:
                console.print(f"[red]{e.message}[/]")
                raise typer.Exit(code=1) from e

            table = Table(title="Admin Created")
            table.add_column("Field", style="cyan")
            table.add_column("Value", style="white")
            for key, value in public_user(user).items():
                if key != "cpf":
                    table.add_row(key, str(value))
            console.print(table)
        finally:
            await _close(store)

    asyncio.run(_create())


@user_app.command("revoke-sessions")
def user_revoke_sessions(
    email: str = typer.Option(..., prompt=True, help="E-mail of the user"),
):
    """Revoke every active session of a user."""
    from .gateway.sessions import SessionManager

    async def _revoke():
        settings, store = await _open()
        try:
            user = await store.users.get({"email": email.strip().lower()})
            if user is None:
                console.print(f"[red]No user with e-mail {email}[/]")
                raise typer.Exit(code=1)

            revoked = await SessionManager(store.sessions, settings.security).revoke_all(user["id"])
            console.print(f"[green]Revoked {revoked} session(s) for {email}[/]")
        finally:
            await _close(store)

    asyncio.run(_revoke())


# ============================================================
# AUDIT COMMANDS
# ============================================================

audit_app = typer.Typer(help="Audit trail commands")
app.add_typer(audit_app, name="audit")


@audit_app.command("tail")
def audit_tail(
    limit: int = typer.Option(20, min=1, max=200, help="Number of entries"),
    level: str = typer.Option(None, help="Filter by level: info, warn, error"),
    user_id: str = typer.Option(None, help="Filter by user id"),
):
    """Show the newest audit entries."""

    async def _tail():
        _, store = await _open()
        try:
            where = {k: v for k, v in {"level": level, "user_id": user_id}.items() if v}
            entries = await store.audit_logs.find_many(
                where or None, order_by="created_at", descending=True, limit=limit
            )
        finally:
            await _close(store)

        if not entries:
            console.print("[yellow]No audit entries found.[/]")
            return

        table = Table(title=f"Audit entries ({len(entries)})")
        table.add_column("When", style="dim")
        table.add_column("Level")
        table.add_column("Event", style="cyan")
        table.add_column("User", style="white")
        table.add_column("IP", style="white")
        table.add_column("Detail", style="dim", overflow="fold")

        for entry in entries:
            extra = (entry.get("message") or {}).get("extra", {})
            table.add_row(
                entry["created_at"].isoformat(timespec="seconds"),
                entry["level"],
                entry["event"],
                entry.get("user_id") or "-",
                entry.get("ip_address") or "-",
                json.dumps(extra, default=str)[:120],
            )
        console.print(table)

    asyncio.run(_tail())


# ============================================================
# DATABASE COMMANDS
# ============================================================

db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


@db_app.command("migrate")
def db_migrate(
    revision: str = typer.Option("head", help="Target revision (default: head)"),
):
    """Run database migrations using Alembic."""
    import subprocess
    import sys

    console.print("[bold]Running migrations...[/]")

    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", revision],
        capture_output=True,
        text=True,
    )

    if result.returncode == 0:
        console.print("[green]Migrations completed successfully![/]")
        if result.stdout:
            console.print(result.stdout)
    else:
        console.print("[red]Migration failed![/]")
        if result.stderr:
            console.print(result.stderr)
        raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(f"Campeiro v{__version__}")


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
