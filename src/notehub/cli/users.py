"""User management CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table
from sqlmodel import select

from notehub.database import get_session_context
from notehub.models import User
from notehub.schemas.auth import check_password_policy
from notehub.services.passwords import password_hasher
from notehub.services.users import CredentialStore

console = Console()
app = typer.Typer(help="User management commands")


def _checked_password(password: str) -> str:
    try:
        return check_password_policy(password)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


@app.command("list")
def list_users():
    """List all users."""

    async def _list():
        async with get_session_context() as session:
            stmt = select(User).order_by(User.email)
            result = await session.execute(stmt)
            users = result.scalars().all()

            table = Table(title="Users")
            table.add_column("ID", style="cyan")
            table.add_column("Email", style="green")
            table.add_column("Verified", style="magenta")
            table.add_column("Password", style="magenta")
            table.add_column("Created", style="dim")

            for user in users:
                verified = "[green]Yes[/green]" if user.is_verified else "No"
                has_password = "Yes" if user.password_hash else "[dim]No[/dim]"
                created = user.created_at.strftime("%Y-%m-%d") if user.created_at else "-"
                table.add_row(user.id, user.email, verified, has_password, created)

            console.print(table)

    asyncio.run(_list())


@app.command("create")
def create_user(
    email: str = typer.Argument(..., help="User email"),
    name: str | None = typer.Option(None, "--name", "-n", help="Display name"),
    password: str | None = typer.Option(None, "--password", "-p", help="Sign-in password"),
    verified: bool = typer.Option(False, "--verified", help="Mark the email as verified"),
    admin: bool = typer.Option(False, "--admin", help="Make user an admin"),
):
    """Create a new user."""
    password_hash = password_hasher.hash(_checked_password(password)) if password else None

    async def _create():
        async with get_session_context() as session:
            users = CredentialStore(session)
            if await users.get_by_email(email):
                console.print(f"[red]Error:[/red] User {email} already exists")
                raise typer.Exit(1)

            user = await users.create(
                email=email, name=name, password_hash=password_hash, verified=verified
            )
            user.is_admin = admin
            await session.commit()
            name_str = f" ({name})" if name else ""
            console.print(
                f"[green]Created user:[/green] {user.email}{name_str} "
                f"(verified={verified}, admin={admin})"
            )

    asyncio.run(_create())


@app.command("set-password")
def set_password(
    email: str = typer.Argument(..., help="User email"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True
    ),
):
    """Replace a user's password."""
    password_hash = password_hasher.hash(_checked_password(password))

    async def _set():
        async with get_session_context() as session:
            users = CredentialStore(session)
            user = await users.get_by_email(email)
            if not user:
                console.print(f"[red]Error:[/red] User {email} not found")
                raise typer.Exit(1)

            await users.set_password(user, password_hash)
            await session.commit()
            console.print(f"[green]Password updated for:[/green] {user.email}")

    asyncio.run(_set())


@app.command("verify")
def verify_user(email: str = typer.Argument(..., help="User email")):
    """Mark a user's email as verified without a token."""

    async def _verify():
        async with get_session_context() as session:
            users = CredentialStore(session)
            user = await users.get_by_email(email)
            if not user:
                console.print(f"[red]Error:[/red] User {email} not found")
                raise typer.Exit(1)

            if not await users.mark_verified(user):
                console.print(f"[yellow]Warning:[/yellow] User {user.email} is already verified")
                return

            await session.commit()
            console.print(f"[green]Verified:[/green] {user.email}")

    asyncio.run(_verify())
