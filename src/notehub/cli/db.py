"""Database management CLI commands."""

import asyncio
import subprocess
import sys

import typer
from rich.console import Console
from rich.table import Table

from notehub.database import get_session_context

console = Console()
app = typer.Typer(help="Database management commands")


def _alembic(*args: str) -> int:
    result = subprocess.run(
        [sys.executable, "-m", "alembic", *args],
        check=False, capture_output=False,
    )
    return result.returncode


@app.command("migrate")
def migrate(
    revision: str = typer.Argument("head", help="Target revision (default: head)"),
):
    """Run database migrations to the specified revision."""
    console.print(f"[dim]Running migrations to {revision}...[/dim]")

    if _alembic("upgrade", revision) == 0:
        console.print("[green]Migrations complete![/green]")
    else:
        console.print("[red]Migration failed![/red]")
        raise typer.Exit(1)


@app.command("rollback")
def rollback(
    revision: str = typer.Argument("-1", help="Target revision (default: -1 for one step back)"),
):
    """Rollback database migrations."""
    console.print(f"[dim]Rolling back to {revision}...[/dim]")

    if _alembic("downgrade", revision) == 0:
        console.print("[green]Rollback complete![/green]")
    else:
        console.print("[red]Rollback failed![/red]")
        raise typer.Exit(1)


@app.command("current")
def current():
    """Show current database revision."""
    _alembic("current")


@app.command("seed")
def seed():
    """Load the demo user with sample categories, tags and notes."""
    from notehub.seed import seed_database

    async def _seed():
        async with get_session_context() as session:
            return await seed_database(session)

    console.print("[dim]Seeding database...[/dim]")
    result = asyncio.run(_seed())

    table = Table(title="Seeded")
    table.add_column("Record", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Categories", str(len(result.categories)))
    table.add_row("Tags", str(len(result.tags)))
    table.add_row("Notes", str(len(result.notes)))
    console.print(table)

    console.print(f"[green]Seeding complete![/green] Demo user: {result.user.email}")
