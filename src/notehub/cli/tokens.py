"""Verification token maintenance commands."""

import asyncio

import typer
from rich.console import Console

from notehub.tasks import queue
from notehub.tasks.maintenance import MAINTENANCE_TIMEOUT_SECONDS, purge_expired_tokens

console = Console()
app = typer.Typer(help="Verification token maintenance commands")


@app.command("purge")
def purge(
    background: bool = typer.Option(False, "--background", "-b", help="Run in background worker"),
):
    """Delete expired verification, reset and magic link tokens."""

    async def _purge():
        if background:
            job = await queue.enqueue("purge_expired_tokens", timeout=MAINTENANCE_TIMEOUT_SECONDS)
            console.print(f"[green]Queued token purge job:[/green] {job.id if job else 'unknown'}")
            return

        console.print("[cyan]Purging expired tokens...[/cyan]")
        result = await purge_expired_tokens(ctx={})

        if not result.get("success"):
            console.print(f"[red]Error:[/red] {result.get('error')}")
            raise typer.Exit(1)

        console.print(f"[green]Deleted {result['deleted']} expired tokens.[/green]")

    asyncio.run(_purge())
