"""CLI commands using Typer."""

import typer

from notehub.cli.db import app as db_app
from notehub.cli.tokens import app as tokens_app
from notehub.cli.users import app as users_app

app = typer.Typer(name="notehub", help="Notehub CLI")

# Register sub-apps
app.add_typer(db_app, name="db")
app.add_typer(users_app, name="users")
app.add_typer(tokens_app, name="tokens")


@app.command()
def version():
    """Show version information."""
    from notehub import __version__

    typer.echo(f"Notehub v{__version__}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
):
    """Run the API server."""
    import uvicorn

    from notehub.logging import get_uvicorn_log_config

    uvicorn.run(
        "notehub.main:app",
        host=host,
        port=port,
        reload=reload,
        log_config=get_uvicorn_log_config(),
    )


@app.command()
def worker(
    concurrency: int | None = typer.Option(None, help="Number of concurrent jobs"),
):
    """Run the background task worker (email delivery, token cleanup)."""
    import asyncio

    from saq import Worker

    from notehub.logging import setup_logging
    from notehub.tasks import get_queue_settings

    setup_logging()
    settings = get_queue_settings()
    concurrency = concurrency or settings["concurrency"]

    typer.echo(f"Starting worker with concurrency={concurrency}")

    async def run_worker():
        w = Worker(
            queue=settings["queue"],
            functions=settings["functions"],
            concurrency=concurrency,
            cron_jobs=settings.get("cron_jobs"),
            startup=settings.get("startup"),
            shutdown=settings.get("shutdown"),
        )
        await w.start()

    asyncio.run(run_worker())


if __name__ == "__main__":
    app()
