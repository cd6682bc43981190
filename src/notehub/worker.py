"""Background task worker using SAQ."""

import asyncio

from saq import Worker

from notehub.logging import setup_logging
from notehub.tasks.queue import get_queue_settings

setup_logging()


def main() -> None:
    """Run the SAQ worker for email delivery and token cleanup."""
    settings = get_queue_settings()
    worker = Worker(
        queue=settings["queue"],
        functions=settings["functions"],
        concurrency=settings.get("concurrency", 10),
        cron_jobs=settings.get("cron_jobs"),
        startup=settings.get("startup"),
        shutdown=settings.get("shutdown"),
    )
    asyncio.run(worker.start())


if __name__ == "__main__":
    main()
