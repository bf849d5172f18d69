"""Background worker: thumbnail generation and welcome emails."""

import asyncio
import functools
import logging
from typing import Optional

from app.cache import connect_redis
from app.config import get_settings
from app.db.session import Database
from app.files.blobs import BlobStore
from app.jobs.models import thumbnail_queue, welcome_queue
from app.jobs.notifications import process_welcome_job
from app.jobs.thumbnails import process_thumbnail_job
from app.logs import setup_logging

log = logging.getLogger(__name__)


async def run_worker(stop: Optional[asyncio.Event] = None) -> None:
    """Consume both queues until stop is set or the task is cancelled."""
    settings = get_settings()
    db = Database(settings.db_path)
    await db.init()
    client = connect_redis(settings.redis_url)
    blobs = BlobStore(settings.storage_base_path)
    thumbnails = thumbnail_queue(client, settings)
    welcomes = welcome_queue(client, settings)
    try:
        await thumbnails.recover()
        await welcomes.recover()
        await asyncio.gather(
            thumbnails.process(functools.partial(process_thumbnail_job, db=db, blobs=blobs), stop=stop),
            welcomes.process(functools.partial(process_welcome_job, db=db, settings=settings), stop=stop),
        )
    finally:
        await client.aclose()
        await db.close()


def main() -> None:
    """Console entry point."""
    setup_logging("worker")
    log.info("Worker starting")
    try:
        asyncio.run(run_worker())
    except KeyboardInterrupt:
        log.info("Worker interrupted")


if __name__ == "__main__":
    main()
