"""Job descriptions carried on the work queues, and the queues that carry them."""

from typing import Optional

import redis.asyncio as redis
from pydantic import BaseModel

from app.config import Settings
from app.jobs.queue import WorkQueue

THUMBNAIL_QUEUE = "thumbnail_generation"
WELCOME_QUEUE = "email_sending"


class ThumbnailJob(BaseModel):
    """Derive the thumbnail variants of an image file. Ids are checked by the handler, not the decoder."""

    user_id: Optional[int] = None
    file_id: Optional[int] = None


class WelcomeJob(BaseModel):
    """Send the welcome email to a newly registered user."""

    user_id: Optional[int] = None


def thumbnail_queue(client: redis.Redis, settings: Settings) -> WorkQueue[ThumbnailJob]:
    return WorkQueue(
        client, THUMBNAIL_QUEUE, ThumbnailJob,
        prefix=settings.queue_prefix, max_attempts=settings.job_max_attempts,
    )


def welcome_queue(client: redis.Redis, settings: Settings) -> WorkQueue[WelcomeJob]:
    return WorkQueue(
        client, WELCOME_QUEUE, WelcomeJob,
        prefix=settings.queue_prefix, max_attempts=settings.job_max_attempts,
    )
