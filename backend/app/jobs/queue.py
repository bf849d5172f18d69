"""Durable work queue on Redis lists with at-least-once delivery and per-job retry."""

import asyncio
import enum
import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Type, TypeVar

import redis.asyncio as redis
from pydantic import BaseModel
from redis.exceptions import RedisError

from app.errors import StoreUnavailableError, TerminalJobError

log = logging.getLogger(__name__)

JobT = TypeVar("JobT", bound=BaseModel)
Handler = Callable[[JobT], Awaitable[None]]

DEFAULT_MAX_ATTEMPTS = 3
# Pause after a Redis error in the consume loop
_ERROR_BACKOFF_SECONDS = 2.0


class JobOutcome(str, enum.Enum):
    done = "done"
    retried = "retried"
    failed = "failed"


class WorkQueue(Generic[JobT]):
    """
    One named queue. Layout under prefix:<name>:
      <key>             pending envelopes (RPUSH / head is next)
      <key>:processing  envelopes taken by a worker and not yet settled
      <key>:failed      terminal failures and jobs that ran out of attempts
    Envelopes are JSON: {"id": ..., "attempts": n, "data": {...job fields...}}.
    """

    def __init__(
        self,
        client: redis.Redis,
        name: str,
        job_model: Type[JobT],
        prefix: str = "files_manager",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._redis = client
        self.name = name
        self.job_model = job_model
        self.key = f"{prefix}:{name}"
        self.processing_key = f"{self.key}:processing"
        self.failed_key = f"{self.key}:failed"
        self.max_attempts = max(1, max_attempts)

    async def enqueue(self, job: JobT) -> str:
        """Append job; returns the envelope id."""
        job_id = uuid.uuid4().hex
        envelope = {"id": job_id, "attempts": 0, "data": job.model_dump()}
        try:
            await self._redis.rpush(self.key, json.dumps(envelope))
        except RedisError as e:
            raise StoreUnavailableError(f"Could not enqueue on {self.name}: {e}") from e
        log.info("Enqueued job id=%s queue=%s data=%s", job_id, self.name, envelope["data"])
        return job_id

    async def process_next(self, handler: Handler, timeout: float = 1.0) -> Optional[JobOutcome]:
        """
        Take one job (waiting up to timeout seconds) and run handler on it.
        Returns None when the queue stayed empty. RedisError propagates.
        """
        raw = await self._redis.blmove(self.key, self.processing_key, timeout, "LEFT", "RIGHT")
        if raw is None:
            return None
        try:
            envelope: Dict[str, Any] = json.loads(raw)
            job = self.job_model.model_validate(envelope["data"])
        except (ValueError, KeyError, TypeError) as e:
            log.error("Undecodable job on %s dropped to failed list: %s raw=%r", self.name, e, raw)
            await self._settle(raw, self.failed_key, json.dumps({"raw": raw, "error": str(e)}))
            return JobOutcome.failed

        job_id = envelope.get("id")
        try:
            await handler(job)
        except TerminalJobError as e:
            log.error("Job id=%s queue=%s failed permanently: %s", job_id, self.name, e)
            envelope["error"] = str(e)
            await self._settle(raw, self.failed_key, json.dumps(envelope))
            return JobOutcome.failed
        except Exception as e:
            envelope["attempts"] = int(envelope.get("attempts", 0)) + 1
            envelope["error"] = str(e)
            if envelope["attempts"] < self.max_attempts:
                log.warning(
                    "Job id=%s queue=%s attempt %d/%d failed, retrying: %s",
                    job_id, self.name, envelope["attempts"], self.max_attempts, e,
                )
                await self._settle(raw, self.key, json.dumps(envelope))
                return JobOutcome.retried
            log.error(
                "Job id=%s queue=%s gave up after %d attempts: %s",
                job_id, self.name, envelope["attempts"], e,
            )
            await self._settle(raw, self.failed_key, json.dumps(envelope))
            return JobOutcome.failed
        await self._redis.lrem(self.processing_key, 1, raw)
        log.info("Job id=%s queue=%s done", job_id, self.name)
        return JobOutcome.done

    async def _settle(self, raw: str, destination: str, envelope: str) -> None:
        # push first: a crash in between leaves a duplicate, never a lost job
        await self._redis.rpush(destination, envelope)
        await self._redis.lrem(self.processing_key, 1, raw)

    async def process(self, handler: Handler, stop: Optional[asyncio.Event] = None, timeout: float = 1.0) -> None:
        """Consume until stop is set (or the task is cancelled)."""
        log.info("Worker consuming queue=%s", self.name)
        while stop is None or not stop.is_set():
            try:
                await self.process_next(handler, timeout=timeout)
            except RedisError as e:
                log.error("Redis error on queue=%s: %s", self.name, e)
                await asyncio.sleep(_ERROR_BACKOFF_SECONDS)
        log.info("Worker stopped queue=%s", self.name)

    async def recover(self) -> int:
        """Return envelopes stranded in the processing list (crashed worker) to the head of the queue."""
        moved = 0
        while await self._redis.lmove(self.processing_key, self.key, "RIGHT", "LEFT") is not None:
            moved += 1
        if moved:
            log.warning("Recovered %d in-flight job(s) on queue=%s", moved, self.name)
        return moved

    async def pending(self) -> int:
        return int(await self._redis.llen(self.key))

    async def failed(self) -> List[Dict[str, Any]]:
        """Envelopes in the failed list (oldest first)."""
        return [json.loads(raw) for raw in await self._redis.lrange(self.failed_key, 0, -1)]
