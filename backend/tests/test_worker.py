"""Tests for the worker process wiring."""

import asyncio

import pytest

from app import worker
from app.jobs.models import ThumbnailJob, thumbnail_queue
from conftest import InMemoryRedis


@pytest.mark.asyncio
async def test_run_worker_recovers_and_closes(tmp_path, monkeypatch, settings) -> None:
    """Stranded jobs go back on the queue at startup; handles are closed on exit."""
    monkeypatch.setenv("FILES_MANAGER_DB_PATH", str(tmp_path / "worker.db"))
    monkeypatch.setenv("FILES_MANAGER_STORAGE_BASE_PATH", str(tmp_path / "blobs"))
    client = InMemoryRedis()
    monkeypatch.setattr(worker, "connect_redis", lambda url: client)

    queue = thumbnail_queue(client, settings)
    await queue.enqueue(ThumbnailJob(user_id=1, file_id=1))
    await client.lmove(queue.key, queue.processing_key)

    stop = asyncio.Event()
    stop.set()
    await worker.run_worker(stop=stop)

    assert await queue.pending() == 1
    assert await client.llen(queue.processing_key) == 0
    assert client.closed is True
    assert (tmp_path / "worker.db").exists()
