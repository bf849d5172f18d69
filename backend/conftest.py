"""Pytest configuration: set test env before any app imports so DB, blobs and limiter use test values."""

import base64
import io
import os
import tempfile
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from PIL import Image

# Set before app.config / app.limiter are used so settings use test paths
_tmp = tempfile.mkdtemp(prefix="files_manager_test_")
os.environ.setdefault("FILES_MANAGER_DB_PATH", os.path.join(_tmp, "test.db"))
os.environ.setdefault("FILES_MANAGER_STORAGE_BASE_PATH", os.path.join(_tmp, "blobs"))
os.environ.setdefault("FILES_MANAGER_RATE_LIMIT_ENABLED", "false")


class InMemoryRedis:
    """
    The subset of redis.asyncio.Redis used by sessions and queues, kept in dicts.
    `now` is a manual clock so tests can move past key expiry.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.strings: Dict[str, str] = {}
        self.expires: Dict[str, float] = {}
        self.lists: Dict[str, List[str]] = {}
        self.closed = False

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _alive(self, key: str) -> bool:
        expiry = self.expires.get(key)
        if expiry is not None and self.now >= expiry:
            self.strings.pop(key, None)
            self.expires.pop(key, None)
        return key in self.strings

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True

    async def set(self, key: str, value: Any, ex: Optional[int] = None) -> bool:
        self.strings[key] = str(value)
        if ex is not None:
            self.expires[key] = self.now + ex
        else:
            self.expires.pop(key, None)
        return True

    async def get(self, key: str) -> Optional[str]:
        return self.strings[key] if self._alive(key) else None

    async def ttl(self, key: str) -> int:
        if not self._alive(key):
            return -2
        expiry = self.expires.get(key)
        return -1 if expiry is None else int(expiry - self.now)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._alive(key):
                removed += 1
            self.strings.pop(key, None)
            self.expires.pop(key, None)
            if self.lists.pop(key, None) is not None:
                removed += 1
        return removed

    async def rpush(self, key: str, *values: str) -> int:
        items = self.lists.setdefault(key, [])
        items.extend(values)
        return len(items)

    async def llen(self, key: str) -> int:
        return len(self.lists.get(key, []))

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        items = self.lists.get(key, [])
        return items[start:] if end == -1 else items[start:end + 1]

    async def lrem(self, key: str, count: int, value: str) -> int:
        items = self.lists.get(key, [])
        removed = 0
        while value in items and (count == 0 or removed < abs(count)):
            items.remove(value)
            removed += 1
        if not items:
            self.lists.pop(key, None)
        return removed

    async def lmove(self, first_list: str, second_list: str, src: str = "LEFT", dest: str = "RIGHT") -> Optional[str]:
        items = self.lists.get(first_list)
        if not items:
            return None
        value = items.pop(0) if src == "LEFT" else items.pop()
        if not items:
            self.lists.pop(first_list, None)
        target = self.lists.setdefault(second_list, [])
        if dest == "LEFT":
            target.insert(0, value)
        else:
            target.append(value)
        return value

    async def blmove(
        self, first_list: str, second_list: str, timeout: float, src: str = "LEFT", dest: str = "RIGHT"
    ) -> Optional[str]:
        # never blocks: an empty list behaves like an elapsed timeout
        return await self.lmove(first_list, second_list, src, dest)


def make_image(width: int = 800, height: int = 600, fmt: str = "PNG", color: str = "red") -> bytes:
    """Encoded test image."""
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def settings():
    from app.config import get_settings

    return get_settings()


@pytest_asyncio.fixture
async def db(tmp_path):
    """Fresh database file per test."""
    from app.db.session import Database

    database = Database(tmp_path / "test.db")
    await database.init()
    yield database
    await database.close()


@pytest.fixture
def session_factory(db):
    """Yield db.session so tests can use async with session_factory() as session."""
    return db.session


@pytest.fixture
def blobs(tmp_path):
    from app.files.blobs import BlobStore

    return BlobStore(tmp_path / "blobs")


@pytest.fixture
def thumbnail_queue(fake_redis, settings):
    from app.jobs.models import thumbnail_queue as make_queue

    return make_queue(fake_redis, settings)


@pytest.fixture
def welcome_queue(fake_redis, settings):
    from app.jobs.models import welcome_queue as make_queue

    return make_queue(fake_redis, settings)


@pytest_asyncio.fixture
async def users(session_factory):
    """Two registered users: (owner, other)."""
    from app.users.models import User

    async with session_factory() as session:
        owner = User(email="owner@example.com", password_hash="x")
        other = User(email="other@example.com", password_hash="x")
        session.add_all([owner, other])
        await session.commit()
    return owner, other


@pytest.fixture
def store_factory(blobs, thumbnail_queue):
    """Build a FileHierarchyStore on a given session."""
    from app.files.service import FileHierarchyStore

    def factory(session):
        return FileHierarchyStore(session, blobs, thumbnail_queue)

    return factory
