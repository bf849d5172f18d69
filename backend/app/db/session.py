"""SQLite engine and session handle."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()

log = logging.getLogger(__name__)


class Database:
    """
    Engine and session factory for one database file.
    Created once by the hosting process (API lifespan or worker) and passed around.
    """

    def __init__(self, db_path: Path) -> None:
        # SQLAlchemy async needs sqlite+aiosqlite and path as URL
        self.url = f"sqlite+aiosqlite:///{db_path}"
        self.engine = create_async_engine(self.url, echo=False)
        self._sessionmaker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

    async def init(self) -> None:
        """Create tables if they do not exist."""
        # register models with Base before create_all
        from app.files import models as _files_models  # noqa: F401
        from app.users import models as _users_models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose of pooled connections."""
        await self.engine.dispose()

    async def ping(self) -> bool:
        """True if a trivial query succeeds."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            log.warning("Database ping failed: %s", e)
            return False

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield an async session (context manager); commit on success, rollback on error."""
        async with self._sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async session from the app's database handle."""
    async with request.app.state.db.session() as session:
        yield session
