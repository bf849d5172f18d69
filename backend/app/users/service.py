"""User service: register, look up, authenticate."""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.passwords import hash_password, verify_password
from app.errors import StoreUnavailableError
from app.jobs.models import WelcomeJob
from app.jobs.queue import WorkQueue
from app.users.models import User

log = logging.getLogger(__name__)


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    """Return user by email or None."""
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[User]:
    """Return user by id or None."""
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    email: str,
    password: str,
    welcome_queue: WorkQueue,
) -> User:
    """
    Insert a new user and enqueue the welcome email.
    Raises ValueError if the email is taken. Enqueue failures are logged; the user is kept.
    """
    existing = await get_user_by_email(session, email)
    if existing:
        raise ValueError("Already exist")
    user = User(email=email, password_hash=hash_password(password))
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ValueError("Already exist")
    log.info("Registered user id=%s email=%s", user.id, user.email)
    try:
        await welcome_queue.enqueue(WelcomeJob(user_id=user.id))
    except StoreUnavailableError as e:
        log.warning("Welcome job not enqueued for user id=%s: %s", user.id, e)
    return user


async def authenticate(session: AsyncSession, email: str, password: str) -> Optional[User]:
    """Return the user if email/password match, else None."""
    user = await get_user_by_email(session, email)
    if not user or not verify_password(password, user.password_hash):
        log.warning("Login failed for email=%s", email)
        return None
    return user


async def count_users(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(User))
    return int(result.scalar_one())
