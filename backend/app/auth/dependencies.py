"""FastAPI dependencies for auth."""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.sessions import SessionDirectory
from app.db.session import get_db
from app.users.models import User
from app.users.service import get_user_by_id

token_header = APIKeyHeader(name="X-Token", auto_error=False)
log = logging.getLogger(__name__)


def get_sessions(request: Request) -> SessionDirectory:
    return request.app.state.sessions


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


async def get_optional_user(
    token: Annotated[Optional[str], Depends(token_header)],
    sessions: Annotated[SessionDirectory, Depends(get_sessions)],
    session: Annotated[AsyncSession, Depends(get_db)],
) -> Optional[User]:
    """Resolve X-Token to a user, or None for anonymous / unknown / expired tokens."""
    user_id = await sessions.resolve(token)
    if user_id is None:
        return None
    user = await get_user_by_id(session, user_id)
    if not user:
        log.warning("Session points at missing user_id=%s", user_id)
    return user


async def get_current_user(
    user: Annotated[Optional[User], Depends(get_optional_user)],
) -> User:
    """Require a valid X-Token; raise 401 otherwise."""
    if user is None:
        log.debug("Request without a valid X-Token")
        raise _unauthorized()
    return user
