"""Auth routes: exchange credentials for a token, drop a token."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_sessions, token_header
from app.auth.sessions import SessionDirectory
from app.db.session import get_db
from app.limiter import limiter
from app.users.models import TokenResponse
from app.users.service import authenticate

router = APIRouter(tags=["auth"])
basic = HTTPBasic(auto_error=False)
log = logging.getLogger(__name__)


@router.get("/connect", response_model=TokenResponse)
@limiter.limit("10/minute")
async def connect(
    request: Request,
    credentials: Annotated[Optional[HTTPBasicCredentials], Depends(basic)],
    sessions: Annotated[SessionDirectory, Depends(get_sessions)],
    session: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """Basic auth (email:password) in, session token out."""
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    user = await authenticate(session, credentials.username, credentials.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    token = await sessions.issue(user.id)
    log.info("Login successful for email=%s", user.email)
    return TokenResponse(token=token)


@router.get("/disconnect", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect(
    token: Annotated[Optional[str], Depends(token_header)],
    sessions: Annotated[SessionDirectory, Depends(get_sessions)],
) -> Response:
    """Revoke the caller's token."""
    user_id = await sessions.resolve(token)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    await sessions.revoke(token)
    log.info("Logout for user_id=%s", user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
