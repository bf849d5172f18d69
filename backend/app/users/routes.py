"""User routes: register, me."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.db.session import get_db
from app.users.models import User, UserCreate, UserResponse
from app.users.service import create_user

router = APIRouter(prefix="/users", tags=["users"])
log = logging.getLogger(__name__)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    payload: UserCreate,
    session: Annotated[AsyncSession, Depends(get_db)],
) -> UserResponse:
    """Create a user; the welcome email is sent later by the worker."""
    if not payload.email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing email")
    if not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing password")
    try:
        user = await create_user(session, payload.email, payload.password, request.app.state.welcome_queue)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return UserResponse(id=user.id, email=user.email)


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    """Return current authenticated user."""
    return UserResponse(id=current_user.id, email=current_user.email)
