"""User SQLAlchemy model and Pydantic schemas."""

from typing import Optional

from pydantic import BaseModel
from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base


class User(Base):
    """User table: email is the unique login identifier."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)


# Pydantic schemas for API
class UserCreate(BaseModel):
    """Registration body. Fields are optional so the route reports which one is missing."""

    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    """User as returned by API (no password)."""

    id: int
    email: str


class TokenResponse(BaseModel):
    token: str
