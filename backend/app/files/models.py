"""File SQLAlchemy model and Pydantic schemas."""

import enum
from typing import Optional, Union

from pydantic import BaseModel, Field
from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base
from app.files.ids import render_parent_id


class FileType(str, enum.Enum):
    folder = "folder"
    file = "file"
    image = "image"


class File(Base):
    """File/folder metadata. parent_id NULL means top level."""

    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(1024), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    parent_id: Mapped[Optional[int]] = mapped_column(ForeignKey("files.id"), index=True, nullable=True)
    # Set once at creation for file/image; never for folders
    local_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# Pydantic schemas for API
class FileCreate(BaseModel):
    """Upload body. Fields are optional so the service reports which one is missing."""

    name: Optional[str] = None
    type: Optional[str] = None
    parent_id: Union[int, str, None] = Field(default=None, alias="parentId")
    is_public: bool = Field(default=False, alias="isPublic")
    data: Optional[str] = None


class FileResponse(BaseModel):
    """File as returned by API (no local path)."""

    id: int
    user_id: int = Field(serialization_alias="userId")
    name: str
    type: str
    is_public: bool = Field(serialization_alias="isPublic")
    parent_id: int = Field(serialization_alias="parentId")

    @classmethod
    def from_file(cls, file: File) -> "FileResponse":
        return cls(
            id=file.id,
            user_id=file.user_id,
            name=file.name,
            type=file.type,
            is_public=file.is_public,
            parent_id=render_parent_id(file.parent_id),
        )
