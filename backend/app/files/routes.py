"""File API routes: upload, show, list, publish/unpublish, content."""

import logging
import mimetypes
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, get_optional_user
from app.db.session import get_db
from app.errors import FileValidationError, NoContentError, NotFound
from app.files.models import FileCreate, FileResponse
from app.files.service import FileHierarchyStore
from app.limiter import limiter
from app.users.models import User

router = APIRouter(prefix="/files", tags=["files"])
log = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "text/plain; charset=utf-8"


def get_file_store(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
) -> FileHierarchyStore:
    state = request.app.state
    return FileHierarchyStore(session, state.blobs, state.thumbnail_queue)


def content_type_for(name: str) -> str:
    """Content type from the file name's extension, plain text when unknown."""
    guessed, _ = mimetypes.guess_type(name)
    return guessed or DEFAULT_CONTENT_TYPE


def _not_found(e: NotFound) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.detail)


@router.post("", response_model=FileResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("600/minute")
async def upload(
    request: Request,
    body: FileCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    store: Annotated[FileHierarchyStore, Depends(get_file_store)],
) -> FileResponse:
    """Create a folder, or a file/image from base64 `data`."""
    try:
        file = await store.create(
            current_user.id,
            name=body.name,
            type=body.type,
            is_public=body.is_public,
            parent_id=body.parent_id,
            data=body.data,
        )
    except FileValidationError as e:
        log.info("upload rejected user_id=%s: %s", current_user.id, e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return FileResponse.from_file(file)


@router.get("/{file_id}", response_model=FileResponse)
async def show(
    file_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    store: Annotated[FileHierarchyStore, Depends(get_file_store)],
) -> FileResponse:
    try:
        file = await store.get(file_id, current_user.id)
    except NotFound as e:
        raise _not_found(e)
    return FileResponse.from_file(file)


@router.get("", response_model=List[FileResponse])
async def index(
    current_user: Annotated[User, Depends(get_current_user)],
    store: Annotated[FileHierarchyStore, Depends(get_file_store)],
    parentId: Optional[str] = None,
    page: Optional[str] = None,
) -> List[FileResponse]:
    """Current user's files under parentId (default root), 20 per page, newest first."""
    files = await store.list(current_user.id, parent_id=parentId, page=page)
    return [FileResponse.from_file(f) for f in files]


async def _set_visibility(file_id: str, user: User, store: FileHierarchyStore, is_public: bool) -> FileResponse:
    try:
        file = await store.set_visibility(file_id, user.id, is_public)
    except NotFound as e:
        raise _not_found(e)
    return FileResponse.from_file(file)


@router.put("/{file_id}/publish", response_model=FileResponse)
async def publish(
    file_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    store: Annotated[FileHierarchyStore, Depends(get_file_store)],
) -> FileResponse:
    return await _set_visibility(file_id, current_user, store, True)


@router.put("/{file_id}/unpublish", response_model=FileResponse)
async def unpublish(
    file_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    store: Annotated[FileHierarchyStore, Depends(get_file_store)],
) -> FileResponse:
    return await _set_visibility(file_id, current_user, store, False)


@router.get("/{file_id}/data")
async def data(
    file_id: str,
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
    store: Annotated[FileHierarchyStore, Depends(get_file_store)],
    size: Optional[str] = None,
) -> Response:
    """File content. Public files need no token; `size` selects a thumbnail (500, 250, 100)."""
    requester_id = current_user.id if current_user else None
    try:
        file, content = await store.read_content(file_id, requester_id, size=size)
    except NotFound as e:
        raise _not_found(e)
    except (NoContentError, FileValidationError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    log.info("download file id=%s size=%s requester=%s", file.id, size, requester_id)
    return Response(content=content, media_type=content_type_for(file.name))
