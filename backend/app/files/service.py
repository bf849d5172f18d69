"""File hierarchy: create, fetch, list, publish/unpublish and read content."""

import base64
import binascii
import logging
from typing import Any, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import FileValidationError, NoContentError, NotFound, StoreUnavailableError
from app.files.access import allowed
from app.files.blobs import BlobStore, blob_name, variant_name
from app.files.ids import ROOT, parse_id, parse_parent_id
from app.files.models import File, FileType
from app.jobs.models import ThumbnailJob
from app.jobs.queue import WorkQueue

log = logging.getLogger(__name__)

PAGE_SIZE = 20
THUMBNAIL_WIDTHS = (500, 250, 100)

_FILE_TYPES = {t.value for t in FileType}


def parse_page(value: Any) -> int:
    """Page index from a query value; anything not a non-negative integer is page 0."""
    if isinstance(value, int) and not isinstance(value, bool):
        return max(value, 0)
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    return 0


def parse_size(value: Any) -> int:
    """Thumbnail width from a query value. Raises FileValidationError for unsupported widths."""
    if isinstance(value, int) and not isinstance(value, bool):
        width = value
    elif isinstance(value, str) and value.isascii() and value.isdigit():
        width = int(value)
    else:
        raise FileValidationError("Invalid size")
    if width not in THUMBNAIL_WIDTHS:
        raise FileValidationError("Invalid size")
    return width


class FileHierarchyStore:
    """
    Metadata store for files and folders of all users.
    Blobs are written before metadata rows so a row never points at a missing blob.
    """

    def __init__(self, session: AsyncSession, blobs: BlobStore, thumbnail_queue: WorkQueue) -> None:
        self.session = session
        self.blobs = blobs
        self.thumbnail_queue = thumbnail_queue

    async def _get(self, file_id: int, owner_id: Optional[int] = None) -> Optional[File]:
        stmt = select(File).where(File.id == file_id)
        if owner_id is not None:
            stmt = stmt.where(File.user_id == owner_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self,
        owner_id: int,
        name: Optional[str],
        type: Optional[str],
        is_public: bool = False,
        parent_id: Any = None,
        data: Optional[str] = None,
    ) -> File:
        """
        Validate and insert a file/folder. Checks run in order and the first failure wins:
        name, type, data (non-folders), parent (exists and is a folder).
        """
        if not name:
            raise FileValidationError("Missing name")
        if not type or type not in _FILE_TYPES:
            raise FileValidationError("Missing type")
        if type != FileType.folder.value and not data:
            raise FileValidationError("Missing data")
        parent = parse_parent_id(parent_id)
        if parent is not ROOT:
            parent_file = await self._get(parent) if parent is not None else None
            if parent_file is None:
                raise FileValidationError("Parent not found")
            if parent_file.type != FileType.folder.value:
                raise FileValidationError("Parent is not a folder")

        local_path = None
        if type != FileType.folder.value:
            try:
                payload = base64.b64decode(data, validate=True)
            except (binascii.Error, ValueError):
                raise FileValidationError("Invalid data")
            try:
                local_path = str(self.blobs.write(self.blobs.new_name(), payload))
            except OSError as e:
                log.error("Blob write failed for user_id=%s name=%r: %s", owner_id, name, e)
                raise StoreUnavailableError("Could not store file content") from e

        file = File(
            user_id=owner_id,
            name=name,
            type=type,
            is_public=bool(is_public),
            parent_id=None if parent is ROOT else parent,
            local_path=local_path,
        )
        self.session.add(file)
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            if local_path:
                self.blobs.path_for(blob_name(local_path)).unlink(missing_ok=True)
            log.error("Insert failed for user_id=%s name=%r: %s", owner_id, name, e)
            raise StoreUnavailableError("Could not store file metadata") from e
        log.info("Created %s id=%s user_id=%s parent_id=%s", type, file.id, owner_id, file.parent_id)

        if type == FileType.image.value:
            try:
                await self.thumbnail_queue.enqueue(ThumbnailJob(user_id=owner_id, file_id=file.id))
            except StoreUnavailableError as e:
                # record stays; thumbnails will simply never appear
                log.error("Thumbnail job not enqueued for file id=%s: %s", file.id, e)
        return file

    async def get(self, file_id: Any, requester_id: Optional[int]) -> File:
        """Fetch a file visible to requester. Missing and forbidden both raise NotFound."""
        fid = parse_id(file_id)
        file = await self._get(fid) if fid is not None else None
        if file is None or not allowed(file, requester_id):
            raise NotFound()
        return file

    async def list(self, owner_id: int, parent_id: Any = None, page: Any = 0) -> List[File]:
        """One page of the owner's files directly under parent_id, newest first."""
        parent = parse_parent_id(parent_id)
        if parent is None:
            return []
        stmt = select(File).where(File.user_id == owner_id)
        if parent is ROOT:
            stmt = stmt.where(File.parent_id.is_(None))
        else:
            stmt = stmt.where(File.parent_id == parent)
        stmt = stmt.order_by(File.id.desc()).offset(parse_page(page) * PAGE_SIZE).limit(PAGE_SIZE)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_visibility(self, file_id: Any, requester_id: int, is_public: bool) -> File:
        """Publish or unpublish one of the requester's own files. Last write wins."""
        fid = parse_id(file_id)
        file = await self._get(fid, owner_id=requester_id) if fid is not None else None
        if file is None:
            raise NotFound()
        file.is_public = is_public
        await self.session.commit()
        log.info("File id=%s is_public=%s by user_id=%s", file.id, is_public, requester_id)
        return file

    async def read_content(
        self, file_id: Any, requester_id: Optional[int], size: Any = None
    ) -> Tuple[File, bytes]:
        """
        Return (file, bytes) for any owner's file that passes the access policy.
        With size, serve the thumbnail variant; a missing variant is not replaced by the original.
        """
        fid = parse_id(file_id)
        file = await self._get(fid) if fid is not None else None
        if file is None or not allowed(file, requester_id):
            raise NotFound()
        if file.type == FileType.folder.value or not file.local_path:
            raise NoContentError("A folder doesn't have content")
        name = blob_name(file.local_path)
        if size is not None:
            name = variant_name(name, parse_size(size))
        try:
            data = self.blobs.read(name)
        except FileNotFoundError:
            raise NotFound("Thumbnail not found" if size is not None else "Not found")
        except OSError as e:
            log.error("Blob read failed for file id=%s blob=%s: %s", file.id, name, e)
            raise StoreUnavailableError("Could not read file content") from e
        return file, data


async def count_files(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(File))
    return int(result.scalar_one())
