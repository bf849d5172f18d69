"""Thumbnail generation for uploaded images."""

import asyncio
import io
import logging
from typing import List

from PIL import Image, UnidentifiedImageError
from PIL.PngImagePlugin import PngInfo
from sqlalchemy import select

from app.db.session import Database
from app.errors import TerminalJobError
from app.files.blobs import BlobStore, blob_name, variant_name
from app.files.ids import parse_id
from app.files.models import File
from app.files.service import THUMBNAIL_WIDTHS
from app.jobs.models import ThumbnailJob

log = logging.getLogger(__name__)


def resize_to_width(image_data: bytes, width: int) -> bytes:
    """Resize an encoded image to width (aspect ratio kept) and re-encode it in its own format."""
    with Image.open(io.BytesIO(image_data)) as img:
        fmt = img.format if img.format in Image.SAVE else "PNG"
        height = max(1, round(img.height * width / img.width))
        thumb = img.resize((width, height))
    # JPEG has no alpha or palette
    if fmt == "JPEG" and thumb.mode in ("RGBA", "P", "LA"):
        thumb = thumb.convert("RGB")
    output_buffer = io.BytesIO()
    if fmt == "PNG":
        # text chunk keeps a same-width variant byte-distinct from its original
        info = PngInfo()
        info.add_text("Thumbnail-Width", str(width))
        thumb.save(output_buffer, format=fmt, pnginfo=info)
    else:
        thumb.save(output_buffer, format=fmt)
    return output_buffer.getvalue()


async def _derive(blobs: BlobStore, name: str, original: bytes, width: int) -> None:
    data = await asyncio.to_thread(resize_to_width, original, width)
    target = variant_name(name, width)
    await asyncio.to_thread(blobs.write, target, data)
    log.info("Created thumbnail %s width=%d size=%d", target, width, len(data))


async def process_thumbnail_job(job: ThumbnailJob, db: Database, blobs: BlobStore) -> None:
    """
    Write <blob>_500, <blob>_250 and <blob>_100 for the job's image.
    Missing ids, a missing file or an unreadable image are terminal; everything else is retried.
    All widths are attempted before a failure is reported, and reruns overwrite the same names.
    """
    if job.file_id is None:
        raise TerminalJobError("Missing fileId")
    if job.user_id is None:
        raise TerminalJobError("Missing userId")
    file_id, user_id = parse_id(job.file_id), parse_id(job.user_id)
    if file_id is None or user_id is None:
        raise TerminalJobError("File not found")

    async with db.session() as session:
        result = await session.execute(
            select(File).where(File.id == file_id, File.user_id == user_id)
        )
        file = result.scalar_one_or_none()
    if file is None:
        raise TerminalJobError("File not found")
    if not file.local_path:
        raise TerminalJobError(f"File id={file.id} has no content")

    name = blob_name(file.local_path)
    log.info("Processing thumbnails for file id=%s blob=%s", file.id, name)
    original = await asyncio.to_thread(blobs.read, name)

    results = await asyncio.gather(
        *(_derive(blobs, name, original, width) for width in THUMBNAIL_WIDTHS),
        return_exceptions=True,
    )
    errors: List[BaseException] = [r for r in results if isinstance(r, BaseException)]
    if not errors:
        return
    for err in errors:
        log.warning("Thumbnail for file id=%s failed: %s", file.id, err)
    if any(isinstance(err, UnidentifiedImageError) for err in errors):
        raise TerminalJobError(f"File id={file.id} is not a readable image")
    raise errors[0]
