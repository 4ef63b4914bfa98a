"""
Temporary storage for uploaded images.

The uploaded file is spooled to a named temporary file for the duration of
one request and always removed afterwards, whatever the outcome.
"""
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from stylizer.config import settings
from stylizer.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png"}
ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png"}
CHUNK_SIZE = 1024 * 1024


@dataclass
class StoredUpload:
    """An uploaded image spooled to disk."""
    path: str
    filename: str
    mime_type: str
    size: int

    async def read(self) -> bytes:
        def _read() -> bytes:
            with open(self.path, "rb") as f:
                return f.read()
        return await run_in_threadpool(_read)


def validate_image_upload(upload: Optional[UploadFile]) -> UploadFile:
    """
    Check that an image was attached and that it is a JPEG or PNG.

    Both the declared MIME type and the file extension must match.

    Raises:
        ValidationError: NO_IMAGE or INVALID_FILE_TYPE
    """
    if upload is None or not upload.filename:
        raise ValidationError("No image uploaded", code="NO_IMAGE")

    extension = os.path.splitext(upload.filename)[1].lower()
    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_MIME_TYPES or extension not in ALLOWED_EXTENSIONS:
        raise ValidationError(
            "Only image files are allowed! (jpeg, jpg, png)",
            code="INVALID_FILE_TYPE",
        )
    return upload


@asynccontextmanager
async def stored_upload(
    upload: UploadFile,
    max_bytes: int = None,
    directory: str = None,
) -> AsyncIterator[StoredUpload]:
    """
    Spool an upload to a temporary file and remove it on exit.

    Raises:
        ValidationError: FILE_TOO_LARGE if the upload exceeds max_bytes
    """
    max_bytes = max_bytes if max_bytes is not None else settings.max_upload_bytes
    directory = directory or settings.upload_dir
    if directory:
        os.makedirs(directory, exist_ok=True)

    extension = os.path.splitext(upload.filename)[1].lower()
    fd, path = tempfile.mkstemp(suffix=extension, prefix="upload-", dir=directory)
    try:
        size = 0
        with os.fdopen(fd, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise ValidationError(
                        f"File too large. Maximum size is {max_bytes // (1024 * 1024)} MB",
                        code="FILE_TOO_LARGE",
                    )
                out.write(chunk)

        yield StoredUpload(
            path=path,
            filename=upload.filename,
            mime_type=(upload.content_type or "").lower(),
            size=size,
        )
    finally:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        await upload.close()
        logger.debug(f"Removed temporary upload {path}")
