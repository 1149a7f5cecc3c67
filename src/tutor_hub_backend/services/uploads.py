'''
Stores uploaded files under UPLOAD_DIR.
Used by support attachments, homework submissions and teaching materials.
'''
import asyncio
import uuid
from pathlib import Path
from typing import NamedTuple, Optional

from fastapi import HTTPException, UploadFile, status

from ..common.config import settings
from ..common.logger import log


class StoredFile(NamedTuple):
    file_name: str
    file_path: str
    file_type: str
    file_size: int


def _write_file(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def _remove_file(path: Path) -> None:
    path.unlink(missing_ok=True)


async def store_upload(
    upload: UploadFile,
    folder: str,
    max_size: int,
    allowed_types: Optional[set[str]] = None,
    type_error: str = "This file type is not allowed.",
) -> StoredFile:
    """
    Checks the content type and size, then writes the file to
    UPLOAD_DIR/<folder>/<random name><original suffix>.
    The original file name is kept only as metadata.
    """
    if allowed_types is not None and upload.content_type not in allowed_types:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=type_error)
    content = await upload.read()
    if len(content) > max_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Files are limited to {max_size // (1024 * 1024)} MB."
        )

    original_name = Path(upload.filename or "attachment").name
    path = Path(settings.UPLOAD_DIR) / folder / f"{uuid.uuid4().hex}{Path(original_name).suffix.lower()}"
    await asyncio.to_thread(_write_file, path, content)
    log.info(f"Stored upload {original_name} ({len(content)} bytes) at {path}.")
    return StoredFile(
        file_name=original_name[:255],
        file_path=str(path),
        file_type=upload.content_type or "application/octet-stream",
        file_size=len(content),
    )


async def remove_stored_file(file_path: Optional[str]) -> None:
    """Deletes a stored file; a file that is already gone is ignored."""
    if file_path:
        await asyncio.to_thread(_remove_file, Path(file_path))
