import secrets
import time
from pathlib import Path
from typing import Iterable

from fastapi import HTTPException, UploadFile
from starlette.concurrency import run_in_threadpool

from app.core.config import settings

MB = 1024 * 1024


def _unique_filename(original_name: str) -> str:
    suffix = Path(original_name or "").suffix.lower()
    return f"{int(time.time() * 1000)}-{secrets.token_hex(3)}{suffix}"


async def read_upload(
    upload: UploadFile,
    allowed_types: Iterable[str],
    max_bytes: int,
    type_error: str,
    size_error: str,
) -> bytes:
    if upload.content_type not in allowed_types:
        raise HTTPException(status_code=400, detail=type_error)
    content = await upload.read()
    if len(content) > max_bytes:
        raise HTTPException(status_code=400, detail=size_error)
    return content


def _write_file(directory: Path, filename: str, content: bytes) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / filename).write_bytes(content)


async def save_upload(folder: str, original_name: str, content: bytes) -> str:
    """Write the file under UPLOAD_DIR off the event loop and return its public path."""
    directory = Path(settings.UPLOAD_DIR) / folder
    filename = _unique_filename(original_name)
    await run_in_threadpool(_write_file, directory, filename, content)
    return f"/uploads/{folder}/{filename}"
