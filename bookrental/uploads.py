import logging
import os
import time
from pathlib import Path

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from .config import UPLOAD_DIR

logger = logging.getLogger(__name__)


def get_upload_dir() -> str:
    return UPLOAD_DIR


def build_filename(field_name: str, original_name: str | None) -> str:
    extension = Path(original_name or "").suffix
    return f"{field_name}-{int(time.time() * 1000)}{extension}"


def write_new_file(path: Path, content: bytes):
    # "x" refuses to replace a cover stored under the same name
    with open(path, "xb") as f:
        f.write(content)


async def save_upload(upload: UploadFile, directory: str, field_name: str = "cover") -> str:
    os.makedirs(directory, exist_ok=True)
    path = Path(directory) / build_filename(field_name, upload.filename)
    content = await upload.read()
    await run_in_threadpool(write_new_file, path, content)
    logger.info(f"Stored upload {upload.filename} at {path} ({len(content)} bytes)")
    return path.as_posix()


def discard_upload(path: str):
    try:
        os.remove(path)
        logger.info(f"Removed orphaned upload {path}")
    except FileNotFoundError:
        pass
