# utils/uploads.py
import logging
import os
import re
import secrets
import tempfile
import time
from dataclasses import dataclass
from functools import lru_cache

import boto3
from fastapi import UploadFile

from app.core.config import settings
from app.core.errors import PayloadTooLarge

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
S3_PREFIX = "uploads"


@dataclass
class StoredFile:
    url: str
    filename: str
    original_name: str
    size: int


def stored_filename(original: str) -> str:
    """`<basename>-<epoch ms>-<9 random digits><ext>`, safe for a flat directory."""
    base, ext = os.path.splitext(os.path.basename(original or "file"))
    base = re.sub(r"[^A-Za-z0-9_.-]", "_", base).strip("._") or "file"
    ext = re.sub(r"[^A-Za-z0-9.]", "", ext)
    suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9):09d}"
    return f"{base}-{suffix}{ext}"


def _copy_limited(upload: UploadFile, dest, max_bytes: int) -> int:
    size = 0
    while True:
        chunk = upload.file.read(CHUNK_SIZE)
        if not chunk:
            return size
        size += len(chunk)
        if size > max_bytes:
            raise PayloadTooLarge()
        dest.write(chunk)


def save_local(upload: UploadFile, max_bytes: int | None = None) -> StoredFile:
    max_bytes = max_bytes or settings.UPLOAD_MAX_BYTES
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)

    filename = stored_filename(upload.filename)
    path = os.path.join(settings.UPLOAD_DIR, filename)
    try:
        with open(path, "wb") as out:
            size = _copy_limited(upload, out, max_bytes)
    except Exception as e:
        # No partial files are left behind, whatever stopped the copy
        if os.path.exists(path):
            os.remove(path)
        if isinstance(e, PayloadTooLarge):
            logger.warning("Rejected upload %s: over %s bytes", upload.filename, max_bytes)
        else:
            logger.error("Failed to store upload %s: %s", upload.filename, e)
        raise

    logger.info("Stored upload %s (%s bytes)", filename, size)
    return StoredFile(url=f"/uploads/{filename}", filename=filename,
                      original_name=upload.filename or filename, size=size)


@lru_cache
def s3_client():
    return boto3.client("s3", region_name=settings.AWS_REGION or None)


def save_s3(upload: UploadFile, max_bytes: int | None = None) -> StoredFile:
    max_bytes = max_bytes or settings.UPLOAD_MAX_BYTES
    filename = stored_filename(upload.filename)
    key = f"{S3_PREFIX}/{filename}"

    # Spool to disk first so the size limit holds before anything reaches the bucket
    with tempfile.TemporaryFile() as spool:
        size = _copy_limited(upload, spool, max_bytes)
        spool.seek(0)
        s3_client().upload_fileobj(
            spool,
            settings.S3_BUCKET_NAME,
            key,
            ExtraArgs={"ContentType": upload.content_type or "application/octet-stream"},
        )

    if settings.AWS_REGION:
        url = f"https://{settings.S3_BUCKET_NAME}.s3.{settings.AWS_REGION}.amazonaws.com/{key}"
    else:
        url = f"https://{settings.S3_BUCKET_NAME}.s3.amazonaws.com/{key}"
    logger.info("Uploaded %s to S3 (%s bytes)", key, size)
    return StoredFile(url=url, filename=filename, original_name=upload.filename or filename, size=size)


def save_upload(upload: UploadFile) -> StoredFile:
    if settings.UPLOAD_BACKEND == "s3":
        return save_s3(upload)
    return save_local(upload)
