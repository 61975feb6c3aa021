# onetrack/core/storage_utils.py
import secrets
import time
import uuid

from onetrack.core.config import get_settings
from onetrack.core.supabase_client import supabase_admin

settings = get_settings()

BUCKET = settings.JOB_PHOTOS_BUCKET

PHOTO_CATEGORIES: tuple[str, ...] = ("before", "progress", "after", "serial-scan")

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10MB per photo


class StorageError(Exception):
    """Upload to Supabase Storage failed."""


def generate_filename(ext: str) -> str:
    """
    Generate a collision-resistant filename.

    Returns:
        A filename like "<epoch-millis>-<random>.jpg"
    """
    millis = int(time.time() * 1000)
    return f"{millis}-{secrets.token_hex(6)}.{ext}"


def build_photo_path(
    uploader_id: uuid.UUID | None,
    category: str,
    ext: str,
) -> str:
    """
    Object path inside the bucket, partitioned per uploader and category.

    Example:
        "<uploader uuid>/before/1718000000000-3f9a1c2b7d4e.jpg"
    """
    if category not in PHOTO_CATEGORIES:
        raise ValueError(f"Unknown photo category: {category}")
    owner = str(uploader_id) if uploader_id else "anonymous"
    return f"{owner}/{category}/{generate_filename(ext or 'jpg')}"


def upload_to_storage(path: str, file_bytes: bytes, content_type: str) -> str:
    """
    Upload raw bytes to Supabase Storage and return a public URL.

    Paths are random, so uploads never overwrite ("upsert" is off).

    Raises:
        StorageError: if the Supabase client rejects the upload.
    """
    bucket = supabase_admin().storage.from_(BUCKET)
    try:
        bucket.upload(
            path,
            file_bytes,
            {"content-type": content_type, "upsert": "false"},
        )
    except Exception as exc:
        raise StorageError(str(exc)) from exc
    return bucket.get_public_url(path)


def upload_job_photo(
    uploader_id: uuid.UUID | None,
    category: str,
    content_type: str,
    file_bytes: bytes,
) -> str:
    """Validate a captured photo, store it and return its public URL."""
    ext = ALLOWED_IMAGE_CONTENT_TYPES.get(content_type)
    if ext is None:
        raise ValueError("Unsupported image type. Allowed: JPEG, PNG, WEBP.")
    if len(file_bytes) > MAX_IMAGE_BYTES:
        raise ValueError("Image too large (max 10MB).")
    path = build_photo_path(uploader_id, category, ext)
    return upload_to_storage(path, file_bytes, content_type)
