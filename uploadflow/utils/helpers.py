"""Helper functions for common operations."""

import os
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID
from .constants import OBJECT_KEY_PREFIX


def utcnow() -> datetime:
    """Current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def get_extension(filename: str) -> str:
    """Return the lower-cased extension including the dot, or '' if none."""
    _, ext = os.path.splitext(os.path.basename(filename))
    return ext.lower()


def generate_object_key(
    upload_id: UUID, filename: str, now: Optional[datetime] = None
) -> str:
    """
    Generate the object-store key for an upload.
    Format: uploads/YYYY/MM/DD/<upload_id><.ext>
    The id makes the key unique; the date partition spreads keys across prefixes.
    """
    now = now or utcnow()
    date_path = f"{now.year}/{now.month:02d}/{now.day:02d}"
    return f"{OBJECT_KEY_PREFIX}/{date_path}/{upload_id}{get_extension(filename)}"


def build_public_url(cdn_domain: str, object_key: str) -> str:
    """Public CDN URL for a committed object."""
    return f"https://{cdn_domain}/{object_key}"


def strip_etag(etag: str) -> str:
    """Remove the surrounding quotes S3 puts on ETag values."""
    return etag.strip().strip('"')
