"""PUT of one part (or a whole small file) to a presigned URL."""

from typing import AsyncIterator, Callable, Optional
import httpx
from ..core.exceptions import PartTransferError
from ..utils.helpers import strip_etag

DEFAULT_CHUNK_SIZE = 64 * 1024

# 408 / 429 / 5xx are transient on S3
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

ProgressCallback = Callable[[float], None]


def is_expired_url(response: httpx.Response) -> bool:
    """S3 answers an expired signature with 403 AccessDenied 'Request has expired'."""
    return response.status_code == 403 and "Request has expired" in response.text


async def _stream(
    body: bytes, chunk_size: int, on_progress: Optional[ProgressCallback]
) -> AsyncIterator[bytes]:
    total = len(body)
    for start in range(0, total, chunk_size):
        chunk = body[start:start + chunk_size]
        yield chunk
        if on_progress and total:
            on_progress(min(start + len(chunk), total) / total)


async def put_part(
    http: httpx.AsyncClient,
    url: str,
    body: bytes,
    part_number: int,
    content_type: Optional[str] = None,
    on_progress: Optional[ProgressCallback] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> str:
    """
    Upload bytes to a signed URL and return the integrity tag (ETag).
    Raises:
        PartTransferError: retryable for timeouts, network errors, expired
            URLs and transient statuses; permanent otherwise
    """
    # S3 rejects chunked transfer encoding on presigned PUTs
    headers = {"Content-Length": str(len(body))}
    if content_type:
        headers["Content-Type"] = content_type

    try:
        response = await http.put(
            url, content=_stream(body, chunk_size, on_progress), headers=headers
        )
    except httpx.TimeoutException as e:
        raise PartTransferError(
            f"Part {part_number} timed out", part_number=part_number, retryable=True
        ) from e
    except httpx.TransportError as e:
        raise PartTransferError(
            f"Network error during part {part_number} upload: {e}",
            part_number=part_number,
            retryable=True,
        ) from e

    if is_expired_url(response):
        raise PartTransferError(
            f"Signed URL for part {part_number} expired",
            part_number=part_number,
            retryable=True,
            status_code=response.status_code,
        )
    if not response.is_success:
        raise PartTransferError(
            f"Part {part_number} upload failed with status {response.status_code}",
            part_number=part_number,
            retryable=response.status_code in RETRYABLE_STATUS_CODES,
            status_code=response.status_code,
        )

    etag = response.headers.get("ETag")
    if not etag:
        raise PartTransferError(
            f"No ETag in response for part {part_number}", part_number=part_number
        )

    if on_progress:
        on_progress(1.0)
    return strip_etag(etag)
