"""HTTP client for the upload orchestration API."""

from typing import List, Optional
from uuid import UUID
import httpx
from ..core.exceptions import (
    FinalizeCommitError,
    NotFoundError,
    PlanningError,
    PresignError,
    StateConflictError,
    UploadError,
    ValidationError,
)
from ..schemas.upload import (
    UploadCompleteRequest,
    UploadCompleteResponse,
    UploadInitRequest,
    UploadInitResponse,
    UploadStatusResponse,
)
from .source import UploadSource

ERRORS_BY_CODE = {
    cls.error_code: cls
    for cls in (
        ValidationError,
        PlanningError,
        PresignError,
        FinalizeCommitError,
        NotFoundError,
        StateConflictError,
    )
}


def raise_for_error(response: httpx.Response) -> None:
    """Raise the domain error matching an error response."""
    if response.is_success:
        return
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    detail = body.get("detail") or response.reason_phrase or f"HTTP {response.status_code}"
    error_cls = ERRORS_BY_CODE.get(body.get("error_code"))
    if error_cls is None:
        error_cls = NotFoundError if response.status_code == 404 else UploadError
    error = error_cls(str(detail))
    error.status_code = response.status_code
    raise error


class UploadApiClient:
    """Thin async wrapper over the /uploads endpoints."""

    def __init__(self, http: httpx.AsyncClient, prefix: str = "/uploads"):
        self.http = http
        self.prefix = prefix.rstrip("/")

    async def initiate(
        self, source: UploadSource, batch_id: Optional[UUID] = None
    ) -> UploadInitResponse:
        body = UploadInitRequest(
            filename=source.filename,
            file_size_bytes=source.size,
            content_type=source.content_type,
            batch_id=batch_id,
        )
        response = await self.http.post(
            f"{self.prefix}/init", json=body.model_dump(mode="json", by_alias=True)
        )
        raise_for_error(response)
        return UploadInitResponse.model_validate(response.json())

    async def complete(self, request: UploadCompleteRequest) -> UploadCompleteResponse:
        response = await self.http.post(
            f"{self.prefix}/complete", json=request.model_dump(mode="json", by_alias=True)
        )
        raise_for_error(response)
        return UploadCompleteResponse.model_validate(response.json())

    async def abort(self, upload_id: UUID) -> None:
        response = await self.http.delete(f"{self.prefix}/{upload_id}")
        raise_for_error(response)

    async def fail(self, upload_id: UUID, reason: str) -> None:
        response = await self.http.post(
            f"{self.prefix}/{upload_id}/fail", json={"reason": reason[:1000]}
        )
        raise_for_error(response)

    async def report_progress(self, upload_id: UUID, progress: int) -> None:
        response = await self.http.post(
            f"{self.prefix}/{upload_id}/progress", json={"progress": progress}
        )
        raise_for_error(response)

    async def get_status(self, upload_id: UUID) -> UploadStatusResponse:
        response = await self.http.get(f"{self.prefix}/{upload_id}")
        raise_for_error(response)
        return UploadStatusResponse.model_validate(response.json())

    async def get_statuses(self, upload_ids: List[UUID]) -> List[UploadStatusResponse]:
        response = await self.http.post(
            f"{self.prefix}/status/batch", json=[str(i) for i in upload_ids]
        )
        raise_for_error(response)
        return [UploadStatusResponse.model_validate(item) for item in response.json()]

    async def create_batch(self, file_count: int, total_size_bytes: int = 0) -> UUID:
        response = await self.http.post(
            f"{self.prefix}/batches",
            json={"fileCount": file_count, "totalSizeBytes": total_size_bytes},
        )
        raise_for_error(response)
        return UUID(response.json()["batchId"])
