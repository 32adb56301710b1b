"""Upload orchestration routes."""

from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, Request, Response, status
from ..config import settings
from ..core.dependencies import get_finalize_reconciler, get_upload_service
from ..middleware.rate_limit import limiter
from ..models.upload_job import UploadJob
from ..schemas.upload import (
    BatchCreateRequest,
    BatchCreateResponse,
    BatchSummaryResponse,
    UploadCompleteRequest,
    UploadCompleteResponse,
    UploadFailRequest,
    UploadInitRequest,
    UploadInitResponse,
    UploadProgressRequest,
    UploadStatusResponse,
)
from ..services.finalize_service import FinalizeReconciler
from ..services.upload_service import UploadService
from ..utils.helpers import build_public_url

router = APIRouter(prefix="/uploads", tags=["uploads"])


def to_status_response(job: UploadJob) -> UploadStatusResponse:
    return UploadStatusResponse(
        upload_id=job.id,
        filename=job.filename,
        status=job.status.value,
        progress=job.progress,
        created_at=job.created_at,
        completed_at=job.completed_at,
    )


@router.post("/init", response_model=UploadInitResponse, status_code=status.HTTP_202_ACCEPTED)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def initiate_upload(
    request: Request,
    body: UploadInitRequest,
    upload_service: UploadService = Depends(get_upload_service),
):
    """
    Start an upload.

    Returns signed URLs the client PUTs the bytes to directly. Files above the
    multipart threshold get one URL per part.
    """
    initiated = await upload_service.initiate_upload(
        filename=body.filename,
        file_size=body.file_size_bytes,
        content_type=body.content_type,
        batch_id=body.batch_id,
    )
    credentials = initiated.credentials
    return UploadInitResponse(
        upload_id=initiated.job.id,
        object_key=initiated.job.object_key,
        multipart_session_id=credentials.multipart_session_id,
        multipart=credentials.multipart,
        part_size=credentials.part_size,
        number_of_parts=credentials.number_of_parts if credentials.multipart else None,
        presigned_urls=credentials.presigned_urls,
        expires_in_minutes=credentials.expires_in_minutes,
    )


@router.post("/complete", response_model=UploadCompleteResponse)
async def complete_upload(
    body: UploadCompleteRequest,
    reconciler: FinalizeReconciler = Depends(get_finalize_reconciler),
):
    """
    Finalize an upload after every part reached the store.
    Retrying with the same tags is safe and returns the same artifact.
    """
    result = await reconciler.finalize(
        upload_id=body.upload_id,
        object_key=body.object_key,
        filename=body.filename,
        file_size=body.file_size_bytes,
        content_type=body.content_type,
        part_tags=body.part_tags,
        multipart_session_id=body.multipart_session_id,
    )
    return UploadCompleteResponse(
        upload_id=result.upload_id,
        object_key=result.object_key,
        status=result.status.value,
        artifact_id=result.artifact.id,
        public_url=build_public_url(settings.cdn_domain, result.object_key),
        filename=result.artifact.filename,
    )


@router.post("/status/batch", response_model=List[UploadStatusResponse])
async def get_batch_upload_status(
    upload_ids: List[UUID],
    upload_service: UploadService = Depends(get_upload_service),
):
    """Status of many uploads at once. Unknown ids are left out."""
    jobs = await upload_service.get_uploads(upload_ids)
    return [to_status_response(job) for job in jobs]


@router.post("/batches", response_model=BatchCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_batch(
    body: BatchCreateRequest,
    upload_service: UploadService = Depends(get_upload_service),
):
    """Declare a batch; pass its id as batchId on each init."""
    batch = await upload_service.create_batch(body.file_count, body.total_size_bytes)
    return BatchCreateResponse(batch_id=batch.id)


@router.get("/batches/{batch_id}", response_model=BatchSummaryResponse)
async def get_batch_summary(
    batch_id: UUID,
    upload_service: UploadService = Depends(get_upload_service),
):
    """Pending/completed/failed counts for a batch."""
    summary = await upload_service.get_batch_summary(batch_id)
    return BatchSummaryResponse(
        batch_id=summary.batch_id,
        file_count=summary.file_count,
        total_size_bytes=summary.total_size_bytes,
        pending=summary.pending,
        completed=summary.completed,
        failed=summary.failed,
        aborted=summary.aborted,
        uploaded_bytes=summary.uploaded_bytes,
    )


@router.get("/{upload_id}", response_model=UploadStatusResponse)
async def get_upload_status(
    upload_id: UUID,
    upload_service: UploadService = Depends(get_upload_service),
):
    """Status snapshot of one upload."""
    job = await upload_service.get_upload(upload_id)
    return to_status_response(job)


@router.delete("/{upload_id}", status_code=status.HTTP_204_NO_CONTENT)
async def abort_upload(
    upload_id: UUID,
    reconciler: FinalizeReconciler = Depends(get_finalize_reconciler),
):
    """Cancel an upload and release any uploaded parts."""
    await reconciler.abort(upload_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{upload_id}/fail", status_code=status.HTTP_204_NO_CONTENT)
async def fail_upload(
    upload_id: UUID,
    body: UploadFailRequest,
    reconciler: FinalizeReconciler = Depends(get_finalize_reconciler),
):
    """Report a transfer the client gave up on."""
    await reconciler.fail(upload_id, body.reason)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{upload_id}/progress", status_code=status.HTTP_204_NO_CONTENT)
async def report_progress(
    upload_id: UUID,
    body: UploadProgressRequest,
    upload_service: UploadService = Depends(get_upload_service),
):
    """Record client-side transfer progress."""
    await upload_service.record_progress(upload_id, body.progress)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
