"""Upload service: init and status side of the upload lifecycle."""

import uuid
from dataclasses import dataclass
from typing import List, Optional, Sequence
from ..core.exceptions import NotFoundError, ValidationError
from ..models.batch_job import BatchJob
from ..models.upload_job import UploadJob
from ..repositories.batch_repo import BatchRepository, BatchSummary
from ..repositories.storage_repo import StorageRepository
from ..repositories.upload_job_repo import UploadJobRepository
from ..services.credential_service import DirectUploadCredentialIssuer, IssuedCredentials
from ..services.planner import UploadPlanner
from ..utils.constants import UploadStatus
from ..utils.helpers import generate_object_key
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class InitiatedUpload:
    """A created job plus the credentials the client uploads with."""

    job: UploadJob
    credentials: IssuedCredentials


class UploadService:
    """Service for starting uploads and reporting their status."""

    def __init__(
        self,
        planner: UploadPlanner,
        issuer: DirectUploadCredentialIssuer,
        storage_repo: StorageRepository,
        job_repo: UploadJobRepository,
        batch_repo: BatchRepository,
    ):
        self.planner = planner
        self.issuer = issuer
        self.storage_repo = storage_repo
        self.job_repo = job_repo
        self.batch_repo = batch_repo

    async def initiate_upload(
        self,
        filename: str,
        file_size: int,
        content_type: str,
        batch_id: Optional[uuid.UUID] = None,
    ) -> InitiatedUpload:
        """
        Plan, issue credentials, then create the job record.

        The job is committed before this returns, so a complete request sent
        right after the response can always find it. Nothing is written if
        planning or credential issuance fails.
        """
        # 1. Plan (raises ValidationError / PlanningError, no side effects)
        plan = self.planner.plan(filename, file_size, content_type)

        if batch_id is not None and await self.batch_repo.get_by_id(batch_id) is None:
            raise NotFoundError(f"Batch not found: {batch_id}")

        # 2. Issue credentials (raises PresignError, no job created)
        upload_id = uuid.uuid4()
        object_key = generate_object_key(upload_id, filename)
        credentials = await self.issuer.issue(plan, object_key)

        # 3. Durable create
        job = UploadJob(
            id=upload_id,
            object_key=object_key,
            multipart_session_id=credentials.multipart_session_id,
            filename=filename,
            file_size_bytes=file_size,
            content_type=content_type,
            part_size_bytes=plan.part_size,
            number_of_parts=plan.number_of_parts,
            status=UploadStatus.INITIATED,
            progress=0,
            batch_id=batch_id,
        )
        try:
            job = await self.job_repo.create(job)
        except Exception:
            await self.job_repo.rollback()
            if credentials.multipart_session_id:
                await self.storage_repo.abort_multipart_upload(
                    object_key, credentials.multipart_session_id
                )
            raise

        logger.info(
            "Upload initiated",
            upload_id=str(upload_id),
            object_key=object_key,
            multipart=credentials.multipart,
            parts=credentials.number_of_parts,
        )
        return InitiatedUpload(job=job, credentials=credentials)

    async def get_upload(self, upload_id: uuid.UUID) -> UploadJob:
        """Get a job or raise NotFoundError."""
        job = await self.job_repo.get(upload_id)
        if job is None:
            raise NotFoundError(f"Upload not found: {upload_id}")
        return job

    async def get_uploads(self, upload_ids: Sequence[uuid.UUID]) -> List[UploadJob]:
        """Status snapshots for many jobs, in request order. Unknown ids are omitted."""
        jobs = {job.id: job for job in await self.job_repo.get_many(upload_ids)}
        missing = [str(i) for i in upload_ids if i not in jobs]
        if missing:
            logger.warning("Batch status skipped unknown uploads", upload_ids=missing)
        return [jobs[i] for i in dict.fromkeys(upload_ids) if i in jobs]

    async def record_progress(self, upload_id: uuid.UUID, progress: int) -> None:
        """Store client-reported progress. Lower or late values are ignored."""
        if not 0 <= progress <= 100:
            raise ValidationError("Progress must be between 0 and 100")
        if not await self.job_repo.update_progress(upload_id, progress):
            if await self.job_repo.get_status(upload_id) is None:
                raise NotFoundError(f"Upload not found: {upload_id}")

    async def create_batch(self, file_count: int, total_size_bytes: int = 0) -> BatchJob:
        if file_count <= 0:
            raise ValidationError("A batch needs at least one file")
        batch = await self.batch_repo.add(
            BatchJob(file_count=file_count, total_size_bytes=total_size_bytes)
        )
        logger.info("Batch created", batch_id=str(batch.id), file_count=file_count)
        return batch

    async def get_batch_summary(self, batch_id: uuid.UUID) -> BatchSummary:
        summary = await self.batch_repo.summarize(batch_id)
        if summary is None:
            raise NotFoundError(f"Batch not found: {batch_id}")
        return summary
