"""Finalize and abort reconciliation between the object store and job records."""

import asyncio
import uuid
from dataclasses import dataclass
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from ..core.exceptions import (
    FinalizeCommitError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from ..models.artifact import FinalizedArtifact
from ..repositories.artifact_repo import ArtifactRepository
from ..repositories.storage_repo import STORAGE_ERRORS, StorageRepository
from ..repositories.upload_job_repo import UploadJobRepository
from ..utils.constants import ABORTED_BY_USER, NON_TERMINAL_STATUSES, UploadStatus
from ..utils.helpers import strip_etag, utcnow
from ..utils.logger import get_logger

logger = get_logger(__name__)

COMMIT_ERRORS = STORAGE_ERRORS + (asyncio.TimeoutError,)


@dataclass
class FinalizeResult:
    """What complete returns to the caller."""

    upload_id: uuid.UUID
    object_key: str
    status: UploadStatus
    artifact: FinalizedArtifact


class FinalizeReconciler:
    """
    Commits finished transfers and records their artifacts.

    Finalize metadata (key, filename, size, type) comes from the caller rather
    than from the job row, so completion never depends on reading back a
    record that was just written.
    """

    def __init__(
        self,
        storage_repo: StorageRepository,
        job_repo: UploadJobRepository,
        artifact_repo: ArtifactRepository,
        commit_timeout: float,
    ):
        if job_repo.session is not artifact_repo.session:
            raise ValueError("job and artifact repositories must share a session")
        self.storage_repo = storage_repo
        self.job_repo = job_repo
        self.artifact_repo = artifact_repo
        self.commit_timeout = commit_timeout

    async def finalize(
        self,
        upload_id: uuid.UUID,
        object_key: str,
        filename: str,
        file_size: int,
        content_type: str,
        part_tags: List[str],
        multipart_session_id: Optional[str] = None,
    ) -> FinalizeResult:
        """
        Complete an upload.

        Safe to retry and safe to race: every path converges on one artifact
        per object key.
        """
        if not part_tags:
            raise ValidationError("At least one part tag is required")
        tags = [strip_etag(tag) for tag in part_tags]

        # Already finalized: hand back the original artifact
        existing = await self.artifact_repo.get_by_object_key(object_key)
        if existing is not None:
            return await self._already_finalized(upload_id, object_key, existing)

        began = await self.job_repo.transition(
            upload_id, {UploadStatus.INITIATED}, UploadStatus.COMPLETING
        )

        # (a) Commit the store side
        integrity_tag = tags[0]
        if multipart_session_id:
            try:
                integrity_tag = await asyncio.wait_for(
                    self.storage_repo.complete_multipart_upload(
                        object_key, multipart_session_id, tags
                    ),
                    timeout=self.commit_timeout,
                )
            except COMMIT_ERRORS as e:
                return await self._commit_failed(upload_id, object_key, began.applied, e)
            integrity_tag = strip_etag(integrity_tag) if integrity_tag else None

        # (b) + (c) in one transaction
        artifact = FinalizedArtifact(
            id=uuid.uuid4(),
            object_key=object_key,
            upload_job_id=upload_id,
            filename=filename,
            size_bytes=file_size,
            mime_type=content_type,
            integrity_tag=integrity_tag,
        )
        try:
            done = await self.job_repo.transition(
                upload_id,
                NON_TERMINAL_STATUSES,
                UploadStatus.COMPLETED,
                commit=False,
                progress=100,
                artifact_id=artifact.id,
                completed_at=utcnow(),
            )
            if not done.applied and done.current_status == UploadStatus.COMPLETED:
                # A racing finalize committed first
                await self.job_repo.rollback()
                winner = await self.artifact_repo.get_by_object_key(object_key)
                if winner is not None:
                    return await self._already_finalized(upload_id, object_key, winner)
                raise StateConflictError(f"Upload {upload_id} completed without an artifact")

            await self.artifact_repo.add(artifact, commit=False)
            await self.job_repo.commit()
        except IntegrityError:
            await self.job_repo.rollback()
            winner = await self.artifact_repo.get_by_object_key(object_key)
            if winner is None:
                raise
            return await self._already_finalized(upload_id, object_key, winner)

        if not done.applied:
            # The bytes are committed in the store; the artifact stands.
            logger.warning(
                "Finalized upload that was not eligible for completion",
                upload_id=str(upload_id),
                object_key=object_key,
                current_status=done.current_status.value if done.current_status else None,
                error_code=StateConflictError.error_code,
            )
            status = done.current_status or UploadStatus.COMPLETED
        else:
            status = UploadStatus.COMPLETED
            logger.info(
                "Upload finalized",
                upload_id=str(upload_id),
                artifact_id=str(artifact.id),
                object_key=object_key,
            )

        return FinalizeResult(
            upload_id=upload_id, object_key=object_key, status=status, artifact=artifact
        )

    async def abort(self, upload_id: uuid.UUID) -> UploadStatus:
        """Cancel an upload: release the multipart session and mark it ABORTED."""
        return await self._terminate(upload_id, UploadStatus.ABORTED, ABORTED_BY_USER)

    async def fail(self, upload_id: uuid.UUID, reason: str) -> UploadStatus:
        """Record a client-side transfer failure and release the multipart session."""
        return await self._terminate(upload_id, UploadStatus.FAILED, reason)

    async def _terminate(
        self, upload_id: uuid.UUID, target: UploadStatus, reason: str
    ) -> UploadStatus:
        job = await self.job_repo.get(upload_id)
        if job is None:
            raise NotFoundError(f"Upload not found: {upload_id}")

        if job.status.is_terminal:
            logger.warning(
                "Upload already terminal",
                upload_id=str(upload_id),
                status=job.status.value,
                requested=target.value,
                error_code=StateConflictError.error_code,
            )
            return job.status

        if job.is_multipart:
            await self.storage_repo.abort_multipart_upload(
                job.object_key, job.multipart_session_id
            )

        result = await self.job_repo.transition(
            upload_id,
            NON_TERMINAL_STATUSES,
            target,
            error_message=reason[:1000],
            completed_at=utcnow(),
        )
        if not result.applied:
            # Lost a race with finalize (or the reaper)
            logger.warning(
                "Upload changed state before it could be terminated",
                upload_id=str(upload_id),
                status=result.current_status.value if result.current_status else None,
                requested=target.value,
                error_code=StateConflictError.error_code,
            )
            if result.current_status is None:
                raise NotFoundError(f"Upload not found: {upload_id}")
            return result.current_status

        logger.info("Upload terminated", upload_id=str(upload_id), status=target.value)
        return target

    async def _already_finalized(
        self, upload_id: uuid.UUID, object_key: str, artifact: FinalizedArtifact
    ) -> FinalizeResult:
        status = await self.job_repo.get_status(upload_id)
        logger.warning(
            "Upload already finalized",
            upload_id=str(upload_id),
            artifact_id=str(artifact.id),
            error_code=StateConflictError.error_code,
        )
        return FinalizeResult(
            upload_id=upload_id,
            object_key=object_key,
            status=status or UploadStatus.COMPLETED,
            artifact=artifact,
        )

    async def _commit_failed(
        self, upload_id: uuid.UUID, object_key: str, began: bool, error: Exception
    ) -> FinalizeResult:
        # A racing finalize may have committed the session already
        winner = await self.artifact_repo.get_by_object_key(object_key)
        if winner is not None:
            return await self._already_finalized(upload_id, object_key, winner)

        if began:
            await self.job_repo.transition(
                upload_id, {UploadStatus.COMPLETING}, UploadStatus.INITIATED
            )

        # An aborted or failed job has no session left to retry against
        status = await self.job_repo.get_status(upload_id)
        if status is not None and status.is_terminal:
            logger.warning(
                "Commit rejected for terminated upload",
                upload_id=str(upload_id),
                status=status.value,
                error=str(error) or type(error).__name__,
                error_code=StateConflictError.error_code,
            )
            raise StateConflictError(f"Upload {upload_id} is {status.value}") from error

        logger.error(
            "Failed to commit multipart upload",
            upload_id=str(upload_id),
            object_key=object_key,
            error=str(error) or type(error).__name__,
        )
        raise FinalizeCommitError(f"Failed to complete multipart upload: {error}") from error
