"""BatchJob repository."""

import uuid
from dataclasses import dataclass
from typing import Optional
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from .base import BaseRepository
from ..models.batch_job import BatchJob
from ..models.upload_job import UploadJob
from ..utils.constants import UploadStatus


@dataclass
class BatchSummary:
    """Counts derived from the upload jobs of a batch."""

    batch_id: uuid.UUID
    file_count: int
    total_size_bytes: int
    pending: int = 0
    completed: int = 0
    failed: int = 0
    aborted: int = 0
    uploaded_bytes: int = 0


class BatchRepository(BaseRepository[BatchJob]):
    """Repository for BatchJob operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, BatchJob)

    async def summarize(self, batch_id: uuid.UUID) -> Optional[BatchSummary]:
        """
        Rebuild the batch counters from its upload jobs.
        Declared files that never reached init count as pending.
        """
        batch = await self.get_by_id(batch_id)
        if batch is None:
            return None

        stmt = (
            select(
                UploadJob.status,
                func.count(UploadJob.id),
                func.coalesce(func.sum(UploadJob.file_size_bytes), 0),
            )
            .where(UploadJob.batch_id == batch_id)
            .group_by(UploadJob.status)
        )
        result = await self.session.execute(stmt)

        summary = BatchSummary(
            batch_id=batch.id,
            file_count=batch.file_count,
            total_size_bytes=batch.total_size_bytes,
        )
        seen = 0
        for status, count, size in result.all():
            seen += count
            if status == UploadStatus.COMPLETED:
                summary.completed += count
                summary.uploaded_bytes += int(size)
            elif status == UploadStatus.FAILED:
                summary.failed += count
            elif status == UploadStatus.ABORTED:
                summary.aborted += count
            else:
                summary.pending += count

        summary.pending += max(batch.file_count - seen, 0)
        return summary
