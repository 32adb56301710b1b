"""UploadJob repository: the durable record of every upload's lifecycle."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from .base import BaseRepository
from ..models.upload_job import UploadJob
from ..utils.constants import NON_TERMINAL_STATUSES, UploadStatus
from ..utils.helpers import utcnow


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of a conditional status update.

    applied: the row moved to the target status.
    current_status: status found when not applied (None if the row is gone).
    """

    applied: bool
    current_status: Optional[UploadStatus] = None

    @property
    def found(self) -> bool:
        return self.applied or self.current_status is not None


class UploadJobRepository(BaseRepository[UploadJob]):
    """
    Repository for UploadJob operations.

    Jobs are never read, modified and written back. Every mutation is a single
    UPDATE keyed by id and guarded by the statuses it may start from, so a
    finalize racing an abort (or a retried finalize) cannot overwrite a
    terminal state.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, UploadJob)

    async def create(self, job: UploadJob) -> UploadJob:
        """Insert the job and commit before returning so any later reader sees it."""
        self.session.add(job)
        await self.session.commit()
        return job

    async def get(self, upload_id: uuid.UUID) -> Optional[UploadJob]:
        """Fresh read of a job, bypassing the session identity map."""
        return await self.get_by_id(upload_id)

    async def get_status(self, upload_id: uuid.UUID) -> Optional[UploadStatus]:
        stmt = select(UploadJob.status).where(UploadJob.id == upload_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def transition(
        self,
        upload_id: uuid.UUID,
        from_allowed: Iterable[UploadStatus],
        to: UploadStatus,
        commit: bool = True,
        **fields: Any,
    ) -> TransitionResult:
        """
        Compare-and-set the job status.
        Args:
            upload_id: Job ID
            from_allowed: Statuses the job must currently be in
            to: Target status
            commit: Commit immediately; pass False to join a larger transaction
            fields: Extra columns written in the same statement
        Returns:
            TransitionResult; a no-op reports the status that blocked it
        """
        stmt = (
            update(UploadJob)
            .where(
                UploadJob.id == upload_id,
                UploadJob.status.in_(list(from_allowed)),
            )
            .values(status=to, updated_at=utcnow(), **fields)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount == 1:
            if commit:
                await self.session.commit()
            return TransitionResult(applied=True)

        current = await self.get_status(upload_id)
        if commit:
            await self.session.commit()
        return TransitionResult(applied=False, current_status=current)

    async def update_progress(self, upload_id: uuid.UUID, progress: int) -> bool:
        """Raise progress while the job is non-terminal. Never moves it backwards."""
        stmt = (
            update(UploadJob)
            .where(
                UploadJob.id == upload_id,
                UploadJob.status.in_(list(NON_TERMINAL_STATUSES)),
                UploadJob.progress < progress,
            )
            .values(progress=progress, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount == 1

    async def delete_stale(self, cutoff: datetime) -> list[uuid.UUID]:
        """Delete non-terminal jobs created before cutoff. Returns the deleted ids."""
        stale = (
            UploadJob.status.in_(list(NON_TERMINAL_STATUSES)),
            UploadJob.created_at < cutoff,
        )
        result = await self.session.execute(select(UploadJob.id).where(*stale))
        ids = list(result.scalars().all())
        if not ids:
            return []

        # Conditions are repeated so a job finalized in between survives
        await self.session.execute(
            delete(UploadJob)
            .where(UploadJob.id.in_(ids), *stale)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return ids
