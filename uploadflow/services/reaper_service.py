"""Stale upload reaping."""

from datetime import datetime, timedelta
from typing import Optional
from ..repositories.upload_job_repo import UploadJobRepository
from ..utils.helpers import utcnow
from ..utils.logger import get_logger

logger = get_logger(__name__)


class StaleJobReaper:
    """
    Deletes jobs stuck in INITIATED or COMPLETING past the stale timeout.

    A non-terminal job never has an artifact, so deleting it orphans no
    records. Parts already sitting in the object store are left for the
    bucket's lifecycle rules.
    """

    def __init__(self, job_repo: UploadJobRepository, stale_timeout: timedelta):
        self.job_repo = job_repo
        self.stale_timeout = stale_timeout

    async def sweep(self, now: Optional[datetime] = None) -> int:
        """Run one sweep. Returns the number of jobs reaped."""
        cutoff = (now or utcnow()) - self.stale_timeout
        reaped = await self.job_repo.delete_stale(cutoff)
        if reaped:
            logger.info(
                "Reaped stale uploads",
                count=len(reaped),
                cutoff=cutoff.isoformat(),
                upload_ids=[str(i) for i in reaped],
            )
        else:
            logger.debug("No stale uploads", cutoff=cutoff.isoformat())
        return len(reaped)
