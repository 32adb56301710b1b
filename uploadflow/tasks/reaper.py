"""Periodic task reaping stale uploads."""

import asyncio
from datetime import timedelta
from celery import shared_task
from ..tasks.celery_app import celery_app
from ..repositories.upload_job_repo import UploadJobRepository
from ..services.reaper_service import StaleJobReaper
from ..config import settings
from ..config.database import AsyncSessionLocal, engine
from ..utils.helpers import utcnow


async def run_sweep() -> int:
    """One reaper sweep on a fresh session."""
    async with AsyncSessionLocal() as session:
        reaper = StaleJobReaper(
            UploadJobRepository(session),
            stale_timeout=timedelta(minutes=settings.stale_timeout_minutes),
        )
        reaped = await reaper.sweep()
    # Pooled connections belong to this loop, which closes after the task
    await engine.dispose()
    return reaped


@shared_task(name="reap_stale_uploads")
def reap_stale_uploads() -> dict:
    """
    Delete uploads left in INITIATED/COMPLETING past the stale timeout.
    Runs on the beat schedule below.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    try:
        reaped = loop.run_until_complete(run_sweep())
        return {
            "status": "completed",
            "reaped": reaped,
            "timestamp": utcnow().isoformat(),
        }
    finally:
        loop.close()


# Configure periodic task schedule
celery_app.conf.beat_schedule = {
    "reap-stale-uploads": {
        "task": "reap_stale_uploads",
        "schedule": settings.reaper_interval_seconds,
    },
}
