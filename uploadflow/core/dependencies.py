"""Reusable FastAPI dependencies: builds services from their collaborators."""

from functools import lru_cache
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from ..config import settings
from ..config.database import get_db
from ..config.storage import get_bucket_name, get_storage_client
from ..repositories.artifact_repo import ArtifactRepository
from ..repositories.batch_repo import BatchRepository
from ..repositories.storage_repo import StorageRepository
from ..repositories.upload_job_repo import UploadJobRepository
from ..services.credential_service import DirectUploadCredentialIssuer
from ..services.finalize_service import FinalizeReconciler
from ..services.planner import UploadPlanner
from ..services.upload_service import UploadService


@lru_cache
def get_storage_repo() -> StorageRepository:
    """Process-wide storage repository (boto3 clients are thread-safe)."""
    return StorageRepository(get_storage_client(), get_bucket_name())


@lru_cache
def get_planner() -> UploadPlanner:
    return UploadPlanner.from_settings(settings)


def get_upload_service(
    db: AsyncSession = Depends(get_db),
    storage_repo: StorageRepository = Depends(get_storage_repo),
    planner: UploadPlanner = Depends(get_planner),
) -> UploadService:
    """Dependency to get the upload service."""
    return UploadService(
        planner=planner,
        issuer=DirectUploadCredentialIssuer(storage_repo, settings.presigned_url_expiry_minutes),
        storage_repo=storage_repo,
        job_repo=UploadJobRepository(db),
        batch_repo=BatchRepository(db),
    )


def get_finalize_reconciler(
    db: AsyncSession = Depends(get_db),
    storage_repo: StorageRepository = Depends(get_storage_repo),
) -> FinalizeReconciler:
    """Dependency to get the finalize reconciler."""
    return FinalizeReconciler(
        storage_repo=storage_repo,
        job_repo=UploadJobRepository(db),
        artifact_repo=ArtifactRepository(db),
        commit_timeout=settings.storage_commit_timeout_seconds,
    )
