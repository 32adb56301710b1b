"""ORM models."""

from .upload_job import UploadJob
from .artifact import FinalizedArtifact
from .batch_job import BatchJob

__all__ = ["UploadJob", "FinalizedArtifact", "BatchJob"]
