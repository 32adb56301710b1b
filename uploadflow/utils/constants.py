"""Application constants and enums."""

from enum import Enum


class UploadStatus(str, Enum):
    """Upload job status enum."""

    INITIATED = "INITIATED"
    COMPLETING = "COMPLETING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    ABORTED = "ABORTED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


NON_TERMINAL_STATUSES = frozenset({UploadStatus.INITIATED, UploadStatus.COMPLETING})
TERMINAL_STATUSES = frozenset(
    {UploadStatus.COMPLETED, UploadStatus.FAILED, UploadStatus.ABORTED}
)

# S3 hard limits
MAX_MULTIPART_PARTS = 10_000

MAX_FILENAME_LENGTH = 255
OBJECT_KEY_PREFIX = "uploads"

ABORTED_BY_USER = "Upload aborted by user"
