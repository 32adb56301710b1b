"""Domain errors for the upload orchestration engine."""

from typing import Optional
from fastapi import status


class UploadError(Exception):
    """Base class for upload errors; carries the HTTP status it maps to."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "upload_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(UploadError):
    """Declared filename, size or content type is invalid."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "validation_error"


class PlanningError(UploadError):
    """Input is well-formed but violates the transfer policy."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "planning_error"


class PresignError(UploadError):
    """Credential issuance failed; no job was created."""

    error_code = "presign_error"


class FinalizeCommitError(UploadError):
    """The object store rejected the commit. Safe to retry with the same tags."""

    error_code = "finalize_commit_error"


class NotFoundError(UploadError):
    """Unknown or reaped upload id."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"


class StateConflictError(UploadError):
    """Transition attempted from an ineligible state."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "state_conflict"


class PartTransferError(UploadError):
    """
    One part of a file failed to transfer (client side).

    retryable is True when the failure is transient (expired signed URL,
    timeout, 5xx) as opposed to a permanent rejection by the store.
    """

    error_code = "part_transfer_error"

    def __init__(
        self,
        message: str,
        part_number: Optional[int] = None,
        retryable: bool = False,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.part_number = part_number
        self.retryable = retryable
        self.http_status = status_code
