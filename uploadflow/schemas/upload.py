"""Upload orchestration schemas."""

from typing import List, Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class UploadInitRequest(CamelModel):
    """Request to start an upload."""

    filename: str = Field(..., description="Original filename")
    file_size_bytes: int = Field(..., description="Declared file size in bytes")
    content_type: str = Field(..., description="MIME type of the file")
    batch_id: Optional[UUID] = Field(None, description="Batch this upload belongs to")


class UploadInitResponse(CamelModel):
    """Signed URLs for a direct upload."""

    upload_id: UUID
    object_key: str
    multipart_session_id: Optional[str] = None
    multipart: bool
    part_size: Optional[int] = None
    number_of_parts: Optional[int] = None
    presigned_urls: List[str] = Field(..., description="One URL per part, part 1 first")
    expires_in_minutes: int


class UploadCompleteRequest(CamelModel):
    """Request to finalize an upload. Metadata is resent from the init response."""

    upload_id: UUID
    object_key: str = Field(..., min_length=1)
    filename: str = Field(..., min_length=1)
    file_size_bytes: int = Field(..., gt=0)
    content_type: str
    multipart_session_id: Optional[str] = None
    part_tags: List[str] = Field(..., min_length=1, description="ETags in part order")


class UploadCompleteResponse(CamelModel):
    """Result of a finalized upload."""

    upload_id: UUID
    object_key: str
    status: str
    artifact_id: UUID
    public_url: str
    filename: str


class UploadStatusResponse(CamelModel):
    """Status snapshot of an upload."""

    upload_id: UUID
    filename: str
    status: str
    progress: int
    created_at: datetime
    completed_at: Optional[datetime] = None


class UploadFailRequest(CamelModel):
    """Client-side transfer failure report."""

    reason: str = Field(..., min_length=1, max_length=1000)


class UploadProgressRequest(CamelModel):
    """Client-side progress report."""

    progress: int = Field(..., ge=0, le=100)


class BatchCreateRequest(CamelModel):
    """Declare a batch of uploads."""

    file_count: int = Field(..., gt=0)
    total_size_bytes: int = Field(0, ge=0)


class BatchCreateResponse(CamelModel):
    batch_id: UUID


class BatchSummaryResponse(CamelModel):
    """Counts derived from the uploads of a batch."""

    batch_id: UUID
    file_count: int
    total_size_bytes: int
    pending: int
    completed: int
    failed: int
    aborted: int
    uploaded_bytes: int
