"""UploadJob model definition."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Enum, Integer, String, Uuid, Index
from sqlalchemy.orm import Mapped, mapped_column

from ..config.database import Base
from ..utils.constants import UploadStatus
from ..utils.helpers import utcnow


class UploadJob(Base):
    """One logical file being transferred directly to the object store."""

    __tablename__ = "upload_jobs"
    __table_args__ = (
        Index("ix_upload_jobs_status_created_at", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    object_key: Mapped[str] = mapped_column(String(500), unique=True, nullable=False)
    multipart_session_id: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    part_size_bytes: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    number_of_parts: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    status: Mapped[UploadStatus] = mapped_column(
        Enum(UploadStatus, native_enum=False, length=20),
        default=UploadStatus.INITIATED,
        nullable=False,
    )
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    artifact_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    batch_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    @property
    def is_multipart(self) -> bool:
        return self.multipart_session_id is not None
