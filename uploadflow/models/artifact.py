"""FinalizedArtifact model definition."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..config.database import Base
from ..utils.helpers import utcnow


class FinalizedArtifact(Base):
    """A file durably committed to the object store by a completed upload."""

    __tablename__ = "finalized_artifacts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Unique: concurrent finalizes of the same upload collide here
    object_key: Mapped[str] = mapped_column(String(500), unique=True, nullable=False)
    upload_job_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    integrity_tag: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
