"""BatchJob model definition."""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..config.database import Base
from ..utils.helpers import utcnow


class BatchJob(Base):
    """
    A set of uploads submitted together.

    Only the declared size of the batch is stored; pending/completed/failed
    counts are derived from the upload_jobs rows that reference it.
    """

    __tablename__ = "batch_jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_size_bytes: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
