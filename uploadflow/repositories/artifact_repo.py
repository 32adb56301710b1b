"""FinalizedArtifact repository."""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .base import BaseRepository
from ..models.artifact import FinalizedArtifact


class ArtifactRepository(BaseRepository[FinalizedArtifact]):
    """Repository for FinalizedArtifact operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, FinalizedArtifact)

    async def get_by_object_key(self, object_key: str) -> Optional[FinalizedArtifact]:
        """Get the artifact committed under object_key, if any."""
        stmt = (
            select(FinalizedArtifact)
            .where(FinalizedArtifact.object_key == object_key)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
