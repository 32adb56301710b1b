"""Base repository with common database operations."""

from typing import Any, Generic, Optional, Sequence, TypeVar
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ..config.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations."""

    def __init__(self, session: AsyncSession, model: type[ModelType]):
        """
        Initialize repository.
        Args:
            session: Async database session
            model: SQLAlchemy model class
        """
        self.session = session
        self.model = model

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """
        Get entity by ID.
        populate_existing forces a fresh row even if the identity map holds
        an older copy of the object.
        """
        stmt = (
            select(self.model)
            .where(self.model.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many(self, ids: Sequence[Any]) -> list[ModelType]:
        """Get all entities whose ID is in ids (missing ids are skipped)."""
        if not ids:
            return []
        stmt = (
            select(self.model)
            .where(self.model.id.in_(list(ids)))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add(self, entity: ModelType, commit: bool = True) -> ModelType:
        """Persist a new entity. With commit=False the caller owns the transaction."""
        self.session.add(entity)
        if commit:
            await self.session.commit()
        else:
            await self.session.flush()
        return entity

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
