from typing import Optional, Any, TypeVar, Generic
from abc import ABC, abstractmethod

from sqlmodel.ext.asyncio.session import AsyncSession

T = TypeVar("T")

DB_ERROR_MESSAGE = "An unexpected database error occurred."


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository providing consistent interface for database operations.

    Repositories flush but never commit; the calling service owns the transaction.
    """

    def __init__(self, model: type[T]):
        self.model = model

    @abstractmethod
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[T]:
        """Get entity by its primary key."""
        pass

    @abstractmethod
    async def create(self, db: AsyncSession, *, obj_in: Any) -> T:
        """Create a new entity."""
        pass
