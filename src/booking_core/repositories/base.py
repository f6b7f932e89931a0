"""Base repository class with common CRUD operations."""

import logging
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_core.database.models import Base
from booking_core.exceptions import StorageError

logger = logging.getLogger(__name__)

# Type variable for the model type
ModelType = TypeVar("ModelType", bound=Base)

SERIALIZATION_FAILURE = "40001"


def is_serialization_failure(error: BaseException) -> bool:
    """Whether a DBAPI error is PostgreSQL's 'could not serialize access'.

    Repositories let these through untouched; the storage provider decides
    whether the losing writer sees a slot or version conflict.
    """
    if not isinstance(error, DBAPIError):
        return False
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == SERIALIZATION_FAILURE


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations."""

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def get_by_id(self, id: str) -> Optional[ModelType]:
        """
        Get a record by ID.

        Args:
            id: Record ID

        Returns:
            Model instance or None if not found
        """
        try:
            result = await self.session.execute(select(self.model).where(self.model.id == id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            if is_serialization_failure(e):
                raise
            logger.error(f"Error getting {self.model.__name__} by ID {id}: {e}")
            raise StorageError(f"Failed to retrieve {self.model.__name__}") from e

    async def create(self, **kwargs) -> ModelType:
        """
        Create a new record and flush it so constraint violations surface here.

        Args:
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        logger.debug(f"Created {self.model.__name__} with ID: {instance.id}")
        return instance
