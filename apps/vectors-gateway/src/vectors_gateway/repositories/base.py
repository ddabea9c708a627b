"""Base repository class with common query operations."""

import logging
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vectors_gateway.database.models import Base
from vectors_gateway.utils.errors import MetadataStoreError

logger = logging.getLogger(__name__)

# Type variable for the model type
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with common filtered queries over a single model."""

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        if filters:
            for field, value in filters.items():
                if hasattr(self.model, field):
                    query = query.where(getattr(self.model, field) == value)
        return query

    async def find_one(self, **filters: Any) -> Optional[ModelType]:
        """
        Get a single record matching all filters.

        Returns:
            Model instance or None if not found
        """
        try:
            query = self._apply_filters(select(self.model), filters)
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model.__name__} with {filters}: {e}")
            raise MetadataStoreError(
                f"Failed to retrieve {self.model.__name__}", details={"filters": filters}
            ) from e

    async def get_all(self, filters: Optional[Dict[str, Any]] = None) -> List[ModelType]:
        """
        Get all records matching the optional filters.

        Args:
            filters: Optional dictionary of filters (field: value)

        Returns:
            List of model instances
        """
        try:
            query = self._apply_filters(select(self.model), filters)
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error getting all {self.model.__name__}: {e}")
            raise MetadataStoreError(
                f"Failed to retrieve {self.model.__name__} records"
            ) from e

    async def create(self, **kwargs: Any) -> ModelType:
        """
        Create a new record.

        Args:
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        try:
            instance = self.model(**kwargs)
            self.session.add(instance)
            await self.session.flush()
            await self.session.refresh(instance)
            logger.debug(f"Created {self.model.__name__} with ID: {instance.id}")
            return instance
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model.__name__}: {e}")
            await self.session.rollback()
            raise MetadataStoreError(f"Failed to create {self.model.__name__}") from e

    async def delete_where(self, **filters: Any) -> int:
        """
        Delete every record matching all filters.

        Returns:
            Number of deleted rows
        """
        if not filters:
            raise ValueError("delete_where requires at least one filter")
        try:
            stmt = delete(self.model)
            for field, value in filters.items():
                stmt = stmt.where(getattr(self.model, field) == value)
            result = await self.session.execute(stmt)
            await self.session.flush()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting {self.model.__name__} with {filters}: {e}")
            await self.session.rollback()
            raise MetadataStoreError(
                f"Failed to delete {self.model.__name__}", details={"filters": filters}
            ) from e
