import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlmodel import SQLModel, select

from src.core.exceptions import DatabaseException, ObjectNotFoundException
from src.interfaces.repository import IRepository

# Define type variables for the model, create schema, and update schema
ModelType = TypeVar("ModelType", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType")
UpdateSchemaType = TypeVar("UpdateSchemaType")

logger = logging.getLogger(__name__)


class BaseSQLAlchemyRepository(
    IRepository, Generic[ModelType, CreateSchemaType, UpdateSchemaType]
):
    """
    Base repository class for SQLAlchemy operations.

    Attributes:
        _model (Type[ModelType]): The model class associated with the repository.
        db (AsyncSession): The asynchronous database session.
    """

    _model: Type[ModelType]
    _join_models: List[str] = []

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the repository with a database session.

        Args:
            db (AsyncSession): The asynchronous database session.
        """
        self.db = db

    def _upsert(self, model: Type[SQLModel]):
        """
        Dialect specific INSERT supporting ON CONFLICT DO UPDATE.

        Counters are upserted as `col = col + :n` so that concurrent writers
        never overwrite each other's increments.
        """
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(model)
        if dialect == "sqlite":
            return sqlite.insert(model)
        raise DatabaseException(f"Atomic upserts are not supported for dialect '{dialect}'.")

    async def get(self, **kwargs: Any) -> Optional[ModelType]:
        """
        Retrieve an object from the database based on provided filters.

        Args:
            **kwargs: Filter criteria for querying the object.

        Returns:
            ModelType: The retrieved object.

        Raises:
            ObjectNotFoundException: If nothing matches the filters.
        """
        logger.info(f"Fetching {self._model.__name__} object with filters {kwargs}.")
        query = select(self._model).filter_by(**kwargs)

        # Apply eager loading for joined models if needed
        for join_model in self._join_models:
            query = query.options(selectinload(getattr(self._model, join_model)))

        try:
            result = await self.db.execute(query)
            obj = result.unique().scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error(f"Error fetching {self._model.__name__}: {exc}")
            raise DatabaseException("An error occurred while fetching the object.") from exc

        if obj is None:
            logger.warning(f"{self._model.__name__} not found with filters {kwargs}.")
            raise ObjectNotFoundException(f"{self._model.__name__} not found.")
        return obj

    async def update(
            self, obj_current: ModelType, obj_in: UpdateSchemaType
    ) -> ModelType:
        """
        Update an existing object in the database.

        Args:
            obj_current (ModelType): The current database object.
            obj_in (UpdateSchemaType): The input schema with updated data.

        Returns:
            ModelType: The updated database object.
        """
        logger.info(f"Updating {self._model.__name__} object with ID {obj_current.id}.")
        update_data = obj_in.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in update_data.items():
            setattr(obj_current, field, value)
        self.db.add(obj_current)
        try:
            await self.db.commit()
            await self.db.refresh(obj_current)
            logger.info(f"{self._model.__name__} object with ID {obj_current.id} updated.")
            return obj_current
        except SQLAlchemyError as exc:
            await self.db.rollback()  # <-- rollback transaction if error occurs
            logger.error(f"Error updating {self._model.__name__}: {exc}")
            raise DatabaseException("An error occurred while updating the object.") from exc

    async def all(
            self,
            page: int = 1,
            limit: int = 100,
            sort_field: str = "created_at",
            sort_order: str = "desc",
            **filters: Any,
    ) -> List[ModelType]:
        """
        Retrieve all objects from the database with optional pagination and sorting.

        Args:
            page (int): Page number for pagination. Defaults to 1.
            limit (int): Maximum number of records to return. Defaults to 100.
            sort_field (str): Field to sort by. Defaults to "created_at".
            sort_order (str): Sort order ("asc" or "desc"). Defaults to "desc".
            **filters: Equality filters applied with filter_by.

        Returns:
            List[ModelType]: List of retrieved objects.
        """
        logger.info(f"Fetching all {self._model.__name__} objects.")

        if not hasattr(self._model, sort_field):
            logger.error(f"Invalid sort_field '{sort_field}' for {self._model.__name__}.")
            raise ValueError(f"Invalid sort_field '{sort_field}' for {self._model.__name__}.")

        order_column = getattr(self._model, sort_field)
        order_func = getattr(order_column, sort_order, None)
        if not order_func:
            logger.error(f"Invalid sort_order '{sort_order}'.")
            raise ValueError(f"Invalid sort_order '{sort_order}'.")

        query = (
            select(self._model).
            filter_by(**filters).
            order_by(order_func(), self._model.id.desc()).
            offset((page - 1) * limit).
            limit(limit)
        )
        try:
            result = await self.db.execute(query)
            return result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error(f"Error fetching {self._model.__name__} objects: {exc}")
            raise DatabaseException(f"An error occurred while fetching objects: {exc}") from exc

    async def f(self, **kwargs: Any) -> List[ModelType]:
        """
        Retrieve objects from the database based on provided filters.

        Args:
            **kwargs: Filter criteria for querying the objects.

        Returns:
            List[ModelType]: List of retrieved objects.
        """
        logger.info(f"Fetching {self._model.__name__} objects by {kwargs}.")

        query = select(self._model).filter_by(**kwargs)
        try:
            result = await self.db.execute(query)
            return result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error(f"Error fetching {self._model.__name__} objects: {exc}")
            raise DatabaseException("An error occurred while fetching objects.") from exc
