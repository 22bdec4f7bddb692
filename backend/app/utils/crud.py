"""
Generic CRUD utilities to reduce code duplication.

Provides common CRUD patterns for database operations.
"""
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import not_found

ModelType = TypeVar("ModelType")
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDOperations(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Generic CRUD operations for database models.

    Usage:
        purchase_crud = CRUDOperations[Purchase, PurchaseCreate, PurchaseUpdate](Purchase)
    """

    def __init__(self, model: type[ModelType]):
        """
        Initialize CRUD operations.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> ModelType | None:
        """
        Get a single record by ID.

        Args:
            db: Database session
            id: Record ID

        Returns:
            Model instance or None
        """
        return await db.get(self.model, id)

    async def get_or_404(self, db: AsyncSession, id: Any, resource_name: str = "Resource") -> ModelType:
        """
        Get a single record by ID or raise 404.

        Raises:
            HTTPError: If record not found
        """
        obj = await self.get(db, id)
        if obj is None:
            raise not_found(resource_name, details={"id": str(id)})
        return obj

    async def get_multi(
        self,
        db: AsyncSession,
        skip: int = 0,
        limit: int | None = None,
        where: ColumnElement[bool] | None = None,
        order_by: Any = None,
    ) -> list[ModelType]:
        """
        Get multiple records with optional filtering, ordering and pagination.

        Args:
            db: Database session
            skip: Number of records to skip
            limit: Maximum number of records to return, None for all
            where: Filter expression
            order_by: Column or ordering expression

        Returns:
            List of model instances
        """
        query = select(self.model)
        if where is not None:
            query = query.where(where)
        if order_by is not None:
            query = query.order_by(order_by)
        query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        db: AsyncSession,
        obj_in: CreateSchemaType | dict[str, Any],
    ) -> ModelType:
        """
        Create a new record.

        Args:
            db: Database session
            obj_in: Pydantic schema or dict with creation data

        Returns:
            Created model instance
        """
        obj_in_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
        db_obj = self.model(**obj_in_data)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        db_obj: ModelType,
        obj_in: UpdateSchemaType | dict[str, Any],
    ) -> ModelType:
        """
        Update an existing record.

        Args:
            db: Database session
            db_obj: Existing model instance
            obj_in: Pydantic schema or dict with update data

        Returns:
            Updated model instance
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def delete(self, db: AsyncSession, id: Any) -> ModelType | None:
        """
        Delete a record by ID.

        Returns:
            Deleted model instance or None
        """
        obj = await self.get(db, id)
        if obj:
            await db.delete(obj)
            await db.commit()
        return obj

    async def count(self, db: AsyncSession, where: ColumnElement[bool] | None = None) -> int:
        """Count records, optionally filtered."""
        query = select(func.count()).select_from(self.model)
        if where is not None:
            query = query.where(where)
        result = await db.execute(query)
        return result.scalar() or 0
