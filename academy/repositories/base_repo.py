from typing import TypeVar, Generic, Type, Optional, Any, Sequence

from sqlalchemy import select, update, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.model.base import Base
from academy.utils.exceptions import ConflictException

# Generic type for SQLAlchemy models
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository class with common CRUD operations.

    Usage:
        class EnrollmentRepository(BaseRepository[Enrollment]):
            def __init__(self, session: AsyncSession):
                super().__init__(Enrollment, session)
    """
    model: Type[ModelType]

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize repository with model class and database session.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    # ==================== CREATE ====================

    async def insert(self, obj_in: dict) -> ModelType:
        """
        Insert a row and flush it.

        Raises:
            ConflictException: a unique constraint rejected the row
        """
        db_obj = self.model(**obj_in)
        self.session.add(db_obj)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictException(
                f"{self.model.__name__} already exists"
            ) from e
        await self.session.refresh(db_obj)
        return db_obj

    # ==================== READ ====================

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        query = select(self.model).where(self.model.id == id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_one_by_filters(
        self,
        filters: dict[str, Any],
        fresh: bool = False
    ) -> Optional[ModelType]:
        """
        Get the single record matching ``filters``. With ``fresh`` the row
        overwrites any copy already held in the session's identity map.
        """
        conditions = [getattr(self.model, field) == value for field, value in filters.items()]
        query = select(self.model).where(and_(*conditions))
        if fresh:
            query = query.execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_filters(
        self,
        filters: dict[str, Any],
        order_by: Optional[str] = None,
        order_desc: bool = False
    ) -> Sequence[ModelType]:
        """
        Get records matching multiple filter conditions.

        Args:
            filters: Dictionary of field-value pairs to filter by
            order_by: Field name to order by
            order_desc: Whether to order descending

        Returns:
            List of model instances
        """
        conditions = [getattr(self.model, field) == value for field, value in filters.items()]
        query = select(self.model)
        if conditions:
            query = query.where(and_(*conditions))

        if order_by:
            order_column = getattr(self.model, order_by)
            query = query.order_by(order_column.desc() if order_desc else order_column)

        result = await self.session.execute(query)
        return result.scalars().all()

    # ==================== UPDATE ====================

    async def update_versioned(
        self,
        filters: dict[str, Any],
        obj_in: dict,
        expected_version: int
    ) -> ModelType:
        """
        Update the row matching ``filters`` only if its version is still
        ``expected_version``; bumps the version.

        Raises:
            ConflictException: the row is missing or was written since it was read
        """
        conditions = [getattr(self.model, field) == value for field, value in filters.items()]
        conditions.append(self.model.version == expected_version)

        stmt = (
            update(self.model)
            .where(and_(*conditions))
            .values(**obj_in, version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        current = await self.get_one_by_filters(filters, fresh=True)
        if result.rowcount == 0:
            current_version = current.version if current is not None else None
            raise ConflictException(
                f"{self.model.__name__} changed since it was read "
                f"(expected version {expected_version}, found {current_version})",
                current_version=current_version,
            )

        return current

    # ==================== UTILITY ====================

    async def commit(self):
        """Commit the current transaction."""
        await self.session.commit()
