from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from club_messaging.database import Base

ModelType = TypeVar("ModelType", bound=Base)
PydanticType = TypeVar("PydanticType", bound=BaseModel)


class BaseRepository(Generic[ModelType, PydanticType]):
    """Generic base repository with common row operations."""

    def __init__(
        self, db: AsyncSession, model_class: Any, pydantic_class: Type[PydanticType]
    ):
        self.db = db
        self.model_class = model_class
        self.pydantic_class = pydantic_class

    async def get_by_id(self, id: UUID) -> Optional[PydanticType]:
        """Get a single record by ID."""
        query = select(self.model_class).where(self.model_class.id == id)
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def create(self, **values: Any) -> PydanticType:
        """Insert a record and return it as stored (server defaults applied)."""
        db_model = self.model_class(**values)
        self.db.add(db_model)
        await self.db.commit()
        await self.db.refresh(db_model)
        return self._to_pydantic(db_model)

    def _to_pydantic(self, db_model: Any) -> PydanticType:
        """Convert SQLAlchemy model to the row contract."""
        return self.pydantic_class.model_validate(db_model)

    def _to_pydantic_list(self, db_models: Sequence[Any]) -> List[PydanticType]:
        return [self._to_pydantic(db_model) for db_model in db_models]
