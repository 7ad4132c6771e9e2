from datetime import datetime
from typing import List, Sequence
from uuid import UUID

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from club_messaging.backends import MessagingBackend
from club_messaging.models.api.reads import ReadReceiptRow
from club_messaging.repositories.base_repository import BaseRepository


class ReadReceiptRepository(BaseRepository[object, ReadReceiptRow]):
    """Repository for per-user read positions."""

    def __init__(self, db: AsyncSession, backend: MessagingBackend):
        super().__init__(db, backend.read_model, ReadReceiptRow)

    async def get_for_user(
        self, user_id: UUID, conversation_ids: Sequence[UUID]
    ) -> List[ReadReceiptRow]:
        if not conversation_ids:
            return []
        query = select(self.model_class).where(
            self.model_class.user_id == user_id,
            self.model_class.conversation_id.in_(list(conversation_ids)),
        )
        result = await self.db.execute(query)
        return self._to_pydantic_list(result.scalars().all())

    async def upsert(
        self, conversation_id: UUID, org_id: UUID, user_id: UUID, last_read_at: datetime
    ) -> ReadReceiptRow:
        """Insert or move the user's read position for a conversation."""
        statement = insert(self.model_class).values(
            conversation_id=conversation_id,
            org_id=org_id,
            user_id=user_id,
            last_read_at=last_read_at,
        )
        statement = statement.on_conflict_do_update(
            index_elements=[self.model_class.conversation_id, self.model_class.user_id],
            set_={"last_read_at": last_read_at, "org_id": org_id},
        )
        await self.db.execute(statement)
        await self.db.commit()
        return ReadReceiptRow(
            conversation_id=conversation_id,
            org_id=org_id,
            user_id=user_id,
            last_read_at=last_read_at,
        )
