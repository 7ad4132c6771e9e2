from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from club_messaging.backends import MessagingBackend
from club_messaging.models.api.conversations import (
    ConversationCategory,
    ConversationRow,
    TargetType,
)
from club_messaging.repositories.base_repository import BaseRepository


class ConversationRepository(BaseRepository[object, ConversationRow]):
    """Repository for conversation rows of one backend variant."""

    def __init__(self, db: AsyncSession, backend: MessagingBackend):
        super().__init__(db, backend.conversation_model, ConversationRow)

    async def get_by_ids(
        self, conversation_ids: Sequence[UUID], org_id: Optional[UUID] = None
    ) -> List[ConversationRow]:
        """Conversations by id, most recently active first."""
        if not conversation_ids:
            return []

        query = select(self.model_class).where(
            self.model_class.id.in_(list(conversation_ids))
        )
        if org_id is not None:
            query = query.where(self.model_class.org_id == org_id)

        query = query.order_by(
            self.model_class.last_message_at.desc().nulls_last(),
            self.model_class.updated_at.desc(),
        )
        result = await self.db.execute(query)
        return self._to_pydantic_list(result.scalars().all())

    async def create_conversation(
        self,
        org_id: UUID,
        category: ConversationCategory,
        target_type: Optional[TargetType],
        target_id: Optional[UUID],
        created_by: UUID,
        subject: Optional[str] = None,
        campus_id: Optional[UUID] = None,
    ) -> ConversationRow:
        """Insert a conversation with no members yet."""
        return await self.create(
            org_id=org_id,
            category=category.value,
            target_type=target_type.value if target_type else None,
            target_id=target_id,
            created_by=created_by,
            subject=subject,
            campus_id=campus_id,
        )
