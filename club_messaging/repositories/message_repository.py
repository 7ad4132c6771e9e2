from datetime import datetime
from typing import Dict, List, Sequence
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import aliased

from club_messaging.backends import MessagingBackend
from club_messaging.models.api.conversations import MemberType
from club_messaging.models.api.messages import ConversationMessage
from club_messaging.repositories.base_repository import BaseRepository


class MessageRepository(BaseRepository[object, ConversationMessage]):
    """Repository for message rows."""

    def __init__(self, db: AsyncSession, backend: MessagingBackend):
        super().__init__(db, backend.message_model, ConversationMessage)

    async def get_page(
        self, conversation_id: UUID, offset: int, limit: int
    ) -> List[ConversationMessage]:
        """A window of a conversation's messages, newest first."""
        query = (
            select(self.model_class)
            .where(self.model_class.conversation_id == conversation_id)
            .order_by(self.model_class.created_at.desc(), self.model_class.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return self._to_pydantic_list(result.scalars().all())

    async def get_latest_by_conversations(
        self, conversation_ids: Sequence[UUID]
    ) -> Dict[UUID, ConversationMessage]:
        """The single most recent message of each conversation."""
        if not conversation_ids:
            return {}

        ranked = (
            select(
                self.model_class,
                func.row_number()
                .over(
                    partition_by=self.model_class.conversation_id,
                    order_by=(
                        self.model_class.created_at.desc(),
                        self.model_class.id.desc(),
                    ),
                )
                .label("rank"),
            )
            .where(self.model_class.conversation_id.in_(list(conversation_ids)))
            .subquery()
        )
        latest = aliased(self.model_class, ranked)
        result = await self.db.execute(select(latest).where(ranked.c.rank == 1))

        return {
            message.conversation_id: message
            for message in self._to_pydantic_list(result.scalars().all())
        }

    async def count_unread(
        self, conversation_id: UUID, after: datetime, user_id: UUID
    ) -> int:
        """Messages newer than the read position that someone else sent."""
        query = select(func.count(self.model_class.id)).where(
            self.model_class.conversation_id == conversation_id,
            self.model_class.created_at > after,
            self.model_class.sender_id != user_id,
        )
        result = await self.db.execute(query)
        return int(result.scalar() or 0)

    async def create_message(
        self,
        conversation_id: UUID,
        org_id: UUID,
        sender_id: UUID,
        sender_type: MemberType,
        body: str,
    ) -> ConversationMessage:
        return await self.create(
            conversation_id=conversation_id,
            org_id=org_id,
            sender_id=sender_id,
            sender_type=sender_type.value,
            body=body,
        )
