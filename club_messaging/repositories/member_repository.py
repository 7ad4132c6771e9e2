from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from club_messaging.backends import MessagingBackend
from club_messaging.models.api.conversations import MemberType
from club_messaging.models.api.members import MemberRow
from club_messaging.repositories.base_repository import BaseRepository


class MemberRepository(BaseRepository[object, MemberRow]):
    """Repository for conversation member rows."""

    def __init__(self, db: AsyncSession, backend: MessagingBackend):
        super().__init__(db, backend.member_model, MemberRow)

    async def get_conversation_ids_for_user(
        self,
        user_id: UUID,
        org_id: Optional[UUID] = None,
        member_type: Optional[MemberType] = None,
    ) -> List[UUID]:
        """Ids of every conversation the user belongs to."""
        query = select(self.model_class.conversation_id).where(
            self.model_class.user_id == user_id
        )
        if org_id is not None:
            query = query.where(self.model_class.org_id == org_id)
        if member_type is not None:
            query = query.where(self.model_class.member_type == member_type.value)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_by_conversations(
        self, conversation_ids: Sequence[UUID]
    ) -> List[MemberRow]:
        """All members of the given conversations."""
        if not conversation_ids:
            return []
        query = select(self.model_class).where(
            self.model_class.conversation_id.in_(list(conversation_ids))
        )
        result = await self.db.execute(query)
        return self._to_pydantic_list(result.scalars().all())

    async def find_conversation_with_member(
        self,
        conversation_ids: Sequence[UUID],
        user_id: Optional[UUID] = None,
        club_id: Optional[UUID] = None,
    ) -> Optional[UUID]:
        """First of the given conversations that has a matching member.

        A club is matched through a club member row; a user by user id.
        """
        if not conversation_ids:
            return None

        query = select(self.model_class.conversation_id).where(
            self.model_class.conversation_id.in_(list(conversation_ids))
        )
        if club_id is not None:
            query = query.where(
                self.model_class.member_type == MemberType.CLUB.value,
                self.model_class.club_id == club_id,
            )
        if user_id is not None:
            query = query.where(self.model_class.user_id == user_id)

        result = await self.db.execute(query.limit(1))
        return result.scalars().first()

    async def add_members(self, members: Iterable[MemberRow]) -> List[MemberRow]:
        """Insert member rows in one transaction."""
        members = list(members)
        db_models = [
            self.model_class(
                conversation_id=member.conversation_id,
                org_id=member.org_id,
                user_id=member.user_id,
                member_type=member.member_type.value,
                club_id=member.club_id,
            )
            for member in members
        ]
        self.db.add_all(db_models)
        await self.db.commit()
        return members
