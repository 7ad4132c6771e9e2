"""Conversation store: the only boundary between the messaging core and the
hosted relational backend.

Every method returns typed row contracts; untyped rows never leave this
module.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from club_messaging.backends import MessagingBackend
from club_messaging.errors import StoreError
from club_messaging.models.api.conversations import (
    ConversationCategory,
    ConversationRow,
    MemberType,
    TargetType,
)
from club_messaging.models.api.directory import ClubRow, MessagingProfile, OfficerRow
from club_messaging.models.api.members import MemberRow
from club_messaging.models.api.messages import ConversationMessage
from club_messaging.models.api.reads import ReadReceiptRow
from club_messaging.repositories import (
    ClubRepository,
    ConversationRepository,
    MemberRepository,
    MessageRepository,
    OfficerRepository,
    ProfileRepository,
    ReadReceiptRepository,
)

logger = logging.getLogger(__name__)


class ConversationStore(ABC):
    """Abstract row-oriented access to conversations and their lookups.

    Implementations raise ``StoreError`` for any backend failure.
    """

    @abstractmethod
    async def list_membership_conversation_ids(
        self,
        user_id: UUID,
        org_id: Optional[UUID] = None,
        member_type: Optional[MemberType] = None,
    ) -> List[UUID]:
        """Conversation ids the user is a member of."""

    @abstractmethod
    async def get_conversations(
        self, conversation_ids: Sequence[UUID], org_id: Optional[UUID] = None
    ) -> List[ConversationRow]:
        """Conversations ordered by last_message_at desc (nulls last), updated_at desc."""

    @abstractmethod
    async def get_members(self, conversation_ids: Sequence[UUID]) -> List[MemberRow]:
        """Members across the given conversations."""

    @abstractmethod
    async def get_latest_messages(
        self, conversation_ids: Sequence[UUID]
    ) -> Dict[UUID, ConversationMessage]:
        """Most recent message per conversation, keyed by conversation id."""

    @abstractmethod
    async def get_read_receipts(
        self, user_id: UUID, conversation_ids: Sequence[UUID]
    ) -> List[ReadReceiptRow]:
        """The user's read receipts for the given conversations."""

    @abstractmethod
    async def count_unread(
        self, conversation_id: UUID, after: datetime, user_id: UUID
    ) -> int:
        """Count of messages after ``after`` not sent by ``user_id``."""

    @abstractmethod
    async def fetch_message_page(
        self, conversation_id: UUID, offset: int, limit: int
    ) -> List[ConversationMessage]:
        """Messages newest first, skipping ``offset`` rows."""

    @abstractmethod
    async def get_message(self, message_id: UUID) -> Optional[ConversationMessage]:
        """A single message by id."""

    @abstractmethod
    async def insert_message(
        self,
        conversation_id: UUID,
        org_id: UUID,
        sender_id: UUID,
        sender_type: MemberType,
        body: str,
    ) -> ConversationMessage:
        """Insert a message; the store assigns id and created_at."""

    @abstractmethod
    async def upsert_read_receipt(
        self, conversation_id: UUID, org_id: UUID, user_id: UUID, last_read_at: datetime
    ) -> ReadReceiptRow:
        """Create or move the user's read position."""

    @abstractmethod
    async def find_conversation_with_member(
        self,
        conversation_ids: Sequence[UUID],
        user_id: Optional[UUID] = None,
        club_id: Optional[UUID] = None,
    ) -> Optional[UUID]:
        """First of the conversations having a member matching the target."""

    @abstractmethod
    async def insert_conversation(
        self,
        org_id: UUID,
        category: ConversationCategory,
        target_type: Optional[TargetType],
        target_id: Optional[UUID],
        created_by: UUID,
        subject: Optional[str] = None,
        campus_id: Optional[UUID] = None,
    ) -> ConversationRow:
        """Insert a conversation without members."""

    @abstractmethod
    async def insert_members(self, members: Sequence[MemberRow]) -> List[MemberRow]:
        """Insert member rows for a conversation."""

    @abstractmethod
    async def get_profile(
        self, profile_id: UUID, org_id: Optional[UUID] = None
    ) -> Optional[MessagingProfile]:
        """A profile, optionally required to belong to the org."""

    @abstractmethod
    async def get_profiles(
        self, profile_ids: Sequence[UUID], org_id: Optional[UUID] = None
    ) -> List[MessagingProfile]:
        """Profiles by id, optionally org-scoped."""

    @abstractmethod
    async def list_profiles_by_roles(
        self, roles: Sequence[str], exclude_id: UUID, org_id: Optional[UUID] = None
    ) -> List[MessagingProfile]:
        """Profiles with one of the roles, excluding one user, ordered by name."""

    @abstractmethod
    async def get_club(
        self, club_id: UUID, org_id: Optional[UUID] = None
    ) -> Optional[ClubRow]:
        """A club, optionally required to belong to the org."""

    @abstractmethod
    async def get_clubs(self, club_ids: Sequence[UUID]) -> List[ClubRow]:
        """Clubs by id."""

    @abstractmethod
    async def list_clubs(
        self,
        org_id: Optional[UUID] = None,
        include_unscoped: bool = False,
        name_contains: Optional[str] = None,
    ) -> List[ClubRow]:
        """Clubs ordered by name."""

    @abstractmethod
    async def get_first_officer_user_id(self, club_id: UUID) -> Optional[UUID]:
        """User id of the first officer row of a club."""

    @abstractmethod
    async def list_officers(self, limit: int = 600) -> List[OfficerRow]:
        """Officer rows."""


class SqlConversationStore(ConversationStore):
    """Conversation store over SQLAlchemy async sessions, one per call."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        backend: MessagingBackend,
    ):
        self.session_factory = session_factory
        self.backend = backend

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                logger.warning("Conversation store operation failed: %s", e)
                raise StoreError(str(e)) from e

    async def list_membership_conversation_ids(
        self,
        user_id: UUID,
        org_id: Optional[UUID] = None,
        member_type: Optional[MemberType] = None,
    ) -> List[UUID]:
        async with self._session() as session:
            return await MemberRepository(session, self.backend).get_conversation_ids_for_user(
                user_id, org_id=org_id, member_type=member_type
            )

    async def get_conversations(
        self, conversation_ids: Sequence[UUID], org_id: Optional[UUID] = None
    ) -> List[ConversationRow]:
        async with self._session() as session:
            return await ConversationRepository(session, self.backend).get_by_ids(
                conversation_ids, org_id=org_id
            )

    async def get_members(self, conversation_ids: Sequence[UUID]) -> List[MemberRow]:
        async with self._session() as session:
            return await MemberRepository(session, self.backend).get_by_conversations(
                conversation_ids
            )

    async def get_latest_messages(
        self, conversation_ids: Sequence[UUID]
    ) -> Dict[UUID, ConversationMessage]:
        async with self._session() as session:
            return await MessageRepository(
                session, self.backend
            ).get_latest_by_conversations(conversation_ids)

    async def get_read_receipts(
        self, user_id: UUID, conversation_ids: Sequence[UUID]
    ) -> List[ReadReceiptRow]:
        async with self._session() as session:
            return await ReadReceiptRepository(session, self.backend).get_for_user(
                user_id, conversation_ids
            )

    async def count_unread(
        self, conversation_id: UUID, after: datetime, user_id: UUID
    ) -> int:
        async with self._session() as session:
            return await MessageRepository(session, self.backend).count_unread(
                conversation_id, after, user_id
            )

    async def fetch_message_page(
        self, conversation_id: UUID, offset: int, limit: int
    ) -> List[ConversationMessage]:
        async with self._session() as session:
            return await MessageRepository(session, self.backend).get_page(
                conversation_id, offset, limit
            )

    async def get_message(self, message_id: UUID) -> Optional[ConversationMessage]:
        async with self._session() as session:
            return await MessageRepository(session, self.backend).get_by_id(message_id)

    async def insert_message(
        self,
        conversation_id: UUID,
        org_id: UUID,
        sender_id: UUID,
        sender_type: MemberType,
        body: str,
    ) -> ConversationMessage:
        async with self._session() as session:
            return await MessageRepository(session, self.backend).create_message(
                conversation_id=conversation_id,
                org_id=org_id,
                sender_id=sender_id,
                sender_type=sender_type,
                body=body,
            )

    async def upsert_read_receipt(
        self, conversation_id: UUID, org_id: UUID, user_id: UUID, last_read_at: datetime
    ) -> ReadReceiptRow:
        async with self._session() as session:
            return await ReadReceiptRepository(session, self.backend).upsert(
                conversation_id, org_id, user_id, last_read_at
            )

    async def find_conversation_with_member(
        self,
        conversation_ids: Sequence[UUID],
        user_id: Optional[UUID] = None,
        club_id: Optional[UUID] = None,
    ) -> Optional[UUID]:
        async with self._session() as session:
            return await MemberRepository(
                session, self.backend
            ).find_conversation_with_member(
                conversation_ids, user_id=user_id, club_id=club_id
            )

    async def insert_conversation(
        self,
        org_id: UUID,
        category: ConversationCategory,
        target_type: Optional[TargetType],
        target_id: Optional[UUID],
        created_by: UUID,
        subject: Optional[str] = None,
        campus_id: Optional[UUID] = None,
    ) -> ConversationRow:
        async with self._session() as session:
            return await ConversationRepository(
                session, self.backend
            ).create_conversation(
                org_id=org_id,
                category=category,
                target_type=target_type,
                target_id=target_id,
                created_by=created_by,
                subject=subject,
                campus_id=campus_id,
            )

    async def insert_members(self, members: Sequence[MemberRow]) -> List[MemberRow]:
        async with self._session() as session:
            return await MemberRepository(session, self.backend).add_members(members)

    async def get_profile(
        self, profile_id: UUID, org_id: Optional[UUID] = None
    ) -> Optional[MessagingProfile]:
        async with self._session() as session:
            return await ProfileRepository(session).get_scoped(profile_id, org_id)

    async def get_profiles(
        self, profile_ids: Sequence[UUID], org_id: Optional[UUID] = None
    ) -> List[MessagingProfile]:
        async with self._session() as session:
            return await ProfileRepository(session).get_by_ids(profile_ids, org_id)

    async def list_profiles_by_roles(
        self, roles: Sequence[str], exclude_id: UUID, org_id: Optional[UUID] = None
    ) -> List[MessagingProfile]:
        async with self._session() as session:
            return await ProfileRepository(session).list_by_roles(
                roles, exclude_id, org_id
            )

    async def get_club(
        self, club_id: UUID, org_id: Optional[UUID] = None
    ) -> Optional[ClubRow]:
        async with self._session() as session:
            return await ClubRepository(session).get_scoped(club_id, org_id)

    async def get_clubs(self, club_ids: Sequence[UUID]) -> List[ClubRow]:
        async with self._session() as session:
            return await ClubRepository(session).get_by_ids(club_ids)

    async def list_clubs(
        self,
        org_id: Optional[UUID] = None,
        include_unscoped: bool = False,
        name_contains: Optional[str] = None,
    ) -> List[ClubRow]:
        async with self._session() as session:
            return await ClubRepository(session).list_clubs(
                org_id, include_unscoped=include_unscoped, name_contains=name_contains
            )

    async def get_first_officer_user_id(self, club_id: UUID) -> Optional[UUID]:
        async with self._session() as session:
            return await OfficerRepository(session).first_user_id_for_club(club_id)

    async def list_officers(self, limit: int = 600) -> List[OfficerRow]:
        async with self._session() as session:
            return await OfficerRepository(session).list_officers(limit)
