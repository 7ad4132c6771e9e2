import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from club_messaging.backends import MessagingBackend
from club_messaging.errors import DirectoryUnavailableError, StoreError
from club_messaging.models.api.conversations import (
    ConversationRow,
    ConversationSummary,
    MemberType,
)
from club_messaging.models.api.directory import ClubRow, MessagingProfile
from club_messaging.models.api.members import MemberInfo, MemberRow
from club_messaging.models.api.messages import ConversationMessage
from club_messaging.store import ConversationStore

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_FALLBACK_LABELS = {
    MemberType.ADMIN: "Admin",
    MemberType.CLUB: "Club",
    MemberType.OFFICER: "Officer",
    MemberType.OTHER: "User",
}


def sort_summaries(summaries: Sequence[ConversationSummary]) -> List[ConversationSummary]:
    """Most recent activity first; ties keep their incoming order."""
    return sorted(summaries, key=lambda summary: summary.activity_at, reverse=True)


def filter_summaries(
    summaries: Sequence[ConversationSummary], search: str, backend: MessagingBackend
) -> List[ConversationSummary]:
    """Case-insensitive substring match over title, subject/category and preview."""
    term = search.strip().lower()
    if not term:
        return list(summaries)

    def haystack(summary: ConversationSummary) -> List[str]:
        values = [summary.title, summary.subject or "", summary.preview]
        if backend.search_category:
            values.append(summary.category.value)
        return values

    return [
        summary
        for summary in summaries
        if any(term in value.lower() for value in haystack(summary))
    ]


def apply_message_to_summaries(
    summaries: Sequence[ConversationSummary],
    message: ConversationMessage,
    active_conversation_id: Optional[UUID],
    user_id: UUID,
    backend: MessagingBackend,
) -> Optional[List[ConversationSummary]]:
    """Patch the summary a new message belongs to and move it to the front.

    Returns None when the conversation is not in the list; callers refresh
    the whole directory in that case instead of hand-patching.
    """
    target = next(
        (summary for summary in summaries if summary.id == message.conversation_id),
        None,
    )
    if target is None:
        return None

    is_active = message.conversation_id == active_conversation_id
    is_own = message.sender_id == user_id
    unread_count = 0 if is_active or is_own else target.unread_count + 1

    updated = target.model_copy(
        update={
            "preview": backend.normalize_preview(message.body),
            "last_message_at": message.created_at,
            "updated_at": message.created_at,
            "last_message_sender_id": message.sender_id,
            "unread_count": unread_count,
        }
    )
    return [updated] + [summary for summary in summaries if summary.id != target.id]


def zero_unread(
    summaries: Sequence[ConversationSummary], conversation_id: UUID
) -> List[ConversationSummary]:
    return [
        summary.model_copy(update={"unread_count": 0})
        if summary.id == conversation_id
        else summary
        for summary in summaries
    ]


class ConversationDirectoryService:
    """Builds the conversation list of a user and tracks read positions."""

    def __init__(self, store: ConversationStore, backend: MessagingBackend):
        self.store = store
        self.backend = backend

    async def fetch_conversation_summaries(
        self, user_id: UUID, org_id: UUID, search: str = ""
    ) -> List[ConversationSummary]:
        """
        Build the user's conversation summaries:

        1. Find the conversations the user belongs to
        2. Batch-load conversations, members, latest messages and read receipts
        3. Resolve display identities with one club and one profile lookup
        4. Count unread messages per conversation
        5. Filter by search term and order by latest activity

        Any store failure aborts the whole call.
        """
        try:
            return await self._fetch_summaries(user_id, org_id, search)
        except StoreError as e:
            raise DirectoryUnavailableError("Unable to load conversations") from e

    async def _fetch_summaries(
        self, user_id: UUID, org_id: UUID, search: str
    ) -> List[ConversationSummary]:
        scope = org_id if self.backend.scope_memberships_by_org else None

        # Step 1: Membership
        conversation_ids = await self.store.list_membership_conversation_ids(
            user_id, org_id=scope
        )
        if not conversation_ids:
            return []

        # Step 2: Batch fetch
        conversations = await self.store.get_conversations(conversation_ids, org_id=scope)
        ids = [conversation.id for conversation in conversations]
        members, latest_messages, receipts = await asyncio.gather(
            self.store.get_members(ids),
            self.store.get_latest_messages(ids),
            self.store.get_read_receipts(user_id, ids),
        )

        # Step 3: Display identities
        clubs, profiles = await self._load_identities(members)
        members_by_conversation: Dict[UUID, List[MemberRow]] = {}
        for member in members:
            members_by_conversation.setdefault(member.conversation_id, []).append(member)

        # Step 4: Unread counts, one live count per conversation
        read_positions = {
            receipt.conversation_id: receipt.last_read_at or EPOCH for receipt in receipts
        }
        counts = await asyncio.gather(
            *(
                self.store.count_unread(
                    conversation_id, read_positions.get(conversation_id, EPOCH), user_id
                )
                for conversation_id in ids
            )
        )
        unread_counts = dict(zip(ids, counts))

        summaries = [
            self._build_summary(
                conversation,
                members_by_conversation.get(conversation.id, []),
                latest_messages.get(conversation.id),
                unread_counts.get(conversation.id, 0),
                user_id,
                clubs,
                profiles,
            )
            for conversation in conversations
        ]

        # Step 5: Filter and order
        return sort_summaries(filter_summaries(summaries, search, self.backend))

    async def mark_conversation_read(
        self,
        conversation_id: UUID,
        org_id: UUID,
        user_id: UUID,
        at: Optional[datetime] = None,
    ) -> datetime:
        """Move the user's read position; safe to call repeatedly."""
        last_read_at = at or datetime.now(timezone.utc)
        await self.store.upsert_read_receipt(conversation_id, org_id, user_id, last_read_at)
        return last_read_at

    async def fetch_member_directory(self, conversation_id: UUID) -> Dict[UUID, MemberInfo]:
        """Display identity of every member of one conversation, keyed by user id."""
        members = await self.store.get_members([conversation_id])
        clubs, profiles = await self._load_identities(members)
        return {
            member.user_id: self._member_info(member, clubs, profiles)
            for member in members
        }

    async def _load_identities(
        self, members: Sequence[MemberRow]
    ) -> Tuple[Dict[UUID, ClubRow], Dict[UUID, MessagingProfile]]:
        club_ids = sorted(
            {m.club_id for m in members if m.member_type == MemberType.CLUB and m.club_id},
            key=str,
        )
        user_ids = sorted(
            {
                m.user_id
                for m in members
                if not (m.member_type == MemberType.CLUB and m.club_id)
            },
            key=str,
        )
        clubs, profiles = await asyncio.gather(
            self.store.get_clubs(club_ids) if club_ids else _empty(),
            self.store.get_profiles(user_ids) if user_ids else _empty(),
        )
        return (
            {club.id: club for club in clubs},
            {profile.id: profile for profile in profiles},
        )

    def _member_info(
        self,
        member: MemberRow,
        clubs: Dict[UUID, ClubRow],
        profiles: Dict[UUID, MessagingProfile],
    ) -> MemberInfo:
        if member.member_type == MemberType.CLUB and member.club_id:
            club = clubs.get(member.club_id)
            return MemberInfo(
                user_id=member.user_id,
                member_type=member.member_type,
                club_id=member.club_id,
                display_name=club.name if club else "Club",
                avatar_url=club.cover_image_url if club else None,
            )

        profile = profiles.get(member.user_id)
        display_name = None
        if profile is not None:
            display_name = profile.full_name or profile.email
        return MemberInfo(
            user_id=member.user_id,
            member_type=member.member_type,
            club_id=member.club_id,
            display_name=display_name or _FALLBACK_LABELS[member.member_type],
            avatar_url=profile.avatar_url if profile else None,
        )

    def _build_summary(
        self,
        conversation: ConversationRow,
        members: List[MemberRow],
        latest: Optional[ConversationMessage],
        unread_count: int,
        user_id: UUID,
        clubs: Dict[UUID, ClubRow],
        profiles: Dict[UUID, MessagingProfile],
    ) -> ConversationSummary:
        other = next((m for m in members if m.user_id != user_id), None)
        if other is None and members:
            other = members[0]

        if other is not None:
            info = self._member_info(other, clubs, profiles)
            title, avatar_url = info.display_name, info.avatar_url
            other_member_type, other_club_id = other.member_type, other.club_id
        else:
            logger.debug("Conversation %s has no members", conversation.id)
            title, avatar_url = "Unknown participant", None
            other_member_type, other_club_id = None, None

        return ConversationSummary(
            id=conversation.id,
            org_id=conversation.org_id,
            category=conversation.category,
            target_type=conversation.target_type,
            target_id=conversation.target_id,
            subject=conversation.subject,
            title=title,
            avatar_url=avatar_url,
            other_member_type=other_member_type,
            other_club_id=other_club_id,
            updated_at=conversation.updated_at,
            last_message_at=latest.created_at if latest else conversation.last_message_at,
            preview=self.backend.normalize_preview(latest.body if latest else None),
            last_message_sender_id=latest.sender_id if latest else None,
            unread_count=unread_count,
        )


async def _empty() -> list:
    return []
