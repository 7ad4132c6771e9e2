"""In-memory conversation store used by the service and session tests."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Set
from uuid import UUID, uuid4

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
from club_messaging.store import ConversationStore

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)
ORG_ID = UUID("00000000-0000-0000-0000-000000000001")


class InMemoryConversationStore(ConversationStore):
    """Dict-backed store with a ticking clock and per-method failure switches."""

    def __init__(self) -> None:
        self.conversations: Dict[UUID, ConversationRow] = {}
        self.members: List[MemberRow] = []
        self.messages: List[ConversationMessage] = []
        self.receipts: Dict[tuple, ReadReceiptRow] = {}
        self.profiles: Dict[UUID, MessagingProfile] = {}
        self.clubs: Dict[UUID, ClubRow] = {}
        self.officers: List[OfficerRow] = []
        self.failing: Set[str] = set()
        self.calls: List[str] = []
        self._ticks = 0

    # Test helpers

    def now(self) -> datetime:
        self._ticks += 1
        return T0 + timedelta(seconds=self._ticks)

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise StoreError(f"{name} failed")

    def add_profile(self, **values) -> MessagingProfile:
        profile = MessagingProfile(id=values.pop("id", uuid4()), **values)
        self.profiles[profile.id] = profile
        return profile

    def add_club(self, name: str, **values) -> ClubRow:
        club = ClubRow(id=values.pop("id", uuid4()), name=name, **values)
        self.clubs[club.id] = club
        return club

    def add_conversation(
        self,
        org_id: UUID,
        members: Sequence[dict],
        category: ConversationCategory = ConversationCategory.CLUBS,
        subject: Optional[str] = None,
    ) -> ConversationRow:
        now = self.now()
        conversation = ConversationRow(
            id=uuid4(),
            org_id=org_id,
            category=category,
            subject=subject,
            created_at=now,
            updated_at=now,
        )
        self.conversations[conversation.id] = conversation
        for member in members:
            self.members.append(
                MemberRow(conversation_id=conversation.id, org_id=org_id, **member)
            )
        return conversation

    def add_message(
        self,
        conversation_id: UUID,
        sender_id: UUID,
        body: str,
        sender_type: MemberType = MemberType.OTHER,
    ) -> ConversationMessage:
        conversation = self.conversations[conversation_id]
        message = ConversationMessage(
            id=uuid4(),
            conversation_id=conversation_id,
            org_id=conversation.org_id,
            sender_id=sender_id,
            sender_type=sender_type,
            body=body,
            created_at=self.now(),
        )
        self.messages.append(message)
        return message

    # ConversationStore

    async def list_membership_conversation_ids(self, user_id, org_id=None, member_type=None):
        self._enter("list_membership_conversation_ids")
        return [
            m.conversation_id
            for m in self.members
            if m.user_id == user_id
            and (org_id is None or m.org_id == org_id)
            and (member_type is None or m.member_type == member_type)
        ]

    async def get_conversations(self, conversation_ids, org_id=None):
        self._enter("get_conversations")
        rows = [
            self.conversations[cid]
            for cid in conversation_ids
            if cid in self.conversations
            and (org_id is None or self.conversations[cid].org_id == org_id)
        ]
        rows.sort(key=lambda c: c.updated_at, reverse=True)
        rows.sort(key=lambda c: c.last_message_at or EARLIEST, reverse=True)
        return rows

    async def get_members(self, conversation_ids):
        self._enter("get_members")
        return [m for m in self.members if m.conversation_id in set(conversation_ids)]

    async def get_latest_messages(self, conversation_ids):
        self._enter("get_latest_messages")
        latest: Dict[UUID, ConversationMessage] = {}
        for message in self.messages:
            if message.conversation_id not in set(conversation_ids):
                continue
            current = latest.get(message.conversation_id)
            if current is None or message.created_at >= current.created_at:
                latest[message.conversation_id] = message
        return latest

    async def get_read_receipts(self, user_id, conversation_ids):
        self._enter("get_read_receipts")
        return [
            receipt
            for (cid, uid), receipt in self.receipts.items()
            if uid == user_id and cid in set(conversation_ids)
        ]

    async def count_unread(self, conversation_id, after, user_id):
        self._enter("count_unread")
        return sum(
            1
            for m in self.messages
            if m.conversation_id == conversation_id
            and m.created_at > after
            and m.sender_id != user_id
        )

    async def fetch_message_page(self, conversation_id, offset, limit):
        self._enter("fetch_message_page")
        rows = sorted(
            (m for m in self.messages if m.conversation_id == conversation_id),
            key=lambda m: (m.created_at, str(m.id)),
            reverse=True,
        )
        return rows[offset : offset + limit]

    async def get_message(self, message_id):
        self._enter("get_message")
        return next((m for m in self.messages if m.id == message_id), None)

    async def insert_message(self, conversation_id, org_id, sender_id, sender_type, body):
        self._enter("insert_message")
        message = ConversationMessage(
            id=uuid4(),
            conversation_id=conversation_id,
            org_id=org_id,
            sender_id=sender_id,
            sender_type=sender_type,
            body=body,
            created_at=self.now(),
        )
        self.messages.append(message)
        return message

    async def upsert_read_receipt(self, conversation_id, org_id, user_id, last_read_at):
        self._enter("upsert_read_receipt")
        receipt = ReadReceiptRow(
            conversation_id=conversation_id,
            org_id=org_id,
            user_id=user_id,
            last_read_at=last_read_at,
        )
        self.receipts[(conversation_id, user_id)] = receipt
        return receipt

    async def find_conversation_with_member(self, conversation_ids, user_id=None, club_id=None):
        self._enter("find_conversation_with_member")
        for member in self.members:
            if member.conversation_id not in set(conversation_ids):
                continue
            if club_id is not None and (
                member.member_type != MemberType.CLUB or member.club_id != club_id
            ):
                continue
            if user_id is not None and member.user_id != user_id:
                continue
            return member.conversation_id
        return None

    async def insert_conversation(
        self,
        org_id,
        category,
        target_type,
        target_id,
        created_by,
        subject=None,
        campus_id=None,
    ):
        self._enter("insert_conversation")
        now = self.now()
        conversation = ConversationRow(
            id=uuid4(),
            org_id=org_id,
            category=category,
            target_type=target_type,
            target_id=target_id,
            subject=subject,
            campus_id=campus_id,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self.conversations[conversation.id] = conversation
        return conversation

    async def insert_members(self, members):
        self._enter("insert_members")
        self.members.extend(members)
        return list(members)

    async def get_profile(self, profile_id, org_id=None):
        self._enter("get_profile")
        profile = self.profiles.get(profile_id)
        if profile is None or (org_id is not None and profile.org_id != org_id):
            return None
        return profile

    async def get_profiles(self, profile_ids, org_id=None):
        self._enter("get_profiles")
        return [
            self.profiles[pid]
            for pid in profile_ids
            if pid in self.profiles
            and (org_id is None or self.profiles[pid].org_id == org_id)
        ]

    async def list_profiles_by_roles(self, roles, exclude_id, org_id=None):
        self._enter("list_profiles_by_roles")
        rows = [
            p
            for p in self.profiles.values()
            if p.role in roles
            and p.id != exclude_id
            and (org_id is None or p.org_id == org_id)
        ]
        return sorted(rows, key=lambda p: p.full_name or "")

    async def get_club(self, club_id, org_id=None):
        self._enter("get_club")
        club = self.clubs.get(club_id)
        if club is None or (org_id is not None and club.org_id != org_id):
            return None
        return club

    async def get_clubs(self, club_ids):
        self._enter("get_clubs")
        return [self.clubs[cid] for cid in club_ids if cid in self.clubs]

    async def list_clubs(self, org_id=None, include_unscoped=False, name_contains=None):
        self._enter("list_clubs")
        rows = [
            c
            for c in self.clubs.values()
            if org_id is None
            or c.org_id == org_id
            or (include_unscoped and c.org_id is None)
        ]
        if name_contains:
            rows = [c for c in rows if name_contains.lower() in c.name.lower()]
        return sorted(rows, key=lambda c: c.name)

    async def get_first_officer_user_id(self, club_id):
        self._enter("get_first_officer_user_id")
        return next(
            (o.user_id for o in self.officers if o.club_id == club_id and o.user_id),
            None,
        )

    async def list_officers(self, limit=600):
        self._enter("list_officers")
        return self.officers[:limit]


def club_member(club: ClubRow) -> dict:
    return {
        "user_id": club.primary_user_id,
        "member_type": MemberType.CLUB,
        "club_id": club.id,
    }


def user_member(profile: MessagingProfile, member_type: MemberType = MemberType.ADMIN) -> dict:
    return {"user_id": profile.id, "member_type": member_type}
