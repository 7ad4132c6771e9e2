import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from club_messaging.backends import MessagingBackend
from club_messaging.errors import (
    ConversationCreationError,
    InvalidTargetError,
    SelfConversationError,
    StoreError,
    TargetHasNoLoginUser,
    TargetNotFoundError,
)
from club_messaging.models.api.conversations import (
    ConversationCategory,
    MemberType,
    TargetType,
)
from club_messaging.models.api.directory import (
    ClubRow,
    MessagingProfile,
    RecipientOption,
    RecipientTab,
)
from club_messaging.models.api.members import MemberRow
from club_messaging.scope import ADMIN_ROLES
from club_messaging.store import ConversationStore

logger = logging.getLogger(__name__)

_MEMBER_TYPE_BY_TARGET = {
    TargetType.CLUB: MemberType.CLUB,
    TargetType.OFFICER: MemberType.OFFICER,
    TargetType.ADMIN: MemberType.ADMIN,
    TargetType.OTHER: MemberType.OTHER,
}


@dataclass(frozen=True)
class ResolvedTarget:
    """Login user standing behind a conversation target."""

    user_id: UUID
    member_type: MemberType
    category: ConversationCategory
    club_id: Optional[UUID] = None


class ConversationCreationService:
    """Opens conversations and lists who a user can open them with."""

    def __init__(self, store: ConversationStore, backend: MessagingBackend):
        self.store = store
        self.backend = backend

    async def get_or_create_conversation(
        self,
        org_id: UUID,
        current_user_id: UUID,
        creator_type: MemberType,
        target_type: TargetType,
        target_id: UUID,
        subject: Optional[str] = None,
        campus_id: Optional[UUID] = None,
    ) -> UUID:
        """
        Find or create the conversation between the user and a target:

        1. Reuse a conversation of the user that already has the target as member
        2. Resolve the target's login user
        3. Insert the conversation, then its two member rows
        4. Start the creator's read position at now

        The lookup and the insert are not atomic; two concurrent creators can
        end up with two conversations for the same pair.
        """
        if target_type != TargetType.CLUB and target_id == current_user_id:
            raise SelfConversationError("Cannot create a direct conversation with yourself.")

        # Step 1: Existing conversation
        existing = await self._find_existing(org_id, current_user_id, target_type, target_id)
        if existing is not None:
            return existing

        # Step 2: Resolve target
        resolved = await self.resolve_target_user(org_id, target_type, target_id)
        if resolved.user_id == current_user_id:
            raise SelfConversationError("Cannot create a direct conversation with yourself.")

        # Step 3: Conversation and members
        try:
            conversation = await self.store.insert_conversation(
                org_id=org_id,
                category=self.backend.category_for(target_type),
                target_type=target_type,
                target_id=target_id,
                created_by=current_user_id,
                subject=(subject or "").strip() or None,
                campus_id=campus_id,
            )
        except StoreError as e:
            raise ConversationCreationError("Unable to create conversation") from e

        try:
            await self.store.insert_members(
                [
                    MemberRow(
                        conversation_id=conversation.id,
                        org_id=org_id,
                        user_id=current_user_id,
                        member_type=creator_type,
                    ),
                    MemberRow(
                        conversation_id=conversation.id,
                        org_id=org_id,
                        user_id=resolved.user_id,
                        member_type=resolved.member_type,
                        club_id=resolved.club_id,
                    ),
                ]
            )
        except StoreError as e:
            # The conversation row stays behind without members
            logger.error("Conversation %s created without members: %s", conversation.id, e)
            raise ConversationCreationError("Unable to create conversation") from e

        # Step 4: Creator starts fully read; the conversation is usable without it
        try:
            await self.store.upsert_read_receipt(
                conversation.id, org_id, current_user_id, datetime.now(timezone.utc)
            )
        except StoreError as e:
            logger.warning(
                "Created conversation %s but failed to mark it read: %s", conversation.id, e
            )
        logger.info(
            "Created conversation %s between %s and %s %s",
            conversation.id,
            current_user_id,
            target_type.value,
            target_id,
        )
        return conversation.id

    async def _find_existing(
        self,
        org_id: UUID,
        current_user_id: UUID,
        target_type: TargetType,
        target_id: UUID,
    ) -> Optional[UUID]:
        scope = org_id if self.backend.scope_memberships_by_org else None
        conversation_ids = await self.store.list_membership_conversation_ids(
            current_user_id, org_id=scope
        )
        if not conversation_ids:
            return None

        if target_type == TargetType.CLUB:
            return await self.store.find_conversation_with_member(
                conversation_ids, club_id=target_id
            )
        return await self.store.find_conversation_with_member(
            conversation_ids, user_id=target_id
        )

    async def resolve_target_user(
        self, org_id: UUID, target_type: TargetType, target_id: UUID
    ) -> ResolvedTarget:
        """Login user behind a target; clubs fall back to their first officer."""
        category = self.backend.category_for(target_type)

        if target_type == TargetType.CLUB:
            club = await self.store.get_club(target_id, org_id=org_id)
            if club is None:
                club = await self.store.get_club(target_id)
            if club is None:
                raise TargetNotFoundError("Club not found in this organization.")

            user_id = club.primary_user_id
            if user_id is None:
                user_id = await self.store.get_first_officer_user_id(club.id)
            if user_id is None:
                raise TargetHasNoLoginUser("Club account has no login user.")

            return ResolvedTarget(
                user_id=user_id,
                member_type=MemberType.CLUB,
                category=category,
                club_id=club.id,
            )

        profile = await self.store.get_profile(target_id, org_id=org_id)
        if profile is None:
            profile = await self.store.get_profile(target_id)
        if profile is None:
            raise TargetNotFoundError("Target user not found in this organization.")

        if target_type == TargetType.ADMIN and profile.role not in ADMIN_ROLES:
            raise InvalidTargetError("Selected user is not an admin.")

        return ResolvedTarget(
            user_id=profile.id,
            member_type=_MEMBER_TYPE_BY_TARGET[target_type],
            category=category,
        )

    async def fetch_recipient_options(
        self, org_id: UUID, tab: RecipientTab, search: str, current_user_id: UUID
    ) -> List[RecipientOption]:
        """Candidates for a new conversation on one picker tab."""
        term = search.strip().lower()
        if tab == RecipientTab.CLUB:
            return await self._club_options(org_id, term)
        if tab == RecipientTab.OFFICER:
            return await self._officer_options(org_id, term, current_user_id)
        return await self._admin_options(org_id, term, current_user_id)

    async def fetch_clubs_for_new_conversation(
        self, org_id: UUID, search: str
    ) -> List[ClubRow]:
        """Clubs of the org, or with no org at all, matching the search."""
        return await self.store.list_clubs(
            org_id=org_id, include_unscoped=True, name_contains=search.strip() or None
        )

    async def _club_options(self, org_id: UUID, term: str) -> List[RecipientOption]:
        clubs = await self.store.list_clubs(org_id=org_id)
        if not clubs:
            clubs = await self.store.list_clubs()

        return [
            RecipientOption(
                key=str(club.id),
                target_type=TargetType.CLUB,
                target_id=club.id,
                label=club.name,
                subtitle="Club",
                avatar_url=club.cover_image_url,
            )
            for club in clubs
            if not term or term in club.name.lower()
        ]

    async def _officer_options(
        self, org_id: UUID, term: str, current_user_id: UUID
    ) -> List[RecipientOption]:
        officers = [
            row
            for row in await self.store.list_officers()
            if row.user_id is not None and row.user_id != current_user_id
        ]
        user_ids = list(dict.fromkeys(row.user_id for row in officers if row.user_id))
        if not user_ids:
            return []

        profiles = await self.store.get_profiles(user_ids, org_id=org_id)
        if not profiles:
            profiles = await self.store.get_profiles(user_ids)
        if not profiles:
            return []

        club_ids = list(dict.fromkeys(row.club_id for row in officers if row.club_id))
        clubs = await self.store.get_clubs(club_ids) if club_ids else []
        club_names = {club.id: club.name for club in clubs}
        profiles_by_id: Dict[UUID, MessagingProfile] = {p.id: p for p in profiles}

        options = []
        for user_id in user_ids:
            profile = profiles_by_id.get(user_id)
            if profile is None:
                continue
            officer = next(row for row in officers if row.user_id == user_id)
            club_name = club_names.get(officer.club_id) if officer.club_id else None
            role_label = officer.role or "Officer"
            label = profile.full_name or profile.email or "Officer"
            subtitle = f"{role_label} • {club_name}" if club_name else role_label

            if term and term not in f"{label} {subtitle}".lower():
                continue
            options.append(
                RecipientOption(
                    key=str(user_id),
                    target_type=TargetType.OFFICER,
                    target_id=user_id,
                    label=label,
                    subtitle=subtitle,
                    avatar_url=profile.avatar_url,
                )
            )
        return options

    async def _admin_options(
        self, org_id: UUID, term: str, current_user_id: UUID
    ) -> List[RecipientOption]:
        admins = await self.store.list_profiles_by_roles(
            ADMIN_ROLES, exclude_id=current_user_id, org_id=org_id
        )
        if not admins:
            admins = await self.store.list_profiles_by_roles(
                ADMIN_ROLES, exclude_id=current_user_id
            )

        return [
            RecipientOption(
                key=str(profile.id),
                target_type=TargetType.ADMIN,
                target_id=profile.id,
                label=profile.full_name or profile.email or "Admin",
                subtitle="Admin",
                avatar_url=profile.avatar_url,
            )
            for profile in admins
            if not term
            or term in f"{profile.full_name or ''} {profile.email or ''}".lower()
        ]
