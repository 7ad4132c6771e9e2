"""Per-user messaging session.

Owns the conversation list, the open transcript and the change-feed
subscription of one authenticated user. Construct it once per user, use it
as an async context manager (or call ``open``/``close``), and drop it on
logout.
"""

import asyncio
import logging
from typing import Dict, List, Optional
from uuid import UUID

from club_messaging import config
from club_messaging.backends import GENERAL_BACKEND, MessagingBackend
from club_messaging.cache import LRUCache
from club_messaging.errors import (
    MessagingError,
    SendInProgressError,
    StoreError,
    TranscriptUnavailableError,
)
from club_messaging.events import ChangeFeed, Subscription
from club_messaging.models.api.conversations import ConversationSummary, TargetType
from club_messaging.models.api.directory import (
    ClubRow,
    MessagingProfile,
    RecipientOption,
    RecipientTab,
)
from club_messaging.models.api.members import MemberInfo
from club_messaging.models.api.messages import ConversationMessage
from club_messaging.scope import PreferenceStore, resolve_member_type, resolve_org_id
from club_messaging.services.conversation_creation_service import (
    ConversationCreationService,
)
from club_messaging.services.conversation_directory_service import (
    ConversationDirectoryService,
    apply_message_to_summaries,
    zero_unread,
)
from club_messaging.services.reconciler import LiveUpdateReconciler
from club_messaging.services.transcript_service import MessageTranscriptPager
from club_messaging.store import ConversationStore

logger = logging.getLogger(__name__)


class MessagingSession:
    def __init__(
        self,
        store: ConversationStore,
        profile: MessagingProfile,
        backend: MessagingBackend = GENERAL_BACKEND,
        feed: Optional[ChangeFeed] = None,
        preferences: Optional[PreferenceStore] = None,
        page_size: int = config.MESSAGE_PAGE_SIZE,
        member_cache_size: int = config.MEMBER_DIRECTORY_CACHE_SIZE,
    ):
        self.store = store
        self.backend = backend
        self.feed = feed
        self.preferences = preferences
        self.profile = profile
        self.org_id = resolve_org_id(profile, preferences)

        self.directory = ConversationDirectoryService(store, backend)
        self.transcript = MessageTranscriptPager(store, page_size)
        self.creation = ConversationCreationService(store, backend)
        self.reconciler = LiveUpdateReconciler(self)

        self.conversations: List[ConversationSummary] = []
        self.search = ""
        self.selected_conversation_id: Optional[UUID] = None
        self.member_directory: Dict[UUID, MemberInfo] = {}
        self.sending_message = False
        self.creating_conversation = False

        self._member_cache: LRUCache[UUID, Dict[UUID, MemberInfo]] = LRUCache(
            max_size=member_cache_size
        )
        self._subscription: Optional[Subscription] = None
        self._task: Optional["asyncio.Task[None]"] = None

    @property
    def user_id(self) -> UUID:
        return self.profile.id

    @property
    def selected_conversation(self) -> Optional[ConversationSummary]:
        return next(
            (c for c in self.conversations if c.id == self.selected_conversation_id),
            None,
        )

    @property
    def messages(self) -> List[ConversationMessage]:
        return self.transcript.messages

    # Lifecycle

    async def open(self) -> None:
        """Subscribe to live updates and load the conversation list.

        A failed load releases the subscription before the error propagates.
        """
        self._subscribe()
        try:
            await self.refresh_conversations()
        except BaseException:
            await self.close()
            raise

    async def close(self) -> None:
        """Release the change-feed subscription. Safe to call twice."""
        subscription, task = self._subscription, self._task
        self._subscription, self._task = None, None
        if subscription is not None:
            subscription.close()
        if task is not None:
            await task

    async def __aenter__(self) -> "MessagingSession":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def update_profile(self, profile: MessagingProfile) -> None:
        """Swap the acting profile; a new org or user restarts the session."""
        org_id = resolve_org_id(profile, self.preferences)
        if org_id == self.org_id and profile.id == self.profile.id:
            self.profile = profile
            return

        logger.info("Messaging scope changed to org %s user %s", org_id, profile.id)
        # Events queued for the old scope must not run as the new user
        await self.close()
        self.profile = profile
        self.org_id = org_id
        self.conversations = []
        self.selected_conversation_id = None
        self.member_directory = {}
        self._member_cache.clear()
        self.transcript.reset()
        await self.open()

    def _subscribe(self) -> None:
        if self.feed is None or self._subscription is not None:
            return
        self._subscription = self.feed.subscribe(self.org_id, self.user_id)
        self._task = asyncio.create_task(self.reconciler.run(self._subscription))

    # Directory and transcript

    async def refresh_conversations(self, select_fallback: bool = True) -> None:
        """Reload the conversation list.

        On failure the previous list stays in place and the error propagates.
        When the selection is missing from the new list the first listed
        conversation is selected instead.
        """
        self.conversations = await self.directory.fetch_conversation_summaries(
            self.user_id, self.org_id, self.search
        )
        if not select_fallback:
            return

        listed = {conversation.id for conversation in self.conversations}
        if self.selected_conversation_id in listed:
            return
        if self.conversations:
            await self.select_conversation(self.conversations[0].id)
        elif self.selected_conversation_id is not None:
            self.selected_conversation_id = None
            self.member_directory = {}
            self.transcript.reset()

    async def set_search(self, search: str) -> None:
        self.search = search
        await self.refresh_conversations()

    async def select_conversation(self, conversation_id: UUID) -> bool:
        """
        Open a conversation:

        1. Load its first transcript page
        2. Mark it read
        3. Load its member directory

        Returns False when a later selection superseded this one.
        """
        self.selected_conversation_id = conversation_id

        # Step 1: Transcript
        try:
            loaded = await self.transcript.load(conversation_id)
        except TranscriptUnavailableError:
            if self.selected_conversation_id == conversation_id:
                self.selected_conversation_id = self.transcript.displayed_conversation_id
            raise
        if not loaded:
            return False

        # Step 2: Read position
        try:
            await self.mark_read(conversation_id)
        except MessagingError as e:
            logger.warning("Failed to mark conversation %s read: %s", conversation_id, e)

        # Step 3: Member directory
        await self.load_member_directory(conversation_id)
        return True

    async def load_older(self) -> bool:
        return await self.transcript.load_older()

    async def mark_read(self, conversation_id: UUID) -> None:
        await self.directory.mark_conversation_read(
            conversation_id, self.org_id, self.user_id
        )
        self.conversations = zero_unread(self.conversations, conversation_id)

    async def load_member_directory(self, conversation_id: UUID) -> Dict[UUID, MemberInfo]:
        members = self._member_cache.get(conversation_id)
        if members is None:
            try:
                members = await self.directory.fetch_member_directory(conversation_id)
            except StoreError as e:
                logger.warning("Failed to load members of %s: %s", conversation_id, e)
                members = {}
            else:
                self._member_cache.put(conversation_id, members)
        if conversation_id == self.selected_conversation_id:
            self.member_directory = members
        return members

    def apply_message(self, message: ConversationMessage) -> bool:
        """Patch the summary of a new message. False when it is not listed."""
        updated = apply_message_to_summaries(
            self.conversations,
            message,
            self.selected_conversation_id,
            self.user_id,
            self.backend,
        )
        if updated is None:
            return False
        self.conversations = updated
        return True

    # Writes

    async def send_message(self, body: str) -> Optional[ConversationMessage]:
        """Send to the selected conversation. Blank bodies are ignored."""
        trimmed = body.strip()
        conversation_id = self.selected_conversation_id
        if not trimmed or conversation_id is None:
            return None
        if self.sending_message:
            raise SendInProgressError("A message is already being sent")

        self.sending_message = True
        try:
            message = await self.transcript.post_message(
                conversation_id,
                self.org_id,
                self.user_id,
                resolve_member_type(self.profile),
                trimmed,
            )
            self.transcript.merge(message)
            self.apply_message(message)
            try:
                await self.mark_read(conversation_id)
            except MessagingError as e:
                logger.warning("Sent message %s but failed to mark read: %s", message.id, e)
            return message
        finally:
            self.sending_message = False

    async def start_conversation(
        self,
        target_type: TargetType,
        target_id: UUID,
        subject: Optional[str] = None,
        campus_id: Optional[UUID] = None,
    ) -> UUID:
        """Open (or reuse) a conversation with a target and select it."""
        self.creating_conversation = True
        try:
            conversation_id = await self.creation.get_or_create_conversation(
                org_id=self.org_id,
                current_user_id=self.user_id,
                creator_type=resolve_member_type(self.profile),
                target_type=target_type,
                target_id=target_id,
                subject=subject,
                campus_id=campus_id,
            )
            await self.refresh_conversations(select_fallback=False)
            await self.select_conversation(conversation_id)
            return conversation_id
        finally:
            self.creating_conversation = False

    async def start_conversation_with_club(
        self,
        club: ClubRow,
        subject: Optional[str] = None,
        campus_id: Optional[UUID] = None,
    ) -> UUID:
        return await self.start_conversation(
            TargetType.CLUB, club.id, subject=subject, campus_id=campus_id
        )

    async def fetch_recipient_options(
        self, tab: RecipientTab, search: str = ""
    ) -> List[RecipientOption]:
        return await self.creation.fetch_recipient_options(
            self.org_id, tab, search, self.user_id
        )

    async def fetch_clubs_for_new_conversation(self, search: str = "") -> List[ClubRow]:
        return await self.creation.fetch_clubs_for_new_conversation(self.org_id, search)
