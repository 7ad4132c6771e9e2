import logging
from enum import Enum
from typing import List, Optional, Set
from uuid import UUID

from club_messaging import config
from club_messaging.errors import SendFailedError, StoreError, TranscriptUnavailableError
from club_messaging.models.api.conversations import MemberType
from club_messaging.models.api.messages import ConversationMessage, MessagePage
from club_messaging.store import ConversationStore

logger = logging.getLogger(__name__)


class TranscriptState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    LOADING_OLDER = "loading_older"


def merge_message(
    messages: List[ConversationMessage], message: ConversationMessage
) -> bool:
    """Append a message unless one with the same id is already present."""
    if any(existing.id == message.id for existing in messages):
        return False
    messages.append(message)
    return True


class MessageTranscriptPager:
    """Transcript of the selected conversation, loaded page by page.

    Messages are kept oldest first. Every load captures a request token;
    a response whose token is no longer current belongs to a conversation
    that has since been switched away from and is discarded.
    """

    def __init__(self, store: ConversationStore, page_size: int = config.MESSAGE_PAGE_SIZE):
        if page_size <= 0:
            raise ValueError("Page size must be positive")
        self.store = store
        self.page_size = page_size
        self.state = TranscriptState.IDLE
        self.conversation_id: Optional[UUID] = None
        self.displayed_conversation_id: Optional[UUID] = None
        self.messages: List[ConversationMessage] = []
        self.has_more = False
        self.page = 0
        self._request_token = 0
        self._pending: List[ConversationMessage] = []

    @property
    def message_ids(self) -> Set[UUID]:
        return {message.id for message in self.messages}

    async def fetch_messages(
        self, conversation_id: UUID, page: int, page_size: Optional[int] = None
    ) -> MessagePage:
        """
        Fetch one page of a conversation:

        1. Query newest first with offset page * page_size
        2. Reverse locally so the page reads oldest first

        ``has_more`` is true whenever a full page came back, so a conversation
        holding an exact multiple of the page size costs one trailing empty
        fetch.
        """
        if page < 0:
            raise ValueError("Page must be non-negative")
        size = page_size or self.page_size

        try:
            rows = await self.store.fetch_message_page(
                conversation_id, offset=page * size, limit=size
            )
        except StoreError as e:
            raise TranscriptUnavailableError(
                f"Unable to load messages for conversation {conversation_id}"
            ) from e

        return MessagePage(messages=list(reversed(rows)), has_more=len(rows) == size)

    async def post_message(
        self,
        conversation_id: UUID,
        org_id: UUID,
        sender_id: UUID,
        sender_type: MemberType,
        body: str,
    ) -> ConversationMessage:
        """Insert a message. The caller merges the returned row."""
        try:
            return await self.store.insert_message(
                conversation_id=conversation_id,
                org_id=org_id,
                sender_id=sender_id,
                sender_type=sender_type,
                body=body,
            )
        except StoreError as e:
            raise SendFailedError(
                f"Unable to send message to conversation {conversation_id}"
            ) from e

    async def load(self, conversation_id: UUID) -> bool:
        """Load page 0 of a conversation, replacing the current transcript.

        Returns False when the response was discarded because another
        conversation was selected meanwhile.
        """
        self._request_token += 1
        token = self._request_token
        self.conversation_id = conversation_id
        self.state = TranscriptState.LOADING
        self._pending = []

        try:
            page = await self.fetch_messages(conversation_id, 0)
        except TranscriptUnavailableError:
            if token == self._request_token:
                self._restore_displayed()
            raise

        if token != self._request_token:
            logger.debug("Discarding stale first page of conversation %s", conversation_id)
            return False

        messages = list(page.messages)
        for message in self._pending:
            merge_message(messages, message)
        self._pending = []

        self.messages = messages
        self.has_more = page.has_more
        self.page = 0
        self.displayed_conversation_id = conversation_id
        self.state = TranscriptState.LOADED
        return True

    async def load_older(self) -> bool:
        """Prepend the next older page. No-op unless a loaded transcript has more."""
        if (
            self.conversation_id is None
            or self.state != TranscriptState.LOADED
            or not self.has_more
        ):
            return False

        token = self._request_token
        conversation_id = self.conversation_id
        next_page = self.page + 1
        self.state = TranscriptState.LOADING_OLDER

        try:
            page = await self.fetch_messages(conversation_id, next_page)
        except TranscriptUnavailableError:
            if token == self._request_token:
                self.state = TranscriptState.LOADED
            raise

        if token != self._request_token or conversation_id != self.conversation_id:
            logger.debug("Discarding stale page %s of conversation %s", next_page, conversation_id)
            return False

        existing = self.message_ids
        older = [message for message in page.messages if message.id not in existing]
        self.messages = older + self.messages
        self.has_more = page.has_more
        self.page = next_page
        self.state = TranscriptState.LOADED
        return True

    def merge(self, message: ConversationMessage) -> bool:
        """Append a live or just-sent message to the open transcript.

        Messages for a conversation whose first page is still in flight are
        held back and merged once that page lands.
        """
        if message.conversation_id != self.conversation_id:
            return False
        if self.state == TranscriptState.LOADING:
            return merge_message(self._pending, message)
        return merge_message(self.messages, message)

    def reset(self) -> None:
        self._request_token += 1
        self.state = TranscriptState.IDLE
        self.conversation_id = None
        self.displayed_conversation_id = None
        self.messages = []
        self.has_more = False
        self.page = 0
        self._pending = []

    def _restore_displayed(self) -> None:
        self.conversation_id = self.displayed_conversation_id
        self.state = (
            TranscriptState.LOADED
            if self.displayed_conversation_id is not None
            else TranscriptState.IDLE
        )
        self._pending = []

