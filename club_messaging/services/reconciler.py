"""Merges change-feed events into an open messaging session."""

import logging
from typing import TYPE_CHECKING

from club_messaging.errors import MessagingError
from club_messaging.events import (
    ConversationMetadataChanged,
    FeedEvent,
    MessageInserted,
    Subscription,
)
from club_messaging.models.api.messages import ConversationMessage

if TYPE_CHECKING:
    from club_messaging.services.messaging_session import MessagingSession

logger = logging.getLogger(__name__)


class LiveUpdateReconciler:
    """Applies live inserts and metadata changes to the directory and transcript."""

    def __init__(self, session: "MessagingSession"):
        self.session = session

    async def handle(self, event: FeedEvent) -> None:
        if isinstance(event, MessageInserted):
            await self.on_message_inserted(event.message)
        elif isinstance(event, ConversationMetadataChanged):
            logger.debug("Conversation %s changed, refreshing", event.conversation_id)
            await self.session.refresh_conversations()

    async def on_message_inserted(self, message: ConversationMessage) -> None:
        """
        Merge one inserted message:

        1. Patch its summary and move it to the front, or refresh the whole
           directory when the conversation is not listed yet
        2. If it belongs to the open conversation, append it to the transcript
           and move the read position
        """
        session = self.session

        # Step 1: Directory
        if not session.apply_message(message):
            await session.refresh_conversations()

        # Step 2: Transcript
        if message.conversation_id == session.selected_conversation_id:
            session.transcript.merge(message)
            await session.mark_read(message.conversation_id)

    async def run(self, subscription: Subscription) -> None:
        """Consume events until the subscription closes."""
        async for event in subscription:
            try:
                await self.handle(event)
            except MessagingError as e:
                logger.warning("Failed to apply %s event: %s", event.kind, e)
