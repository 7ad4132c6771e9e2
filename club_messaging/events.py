"""Typed change-feed events and the in-process hub that fans them out."""

import asyncio
import logging
from typing import AsyncIterator, Dict, List, Literal, Optional, Tuple, Union
from uuid import UUID

from pydantic import BaseModel

from club_messaging.models.api.messages import ConversationMessage

logger = logging.getLogger(__name__)


class MessageInserted(BaseModel):
    kind: Literal["message_inserted"] = "message_inserted"
    org_id: UUID
    message: ConversationMessage


class ConversationMetadataChanged(BaseModel):
    kind: Literal["conversation_metadata_changed"] = "conversation_metadata_changed"
    org_id: UUID
    conversation_id: UUID


FeedEvent = Union[MessageInserted, ConversationMetadataChanged]

SubscriptionKey = Tuple[UUID, UUID]


class Subscription:
    """Queue of events for one (org, user) pair.

    Iterate with ``async for``; iteration ends once the subscription is closed.
    """

    def __init__(self, feed: "ChangeFeed", org_id: UUID, user_id: UUID):
        self.feed = feed
        self.org_id = org_id
        self.user_id = user_id
        self.closed = False
        self._queue: "asyncio.Queue[Optional[FeedEvent]]" = asyncio.Queue()

    @property
    def key(self) -> SubscriptionKey:
        return (self.org_id, self.user_id)

    def deliver(self, event: FeedEvent) -> None:
        if not self.closed:
            self._queue.put_nowait(event)

    async def get(self) -> Optional[FeedEvent]:
        """Next event, or None once the subscription is closed.

        Events still queued at close time are dropped.
        """
        if self.closed:
            return None
        event = await self._queue.get()
        if self.closed:
            return None
        return event

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # Wake a pending reader
        self._queue.put_nowait(None)
        self.feed._discard(self)

    def __aiter__(self) -> AsyncIterator[FeedEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[FeedEvent]:
        while True:
            event = await self.get()
            if event is None:
                return
            yield event

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class ChangeFeed:
    """Org-scoped publish/subscribe hub for change events."""

    def __init__(self) -> None:
        self._subscriptions: Dict[SubscriptionKey, Subscription] = {}

    def subscribe(self, org_id: UUID, user_id: UUID) -> Subscription:
        """Open the single subscription for (org, user), closing any previous one."""
        previous = self._subscriptions.get((org_id, user_id))
        if previous is not None:
            logger.debug("Replacing subscription for org %s user %s", org_id, user_id)
            previous.close()
        subscription = Subscription(self, org_id, user_id)
        self._subscriptions[subscription.key] = subscription
        return subscription

    def publish(self, event: FeedEvent) -> int:
        """Deliver an event to every subscription of its org."""
        targets: List[Subscription] = [
            subscription
            for subscription in self._subscriptions.values()
            if subscription.org_id == event.org_id
        ]
        for subscription in targets:
            subscription.deliver(event)
        return len(targets)

    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def has_subscribers(self, org_id: UUID) -> bool:
        return any(key[0] == org_id for key in self._subscriptions)

    def close(self) -> None:
        for subscription in list(self._subscriptions.values()):
            subscription.close()

    def _discard(self, subscription: Subscription) -> None:
        if self._subscriptions.get(subscription.key) is subscription:
            del self._subscriptions[subscription.key]
