"""Bridge from PostgreSQL LISTEN/NOTIFY to the in-process change feed.

The migration installs triggers that ``pg_notify`` a small JSON document
(table, operation and row keys) on the configured channel for every message
insert and conversation update. Message rows are re-read through the store
so oversized bodies never travel through NOTIFY.
"""

import asyncio
import json
import logging
from typing import Any, Optional, Set
from uuid import UUID

from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from club_messaging import config
from club_messaging.backends import MessagingBackend
from club_messaging.errors import StoreError
from club_messaging.events import (
    ChangeFeed,
    ConversationMetadataChanged,
    FeedEvent,
    MessageInserted,
)
from club_messaging.store import ConversationStore

logger = logging.getLogger(__name__)


class ChangeNotification(BaseModel):
    """Payload written by the change triggers."""

    table: str
    operation: str
    id: UUID
    org_id: UUID


class PostgresChangeListener:
    """Listens on a NOTIFY channel and publishes typed events to a feed."""

    def __init__(
        self,
        engine: AsyncEngine,
        feed: ChangeFeed,
        store: ConversationStore,
        backend: MessagingBackend,
        channel: str = config.CHANGE_FEED_CHANNEL,
    ):
        self.engine = engine
        self.feed = feed
        self.store = store
        self.backend = backend
        self.channel = channel
        self._connection: Optional[AsyncConnection] = None
        self._driver_connection: Any = None
        self._pending: Set["asyncio.Task[Optional[FeedEvent]]"] = set()

    async def start(self) -> None:
        """Open a dedicated connection and register the NOTIFY callback."""
        self._connection = await self.engine.connect()
        raw_connection = await self._connection.get_raw_connection()
        self._driver_connection = raw_connection.driver_connection
        await self._driver_connection.add_listener(self.channel, self._on_notify)
        logger.info("Listening for changes on channel %s", self.channel)

    async def stop(self) -> None:
        if self._driver_connection is not None:
            await self._driver_connection.remove_listener(self.channel, self._on_notify)
            self._driver_connection = None
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    def _on_notify(self, connection: Any, pid: int, channel: str, payload: str) -> None:
        task = asyncio.get_running_loop().create_task(self.handle_payload(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def parse_payload(self, payload: str) -> Optional[ChangeNotification]:
        try:
            return ChangeNotification.model_validate(json.loads(payload))
        except (ValueError, ValidationError):
            logger.warning("Dropping malformed change notification: %s", payload)
            return None

    async def handle_payload(self, payload: str) -> Optional[FeedEvent]:
        """Turn one NOTIFY payload into a published event."""
        notification = self.parse_payload(payload)
        if notification is None:
            return None
        if not self.feed.has_subscribers(notification.org_id):
            logger.debug("No subscribers in org %s, skipping notification", notification.org_id)
            return None

        event: Optional[FeedEvent] = None
        if (
            notification.table == self.backend.message_table
            and notification.operation == "INSERT"
        ):
            try:
                message = await self.store.get_message(notification.id)
            except StoreError:
                logger.exception("Could not load inserted message %s", notification.id)
                return None
            if message is None:
                return None
            event = MessageInserted(org_id=notification.org_id, message=message)
        elif (
            notification.table == self.backend.conversation_table
            and notification.operation == "UPDATE"
        ):
            event = ConversationMetadataChanged(
                org_id=notification.org_id, conversation_id=notification.id
            )

        if event is not None:
            self.feed.publish(event)
        return event
