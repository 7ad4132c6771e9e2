from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from club_messaging.backends import GENERAL_BACKEND
from club_messaging.errors import StoreError
from club_messaging.store import SqlConversationStore


def _factory(session: AsyncMock) -> MagicMock:
    """Session factory whose context manager yields the given session."""
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


class TestSqlConversationStore:
    @pytest.mark.asyncio
    async def test_reads_through_repository(self, mock_db: AsyncMock) -> None:
        conversation_id = uuid4()
        result = MagicMock()
        result.scalars.return_value.all.return_value = [conversation_id]
        mock_db.execute.return_value = result
        store = SqlConversationStore(_factory(mock_db), GENERAL_BACKEND)

        assert await store.list_membership_conversation_ids(uuid4()) == [conversation_id]
        mock_db.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_error_becomes_store_error(self, mock_db: AsyncMock) -> None:
        mock_db.execute.side_effect = OperationalError(
            "SELECT", {}, Exception("connection reset")
        )
        store = SqlConversationStore(_factory(mock_db), GENERAL_BACKEND)

        with pytest.raises(StoreError):
            await store.get_members([uuid4()])
        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_batch_skips_the_database(self, mock_db: AsyncMock) -> None:
        store = SqlConversationStore(_factory(mock_db), GENERAL_BACKEND)

        assert await store.get_members([]) == []
        mock_db.execute.assert_not_awaited()
