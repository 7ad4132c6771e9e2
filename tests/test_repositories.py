from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from club_messaging.backends import ADMIN_BACKEND, GENERAL_BACKEND
from club_messaging.models.api.conversations import (
    ConversationCategory,
    ConversationRow,
    MemberType,
    TargetType,
)
from club_messaging.models.api.members import MemberRow
from club_messaging.models.db import (
    AdminConversationMemberModel,
    ConversationModel,
)
from club_messaging.repositories import (
    ClubRepository,
    ConversationRepository,
    MemberRepository,
    MessageRepository,
    OfficerRepository,
    ReadReceiptRepository,
)
from club_messaging.repositories.base_repository import BaseRepository


def _sql(mock_db: Any) -> str:
    """SQL of the last statement handed to the mocked session."""
    statement = mock_db.execute.call_args[0][0]
    return str(statement.compile(dialect=postgresql.dialect()))


def _scalars_result(rows: list) -> MagicMock:
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    result.scalars.return_value.first.return_value = rows[0] if rows else None
    return result


def _conversation_row(**overrides: Any) -> SimpleNamespace:
    now = datetime.now(timezone.utc)
    values = dict(
        id=uuid4(),
        org_id=uuid4(),
        category="clubs",
        target_type="club",
        target_id=uuid4(),
        subject=None,
        campus_id=None,
        created_by=uuid4(),
        created_at=now,
        updated_at=now,
        last_message_at=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _message_row(conversation_id: Any, **overrides: Any) -> SimpleNamespace:
    values = dict(
        id=uuid4(),
        conversation_id=conversation_id,
        org_id=uuid4(),
        sender_id=uuid4(),
        sender_type="club",
        body="Hi",
        created_at=datetime.now(timezone.utc),
        edited_at=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestBaseRepository:
    """Unit tests for BaseRepository functionality."""

    def test_base_repository_creation(self, mock_db: Any) -> None:
        repo: BaseRepository[ConversationModel, ConversationRow] = BaseRepository(
            mock_db, ConversationModel, ConversationRow
        )
        assert repo.db is mock_db
        assert repo.model_class is ConversationModel
        assert repo.pydantic_class is ConversationRow

    @pytest.mark.asyncio
    async def test_get_by_id_converts_row(self, mock_db: Any) -> None:
        repo = ConversationRepository(mock_db, GENERAL_BACKEND)
        row = _conversation_row()
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = row
        mock_db.execute.return_value = mock_result

        result = await repo.get_by_id(row.id)

        assert isinstance(result, ConversationRow)
        assert result.id == row.id
        assert result.category == ConversationCategory.CLUBS
        mock_db.execute.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_by_id_not_found(self, mock_db: Any) -> None:
        repo = ConversationRepository(mock_db, GENERAL_BACKEND)
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_db.execute.return_value = mock_result

        assert await repo.get_by_id(uuid4()) is None

    @pytest.mark.asyncio
    async def test_create_commits_and_refreshes(self, mock_db: Any) -> None:
        repo = ConversationRepository(mock_db, GENERAL_BACKEND)
        stored = ConversationRow.model_validate(_conversation_row())

        with patch.object(repo, "_to_pydantic", return_value=stored):
            result = await repo.create(org_id=stored.org_id, category="clubs")

        assert result is stored
        mock_db.add.assert_called_once()
        mock_db.commit.assert_called_once()
        mock_db.refresh.assert_called_once()


class TestConversationRepository:
    """Unit tests for ConversationRepository."""

    @pytest.mark.asyncio
    async def test_get_by_ids_empty_skips_query(self, mock_db: Any) -> None:
        repo = ConversationRepository(mock_db, GENERAL_BACKEND)

        assert await repo.get_by_ids([]) == []
        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_by_ids_orders_by_activity(self, mock_db: Any) -> None:
        repo = ConversationRepository(mock_db, GENERAL_BACKEND)
        rows = [_conversation_row(), _conversation_row()]
        mock_db.execute.return_value = _scalars_result(rows)

        result = await repo.get_by_ids([row.id for row in rows], org_id=uuid4())

        assert [r.id for r in result] == [row.id for row in rows]
        sql = _sql(mock_db)
        assert "FROM conversations" in sql
        assert "last_message_at DESC NULLS LAST" in sql
        assert "conversations.org_id" in sql

    @pytest.mark.asyncio
    async def test_admin_backend_reads_admin_tables(self, mock_db: Any) -> None:
        repo = ConversationRepository(mock_db, ADMIN_BACKEND)
        mock_db.execute.return_value = _scalars_result([])

        await repo.get_by_ids([uuid4()])

        assert "FROM admin_conversations" in _sql(mock_db)

    @pytest.mark.asyncio
    async def test_create_conversation_stores_enum_values(self, mock_db: Any) -> None:
        repo = ConversationRepository(mock_db, GENERAL_BACKEND)
        org_id, creator = uuid4(), uuid4()

        with patch.object(repo, "create", new_callable=AsyncMock) as mock_create:
            await repo.create_conversation(
                org_id=org_id,
                category=ConversationCategory.OFFICERS,
                target_type=TargetType.OFFICER,
                target_id=None,
                created_by=creator,
            )

        kwargs = mock_create.call_args.kwargs
        assert kwargs["category"] == "officers"
        assert kwargs["target_type"] == "officer"
        assert kwargs["created_by"] == creator


class TestMemberRepository:
    """Unit tests for MemberRepository."""

    @pytest.mark.asyncio
    async def test_add_members_inserts_variant_models(self, mock_db: Any) -> None:
        repo = MemberRepository(mock_db, ADMIN_BACKEND)
        conversation_id, org_id = uuid4(), uuid4()
        members = [
            MemberRow(
                conversation_id=conversation_id,
                org_id=org_id,
                user_id=uuid4(),
                member_type=MemberType.ADMIN,
            ),
            MemberRow(
                conversation_id=conversation_id,
                org_id=org_id,
                user_id=uuid4(),
                member_type=MemberType.CLUB,
                club_id=uuid4(),
            ),
        ]

        result = await repo.add_members(iter(members))

        assert result == members
        [models] = mock_db.add_all.call_args[0]
        assert all(isinstance(m, AdminConversationMemberModel) for m in models)
        assert [m.member_type for m in models] == ["admin", "club"]
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_find_conversation_with_club_member(self, mock_db: Any) -> None:
        repo = MemberRepository(mock_db, GENERAL_BACKEND)
        found = uuid4()
        mock_db.execute.return_value = _scalars_result([found])

        result = await repo.find_conversation_with_member([uuid4()], club_id=uuid4())

        assert result == found
        sql = _sql(mock_db)
        assert "conversation_members.member_type" in sql
        assert "conversation_members.club_id" in sql

    @pytest.mark.asyncio
    async def test_find_conversation_without_candidates(self, mock_db: Any) -> None:
        repo = MemberRepository(mock_db, GENERAL_BACKEND)

        assert await repo.find_conversation_with_member([], user_id=uuid4()) is None
        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_membership_ids_can_be_org_scoped(self, mock_db: Any) -> None:
        repo = MemberRepository(mock_db, ADMIN_BACKEND)
        ids = [uuid4(), uuid4()]
        mock_db.execute.return_value = _scalars_result(ids)

        result = await repo.get_conversation_ids_for_user(uuid4(), org_id=uuid4())

        assert result == ids
        assert "admin_conversation_members.org_id" in _sql(mock_db)


class TestMessageRepository:
    """Unit tests for MessageRepository."""

    @pytest.mark.asyncio
    async def test_get_page_is_newest_first_with_offset(self, mock_db: Any) -> None:
        repo = MessageRepository(mock_db, GENERAL_BACKEND)
        conversation_id = uuid4()
        mock_db.execute.return_value = _scalars_result([_message_row(conversation_id)])

        result = await repo.get_page(conversation_id, offset=30, limit=30)

        assert len(result) == 1
        sql = _sql(mock_db)
        assert "ORDER BY messages.created_at DESC, messages.id DESC" in sql
        assert "LIMIT" in sql and "OFFSET" in sql

    @pytest.mark.asyncio
    async def test_latest_messages_keyed_by_conversation(self, mock_db: Any) -> None:
        repo = MessageRepository(mock_db, GENERAL_BACKEND)
        first, second = uuid4(), uuid4()
        mock_db.execute.return_value = _scalars_result(
            [_message_row(first, body="a"), _message_row(second, body="b")]
        )

        result = await repo.get_latest_by_conversations([first, second])

        assert result[first].body == "a"
        assert result[second].body == "b"
        assert "row_number() OVER" in _sql(mock_db)

    @pytest.mark.asyncio
    async def test_count_unread_excludes_own_messages(self, mock_db: Any) -> None:
        repo = MessageRepository(mock_db, GENERAL_BACKEND)
        mock_result = MagicMock()
        mock_result.scalar.return_value = 4
        mock_db.execute.return_value = mock_result

        count = await repo.count_unread(uuid4(), datetime.now(timezone.utc), uuid4())

        assert count == 4
        sql = _sql(mock_db)
        assert "messages.sender_id !=" in sql
        assert "messages.created_at >" in sql

    @pytest.mark.asyncio
    async def test_count_unread_with_no_rows(self, mock_db: Any) -> None:
        repo = MessageRepository(mock_db, GENERAL_BACKEND)
        mock_result = MagicMock()
        mock_result.scalar.return_value = None
        mock_db.execute.return_value = mock_result

        assert await repo.count_unread(uuid4(), datetime.now(timezone.utc), uuid4()) == 0


class TestReadReceiptRepository:
    """Unit tests for ReadReceiptRepository."""

    @pytest.mark.asyncio
    async def test_upsert_uses_on_conflict(self, mock_db: Any) -> None:
        repo = ReadReceiptRepository(mock_db, GENERAL_BACKEND)
        conversation_id, org_id, user_id = uuid4(), uuid4(), uuid4()
        at = datetime.now(timezone.utc)

        receipt = await repo.upsert(conversation_id, org_id, user_id, at)

        assert receipt.last_read_at == at
        sql = _sql(mock_db)
        assert "INSERT INTO message_reads" in sql
        assert "ON CONFLICT (conversation_id, user_id) DO UPDATE" in sql
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_for_user_without_conversations(self, mock_db: Any) -> None:
        repo = ReadReceiptRepository(mock_db, GENERAL_BACKEND)

        assert await repo.get_for_user(uuid4(), []) == []
        mock_db.execute.assert_not_called()


class TestDirectoryRepositories:
    """Unit tests for the profile, club and officer repositories."""

    @pytest.mark.asyncio
    async def test_list_clubs_with_unscoped(self, mock_db: Any) -> None:
        repo = ClubRepository(mock_db)
        club = SimpleNamespace(
            id=uuid4(), name="Robotics", cover_image_url=None, org_id=None, primary_user_id=None
        )
        mock_db.execute.return_value = _scalars_result([club])

        result = await repo.list_clubs(uuid4(), include_unscoped=True, name_contains="rob")

        assert [c.name for c in result] == ["Robotics"]
        sql = _sql(mock_db)
        assert "clubs.org_id IS NULL" in sql
        assert "ILIKE" in sql.upper()

    @pytest.mark.asyncio
    async def test_first_officer_user_id(self, mock_db: Any) -> None:
        repo = OfficerRepository(mock_db)
        user_id = uuid4()
        mock_db.execute.return_value = _scalars_result([user_id])

        assert await repo.first_user_id_for_club(uuid4()) == user_id
        assert "officers.user_id IS NOT NULL" in _sql(mock_db)
