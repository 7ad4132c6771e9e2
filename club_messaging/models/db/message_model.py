import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declared_attr

from club_messaging.database import Base


class MessageColumns:
    """Columns shared by both message table variants."""

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    @declared_attr
    def conversation_id(cls):
        return Column(
            UUID(as_uuid=True),
            ForeignKey(f"{cls.__conversation_table__}.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )

    org_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    sender_id = Column(UUID(as_uuid=True), nullable=False)
    sender_type = Column(String(20), nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now(), nullable=False)
    edited_at = Column(DateTime(timezone=True))


class MessageModel(MessageColumns, Base):
    """SQLAlchemy model for the general messages table."""

    __tablename__ = "messages"
    __conversation_table__ = "conversations"


class AdminMessageModel(MessageColumns, Base):
    """SQLAlchemy model for admin/club messages."""

    __tablename__ = "admin_messages"
    __conversation_table__ = "admin_conversations"
