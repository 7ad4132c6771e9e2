from sqlalchemy import Column, DateTime, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declared_attr

from club_messaging.database import Base


class ReadReceiptColumns:
    """One row per (conversation, user); the primary key backs the upsert."""

    @declared_attr
    def conversation_id(cls):
        return Column(
            UUID(as_uuid=True),
            ForeignKey(f"{cls.__conversation_table__}.id", ondelete="CASCADE"),
            primary_key=True,
        )

    user_id = Column(UUID(as_uuid=True), primary_key=True)
    org_id = Column(UUID(as_uuid=True), nullable=False)
    last_read_at = Column(DateTime(timezone=True), default=func.now())


class MessageReadModel(ReadReceiptColumns, Base):
    """SQLAlchemy model for the general message_reads table."""

    __tablename__ = "message_reads"
    __conversation_table__ = "conversations"


class AdminMessageReadModel(ReadReceiptColumns, Base):
    """SQLAlchemy model for admin/club read receipts."""

    __tablename__ = "admin_message_reads"
    __conversation_table__ = "admin_conversations"
