import uuid

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from club_messaging.database import Base


class ConversationColumns:
    """Columns shared by both conversation table variants."""

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    category = Column(String(20), nullable=False)
    target_type = Column(String(20))
    target_id = Column(UUID(as_uuid=True))
    subject = Column(String(255))
    campus_id = Column(UUID(as_uuid=True))
    created_by = Column(UUID(as_uuid=True))
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )
    last_message_at = Column(DateTime(timezone=True))

    # Constraints (enforced by database CHECK constraints in the migration)
    # category IN ('clubs', 'officers', 'admins', 'others', 'dm')
    # target_type IN ('club', 'officer', 'admin', 'other')


class ConversationModel(ConversationColumns, Base):
    """SQLAlchemy model for the general conversations table."""

    __tablename__ = "conversations"


class AdminConversationModel(ConversationColumns, Base):
    """SQLAlchemy model for admin/club conversations."""

    __tablename__ = "admin_conversations"
