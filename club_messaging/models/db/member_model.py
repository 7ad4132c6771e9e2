from sqlalchemy import Column, DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declared_attr

from club_messaging.database import Base


class MemberColumns:
    """Columns shared by both conversation member table variants."""

    @declared_attr
    def conversation_id(cls):
        return Column(
            UUID(as_uuid=True),
            ForeignKey(f"{cls.__conversation_table__}.id", ondelete="CASCADE"),
            primary_key=True,
        )

    user_id = Column(UUID(as_uuid=True), primary_key=True)
    org_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    member_type = Column(String(20), nullable=False)
    club_id = Column(UUID(as_uuid=True))
    created_at = Column(DateTime(timezone=True), default=func.now())

    # member_type IN ('admin', 'club', 'officer', 'other')


class ConversationMemberModel(MemberColumns, Base):
    """SQLAlchemy model for the general conversation_members table."""

    __tablename__ = "conversation_members"
    __conversation_table__ = "conversations"


class AdminConversationMemberModel(MemberColumns, Base):
    """SQLAlchemy model for admin/club conversation members."""

    __tablename__ = "admin_conversation_members"
    __conversation_table__ = "admin_conversations"
