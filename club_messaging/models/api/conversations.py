from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MemberType(str, Enum):
    ADMIN = "admin"
    CLUB = "club"
    OFFICER = "officer"
    OTHER = "other"


class TargetType(str, Enum):
    CLUB = "club"
    OFFICER = "officer"
    ADMIN = "admin"
    OTHER = "other"


class ConversationCategory(str, Enum):
    CLUBS = "clubs"
    OFFICERS = "officers"
    ADMINS = "admins"
    OTHERS = "others"
    DM = "dm"


class ConversationRow(BaseModel):
    """A row of the conversations table."""

    id: UUID
    org_id: UUID
    category: ConversationCategory
    target_type: Optional[TargetType] = None
    target_id: Optional[UUID] = None
    subject: Optional[str] = None
    campus_id: Optional[UUID] = None
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: datetime
    last_message_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ConversationSummary(BaseModel):
    """Read model behind one entry of the conversation list."""

    id: UUID
    org_id: UUID
    category: ConversationCategory
    target_type: Optional[TargetType] = None
    target_id: Optional[UUID] = None
    subject: Optional[str] = None
    title: str
    avatar_url: Optional[str] = None
    other_member_type: Optional[MemberType] = None
    other_club_id: Optional[UUID] = None
    updated_at: datetime
    last_message_at: Optional[datetime] = None
    preview: str
    last_message_sender_id: Optional[UUID] = None
    unread_count: int = 0

    @property
    def activity_at(self) -> datetime:
        """Timestamp the conversation list is ordered by."""
        return self.last_message_at or self.updated_at


class StartConversationRequest(BaseModel):
    """Request model for opening (or reusing) a conversation."""

    target_type: TargetType = Field(..., description="Kind of recipient")
    target_id: UUID = Field(..., description="Club id or user id of the recipient")
    subject: Optional[str] = Field(default=None, description="Optional subject line")
    campus_id: Optional[UUID] = Field(default=None, description="Optional campus")


class StartConversationResponse(BaseModel):
    conversation_id: UUID
