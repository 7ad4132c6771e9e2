from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .conversations import MemberType


class ConversationMessage(BaseModel):
    """A row of the messages table. Immutable once created."""

    id: UUID
    conversation_id: UUID
    org_id: UUID
    sender_id: UUID
    sender_type: MemberType
    body: str
    created_at: datetime
    edited_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


class MessagePage(BaseModel):
    """One transcript page, oldest message first."""

    messages: List[ConversationMessage]
    has_more: bool


class SendMessageRequest(BaseModel):
    """Request model for sending a message."""

    body: str = Field(..., description="Message content")
