from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .conversations import MemberType


class MemberRow(BaseModel):
    """A row of the conversation members table."""

    conversation_id: UUID
    org_id: UUID
    user_id: UUID
    member_type: MemberType
    club_id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MemberInfo(BaseModel):
    """Display identity of one conversation member."""

    user_id: UUID
    member_type: MemberType
    club_id: Optional[UUID] = None
    display_name: str
    avatar_url: Optional[str] = None
