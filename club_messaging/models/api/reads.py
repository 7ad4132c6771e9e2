from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ReadReceiptRow(BaseModel):
    """Per-user read position in a conversation."""

    conversation_id: UUID
    org_id: UUID
    user_id: UUID
    last_read_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MarkReadRequest(BaseModel):
    """Request model for moving the read position."""

    at: Optional[datetime] = Field(
        default=None, description="Read position; defaults to now"
    )
