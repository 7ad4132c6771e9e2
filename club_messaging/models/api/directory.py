from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .conversations import TargetType


class MessagingProfile(BaseModel):
    """Profile of a dashboard user as the messaging core sees it."""

    id: UUID
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    role: Optional[str] = None
    club_id: Optional[UUID] = None
    org_id: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class ClubRow(BaseModel):
    id: UUID
    name: str
    cover_image_url: Optional[str] = None
    org_id: Optional[UUID] = None
    primary_user_id: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class OfficerRow(BaseModel):
    user_id: Optional[UUID] = None
    club_id: Optional[UUID] = None
    role: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RecipientTab(str, Enum):
    CLUB = "club"
    OFFICER = "officer"
    ADMIN = "admin"


class RecipientOption(BaseModel):
    """Entry of the new-conversation recipient picker."""

    key: str
    target_type: TargetType
    target_id: UUID
    label: str
    subtitle: Optional[str] = None
    avatar_url: Optional[str] = None
