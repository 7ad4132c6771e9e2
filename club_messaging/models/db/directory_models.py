"""Dashboard-owned tables the messaging core only reads."""

import uuid

from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID

from club_messaging.database import Base


class ProfileModel(Base):
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    full_name = Column(String(255))
    email = Column(String(255))
    avatar_url = Column(String(1024))
    role = Column(String(50))
    club_id = Column(UUID(as_uuid=True))
    org_id = Column(UUID(as_uuid=True))


class ClubModel(Base):
    __tablename__ = "clubs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    cover_image_url = Column(String(1024))
    org_id = Column(UUID(as_uuid=True))
    primary_user_id = Column(UUID(as_uuid=True))


class OfficerModel(Base):
    __tablename__ = "officers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True))
    club_id = Column(UUID(as_uuid=True))
    role = Column(String(100))
