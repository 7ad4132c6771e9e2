"""Read-only access to the dashboard's profile, club and officer tables."""

from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from club_messaging.models.api.directory import ClubRow, MessagingProfile, OfficerRow
from club_messaging.models.db.directory_models import (
    ClubModel,
    OfficerModel,
    ProfileModel,
)
from club_messaging.repositories.base_repository import BaseRepository


class ProfileRepository(BaseRepository[ProfileModel, MessagingProfile]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, ProfileModel, MessagingProfile)

    async def get_scoped(
        self, profile_id: UUID, org_id: Optional[UUID] = None
    ) -> Optional[MessagingProfile]:
        query = select(self.model_class).where(self.model_class.id == profile_id)
        if org_id is not None:
            query = query.where(self.model_class.org_id == org_id)
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def get_by_ids(
        self, profile_ids: Sequence[UUID], org_id: Optional[UUID] = None
    ) -> List[MessagingProfile]:
        if not profile_ids:
            return []
        query = select(self.model_class).where(
            self.model_class.id.in_(list(profile_ids))
        )
        if org_id is not None:
            query = query.where(self.model_class.org_id == org_id)
        result = await self.db.execute(query)
        return self._to_pydantic_list(result.scalars().all())

    async def list_by_roles(
        self,
        roles: Sequence[str],
        exclude_id: UUID,
        org_id: Optional[UUID] = None,
    ) -> List[MessagingProfile]:
        """Profiles holding one of the roles, ordered by name."""
        query = select(self.model_class).where(
            self.model_class.role.in_(list(roles)),
            self.model_class.id != exclude_id,
        )
        if org_id is not None:
            query = query.where(self.model_class.org_id == org_id)
        result = await self.db.execute(query.order_by(self.model_class.full_name))
        return self._to_pydantic_list(result.scalars().all())


class ClubRepository(BaseRepository[ClubModel, ClubRow]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, ClubModel, ClubRow)

    async def get_scoped(
        self, club_id: UUID, org_id: Optional[UUID] = None
    ) -> Optional[ClubRow]:
        query = select(self.model_class).where(self.model_class.id == club_id)
        if org_id is not None:
            query = query.where(self.model_class.org_id == org_id)
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def get_by_ids(self, club_ids: Sequence[UUID]) -> List[ClubRow]:
        if not club_ids:
            return []
        query = select(self.model_class).where(self.model_class.id.in_(list(club_ids)))
        result = await self.db.execute(query)
        return self._to_pydantic_list(result.scalars().all())

    async def list_clubs(
        self,
        org_id: Optional[UUID] = None,
        include_unscoped: bool = False,
        name_contains: Optional[str] = None,
    ) -> List[ClubRow]:
        """Clubs ordered by name, optionally org-scoped and name-filtered."""
        query = select(self.model_class)
        if org_id is not None:
            if include_unscoped:
                query = query.where(
                    or_(
                        self.model_class.org_id == org_id,
                        self.model_class.org_id.is_(None),
                    )
                )
            else:
                query = query.where(self.model_class.org_id == org_id)
        if name_contains:
            query = query.where(self.model_class.name.ilike(f"%{name_contains}%"))
        result = await self.db.execute(query.order_by(self.model_class.name))
        return self._to_pydantic_list(result.scalars().all())


class OfficerRepository(BaseRepository[OfficerModel, OfficerRow]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, OfficerModel, OfficerRow)

    async def first_user_id_for_club(self, club_id: UUID) -> Optional[UUID]:
        query = (
            select(self.model_class.user_id)
            .where(
                self.model_class.club_id == club_id,
                self.model_class.user_id.is_not(None),
            )
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalars().first()

    async def list_officers(self, limit: int = 600) -> List[OfficerRow]:
        result = await self.db.execute(select(self.model_class).limit(limit))
        return self._to_pydantic_list(result.scalars().all())
