"""Identity and org-scope resolution for the acting user."""

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Union
from uuid import UUID

from club_messaging import config
from club_messaging.models.api.conversations import MemberType
from club_messaging.models.api.directory import MessagingProfile

logger = logging.getLogger(__name__)

ADMIN_ROLES = ("admin", "student_life_admin", "super_admin")
ORG_PREFERENCE_KEYS = ("cc.workspace.org_id", "cc.settings.org_id")


class PreferenceStore:
    """Client-local string key/value pairs persisted as a JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable preferences file %s", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): str(value) for key, value in data.items() if value}

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _parse_uuid(value: Optional[str]) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        logger.warning("Ignoring malformed org id preference %r", value)
        return None


def resolve_org_id(
    profile: Optional[MessagingProfile],
    preferences: Optional[PreferenceStore] = None,
    default_org_id: str = config.DEFAULT_ORG_ID,
) -> UUID:
    """Org scope of the acting user.

    Precedence: the profile's org, then the locally persisted preference, then
    the default org. Never raises.
    """
    if profile is not None and profile.org_id:
        return profile.org_id

    if preferences is not None:
        for key in ORG_PREFERENCE_KEYS:
            org_id = _parse_uuid(preferences.get(key))
            if org_id:
                return org_id

    return UUID(default_org_id)


def resolve_member_type(profile: Optional[MessagingProfile]) -> MemberType:
    """Member type a user takes in conversations, derived from their role."""
    role = profile.role if profile else None
    if role in ADMIN_ROLES:
        return MemberType.ADMIN
    if profile is not None and profile.club_id:
        return MemberType.CLUB
    if role == "officer":
        return MemberType.OFFICER
    return MemberType.OTHER
