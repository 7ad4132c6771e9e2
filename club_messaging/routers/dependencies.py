from uuid import UUID

from fastapi import Depends, Header, HTTPException

from club_messaging import config
from club_messaging.backends import MessagingBackend, get_backend
from club_messaging.database import AsyncSessionLocal
from club_messaging.errors import (
    MessagingError,
    TargetNotFoundError,
    TargetResolutionError,
)
from club_messaging.models.api.directory import MessagingProfile
from club_messaging.scope import PreferenceStore, resolve_org_id
from club_messaging.store import ConversationStore, SqlConversationStore


def messaging_backend() -> MessagingBackend:
    return get_backend(config.MESSAGING_BACKEND)


def conversation_store(
    backend: MessagingBackend = Depends(messaging_backend),
) -> ConversationStore:
    return SqlConversationStore(AsyncSessionLocal, backend)


async def current_profile(
    x_user_id: UUID = Header(..., description="Id of the acting user"),
    store: ConversationStore = Depends(conversation_store),
) -> MessagingProfile:
    """Profile of the user named by the ``X-User-Id`` header."""
    try:
        profile = await store.get_profile(x_user_id)
    except MessagingError:
        raise HTTPException(status_code=503, detail="Profile lookup unavailable")
    if profile is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return profile


def current_org_id(profile: MessagingProfile = Depends(current_profile)) -> UUID:
    return resolve_org_id(profile, PreferenceStore(config.PREFERENCES_PATH))


def messaging_http_error(error: MessagingError) -> HTTPException:
    """HTTP error for a messaging failure."""
    if isinstance(error, TargetNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, TargetResolutionError):
        return HTTPException(status_code=400, detail=str(error))
    return HTTPException(status_code=503, detail=str(error))


async def member_conversation_id(
    conversation_id: UUID,
    profile: MessagingProfile = Depends(current_profile),
    org_id: UUID = Depends(current_org_id),
    store: ConversationStore = Depends(conversation_store),
    backend: MessagingBackend = Depends(messaging_backend),
) -> UUID:
    """Path conversation id, provided the acting user is one of its members."""
    scope = org_id if backend.scope_memberships_by_org else None
    try:
        conversation_ids = await store.list_membership_conversation_ids(
            profile.id, org_id=scope
        )
    except MessagingError:
        raise HTTPException(status_code=503, detail="Membership lookup unavailable")
    if conversation_id not in conversation_ids:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation_id
