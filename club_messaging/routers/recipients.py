import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from club_messaging.backends import MessagingBackend
from club_messaging.errors import MessagingError
from club_messaging.models.api.directory import (
    ClubRow,
    MessagingProfile,
    RecipientOption,
    RecipientTab,
)
from club_messaging.routers.dependencies import (
    conversation_store,
    current_org_id,
    current_profile,
    messaging_backend,
    messaging_http_error,
)
from club_messaging.services import ConversationCreationService
from club_messaging.store import ConversationStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[RecipientOption])
async def list_recipient_options(
    tab: RecipientTab = Query(RecipientTab.CLUB, description="Recipient picker tab"),
    search: Optional[str] = Query("", description="Case-insensitive name filter"),
    profile: MessagingProfile = Depends(current_profile),
    org_id: UUID = Depends(current_org_id),
    store: ConversationStore = Depends(conversation_store),
    backend: MessagingBackend = Depends(messaging_backend),
) -> List[RecipientOption]:
    """
    List who the acting user can start a conversation with.

    Query parameters:
    - tab: One of 'club', 'officer', 'admin' (default: club)
    - search: Optional filter term
    """
    try:
        service = ConversationCreationService(store, backend)
        return await service.fetch_recipient_options(
            org_id, tab, search or "", profile.id
        )
    except MessagingError as e:
        raise messaging_http_error(e)
    except Exception:
        logger.exception("Failed to list %s recipients", tab.value)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/clubs", response_model=List[ClubRow])
async def list_clubs_for_new_conversation(
    search: Optional[str] = Query("", description="Case-insensitive name filter"),
    org_id: UUID = Depends(current_org_id),
    store: ConversationStore = Depends(conversation_store),
    backend: MessagingBackend = Depends(messaging_backend),
) -> List[ClubRow]:
    """Clubs of the acting user's org, plus clubs not bound to any org."""
    try:
        service = ConversationCreationService(store, backend)
        return await service.fetch_clubs_for_new_conversation(org_id, search or "")
    except MessagingError as e:
        raise messaging_http_error(e)
    except Exception:
        logger.exception("Failed to list clubs for org %s", org_id)
        raise HTTPException(status_code=500, detail="Internal server error")
