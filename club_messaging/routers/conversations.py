import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from club_messaging.backends import MessagingBackend
from club_messaging.errors import MessagingError
from club_messaging.models.api.conversations import (
    ConversationSummary,
    StartConversationRequest,
    StartConversationResponse,
)
from club_messaging.models.api.directory import MessagingProfile
from club_messaging.models.api.members import MemberInfo
from club_messaging.models.api.messages import (
    ConversationMessage,
    MessagePage,
    SendMessageRequest,
)
from club_messaging.models.api.reads import MarkReadRequest, ReadReceiptRow
from club_messaging.routers.dependencies import (
    conversation_store,
    current_org_id,
    current_profile,
    member_conversation_id,
    messaging_backend,
    messaging_http_error,
)
from club_messaging.scope import resolve_member_type
from club_messaging.services import (
    ConversationCreationService,
    ConversationDirectoryService,
    MessageTranscriptPager,
)
from club_messaging.store import ConversationStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[ConversationSummary])
async def list_conversations(
    search: Optional[str] = Query(
        "", description="Case-insensitive filter over title, subject and preview"
    ),
    profile: MessagingProfile = Depends(current_profile),
    org_id: UUID = Depends(current_org_id),
    store: ConversationStore = Depends(conversation_store),
    backend: MessagingBackend = Depends(messaging_backend),
) -> List[ConversationSummary]:
    """
    List the acting user's conversations, most recent activity first.

    Query parameters:
    - search: Optional filter term
    """
    try:
        service = ConversationDirectoryService(store, backend)
        return await service.fetch_conversation_summaries(
            profile.id, org_id, search or ""
        )
    except MessagingError as e:
        raise messaging_http_error(e)
    except Exception:
        logger.exception("Failed to list conversations for %s", profile.id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("", response_model=StartConversationResponse)
async def start_conversation(
    request: StartConversationRequest,
    profile: MessagingProfile = Depends(current_profile),
    org_id: UUID = Depends(current_org_id),
    store: ConversationStore = Depends(conversation_store),
    backend: MessagingBackend = Depends(messaging_backend),
) -> StartConversationResponse:
    """Open a conversation with a club or user, reusing an existing one."""
    try:
        service = ConversationCreationService(store, backend)
        conversation_id = await service.get_or_create_conversation(
            org_id=org_id,
            current_user_id=profile.id,
            creator_type=resolve_member_type(profile),
            target_type=request.target_type,
            target_id=request.target_id,
            subject=request.subject,
            campus_id=request.campus_id,
        )
        return StartConversationResponse(conversation_id=conversation_id)
    except MessagingError as e:
        raise messaging_http_error(e)
    except Exception:
        logger.exception("Failed to start conversation for %s", profile.id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{conversation_id}/messages", response_model=MessagePage)
async def get_conversation_messages(
    conversation_id: UUID = Depends(member_conversation_id),
    page: int = Query(0, description="Page number, 0 is the newest page", ge=0),
    store: ConversationStore = Depends(conversation_store),
) -> MessagePage:
    """
    Get one page of a conversation's transcript, oldest message first.

    Query parameters:
    - page: Page number counted back from the newest messages (default: 0)
    """
    try:
        return await MessageTranscriptPager(store).fetch_messages(conversation_id, page)
    except MessagingError as e:
        raise messaging_http_error(e)
    except Exception:
        logger.exception("Failed to load messages of %s", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{conversation_id}/messages", response_model=ConversationMessage)
async def send_message(
    request: SendMessageRequest,
    conversation_id: UUID = Depends(member_conversation_id),
    profile: MessagingProfile = Depends(current_profile),
    org_id: UUID = Depends(current_org_id),
    store: ConversationStore = Depends(conversation_store),
    backend: MessagingBackend = Depends(messaging_backend),
) -> ConversationMessage:
    """Send a message and move the sender's read position past it."""
    body = request.body.strip()
    if not body:
        raise HTTPException(status_code=400, detail="Message body is empty")

    try:
        message = await MessageTranscriptPager(store).post_message(
            conversation_id, org_id, profile.id, resolve_member_type(profile), body
        )
    except MessagingError as e:
        raise messaging_http_error(e)
    except Exception:
        logger.exception("Failed to send message to %s", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")

    try:
        await ConversationDirectoryService(store, backend).mark_conversation_read(
            conversation_id, org_id, profile.id
        )
    except MessagingError as e:
        logger.warning("Sent message %s but failed to mark read: %s", message.id, e)
    return message


@router.post("/{conversation_id}/read", response_model=ReadReceiptRow)
async def mark_conversation_read(
    conversation_id: UUID = Depends(member_conversation_id),
    request: Optional[MarkReadRequest] = None,
    profile: MessagingProfile = Depends(current_profile),
    org_id: UUID = Depends(current_org_id),
    store: ConversationStore = Depends(conversation_store),
    backend: MessagingBackend = Depends(messaging_backend),
) -> ReadReceiptRow:
    """Move the acting user's read position (default: now)."""
    try:
        last_read_at = await ConversationDirectoryService(
            store, backend
        ).mark_conversation_read(
            conversation_id, org_id, profile.id, at=request.at if request else None
        )
    except MessagingError as e:
        raise messaging_http_error(e)
    except Exception:
        logger.exception("Failed to mark %s read", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")

    return ReadReceiptRow(
        conversation_id=conversation_id,
        org_id=org_id,
        user_id=profile.id,
        last_read_at=last_read_at,
    )


@router.get("/{conversation_id}/members", response_model=List[MemberInfo])
async def get_conversation_members(
    conversation_id: UUID = Depends(member_conversation_id),
    store: ConversationStore = Depends(conversation_store),
    backend: MessagingBackend = Depends(messaging_backend),
) -> List[MemberInfo]:
    """Display identity of every member of a conversation."""
    try:
        members = await ConversationDirectoryService(
            store, backend
        ).fetch_member_directory(conversation_id)
    except MessagingError as e:
        raise messaging_http_error(e)
    except Exception:
        logger.exception("Failed to load members of %s", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")
    return list(members.values())
