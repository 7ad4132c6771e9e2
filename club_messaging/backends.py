"""Backend selection: which table set a messaging session talks to.

The admin/club variant and the general variant share one schema shape and
one merge algorithm; they differ only in table names and a handful of
presentation rules captured here.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from club_messaging.models.api.conversations import ConversationCategory, TargetType
from club_messaging.models.db import (
    AdminConversationMemberModel,
    AdminConversationModel,
    AdminMessageModel,
    AdminMessageReadModel,
    ConversationMemberModel,
    ConversationModel,
    MessageModel,
    MessageReadModel,
)

_CATEGORY_BY_TARGET = {
    TargetType.CLUB: ConversationCategory.CLUBS,
    TargetType.OFFICER: ConversationCategory.OFFICERS,
    TargetType.ADMIN: ConversationCategory.ADMINS,
    TargetType.OTHER: ConversationCategory.OTHERS,
}


@dataclass(frozen=True)
class MessagingBackend:
    """Table set plus the presentation rules of one messaging variant."""

    name: str
    conversation_model: Any
    member_model: Any
    message_model: Any
    read_model: Any
    preview_length: int
    scope_memberships_by_org: bool
    search_category: bool
    fixed_category: Optional[ConversationCategory] = None

    @property
    def message_table(self) -> str:
        return str(self.message_model.__tablename__)

    @property
    def conversation_table(self) -> str:
        return str(self.conversation_model.__tablename__)

    def category_for(self, target_type: TargetType) -> ConversationCategory:
        """Category stored on a new conversation with the given target."""
        if self.fixed_category is not None:
            return self.fixed_category
        return _CATEGORY_BY_TARGET[target_type]

    def normalize_preview(self, body: Optional[str]) -> str:
        """Trimmed, truncated message body for the conversation list."""
        text = (body or "").strip()
        if not text:
            return "No messages yet"
        if len(text) > self.preview_length:
            return f"{text[: self.preview_length]}..."
        return text


GENERAL_BACKEND = MessagingBackend(
    name="general",
    conversation_model=ConversationModel,
    member_model=ConversationMemberModel,
    message_model=MessageModel,
    read_model=MessageReadModel,
    preview_length=80,
    scope_memberships_by_org=False,
    search_category=True,
)

ADMIN_BACKEND = MessagingBackend(
    name="admin",
    conversation_model=AdminConversationModel,
    member_model=AdminConversationMemberModel,
    message_model=AdminMessageModel,
    read_model=AdminMessageReadModel,
    preview_length=72,
    scope_memberships_by_org=True,
    search_category=False,
    fixed_category=ConversationCategory.DM,
)

BACKENDS: Dict[str, MessagingBackend] = {
    GENERAL_BACKEND.name: GENERAL_BACKEND,
    ADMIN_BACKEND.name: ADMIN_BACKEND,
}


def get_backend(name: str) -> MessagingBackend:
    """Look up a backend by name."""
    try:
        return BACKENDS[name]
    except KeyError:
        raise ValueError(
            f"Unknown messaging backend: {name}. Must be one of {sorted(BACKENDS)}"
        ) from None
