# API models for row contracts and request/response payloads
from .conversations import (
    ConversationCategory,
    ConversationRow,
    ConversationSummary,
    MemberType,
    StartConversationRequest,
    StartConversationResponse,
    TargetType,
)
from .directory import (
    ClubRow,
    MessagingProfile,
    OfficerRow,
    RecipientOption,
    RecipientTab,
)
from .members import MemberInfo, MemberRow
from .messages import ConversationMessage, MessagePage, SendMessageRequest
from .reads import MarkReadRequest, ReadReceiptRow

__all__ = [
    "ClubRow",
    "ConversationCategory",
    "ConversationMessage",
    "ConversationRow",
    "ConversationSummary",
    "MarkReadRequest",
    "MemberInfo",
    "MemberRow",
    "MemberType",
    "MessagePage",
    "MessagingProfile",
    "OfficerRow",
    "ReadReceiptRow",
    "RecipientOption",
    "RecipientTab",
    "SendMessageRequest",
    "StartConversationRequest",
    "StartConversationResponse",
    "TargetType",
]
