# Export all models
from .api import (
    ConversationMessage,
    ConversationRow,
    ConversationSummary,
    MemberRow,
    ReadReceiptRow,
)
from .db import (
    ConversationMemberModel,
    ConversationModel,
    MessageModel,
    MessageReadModel,
)

__all__ = [
    # API models
    "ConversationMessage",
    "ConversationRow",
    "ConversationSummary",
    "MemberRow",
    "ReadReceiptRow",
    # DB models
    "ConversationMemberModel",
    "ConversationModel",
    "MessageModel",
    "MessageReadModel",
]
