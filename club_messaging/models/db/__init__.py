# SQLAlchemy database models
from .conversation_model import AdminConversationModel, ConversationModel
from .directory_models import ClubModel, OfficerModel, ProfileModel
from .member_model import AdminConversationMemberModel, ConversationMemberModel
from .message_model import AdminMessageModel, MessageModel
from .read_receipt_model import AdminMessageReadModel, MessageReadModel

__all__ = [
    "AdminConversationMemberModel",
    "AdminConversationModel",
    "AdminMessageModel",
    "AdminMessageReadModel",
    "ClubModel",
    "ConversationMemberModel",
    "ConversationModel",
    "MessageModel",
    "MessageReadModel",
    "OfficerModel",
    "ProfileModel",
]
