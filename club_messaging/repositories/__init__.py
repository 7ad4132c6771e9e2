# Repository classes for database operations
from .base_repository import BaseRepository
from .conversation_repository import ConversationRepository
from .directory_repositories import ClubRepository, OfficerRepository, ProfileRepository
from .member_repository import MemberRepository
from .message_repository import MessageRepository
from .read_receipt_repository import ReadReceiptRepository

__all__ = [
    "BaseRepository",
    "ClubRepository",
    "ConversationRepository",
    "MemberRepository",
    "MessageRepository",
    "OfficerRepository",
    "ProfileRepository",
    "ReadReceiptRepository",
]
