from .conversation_creation_service import ConversationCreationService, ResolvedTarget
from .conversation_directory_service import ConversationDirectoryService
from .messaging_session import MessagingSession
from .reconciler import LiveUpdateReconciler
from .transcript_service import MessageTranscriptPager, TranscriptState

__all__ = [
    "ConversationCreationService",
    "ConversationDirectoryService",
    "LiveUpdateReconciler",
    "MessageTranscriptPager",
    "MessagingSession",
    "ResolvedTarget",
    "TranscriptState",
]
