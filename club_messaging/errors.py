"""Exception hierarchy for the messaging core.

Every failure a caller is expected to surface to the user derives from
``MessagingError``. Empty results (no conversations, no messages, no search
matches) are valid states and never raise.
"""


class MessagingError(Exception):
    """Base class for messaging failures."""


class StoreError(MessagingError):
    """A read or write against the conversation store failed."""


class DirectoryUnavailableError(MessagingError):
    """The conversation list could not be loaded; no partial result exists."""


class TranscriptUnavailableError(MessagingError):
    """A transcript page could not be loaded."""


class SendFailedError(MessagingError):
    """The message insert failed; nothing was appended locally."""


class SendInProgressError(MessagingError):
    """Another send is still pending for this session."""


class ConversationCreationError(MessagingError):
    """Creating the conversation or its member rows failed."""


class TargetResolutionError(MessagingError):
    """The conversation target could not be turned into a login user."""


class TargetNotFoundError(TargetResolutionError):
    """The club or user does not exist in the organization."""


class TargetHasNoLoginUser(TargetResolutionError):
    """The club has neither a primary user nor an officer."""


class InvalidTargetError(TargetResolutionError):
    """The target exists but does not match the requested target type."""


class SelfConversationError(TargetResolutionError):
    """The resolved target is the acting user."""
