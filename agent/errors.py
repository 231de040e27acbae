"""Error taxonomy shared by the memory engine, the graph and the HTTP layer."""


class ChatError(Exception):
    """Base class for every error the companion raises on purpose."""


class MissingField(ChatError):
    """Raised when the caller omitted a required input."""

    def __init__(self, *fields: str):
        self.fields = fields
        super().__init__(f"Missing required field(s): {', '.join(fields)}")


class InvalidMood(ChatError):
    """Raised when the caller passed a mood outside the supported set."""


class UserNotFound(ChatError):
    """Raised when no user matches the given username or id."""


class InvalidId(ChatError):
    """Raised when a user id is malformed, before any lookup happens."""


class ModerationBlocked(ChatError):
    """The generation service rejected the prompt or its intended output."""


class GenerationError(ChatError):
    """Any other failure of the generation service."""


class PersistenceError(ChatError):
    """The user store could not be read or written."""
