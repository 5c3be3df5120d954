class ChatServiceError(Exception):
    """Base class for errors the chat routes turn into HTTP responses."""


class ValidationError(ChatServiceError):
    """Missing or malformed input, reported back as a 400."""


class CompletionUnavailable(ChatServiceError):
    """Both the primary and the fallback model failed."""


class NoDataFound(ChatServiceError):
    """No chat messages exist in the requested report window."""


class NotAuthenticated(ChatServiceError):
    """The operation needs a verified caller identity."""
