"""
Client exceptions.

Fetch failures are never fatal: the controllers capture them into a
``LoadState`` so callers can render a retry affordance. Cookie absence
is not an error at all and has no exception here.
"""


class GalleryClientError(Exception):
    """Base exception for the gallery client."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class FetchError(GalleryClientError):
    """Base for failures that end up in a failed load state."""


class NotFoundError(FetchError):
    """A fetch returned zero results and no further pages exist."""

    def __init__(self, message: str = "No results found"):
        super().__init__(message)


class NetworkOrServerError(FetchError):
    """Opaque failure surfaced by the request executor."""

    def __init__(self, reason: str = "Unknown error", url: str | None = None):
        self.url = url
        self.reason = reason
        if url:
            super().__init__(f"Request to '{url}' failed: {reason}")
        else:
            super().__init__(f"Request failed: {reason}")


class PermanentNetworkError(NetworkOrServerError):
    """
    Non-retryable failure: the request will never succeed as issued.

    Examples: 404 Not Found, 403 Forbidden, DNS for non-existent domain,
    redirect loops.
    """
    pass


class TransientNetworkError(NetworkOrServerError):
    """
    Retryable failure: the request might succeed on a later attempt.

    Examples: 503 Service Unavailable, 429 Too Many Requests,
    connection timeout, connection reset.
    """
    pass


class UnknownError(FetchError):
    """Fallback, e.g. a login response without the expected session cookies."""

    def __init__(self, message: str = "Unknown error"):
        super().__init__(message)


class CacheError(GalleryClientError):
    """Raised when a gallery cache operation fails."""

    def __init__(self, operation: str, reason: str = "Unknown error"):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Cache error during '{operation}': {reason}")
