"""Exception types raised by the indexation core."""


class IndexerError(Exception):
    """Base class for indexation scheduler errors."""


class TokenError(IndexerError):
    """Raised when no valid access token can be obtained for a property."""


class PropertyBusyError(IndexerError):
    """Raised when another cycle already holds the property's lock."""


class PropertyNotFoundError(IndexerError):
    """Raised when a property id does not resolve to a known property."""


class PropertyInactiveError(IndexerError):
    """Raised when a cycle is requested for a deactivated property."""


class ExternalCallError(IndexerError):
    """Raised for a failed call to the external inspection/indexing API.

    Covers non-2xx responses, timeouts, transport errors and malformed payloads.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LockUnavailableError(IndexerError):
    """Raised when the lock store cannot be reached to start a cycle."""
