"""
Error types for RepoDeck.
Fetch errors are surfaced to the caller; parse errors are always recovered locally.
"""

from typing import Optional


class RepoDeckError(Exception):
    """Base class for all RepoDeck errors."""


class FetchError(RepoDeckError):
    """
    Raised when fetching repositories from GitHub fails.

    The message is meant for humans; ``kind`` tells callers which
    failure happened without parsing the message.
    """
    kind = "fetch"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthError(FetchError):
    """Missing or rejected credential, or a non-2xx response from GitHub."""
    kind = "auth"


class ApiError(FetchError):
    """GitHub answered 2xx but the body reported errors or was malformed."""
    kind = "api"


class NetworkError(FetchError):
    """The request never got a response (DNS, connection, timeout)."""
    kind = "network"


class ParseError(RepoDeckError):
    """Malformed persisted or imported JSON."""
