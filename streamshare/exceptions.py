"""
StreamShare SDK Exceptions

Error taxonomy for local file failures, transport failures and
unexpected server responses.
"""

from typing import Optional


class StreamShareError(Exception):
    """Base exception for StreamShare SDK errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code:
            parts.append(f"(HTTP {self.status_code})")
        if self.error_code:
            parts.append(f"[{self.error_code}]")
        return " ".join(parts)


class IoError(StreamShareError):
    """Raised when a local file cannot be opened, read or written."""

    pass


class NetworkError(StreamShareError):
    """Raised when a request cannot be sent or the connection drops."""

    pass


class ValidationError(StreamShareError):
    """Raised when an argument is rejected before any request is made."""

    pass


class ServerError(StreamShareError):
    """Raised on a non-success status or a response body of the wrong shape."""

    pass


class AuthenticationError(ServerError):
    """Raised when the service rejects a deletion token."""

    pass


class NotFoundError(ServerError):
    """Raised when a file identifier is unknown or the file is gone."""

    pass


class FileTooLargeError(ServerError):
    """Raised when the service refuses a file because of its size."""

    pass


class RateLimitError(ServerError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        status_code: int = 429,
        retry_after: Optional[int] = None,
    ) -> None:
        super().__init__(message, status_code)
        self.retry_after = retry_after


def raise_for_status(
    status_code: int,
    message: str,
    error_code: Optional[str] = None,
    retry_after: Optional[int] = None,
) -> None:
    """
    Raise appropriate exception based on HTTP status code.

    Args:
        status_code: HTTP status code
        message: Error message from response
        error_code: Optional error code from response
        retry_after: Seconds from the Retry-After header, if any

    Raises:
        Appropriate ServerError subclass
    """
    if status_code in (401, 403):
        raise AuthenticationError(message, status_code, error_code)
    elif status_code in (404, 410):
        raise NotFoundError(message, status_code, error_code)
    elif status_code == 413:
        raise FileTooLargeError(message, status_code, error_code)
    elif status_code == 429:
        raise RateLimitError(message, status_code, retry_after)
    elif status_code >= 400:
        raise ServerError(message, status_code, error_code)
