"""Errors raised by the API client."""
from typing import Any, Optional

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."
SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."


class ApiError(Exception):
    """A request that did not succeed, normalized to ``message`` and ``status``."""

    should_logout = False

    def __init__(self, message: str, status: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status!r}, message={self.message!r})"


class NetworkError(ApiError):
    """No response was received: connection failure or timeout."""

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE):
        super().__init__(message, status=None)


class SessionExpiredError(ApiError):
    """The session cannot be recovered; the stored tokens have been cleared."""

    should_logout = True

    def __init__(self, message: str = SESSION_EXPIRED_MESSAGE, status: Optional[int] = 401, data: Any = None):
        super().__init__(message, status=status, data=data)
