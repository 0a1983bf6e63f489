"""Domain exceptions.

Every failure that crosses the HTTP pipeline boundary, or the boundary
between the business layer and the command handler, is one of these.
"""

from typing import Optional


class RbxConfigsError(Exception):
    """Base class for all rbxconfigs errors."""


class CredentialError(RbxConfigsError):
    """Raised when no session credential can be obtained at startup."""


class ConfigFileError(RbxConfigsError):
    """Raised when the local config snapshot cannot be read or parsed."""


class ApiError(RbxConfigsError):
    """A request was answered with a status the caller cannot recover from.

    Carries the original HTTP status and the server-provided message.
    """

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Request failed with status {status_code}: {message}")


class NonRetryableError(ApiError):
    """A 400 response whose body is not a write-propagation conflict."""


class WriteConflictError(ApiError):
    """The server kept reporting a write-propagation conflict past the retry bound."""

    def __init__(self, status_code: int, message: str, attempts: int):
        self.attempts = attempts
        super().__init__(status_code, f"{message} (gave up after {attempts} retries)")


class TransientError(RbxConfigsError):
    """Raised when a network-level failure persists after exponential backoff."""

    def __init__(self, original_exception: Exception, attempts: int):
        self.original_exception = original_exception
        self.attempts = attempts
        super().__init__(f"Request failed after {attempts} attempts. Last error: {original_exception}")


class DraftError(RbxConfigsError):
    """Raised when the configs API rejects a draft operation."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.error_code = error_code
        super().__init__(message)
