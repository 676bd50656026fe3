"""Custom exceptions for afssync."""

from typing import Any


class AfsSyncError(Exception):
    """Base exception for all afssync errors."""

    pass


class AfsConfigError(AfsSyncError):
    """Exception raised for configuration errors."""

    pass


class AfsSourceNotFoundError(AfsSyncError):
    """Exception raised when the source share does not exist."""

    pass


class AfsAPIError(AfsSyncError):
    """Base exception for file share REST API errors."""

    def __init__(self, message: str, status_code: int = 0, error_code: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class AfsAuthenticationError(AfsAPIError):
    """Exception raised for authentication failures (invalid account key)."""

    pass


class AfsPermissionError(AfsAPIError):
    """Exception raised for permission denied errors."""

    pass


class AfsNotFoundError(AfsAPIError):
    """Exception raised when a share, directory or file is not found."""

    pass


class AfsConflictError(AfsAPIError):
    """Exception raised when a resource already exists or has the wrong type."""

    pass


class AfsNetworkError(AfsAPIError):
    """Exception raised for network-related errors."""

    pass


class AfsInvalidResponseError(AfsAPIError):
    """Exception raised when the service returns a response we cannot parse."""

    pass


class SyncFailedError(AfsSyncError):
    """Exception raised when one or more sync operations failed.

    Attributes:
        failures: List of (operation, exception) pairs in submission order
    """

    def __init__(self, failures: list[tuple[Any, BaseException]]):
        self.failures = failures
        count = len(failures)
        first_op, first_error = failures[0]
        path = getattr(first_op, "relative_path", first_op)
        message = f"{count} operation(s) failed; first failure at {path}: {first_error}"
        super().__init__(message)
