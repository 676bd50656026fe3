"""afssync - mirror one cloud file share onto another."""

from .api import ShareClient
from .exceptions import (
    AfsAPIError,
    AfsAuthenticationError,
    AfsConfigError,
    AfsConflictError,
    AfsInvalidResponseError,
    AfsNetworkError,
    AfsNotFoundError,
    AfsPermissionError,
    AfsSourceNotFoundError,
    AfsSyncError,
    SyncFailedError,
)
from .models import DirectoryEntry, FileProperties

__version__ = "0.1.0"

__all__ = [
    "ShareClient",
    "DirectoryEntry",
    "FileProperties",
    "AfsSyncError",
    "AfsAPIError",
    "AfsAuthenticationError",
    "AfsConfigError",
    "AfsConflictError",
    "AfsInvalidResponseError",
    "AfsNetworkError",
    "AfsNotFoundError",
    "AfsPermissionError",
    "AfsSourceNotFoundError",
    "SyncFailedError",
]
