"""Data models for file share entries."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class DirectoryEntry:
    """A single item from a directory listing."""

    name: str
    """Entry name (no path separators)"""

    is_directory: bool
    """True for subdirectories, False for files"""

    size: Optional[int] = None
    """Content length reported by the listing (files only)"""


@dataclass(frozen=True)
class FileProperties:
    """Properties of a file as returned by a HEAD request."""

    size: int
    """Content length in bytes"""

    etag: Optional[str] = None
    """Entity tag of the file"""

    last_modified: Optional[datetime] = None
    """Last modification time reported by the service"""

    copy_status: Optional[str] = None
    """Status of the last server-side copy into this file, if any"""
