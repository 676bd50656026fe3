"""Copy decision logic for sync operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models import FileProperties


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    COPY = "copy"
    """Start a server-side copy from source to destination"""

    SKIP = "skip"
    """Skip file (no action needed)"""

    DELETE_FILE = "delete_file"
    """Delete a destination file with no source counterpart"""

    DELETE_FOLDER = "delete_folder"
    """Delete a destination directory subtree with no source counterpart"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync a file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    source: Optional[FileProperties]
    """Source file properties (if the file exists)"""

    destination: Optional[FileProperties]
    """Destination file properties (if the file exists)"""

    relative_path: str
    """Relative path of the file"""


class FileComparator:
    """Decides whether a source file has to be copied to the destination.

    Only existence and size are compared. Two files of the same size are
    considered identical even when their content differs; no hashing is
    done.
    """

    def compare(
        self,
        path: str,
        source: Optional[FileProperties],
        destination: Optional[FileProperties],
    ) -> SyncDecision:
        """Compare a source file with its destination counterpart.

        Args:
            path: Relative path of the file
            source: Source file properties (None if the file vanished or
                was not looked up because the destination is absent)
            destination: Destination file properties (None if absent)

        Returns:
            SyncDecision with action COPY or SKIP
        """
        if destination is None:
            return SyncDecision(
                action=SyncAction.COPY,
                reason="New file",
                source=source,
                destination=None,
                relative_path=path,
            )

        if source is None:
            # Listed during traversal but gone by now; leave the destination
            # alone, the next run treats it as an orphan.
            return SyncDecision(
                action=SyncAction.SKIP,
                reason="Source file missing",
                source=None,
                destination=destination,
                relative_path=path,
            )

        if source.size == destination.size:
            return SyncDecision(
                action=SyncAction.SKIP,
                reason="Same size",
                source=source,
                destination=destination,
                relative_path=path,
            )

        return SyncDecision(
            action=SyncAction.COPY,
            reason=f"Size differs ({source.size} vs {destination.size})",
            source=source,
            destination=destination,
            relative_path=path,
        )
