"""Sync operations and their execution against the share clients."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from ..api import ShareClient
from ..exceptions import AfsNotFoundError
from ..output import OutputFormatter
from ..utils import DEFAULT_SAS_EXPIRY_MINUTES, combine_path
from .comparator import FileComparator, SyncAction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CopyFile:
    """Copy a source file to the destination if the change detector says so."""

    relative_path: str
    """Path shown to the user and used as the key of the operation"""

    source_path: str
    """File path in the source share"""

    destination_path: str
    """File path in the destination share"""


@dataclass(frozen=True)
class DeleteFile:
    """Delete an orphaned destination entry, trying it as a file first."""

    relative_path: str
    """Path shown to the user and used as the key of the operation"""

    destination_path: str
    """Entry path in the destination share"""


@dataclass(frozen=True)
class DeleteDirectorySubtree:
    """Delete an orphaned destination directory and everything below it."""

    relative_path: str
    """Path shown to the user and used as the key of the operation"""

    destination_path: str
    """Directory path in the destination share"""


Operation = Union[CopyFile, DeleteFile, DeleteDirectorySubtree]


@dataclass
class OperationResult:
    """Outcome of executing one operation."""

    action: SyncAction
    relative_path: str
    deleted_files: int = 0
    deleted_folders: int = 0


class SyncOperations:
    """Executes sync operations against the source and destination shares."""

    def __init__(
        self,
        source: ShareClient,
        destination: ShareClient,
        output: Optional[OutputFormatter] = None,
        dry_run: bool = False,
        sas_expiry_minutes: int = DEFAULT_SAS_EXPIRY_MINUTES,
    ):
        """Initialize sync operations.

        Args:
            source: Client of the share being mirrored
            destination: Client of the share being updated
            output: Output formatter for progress lines
            dry_run: If True, report what would be done without mutating
            sas_expiry_minutes: Lifetime of copy-source tokens
        """
        self.source = source
        self.destination = destination
        self.output = output or OutputFormatter()
        self.dry_run = dry_run
        self.sas_expiry_minutes = sas_expiry_minutes
        self.comparator = FileComparator()

    def execute(self, operation: Operation) -> OperationResult:
        """Execute a single operation.

        Args:
            operation: Operation to run

        Returns:
            OperationResult describing what was done

        Raises:
            AfsAPIError: If a backend call fails
            TypeError: If the operation type is unknown
        """
        if isinstance(operation, CopyFile):
            return self.copy_file(operation)
        elif isinstance(operation, DeleteFile):
            return self.delete_file(operation)
        elif isinstance(operation, DeleteDirectorySubtree):
            return self.delete_subtree(operation)
        raise TypeError(f"Unknown operation: {operation!r}")

    def copy_file(self, operation: CopyFile) -> OperationResult:
        """Copy a file unless the destination already has the same size."""
        action_start = time.time()
        destination = self.destination.get_file_properties(operation.destination_path)
        source = None
        if destination is not None:
            source = self.source.get_file_properties(operation.source_path)

        decision = self.comparator.compare(operation.relative_path, source, destination)
        logger.debug(
            "%s: %s (%s)",
            decision.relative_path,
            decision.action.value,
            decision.reason,
        )

        if decision.action != SyncAction.COPY:
            self.output.info(f"Skipping {operation.relative_path}")
            return OperationResult(SyncAction.SKIP, operation.relative_path)

        self.output.info(f"Copying {operation.relative_path}")
        if not self.dry_run:
            source_url = self.build_source_url(operation.source_path)
            self.destination.start_copy(operation.destination_path, source_url)
            logger.debug(
                "Copy of %s started in %.2fs",
                operation.relative_path,
                time.time() - action_start,
            )
        return OperationResult(SyncAction.COPY, operation.relative_path)

    def build_source_url(self, path: str) -> str:
        """Build the URL the destination service reads a source file from.

        A read-only token scoped to this one file is embedded when the source
        client holds an account key. Otherwise the client's own SAS is used,
        or the bare URL when there is none.

        Args:
            path: File path in the source share

        Returns:
            URL usable as a copy source
        """
        url = self.source.file_url(path)
        if self.source.can_generate_sas:
            expiry = datetime.now(timezone.utc) + timedelta(
                minutes=self.sas_expiry_minutes
            )
            return f"{url}?{self.source.generate_file_sas(path, expiry)}"
        if self.source.sas_token:
            return f"{url}?{self.source.sas_token}"
        return url

    def delete_file(self, operation: DeleteFile) -> OperationResult:
        """Delete an orphan, falling back to subtree deletion for directories.

        A HEAD request that finds no file at the path means the orphan is a
        directory.
        """
        properties = self.destination.get_file_properties(operation.destination_path)
        if properties is None:
            return self.delete_subtree(
                DeleteDirectorySubtree(
                    relative_path=operation.relative_path,
                    destination_path=operation.destination_path,
                )
            )

        self.output.info(f"Deleting file {operation.relative_path}")
        deleted = self.dry_run or self.destination.delete_file_if_exists(
            operation.destination_path
        )
        return OperationResult(
            SyncAction.DELETE_FILE,
            operation.relative_path,
            deleted_files=1 if deleted else 0,
        )

    def delete_subtree(self, operation: DeleteDirectorySubtree) -> OperationResult:
        """Delete an orphaned directory with all of its content."""
        self.output.info(f"Deleting folder {operation.relative_path}")
        files, folders = self.delete_directory_tree(
            operation.destination_path, operation.relative_path
        )
        return OperationResult(
            SyncAction.DELETE_FOLDER,
            operation.relative_path,
            deleted_files=files,
            deleted_folders=folders,
        )

    def delete_directory_tree(self, path: str, relative_path: str) -> tuple[int, int]:
        """Recursively delete a destination directory.

        Children are removed first, then the directory itself. Entries that
        are already gone are not errors.

        Args:
            path: Directory path in the destination share
            relative_path: Path used in progress lines

        Returns:
            Tuple of (files deleted, folders deleted), including the
            directory itself
        """
        try:
            entries = list(self.destination.list_entries(path))
        except AfsNotFoundError:
            logger.debug("Directory %s already gone", path)
            return 0, 0

        files = 0
        folders = 0
        for entry in entries:
            child_path = combine_path(path, entry.name)
            child_relative = combine_path(relative_path, entry.name)
            if entry.is_directory:
                self.output.info(f"Deleting folder {child_relative}")
                sub_files, sub_folders = self.delete_directory_tree(
                    child_path, child_relative
                )
                files += sub_files
                folders += sub_folders
            else:
                self.output.info(f"Deleting file {child_relative}")
                if self.dry_run or self.destination.delete_file_if_exists(child_path):
                    files += 1

        if self.dry_run or self.destination.delete_directory_if_exists(path):
            folders += 1
        return files, folders
