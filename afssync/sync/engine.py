"""Core sync engine: walks both shares and feeds the worker pool."""

import logging
import threading
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Optional

from ..api import ShareClient
from ..exceptions import AfsSourceNotFoundError
from ..output import OutputFormatter
from ..utils import DEFAULT_MAX_CONCURRENCY, DEFAULT_SAS_EXPIRY_MINUTES, combine_path
from .comparator import SyncAction
from .operations import (
    CopyFile,
    DeleteFile,
    Operation,
    OperationResult,
    SyncOperations,
)
from .pool import WorkerPool

logger = logging.getLogger(__name__)


class NameSet:
    """Case-insensitive set of entry names.

    Iteration yields names in their original spelling, in insertion order.
    """

    def __init__(self, names: Iterable[str] = ()):
        self._names: dict[str, str] = {}
        for name in names:
            self.add(name)

    @staticmethod
    def _key(name: str) -> str:
        return name.upper()

    def add(self, name: str) -> None:
        self._names.setdefault(self._key(name), name)

    def discard(self, name: str) -> bool:
        """Remove a name, ignoring case.

        Returns:
            True if the name was present
        """
        return self._names.pop(self._key(name), None) is not None

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._key(name) in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._names.values()))

    def __len__(self) -> int:
        return len(self._names)


@dataclass
class SyncStats:
    """Counters for one sync run, safe to update from worker threads."""

    copies: int = 0
    skips: int = 0
    deleted_files: int = 0
    deleted_folders: int = 0
    created_folders: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def record(self, result: OperationResult) -> None:
        """Add the outcome of one operation."""
        with self._lock:
            if result.action == SyncAction.COPY:
                self.copies += 1
            elif result.action == SyncAction.SKIP:
                self.skips += 1
            self.deleted_files += result.deleted_files
            self.deleted_folders += result.deleted_folders

    def record_created_folder(self) -> None:
        with self._lock:
            self.created_folders += 1

    @property
    def total_actions(self) -> int:
        return (
            self.copies
            + self.deleted_files
            + self.deleted_folders
            + self.created_folders
        )

    def as_dict(self) -> dict:
        with self._lock:
            return {
                "copies": self.copies,
                "skips": self.skips,
                "deleted_files": self.deleted_files,
                "deleted_folders": self.deleted_folders,
                "created_folders": self.created_folders,
            }


@dataclass
class SyncContext:
    """Everything one traversal needs, passed explicitly down the recursion."""

    source: ShareClient
    destination: ShareClient
    pool: WorkerPool[Operation]
    stats: SyncStats
    dry_run: bool = False


class SyncEngine:
    """Mirrors a source share onto a destination share.

    The engine walks the source tree once. Directories are created on the
    destination as they are encountered; file copies and orphan deletions are
    queued and executed by a bounded pool of worker threads.
    """

    def __init__(
        self,
        source: ShareClient,
        destination: ShareClient,
        output: Optional[OutputFormatter] = None,
        max_workers: int = DEFAULT_MAX_CONCURRENCY,
        max_concurrency: Optional[int] = None,
        sas_expiry_minutes: int = DEFAULT_SAS_EXPIRY_MINUTES,
    ):
        """Initialize sync engine.

        Args:
            source: Client of the share being mirrored
            destination: Client of the share being updated
            output: Output formatter for displaying progress/status
            max_workers: Number of worker threads draining the queue
            max_concurrency: Cap on operations executing at once
                (default: max_workers)
            sas_expiry_minutes: Lifetime of copy-source tokens
        """
        self.source = source
        self.destination = destination
        self.output = output or OutputFormatter()
        self.max_workers = max_workers
        self.max_concurrency = max_concurrency
        self.sas_expiry_minutes = sas_expiry_minutes

    def sync(self, dry_run: bool = False) -> SyncStats:
        """Make the destination share mirror the source share.

        The method returns once every copy has been *started*. Server-side
        copies may still be running when it returns; whether callers should
        also wait for their completion is deliberately left open, and no
        polling is done here.

        Args:
            dry_run: If True, only show what would be done

        Returns:
            SyncStats for the run

        Raises:
            AfsSourceNotFoundError: If the source share does not exist
            SyncFailedError: If any queued operation failed
            AfsAPIError: If listing or creating a directory failed

        Examples:
            >>> engine = SyncEngine(source, destination, max_workers=16)
            >>> stats = engine.sync()
            >>> print(f"Started {stats.copies} copies")
        """
        start_time = time.time()
        if not self.source.exists():
            raise AfsSourceNotFoundError(
                f"Source share does not exist: {self.source.share_name}"
            )

        if dry_run:
            destination_exists = self.destination.exists()
            self.output.info("Dry run: No changes will be made")
        else:
            if self.destination.create_if_not_exists():
                self.output.info(
                    f"Created destination share {self.destination.share_name}"
                )
            destination_exists = True

        stats = SyncStats()
        operations = SyncOperations(
            self.source,
            self.destination,
            output=self.output,
            dry_run=dry_run,
            sas_expiry_minutes=self.sas_expiry_minutes,
        )

        def handle(operation: Operation) -> None:
            stats.record(operations.execute(operation))

        with WorkerPool(
            handle,
            max_workers=self.max_workers,
            max_concurrency=self.max_concurrency,
        ) as pool:
            context = SyncContext(
                source=self.source,
                destination=self.destination,
                pool=pool,
                stats=stats,
                dry_run=dry_run,
            )
            self._traverse(context, "", destination_exists)
            logger.debug(
                "Traversal finished after %.2fs, %d operation(s) still queued",
                time.time() - start_time,
                pool.pending,
            )

        logger.debug("Sync finished in %.2fs", time.time() - start_time)
        if not self.output.quiet:
            self._display_summary(stats, dry_run)
        return stats

    def _traverse(
        self, context: SyncContext, relative_path: str, destination_exists: bool
    ) -> None:
        """Reconcile one directory level and recurse into subdirectories.

        Args:
            context: Sync context
            relative_path: Directory path relative to both share roots
            destination_exists: False when the destination directory is known
                to be missing (dry run only); it is then treated as empty
        """
        destination_names = NameSet()
        if destination_exists:
            destination_names = NameSet(
                entry.name
                for entry in context.destination.list_entries(relative_path)
            )

        for entry in context.source.list_entries(relative_path):
            existed = destination_names.discard(entry.name)
            child_path = combine_path(relative_path, entry.name)

            if entry.is_directory:
                if context.dry_run:
                    created = not existed
                else:
                    created = context.destination.create_directory_if_not_exists(
                        child_path
                    )
                if created:
                    logger.debug("Created directory %s", child_path)
                    context.stats.record_created_folder()
                self._traverse(
                    context,
                    child_path,
                    destination_exists=not (context.dry_run and created),
                )
            else:
                context.pool.submit(
                    CopyFile(
                        relative_path=child_path,
                        source_path=child_path,
                        destination_path=child_path,
                    )
                )

        for name in destination_names:
            orphan_path = combine_path(relative_path, name)
            context.pool.submit(
                DeleteFile(relative_path=orphan_path, destination_path=orphan_path)
            )

    def _display_summary(self, stats: SyncStats, dry_run: bool) -> None:
        """Display sync summary.

        Args:
            stats: Statistics of the run
            dry_run: Whether this was a dry run
        """
        self.output.print("")
        if dry_run:
            self.output.success("Dry run complete!")
        else:
            self.output.success("Sync complete!")

        if stats.total_actions > 0:
            self.output.info(f"Total actions: {stats.total_actions}")
            if stats.copies > 0:
                self.output.info(f"  Copies started: {stats.copies}")
            if stats.created_folders > 0:
                self.output.info(f"  Folders created: {stats.created_folders}")
            if stats.deleted_files > 0:
                self.output.info(f"  Files deleted: {stats.deleted_files}")
            if stats.deleted_folders > 0:
                self.output.info(f"  Folders deleted: {stats.deleted_folders}")
        else:
            self.output.info("No changes needed - everything is in sync!")
        if stats.skips > 0:
            self.output.info(f"  Unchanged: {stats.skips}")
