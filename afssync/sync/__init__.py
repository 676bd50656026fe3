"""Sync engine for afssync - one-way share mirroring."""

from .comparator import FileComparator, SyncAction, SyncDecision
from .engine import NameSet, SyncContext, SyncEngine, SyncStats
from .operations import (
    CopyFile,
    DeleteDirectorySubtree,
    DeleteFile,
    Operation,
    OperationResult,
    SyncOperations,
)
from .pool import WorkerPool

__all__ = [
    "SyncEngine",
    "SyncContext",
    "SyncStats",
    "NameSet",
    "SyncOperations",
    "Operation",
    "OperationResult",
    "CopyFile",
    "DeleteFile",
    "DeleteDirectorySubtree",
    "FileComparator",
    "SyncAction",
    "SyncDecision",
    "WorkerPool",
]
