"""
SBVC - Single-file version history

Keeps a tree of snapshots of one tracked file, each stored as a difference
against its parent, and lets a front end commit, check out, rename, delete
and roll back snapshots without blocking its event loop.

Primary API:
    from sbvc import VersionHistory, OperationScheduler

    history = VersionHistory.create("notes.sbvc", "notes.txt")
    scheduler = OperationScheduler(history)
    scheduler.submit("commit")

Components:
- Diff codec (sbvc.diff): token-level deltas, deterministic
- Version store (sbvc.store): persisted, validated tree of versions
- History engine (sbvc.history): commit/checkout/rename/delete/rollback
- Operation scheduler (sbvc.scheduler): serialized background mutations
"""

__version__ = "0.1.0"

from sbvc.config import HistoryConfig, store_path_for
from sbvc.diff import Deletion, Difference, Insertion, apply, diff
from sbvc.errors import (
    AlreadyExistsError,
    CannotDeleteRootError,
    CorruptDifferenceError,
    EmptyNameError,
    HistoryClosedError,
    MalformedStoreError,
    NotFoundError,
    SbvcError,
    SchedulerClosedError,
    StorageIOError,
    UncommittedChangesError,
    UnknownVersionError,
)
from sbvc.history import HistorySnapshot, VersionHistory
from sbvc.scheduler import OperationHandle, OperationResult, OperationScheduler
from sbvc.store import Version, VersionStore

__all__ = [
    "__version__",
    # Engine
    "VersionHistory",
    "HistorySnapshot",
    "OperationScheduler",
    "OperationHandle",
    "OperationResult",
    # Store
    "Version",
    "VersionStore",
    # Codec
    "Deletion",
    "Difference",
    "Insertion",
    "apply",
    "diff",
    # Configuration
    "HistoryConfig",
    "store_path_for",
    # Errors
    "AlreadyExistsError",
    "CannotDeleteRootError",
    "CorruptDifferenceError",
    "EmptyNameError",
    "HistoryClosedError",
    "MalformedStoreError",
    "NotFoundError",
    "SbvcError",
    "SchedulerClosedError",
    "StorageIOError",
    "UncommittedChangesError",
    "UnknownVersionError",
]
