"""
SBVC Errors

Exception taxonomy shared by the store, the history engine and the scheduler.
"""

from typing import Optional


class SbvcError(Exception):
    """Base class for every error raised by sbvc."""


class StorageIOError(SbvcError):
    """Filesystem failure on the store file or the tracked file."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class NotFoundError(SbvcError):
    """The store file does not exist."""


class AlreadyExistsError(SbvcError):
    """A store file already exists at the requested path."""


class MalformedStoreError(SbvcError):
    """The store file failed validation on load."""


class CorruptDifferenceError(SbvcError):
    """A stored difference does not fit the content it is applied to."""


class UnknownVersionError(SbvcError):
    """The requested version id is not in the store."""

    def __init__(self, version_id: int) -> None:
        super().__init__(f"Unknown version: {version_id}")
        self.version_id = version_id


class CannotDeleteRootError(SbvcError):
    """The root version cannot be deleted."""


class UncommittedChangesError(SbvcError):
    """The tracked file has edits that were not committed.

    Expected control flow: callers re-prompt the user and retry with
    ``discard=True``.
    """


class EmptyNameError(SbvcError):
    """A version name must contain at least one non-blank character."""


class HistoryClosedError(SbvcError):
    """The history has been closed."""


class SchedulerClosedError(SbvcError):
    """The scheduler no longer accepts operations."""
