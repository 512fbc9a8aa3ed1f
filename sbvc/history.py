"""
SBVC History Engine - Operations over one version store.

Usage:
    from sbvc import VersionHistory

    history = VersionHistory.create("notes.sbvc", "notes.txt")

    # ... user edits notes.txt ...
    version = history.commit()
    history.rename("first draft")

    history.checkout(history.root().id, discard=True)
    history.close()

Every public method holds the engine lock, so reads never observe a
half-applied mutation. Mutations run inside a store transaction: on failure
the in-memory state is restored, and a tracked file that was already
overwritten gets its previous content back.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

from sbvc.config import HistoryConfig
from sbvc.errors import (
    EmptyNameError,
    HistoryClosedError,
    StorageIOError,
    UncommittedChangesError,
    UnknownVersionError,
)
from sbvc.store import Version, VersionStore, read_text, walk_tree, write_text_atomic

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class HistorySnapshot:
    """Immutable view of a history, handed to front ends after each operation.

    Attributes:
        versions: All versions in creation order
        current_id: Id of the current version
        tracked_file: Path of the tracked file
        store_path: Path of the store file
        dirty: Whether the tracked file had uncommitted edits
    """

    versions: Tuple[Version, ...]
    current_id: int
    tracked_file: Path
    store_path: Path
    dirty: bool

    @property
    def current(self) -> Version:
        return self.get(self.current_id)

    @property
    def root(self) -> Version:
        return next(v for v in self.versions if v.is_root)

    def get(self, version_id: int) -> Version:
        for version in self.versions:
            if version.id == version_id:
                return version
        raise UnknownVersionError(version_id)

    def iter_tree(self) -> Iterator[Tuple[int, Version]]:
        return walk_tree(self.versions)


class VersionHistory:
    """History engine for one tracked file."""

    def __init__(self, store: VersionStore) -> None:
        self._store = store
        self._lock = threading.RLock()
        self._closed = False

    @classmethod
    def open(cls, store_path: PathLike) -> "VersionHistory":
        """Open an existing store.

        Raises:
            NotFoundError: If the store does not exist
            MalformedStoreError: If the store fails validation
        """
        return cls(VersionStore.open(store_path))

    @classmethod
    def create(
        cls,
        store_path: PathLike,
        tracked_file: PathLike,
        seed_content: Optional[str] = None,
        config: Optional[HistoryConfig] = None,
    ) -> "VersionHistory":
        """Put a file under version control.

        Args:
            store_path: Where to write the new store
            tracked_file: File to track
            seed_content: Content of the root version. Defaults to the
                tracked file's content; a missing file is created empty.
            config: Engine configuration (granularity)

        Raises:
            AlreadyExistsError: If ``store_path`` is occupied
            StorageIOError: If a file cannot be read or written
        """
        tracked = Path(tracked_file)
        missing = seed_content is None and not tracked.exists()
        if seed_content is None:
            seed_content = "" if missing else read_text(tracked)
        store = VersionStore.create(store_path, tracked, seed_content, config=config)

        # The tracked file is only created once the store exists.
        if missing:
            try:
                write_text_atomic(tracked, "")
            except StorageIOError:
                store.path.unlink(missing_ok=True)
                raise
        logger.info("Tracking %s in %s", store.tracked_file, store.path)
        return cls(store)

    # --- Queries ---

    def _check_open(self) -> None:
        if self._closed:
            raise HistoryClosedError("History is closed")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def store_path(self) -> Path:
        return self._store.path

    @property
    def tracked_file(self) -> Path:
        return self._store.tracked_file

    def versions(self) -> Tuple[Version, ...]:
        """All versions in creation order."""
        with self._lock:
            self._check_open()
            return self._store.versions

    def current(self) -> Version:
        with self._lock:
            self._check_open()
            return self._store.current

    def root(self) -> Version:
        with self._lock:
            self._check_open()
            return self._store.root

    def get(self, version_id: int) -> Version:
        with self._lock:
            self._check_open()
            return self._store.get(version_id)

    def content(self, version_id: int) -> str:
        """Reconstructed content of a version."""
        with self._lock:
            self._check_open()
            return self._store.reconstruct(version_id)

    def _read_tracked(self) -> Optional[str]:
        tracked = self._store.tracked_file
        if not tracked.exists():
            return None
        return read_text(tracked)

    def is_dirty(self) -> bool:
        """Whether the tracked file differs from the current version.

        A missing tracked file counts as dirty.
        """
        with self._lock:
            self._check_open()
            return self._read_tracked() != self._store.reconstruct(self._store.current_id)

    def snapshot(self) -> HistorySnapshot:
        with self._lock:
            self._check_open()
            return HistorySnapshot(
                versions=self._store.versions,
                current_id=self._store.current_id,
                tracked_file=self._store.tracked_file,
                store_path=self._store.path,
                dirty=self.is_dirty(),
            )

    # --- Mutations ---

    def _write_tracked(self, content: str, previous: Optional[str]) -> None:
        """Overwrite the tracked file, then persist; undo the write on failure."""
        tracked = self._store.tracked_file
        write_text_atomic(tracked, content)
        try:
            self._store.persist()
        except StorageIOError:
            if previous is None:
                tracked.unlink(missing_ok=True)
            else:
                write_text_atomic(tracked, previous)
            raise

    def commit(self) -> Version:
        """Record the tracked file's content as a child of the current version.

        When the content equals the current version nothing is created and
        the current version is returned.

        Raises:
            StorageIOError: If the tracked file cannot be read or the store
                cannot be written
        """
        with self._lock:
            self._check_open()
            tracked = self._store.tracked_file
            content = read_text(tracked)
            current = self._store.current
            difference = self._store.diff_from(current.id, content)
            if difference.is_empty:
                logger.debug("Nothing to commit on version %d", current.id)
                return current

            with self._store.transaction():
                version = self._store.append(current.id, difference)
                self._store.set_current(version.id)
                self._store.persist()

            logger.info(
                "Committed version %d on %d (%d deletions, %d insertions)",
                version.id,
                current.id,
                len(difference.deletions),
                len(difference.insertions),
            )
            return version

    def checkout(self, target_id: int, discard: bool = False) -> Version:
        """Make a version current and write its content to the tracked file.

        Args:
            target_id: Version to check out
            discard: Overwrite uncommitted edits instead of refusing

        Returns:
            The checked-out version

        Raises:
            UnknownVersionError: If ``target_id`` is not in the store
            UncommittedChangesError: If the tracked file is dirty and
                ``discard`` is False; nothing is changed
        """
        with self._lock:
            self._check_open()
            target = self._store.get(target_id)
            previous = self._read_tracked()
            if not discard and previous != self._store.reconstruct(self._store.current_id):
                raise UncommittedChangesError(
                    f"{self._store.tracked_file} has uncommitted changes"
                )

            content = self._store.reconstruct(target.id)
            with self._store.transaction():
                self._store.set_current(target.id)
                self._write_tracked(content, previous)

            logger.info("Checked out version %d", target.id)
            return target

    def rename(self, new_name: str) -> Version:
        """Rename the current version.

        Raises:
            EmptyNameError: If the name is blank
        """
        name = new_name.strip()
        if not name:
            raise EmptyNameError("Version name cannot be empty")

        with self._lock:
            self._check_open()
            with self._store.transaction():
                version = self._store.rename(self._store.current_id, name)
                self._store.persist()

            logger.info("Renamed version %d to %r", version.id, name)
            return version

    def delete(self) -> Version:
        """Delete the current version.

        Children move onto the deleted version's base, which becomes current,
        and the tracked file is reset to the base's content.

        Returns:
            The deleted version

        Raises:
            CannotDeleteRootError: If the current version is the root
        """
        with self._lock:
            self._check_open()
            previous = self._read_tracked()
            with self._store.transaction():
                removed = self._store.remove(self._store.current_id)
                content = self._store.reconstruct(removed.base)
                self._write_tracked(content, previous)

            logger.info("Deleted version %d, current is now %d", removed.id, removed.base)
            return removed

    def rollback(self) -> Version:
        """Discard uncommitted edits by rewriting the current version's content.

        Raises:
            StorageIOError: If the tracked file cannot be written
        """
        with self._lock:
            self._check_open()
            current = self._store.current
            write_text_atomic(self._store.tracked_file, self._store.reconstruct(current.id))
            logger.info("Rolled back %s to version %d", self._store.tracked_file, current.id)
            return current

    def set_tracked_file(self, path: PathLike) -> Path:
        """Track a different file. Versions and the current pointer are unchanged."""
        with self._lock:
            self._check_open()
            with self._store.transaction():
                self._store.set_tracked_file(path)
                self._store.persist()

            logger.info("Now tracking %s", self._store.tracked_file)
            return self._store.tracked_file

    def close(self) -> None:
        """Close the history. Further calls raise HistoryClosedError."""
        with self._lock:
            if not self._closed:
                self._closed = True
                logger.debug("Closed %s", self._store.path)

    def __enter__(self) -> "VersionHistory":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
