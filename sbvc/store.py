"""
SBVC Version Store - Persisted tree of versions of one tracked file.

The store keeps every version in creation order together with the current
version id, the tracked-file path and the seed content (the reconstruction of
the root). It is written as a single JSON document, always replaced
atomically, and validated eagerly when loaded.

Invariants enforced here:
- exactly one root (``base == id``), and every other version's base was
  created strictly earlier, which also rules out cycles
- ``current`` names an existing version
- removing a version re-parents its children onto its base without changing
  their reconstructed content
"""

import json
import logging
import os
import tempfile
import time
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from sbvc.config import GRANULARITIES, HistoryConfig
from sbvc.diff import Difference, apply, diff
from sbvc.errors import (
    AlreadyExistsError,
    CannotDeleteRootError,
    CorruptDifferenceError,
    MalformedStoreError,
    NotFoundError,
    StorageIOError,
    UnknownVersionError,
)

logger = logging.getLogger(__name__)

FORMAT_TAG = "sbvc"
FORMAT_VERSION = 1
ROOT_NAME = "Initial version"

PathLike = Union[str, Path]


@dataclass(frozen=True)
class Version:
    """One node of the history tree.

    Attributes:
        id: Unique id, assigned in increasing order and never reused
        base: Id of the parent version (equal to ``id`` for the root)
        name: User-assigned label
        date: Unix timestamp of creation
        difference: Delta from the base's content to this version's content
    """

    id: int
    base: int
    name: str
    date: float = field(default_factory=time.time)
    difference: Difference = field(default_factory=Difference.empty)

    @property
    def is_root(self) -> bool:
        return self.base == self.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "base": self.base,
            "name": self.name,
            "date": self.date,
            "difference": self.difference.to_dict(),
        }


def default_name(version_id: int) -> str:
    return f"Version {version_id}"


def read_text(path: PathLike) -> str:
    """Read a whole file as text.

    Bytes that are not valid UTF-8 are kept as surrogate escapes, so
    ``write_text_atomic(path, read_text(path))`` reproduces the file exactly.

    Raises:
        StorageIOError: If the file cannot be read
    """
    try:
        return Path(path).read_bytes().decode("utf-8", "surrogateescape")
    except OSError as e:
        raise StorageIOError(f"Cannot read {path}: {e}", path=str(path)) from e


def _default_mode() -> int:
    """Mode a plain open() would give a new file (0o666 minus the umask)."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_text_atomic(path: PathLike, content: str) -> None:
    """Replace a file's content without ever exposing a half-written file.

    Writes to a temporary file in the same directory, syncs it and renames it
    over the target. The target's permission bits are kept; a new file gets
    the default mode for the current umask.

    Raises:
        StorageIOError: If any step fails
    """
    path = Path(path)
    tmp: Optional[str] = None
    try:
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, "wb") as f:
            f.write(content.encode("utf-8", "surrogateescape"))
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            os.chmod(tmp, path.stat().st_mode & 0o7777)
        else:
            os.chmod(tmp, _default_mode())
        os.replace(tmp, path)
    except OSError as e:
        if tmp is not None and os.path.exists(tmp):
            os.unlink(tmp)
        raise StorageIOError(f"Cannot write {path}: {e}", path=str(path)) from e


def walk_tree(versions: Sequence[Version]) -> Iterator[Tuple[int, Version]]:
    """Depth-first walk of the version tree.

    Yields the root first, then each version's children in creation order,
    paired with their depth. A visited set guards against revisiting nodes.

    Args:
        versions: Versions in creation order

    Yields:
        (depth, version) tuples
    """
    root: Optional[Version] = None
    children: Dict[int, List[Version]] = {}
    for version in versions:
        if version.is_root:
            if root is None:
                root = version
        else:
            children.setdefault(version.base, []).append(version)

    if root is None:
        return

    visited = set()
    stack: List[Tuple[int, Version]] = [(0, root)]
    while stack:
        depth, version = stack.pop()
        if version.id in visited:
            continue
        visited.add(version.id)
        yield depth, version
        for child in reversed(children.get(version.id, [])):
            stack.append((depth + 1, child))


def _require(data: Dict[str, Any], key: str, kind: type, where: str) -> Any:
    if not isinstance(data, dict) or key not in data:
        raise MalformedStoreError(f"{where}: missing field '{key}'")
    value = data[key]
    if kind is float and isinstance(value, int) and not isinstance(value, bool):
        value = float(value)
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise MalformedStoreError(f"{where}: field '{key}' must be {kind.__name__}")
    return value


def _parse_version(data: Dict[str, Any], position: int) -> Version:
    where = f"version #{position}"
    try:
        difference = Difference.from_dict(_require(data, "difference", dict, where))
    except CorruptDifferenceError as e:
        raise MalformedStoreError(f"{where}: {e}") from e
    return Version(
        id=_require(data, "id", int, where),
        base=_require(data, "base", int, where),
        name=_require(data, "name", str, where),
        date=_require(data, "date", float, where),
        difference=difference,
    )


class VersionStore:
    """In-memory view of a store file plus its persistence.

    Use ``VersionStore.open`` or ``VersionStore.create`` rather than the
    constructor, which performs no validation.
    """

    # Reconstructed contents kept in memory, least recently used evicted first.
    cache_size = 64

    def __init__(
        self,
        path: Path,
        tracked_file: Path,
        seed: str,
        versions: List[Version],
        current: int,
        next_id: int,
        granularity: str = "line",
    ) -> None:
        self._path = path
        self._tracked_file = tracked_file
        self._seed = seed
        self._versions = versions
        self._by_id = {v.id: v for v in versions}
        self._current = current
        self._next_id = next_id
        self._granularity = granularity
        self._cache: "OrderedDict[int, str]" = OrderedDict()

    # --- Construction ---

    @classmethod
    def open(cls, store_path: PathLike) -> "VersionStore":
        """Load and validate a store file.

        Raises:
            NotFoundError: If the store file does not exist
            MalformedStoreError: If the file is not a valid store
            StorageIOError: If the file cannot be read
        """
        path = Path(store_path)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise NotFoundError(f"Store not found: {path}") from e
        except UnicodeDecodeError as e:
            raise MalformedStoreError(f"{path}: not UTF-8 text") from e
        except OSError as e:
            raise StorageIOError(f"Cannot read {path}: {e}", path=str(path)) from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedStoreError(f"{path}: truncated or invalid JSON ({e})") from e

        store = cls._from_dict(path, data)
        logger.debug("Opened store %s with %d versions", path, len(store._versions))
        return store

    @classmethod
    def create(
        cls,
        store_path: PathLike,
        tracked_file: PathLike,
        seed_content: str,
        config: Optional[HistoryConfig] = None,
    ) -> "VersionStore":
        """Write a fresh store containing only the root version.

        Raises:
            AlreadyExistsError: If ``store_path`` is occupied
            StorageIOError: If the store cannot be written
        """
        config = config or HistoryConfig()
        path = Path(store_path)
        if path.exists():
            raise AlreadyExistsError(f"Store already exists: {path}")

        root = Version(id=1, base=1, name=ROOT_NAME)
        store = cls(
            path=path,
            tracked_file=Path(tracked_file).resolve(),
            seed=seed_content,
            versions=[root],
            current=root.id,
            next_id=2,
            granularity=config.granularity,
        )
        store.persist()
        logger.debug("Created store %s tracking %s", path, store._tracked_file)
        return store

    @classmethod
    def _from_dict(cls, path: Path, data: Any) -> "VersionStore":
        if not isinstance(data, dict) or data.get("format") != FORMAT_TAG:
            raise MalformedStoreError(f"{path}: bad header")
        if data.get("format_version") != FORMAT_VERSION:
            raise MalformedStoreError(
                f"{path}: unsupported format version {data.get('format_version')!r}"
            )

        where = str(path)
        granularity = _require(data, "granularity", str, where)
        if granularity not in GRANULARITIES:
            raise MalformedStoreError(f"{path}: unknown granularity {granularity!r}")
        tracked_file = _require(data, "tracked_file", str, where)
        seed = _require(data, "seed", str, where)
        current = _require(data, "current", int, where)
        next_id = _require(data, "next_id", int, where)
        raw_versions = _require(data, "versions", list, where)

        versions: List[Version] = []
        seen = set()
        root_id: Optional[int] = None
        for position, raw in enumerate(raw_versions):
            version = _parse_version(raw, position)
            if version.id in seen:
                raise MalformedStoreError(f"{path}: duplicate version id {version.id}")
            if versions and version.id < versions[-1].id:
                raise MalformedStoreError(f"{path}: version ids out of creation order")
            if version.is_root:
                if root_id is not None:
                    raise MalformedStoreError(
                        f"{path}: more than one root ({root_id} and {version.id})"
                    )
                if not version.difference.is_empty:
                    raise MalformedStoreError(f"{path}: root version has a difference")
                root_id = version.id
            elif version.base not in seen:
                # Bases always point strictly backwards, so a cycle cannot form.
                raise MalformedStoreError(
                    f"{path}: version {version.id} has base {version.base} "
                    "which is unknown or not created earlier"
                )
            seen.add(version.id)
            versions.append(version)

        if root_id is None:
            raise MalformedStoreError(f"{path}: no root version")
        if current not in seen:
            raise MalformedStoreError(f"{path}: current version {current} does not exist")
        if next_id <= versions[-1].id:
            raise MalformedStoreError(f"{path}: next_id {next_id} is not above every id")

        return cls(
            path=path,
            tracked_file=Path(tracked_file),
            seed=seed,
            versions=versions,
            current=current,
            next_id=next_id,
            granularity=granularity,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted document."""
        return {
            "format": FORMAT_TAG,
            "format_version": FORMAT_VERSION,
            "granularity": self._granularity,
            "tracked_file": str(self._tracked_file),
            "seed": self._seed,
            "current": self._current,
            "next_id": self._next_id,
            "versions": [v.to_dict() for v in self._versions],
        }

    # --- Persistence ---

    def persist(self) -> None:
        """Atomically write the whole store to disk.

        Raises:
            StorageIOError: If the write fails; the previous file is untouched
        """
        # ensure_ascii keeps surrogate escapes representable in the JSON text.
        payload = json.dumps(self.to_dict(), indent=2, ensure_ascii=True)
        write_text_atomic(self._path, payload + "\n")
        logger.debug("Persisted %s (current=%d)", self._path, self._current)

    @contextmanager
    def transaction(self) -> Iterator["VersionStore"]:
        """Restore the in-memory state if the body raises."""
        saved = (list(self._versions), self._current, self._next_id, self._tracked_file)
        try:
            yield self
        except BaseException:
            self._versions, self._current, self._next_id, self._tracked_file = saved
            self._by_id = {v.id: v for v in self._versions}
            self._cache.clear()
            raise

    # --- Accessors ---

    @property
    def path(self) -> Path:
        return self._path

    @property
    def tracked_file(self) -> Path:
        return self._tracked_file

    @property
    def granularity(self) -> str:
        return self._granularity

    @property
    def versions(self) -> Tuple[Version, ...]:
        """All versions in creation order."""
        return tuple(self._versions)

    @property
    def current_id(self) -> int:
        return self._current

    @property
    def current(self) -> Version:
        return self._by_id[self._current]

    @property
    def root(self) -> Version:
        return self._versions[0]

    def __contains__(self, version_id: object) -> bool:
        return version_id in self._by_id

    def __len__(self) -> int:
        return len(self._versions)

    def get(self, version_id: int) -> Version:
        """Get a version by id.

        Raises:
            UnknownVersionError: If no such version exists
        """
        try:
            return self._by_id[version_id]
        except KeyError:
            raise UnknownVersionError(version_id) from None

    def children(self, version_id: int) -> List[Version]:
        """Direct children of a version, in creation order."""
        return [v for v in self._versions if v.base == version_id and not v.is_root]

    def iter_tree(self) -> Iterator[Tuple[int, Version]]:
        return walk_tree(self._versions)

    # --- Reconstruction ---

    def reconstruct(self, version_id: int) -> str:
        """Rebuild a version's content by replaying differences from the root.

        Results are memoised, up to ``cache_size`` versions.

        Raises:
            UnknownVersionError: If no such version exists
            CorruptDifferenceError: If a stored difference does not fit its base
        """
        if version_id in self._cache:
            self._cache.move_to_end(version_id)
            return self._cache[version_id]

        node = self.get(version_id)
        chain: List[Version] = []
        visited = set()
        while node.id not in self._cache and not node.is_root:
            if node.id in visited:
                raise MalformedStoreError(f"Cycle through version {node.id}")
            visited.add(node.id)
            chain.append(node)
            parent = self._by_id.get(node.base)
            if parent is None:
                raise MalformedStoreError(f"Version {node.id} has unknown base {node.base}")
            node = parent

        if node.id in self._cache:
            content = self._cache[node.id]
        else:
            content = apply(self._seed, node.difference, self._granularity)
            self._remember(node.id, content)

        for version in reversed(chain):
            content = apply(content, version.difference, self._granularity)
            self._remember(version.id, content)
        return content

    def _remember(self, version_id: int, content: str) -> None:
        self._cache[version_id] = content
        self._cache.move_to_end(version_id)
        while len(self._cache) > max(self.cache_size, 1):
            self._cache.popitem(last=False)

    def diff_from(self, version_id: int, content: str) -> Difference:
        """Difference from a version's reconstruction to ``content``."""
        return diff(self.reconstruct(version_id), content, self._granularity)

    # --- Mutation (callers persist) ---

    def set_current(self, version_id: int) -> None:
        self.get(version_id)
        self._current = version_id

    def set_tracked_file(self, path: PathLike) -> None:
        """Rebind the tracked file. Versions and ``current`` are unchanged."""
        self._tracked_file = Path(path).resolve()

    def append(self, base: int, difference: Difference, name: Optional[str] = None) -> Version:
        """Add a new version on top of ``base``."""
        self.get(base)
        version_id = self._next_id
        self._next_id += 1
        version = Version(
            id=version_id,
            base=base,
            name=name if name is not None else default_name(version_id),
            difference=difference,
        )
        self._versions.append(version)
        self._by_id[version_id] = version
        return version

    def _replace(self, version: Version) -> None:
        index = next(i for i, v in enumerate(self._versions) if v.id == version.id)
        self._versions[index] = version
        self._by_id[version.id] = version

    def rename(self, version_id: int, name: str) -> Version:
        version = replace(self.get(version_id), name=name)
        self._replace(version)
        return version

    def remove(self, version_id: int) -> Version:
        """Remove a version, re-parenting its children onto its base.

        Each child's difference is recomputed against the new base so its
        reconstructed content stays the same. If the removed version was
        current, its base becomes current.

        Raises:
            UnknownVersionError: If no such version exists
            CannotDeleteRootError: If the version is the root
        """
        version = self.get(version_id)
        if version.is_root:
            raise CannotDeleteRootError("The root version cannot be deleted")

        parent_content = self.reconstruct(version.base)
        for child in self.children(version_id):
            child_content = self.reconstruct(child.id)
            self._replace(replace(
                child,
                base=version.base,
                difference=diff(parent_content, child_content, self._granularity),
            ))

        self._versions = [v for v in self._versions if v.id != version_id]
        del self._by_id[version_id]
        self._cache.pop(version_id, None)
        if self._current == version_id:
            self._current = version.base
        return version
