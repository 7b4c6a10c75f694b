"""Local snapshot store for normalized resources.

The snapshot is one indented JSON array of resources. Writers take an
advisory ``filelock`` lock next to the file and replace the file through a
temporary sibling, so readers only ever see a complete snapshot. Readers do
not lock. A writer that ignores the lock file can still interleave with
another writer; that case is not detected.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from filelock import FileLock, Timeout

from ..config import Settings, get_settings
from ..errors import CacheCorruptError, CacheIOError, CacheLockError, CacheNotFoundError
from ..models import Resource, ResourceKind

logger = logging.getLogger(__name__)


def belongs_to_scope(resource: Resource, scope_id: str) -> bool:
    """Return True if ``resource`` is owned by scope ``scope_id``.

    A resource belongs to a scope when it is the scope's own project record
    or when its ``project_id`` attribute names the scope.
    """
    if resource.kind is ResourceKind.PROJECT and resource.id == scope_id:
        return True
    return resource.project_id == scope_id


def partition_scope(resources: Iterable[Resource], scope_id: str) -> Tuple[List[Resource], List[Resource]]:
    """Split ``resources`` into (in scope, out of scope), preserving order."""
    inside: List[Resource] = []
    outside: List[Resource] = []
    for res in resources:
        (inside if belongs_to_scope(res, scope_id) else outside).append(res)
    return inside, outside


@dataclass
class MergeResult:
    """Counts describing one scoped merge."""

    scope_id: str
    removed: int
    added: int
    kept: int

    @property
    def total(self) -> int:
        return self.kept + self.added


class SnapshotStore:
    """Durable holder of the full resource list.

    Example:
        >>> store = SnapshotStore(Path("~/.infrakit/cache.json").expanduser())
        >>> store.save(resources)
        >>> store.merge_scope(project_resources, "my-project")
        >>> store.load()
    """

    def __init__(self, path: Union[str, Path], lock_timeout: float = 10.0) -> None:
        self.path = Path(path)
        self.lock_timeout = lock_timeout
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self._lock: Optional[FileLock] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SnapshotStore":
        settings = settings or get_settings()
        return cls(settings.snapshot_path, lock_timeout=settings.lock_timeout)

    def exists(self) -> bool:
        return self.path.is_file()

    def _ensure_dir(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheIOError("create directory for", str(self.path), cause=exc) from exc

    def _writer_lock(self) -> FileLock:
        # One FileLock per store so merge_scope can re-enter through save().
        if self._lock is None:
            self._lock = FileLock(str(self.lock_path), timeout=self.lock_timeout)
        return self._lock

    def _acquire(self) -> FileLock:
        self._ensure_dir()
        lock = self._writer_lock()
        try:
            lock.acquire()
        except Timeout as exc:
            raise CacheLockError(str(self.lock_path), self.lock_timeout) from exc
        return lock

    def save(self, resources: List[Resource]) -> None:
        """Atomically replace the whole snapshot with ``resources``.

        Raises:
            CacheLockError: another writer holds the lock
            CacheIOError: the snapshot could not be written
        """
        lock = self._acquire()
        try:
            self._write(resources)
        finally:
            lock.release()
        logger.info("Saved %d resources to %s", len(resources), self.path)

    def _write(self, resources: List[Resource]) -> None:
        payload = json.dumps([r.to_dict() for r in resources], indent=2)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise CacheIOError("write", str(self.path), cause=exc) from exc
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def load(self) -> List[Resource]:
        """Load every resource in the snapshot.

        Raises:
            CacheNotFoundError: no snapshot has been saved yet
            CacheCorruptError: the file is not a JSON list of resources
            CacheIOError: the file could not be read
        """
        if not self.path.exists():
            raise CacheNotFoundError(str(self.path))
        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            raise CacheIOError("read", str(self.path), cause=exc) from exc

        try:
            data = json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise CacheCorruptError(str(self.path), cause=exc) from exc
        if data is None:
            return []
        if not isinstance(data, list):
            raise CacheCorruptError(
                str(self.path), cause=TypeError(f"expected a list, got {type(data).__name__}")
            )
        try:
            return [Resource.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as exc:
            raise CacheCorruptError(str(self.path), cause=exc) from exc

    def load_or_empty(self) -> List[Resource]:
        """Like ``load`` but a missing snapshot is an empty list."""
        try:
            return self.load()
        except CacheNotFoundError:
            return []

    def merge_scope(self, new_resources: List[Resource], scope_id: str) -> MergeResult:
        """Replace everything owned by ``scope_id`` with ``new_resources``.

        Records outside the scope keep their relative order and are written
        back first; ``new_resources`` follow in the order given. An empty
        ``new_resources`` wipes the scope. The lock is held across the
        read-modify-write.

        Raises:
            ValueError: ``scope_id`` is empty
            CacheCorruptError, CacheIOError, CacheLockError
        """
        if not scope_id:
            raise ValueError("scope_id must be a non-empty string")

        lock = self._acquire()
        try:
            existing = self.load_or_empty()
            removed, kept = partition_scope(existing, scope_id)
            if not new_resources and removed:
                logger.warning(
                    "Merge for scope %s deletes %d resources and adds none", scope_id, len(removed)
                )
            self._write(kept + list(new_resources))
        finally:
            lock.release()

        result = MergeResult(scope_id=scope_id, removed=len(removed), added=len(new_resources), kept=len(kept))
        logger.info(
            "Merged scope %s: removed %d, added %d, kept %d (total %d)",
            scope_id, result.removed, result.added, result.kept, result.total,
        )
        return result
