"""Thread-safe, disk-backed TTL cache for registry responses.

Every key is persisted as one JSON record in the cache directory. Records
are loaded eagerly when the store is opened, and a background thread
periodically evicts expired entries from memory and disk until ``close()``.
"""

from __future__ import annotations

import datetime
import hashlib
import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional, Union

from tfmodver.cache.models import CacheEntry
from tfmodver.cache.rwlock import ReadWriteLock
from tfmodver.common.io_safe import atomic_write, read_text
from tfmodver.common.logging_utils import extra_context, is_debug_enabled
from tfmodver.constants import Constants
from tfmodver.errors import CacheWriteError, InvalidKeyError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = frozenset('/\\:*?"<>|\x00')

TTL = Union[int, float, datetime.timedelta]


def cache_filename(key: str) -> str:
    """Return a filesystem-safe file name for ``key``.

    The key is truncated and unsafe characters are replaced with ``_``; a
    short digest of the full key keeps truncated keys from colliding.
    """
    prefix = key[:Constants.CACHE_KEY_MAX_LEN]
    safe = "".join("_" if (ch in _UNSAFE_CHARS or ch.isspace()) else ch for ch in prefix)
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:12]
    return f"{safe}-{digest}{Constants.CACHE_FILE_SUFFIX}"


def _ttl_seconds(ttl: TTL) -> float:
    if isinstance(ttl, datetime.timedelta):
        return ttl.total_seconds()
    return float(ttl)


class DiskStore:
    """Disk-backed key/value store with per-entry TTL.

    All access to the entry map goes through one reader/writer lock. Disk
    I/O for ``set``/``delete``/``clear`` happens while the writer lock is
    held so memory and disk never disagree.
    """

    def __init__(self, cache_dir: str, cleanup_interval: float = Constants.CACHE_CLEANUP_INTERVAL_SEC):
        """Open (and create if needed) the cache directory.

        Args:
            cache_dir: Directory holding one JSON record per key.
            cleanup_interval: Seconds between background sweeps of expired
                entries. ``0`` or less disables the sweep thread.
        """
        self._base_path = cache_dir
        self._lock = ReadWriteLock()
        self._entries: Dict[str, CacheEntry] = {}
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        self._closed = False

        try:
            os.makedirs(cache_dir, exist_ok=True)
        except OSError as exc:
            raise CacheWriteError(f"failed to create cache directory {cache_dir}: {exc}") from exc

        self._load_from_disk()

        if cleanup_interval and cleanup_interval > 0:
            self._cleanup_interval = float(cleanup_interval)
            self._sweeper = threading.Thread(
                target=self._cleanup_loop, name="tfmodver-cache-sweep", daemon=True
            )
            self._sweeper.start()

    @property
    def path(self) -> str:
        return self._base_path

    def __enter__(self) -> "DiskStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def set(self, key: str, value: Any, ttl: TTL) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds.

        Raises:
            InvalidKeyError: if ``key`` is empty.
            CacheWriteError: if the value cannot be serialized or persisted;
                the in-memory state is left as it was before the call.
        """
        if not key:
            raise InvalidKeyError("key cannot be empty")

        entry = CacheEntry.create(key, value, _ttl_seconds(ttl))
        try:
            payload = json.dumps(entry.to_dict())
        except (TypeError, ValueError) as exc:
            raise CacheWriteError(f"cache value for {key!r} is not serializable: {exc}") from exc

        with self._lock.write_locked():
            previous = self._entries.get(key)
            self._entries[key] = entry
            try:
                atomic_write(self._file_for(key), payload, keep_mode=False)
            except OSError as exc:
                if previous is None:
                    self._entries.pop(key, None)
                else:
                    self._entries[key] = previous
                raise CacheWriteError(f"failed to write cache entry {key!r} to disk: {exc}") from exc

    def get(self, key: str) -> Optional[Any]:
        """Return the value for ``key``, or None if missing or expired."""
        with self._lock.read_locked():
            entry = self._entries.get(key)
        if entry is None or entry.is_expired():
            return None
        return entry.value

    def delete(self, key: str) -> None:
        """Remove ``key`` from memory and disk; absent keys are ignored.

        Raises:
            CacheWriteError: if the record file exists but cannot be removed.
        """
        with self._lock.write_locked():
            self._delete_locked(key)

    def clear(self) -> None:
        """Remove every entry and every record file in the cache directory."""
        with self._lock.write_locked():
            self._entries = {}
            try:
                names = os.listdir(self._base_path)
            except FileNotFoundError:
                return
            except OSError as exc:
                raise CacheWriteError(f"failed to read cache directory: {exc}") from exc
            for name in names:
                full = os.path.join(self._base_path, name)
                if not name.endswith(Constants.CACHE_FILE_SUFFIX) or os.path.isdir(full):
                    continue
                try:
                    os.remove(full)
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    raise CacheWriteError(f"failed to delete cache file {full}: {exc}") from exc

    def exists(self, key: str) -> bool:
        """Return True if ``key`` is present and not expired."""
        with self._lock.read_locked():
            entry = self._entries.get(key)
        return entry is not None and not entry.is_expired()

    def get_expired(self) -> List[CacheEntry]:
        """Return a snapshot of entries whose expiry has passed."""
        with self._lock.read_locked():
            return [e for e in self._entries.values() if e.is_expired()]

    def keys(self) -> List[str]:
        """Return the keys of all live (unexpired) entries."""
        with self._lock.read_locked():
            return [k for k, e in self._entries.items() if not e.is_expired()]

    def __len__(self) -> int:
        return len(self.keys())

    def purge_expired(self) -> int:
        """Evict expired entries from memory and disk; return how many went."""
        removed = 0
        for entry in self.get_expired():
            with self._lock.write_locked():
                current = self._entries.get(entry.key)
                # A concurrent set() may have refreshed the key since the snapshot.
                if current is None or not current.is_expired():
                    continue
                self._delete_locked(entry.key)
                removed += 1
        if removed and is_debug_enabled(logger):
            logger.debug(
                "Evicted expired cache entries",
                extra=extra_context(event="cache_sweep", component="disk_store", count=removed),
            )
        return removed

    def close(self) -> None:
        """Stop the background sweep and wait for it to exit. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join()

    def _file_for(self, key: str) -> str:
        return os.path.join(self._base_path, cache_filename(key))

    def _delete_locked(self, key: str) -> None:
        self._entries.pop(key, None)
        try:
            os.remove(self._file_for(key))
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise CacheWriteError(f"failed to delete cache file for {key!r}: {exc}") from exc

    def _load_from_disk(self) -> None:
        try:
            names = sorted(os.listdir(self._base_path))
        except FileNotFoundError:
            return

        for name in names:
            full = os.path.join(self._base_path, name)
            if not name.endswith(Constants.CACHE_FILE_SUFFIX) or os.path.isdir(full):
                continue
            try:
                entry = CacheEntry.from_dict(json.loads(read_text(full)))
            except (OSError, ValueError) as exc:
                logger.debug(
                    "Skipping unreadable cache record %s: %s",
                    name,
                    exc,
                    extra=extra_context(event="cache_load", component="disk_store", outcome="skipped"),
                )
                continue
            self._entries[entry.key] = entry

    def _cleanup_loop(self) -> None:
        while not self._stop.wait(self._cleanup_interval):
            try:
                self.purge_expired()
            except CacheWriteError as exc:
                logger.warning("Cache sweep failed: %s", exc)
