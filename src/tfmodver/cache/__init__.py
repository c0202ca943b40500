"""Disk-backed TTL cache for registry responses."""

from .disk_store import DiskStore, cache_filename
from .models import CacheEntry
from .rwlock import ReadWriteLock

__all__ = ["DiskStore", "CacheEntry", "ReadWriteLock", "cache_filename"]
