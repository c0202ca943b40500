"""Cache entry model shared by the disk store and its callers."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class CacheEntry:
    """A single cached value with its expiry.

    Timestamps are epoch seconds; ``expires_at`` is always
    ``created_at + ttl``.
    """

    key: str
    value: Any
    created_at: float
    expires_at: float
    ttl: float

    @classmethod
    def create(cls, key: str, value: Any, ttl: float, now: float | None = None) -> "CacheEntry":
        created = time.time() if now is None else now
        return cls(key=key, value=value, created_at=created, expires_at=created + ttl, ttl=ttl)

    def is_expired(self, now: float | None = None) -> bool:
        """Check if this entry has expired."""
        return (time.time() if now is None else now) > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        """Rebuild an entry from its serialized form.

        Raises:
            ValueError: if a field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError("cache record is not an object")
        try:
            key = data["key"]
            created_at = float(data["created_at"])
            expires_at = float(data["expires_at"])
            ttl = float(data["ttl"])
            value = data["value"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"malformed cache record: {exc}") from exc
        if not isinstance(key, str) or not key:
            raise ValueError("cache record has no key")
        return cls(key=key, value=value, created_at=created_at, expires_at=expires_at, ttl=ttl)
