"""Cache store for resolved RSA keys.

Resolving a key means a file read and PEM parse, or a network round trip to a
cloud KMS. ``InMemoryKeyCache`` keeps resolved keys for a TTL so repeated
token operations against the same key id stay cheap.

Only successful resolutions are cached. Failures are never remembered, so a
cached provider reports exactly the same errors as the provider it wraps.

Security Note:
    Cached private keys live in process memory for the TTL. Keep TTLs short
    enough that key rotation is picked up in a reasonable time.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .protocols import RSAKey


@dataclass(slots=True)
class _CacheItem:
    """Internal cache entry with TTL tracking.

    Attributes:
        value: The resolved key.
        expires_at: Unix timestamp when this entry should be considered expired.
    """

    value: RSAKey
    expires_at: float


class InMemoryKeyCache:
    """Thread-safe in-process cache of resolved keys, keyed by key id.

    Expired entries are removed lazily on access.

    Example:
        ```python
        cache = InMemoryKeyCache()
        cache.set("signing", private_key, ttl_seconds=300)
        cache.get("signing")  # private_key, until the TTL passes
        ```

    Attributes:
        _store: Internal dict mapping key id -> _CacheItem.
        _lock: Guards _store across threads.
    """

    def __init__(self) -> None:
        self._store: dict[str, _CacheItem] = {}
        self._lock = threading.Lock()

    def get(self, key_id: str) -> RSAKey | None:
        """Return the cached key, or None if absent or expired."""
        with self._lock:
            item = self._store.get(key_id)
            if item is None:
                return None

            if time.time() >= item.expires_at:
                self._store.pop(key_id, None)
                return None

            return item.value

    def set(self, key_id: str, key: RSAKey, ttl_seconds: float) -> None:
        """Cache a key for ``ttl_seconds``.

        Raises:
            ValueError: If key_id is empty or ttl_seconds is not positive.
        """
        if not key_id:
            raise ValueError("key_id must be set to cache a key")
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")

        with self._lock:
            self._store[key_id] = _CacheItem(value=key, expires_at=time.time() + ttl_seconds)

    def delete(self, key_id: str) -> None:
        with self._lock:
            self._store.pop(key_id, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
