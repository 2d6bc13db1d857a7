"""
Caching decorator for any key provider.
"""

from __future__ import annotations

import structlog

from ..cache_stores import InMemoryKeyCache
from ..protocols import KeyProvider, RSAKey
from .base import require_key_id

logger = structlog.get_logger(__name__)


class CachingKeyProvider(KeyProvider):
    """
    Wraps a KeyProvider and caches successful resolutions for a TTL.

    Failure semantics are unchanged: errors from the wrapped provider
    propagate as-is and are never cached, so the next call retries the
    backend. The identifier check still runs before the cache is consulted.

    Parameters
    ----------
    inner : KeyProvider
        The provider that actually loads keys.

    cache : InMemoryKeyCache | None
        Cache to use. A private cache is created when omitted.

    ttl_seconds : float
        How long a resolved key is reused.

    Example
    -------
    provider = CachingKeyProvider(LocalKeyProvider(options.key_paths), ttl_seconds=300)
    """

    def __init__(
        self,
        inner: KeyProvider,
        cache: InMemoryKeyCache | None = None,
        ttl_seconds: float = 600,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._inner = inner
        self._cache = cache or InMemoryKeyCache()
        self._ttl = ttl_seconds

    def resolve(self, key_id: str | None) -> RSAKey:
        key_id = require_key_id(key_id)

        cached = self._cache.get(key_id)
        if cached is not None:
            logger.debug("key.cache_hit", kid=key_id)
            return cached

        key = self._inner.resolve(key_id)
        self._cache.set(key_id, key, ttl_seconds=self._ttl)
        return key

    def invalidate(self, key_id: str) -> None:
        """Drop a cached key, e.g. after rotating it."""
        self._cache.delete(key_id)
