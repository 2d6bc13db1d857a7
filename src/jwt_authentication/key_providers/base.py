"""Shared helpers for key provider implementations."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

import structlog

from ..errors import BackendError, IdentifierNotFound, IdentifierNotSet
from ..protocols import KeyProvider, RSAKey

logger = structlog.get_logger(__name__)


def require_key_id(key_id: str | None) -> str:
    """Fail fast on a missing identifier, before any I/O happens.

    Raises:
        IdentifierNotSet: key_id is None, empty, or whitespace-only.
    """
    if key_id is None or not key_id.strip():
        raise IdentifierNotSet("Key identifier is not set")
    return key_id


def lookup_locator[T](locators: Mapping[str, T] | None, key_id: str) -> T | str:
    """Map a key id to a backend locator.

    With no configured mapping the identifier itself is the locator, and the
    backend's own key space decides whether it exists.
    """
    if locators is None:
        return key_id
    try:
        return locators[key_id]
    except KeyError:
        raise IdentifierNotFound(f"Key ID '{key_id}' not found") from None


async def resolve_async(
    provider: KeyProvider,
    key_id: str | None,
    *,
    timeout: float | None = None,
) -> RSAKey:
    """Resolve a key on a worker thread so slow backends don't block the loop.

    The identifier is checked on the calling task before anything is
    scheduled. Cancellation propagates unchanged.

    Raises:
        BackendError: Resolution did not finish within ``timeout`` seconds.
        SecurityKeyError: Whatever the provider raised.
    """
    key_id = require_key_id(key_id)
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(provider.resolve, key_id), timeout=timeout
        )
    except TimeoutError as e:
        logger.warning("key.resolve_timeout", kid=key_id, timeout=timeout)
        raise BackendError(
            f"Resolving key '{key_id}' timed out after {timeout} seconds"
        ) from e
