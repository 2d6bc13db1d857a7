"""
Local file key provider.

Resolves RSA keys from PEM files on disk through a key id to path mapping,
typically ``JwtOptions.key_paths``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

import structlog

from ..errors import BackendError, SecurityKeyError, SourceUnavailable
from ..keys import load_pem_rsa_key
from ..protocols import KeyProvider, RSAKey
from .base import lookup_locator, require_key_id

logger = structlog.get_logger(__name__)

type KeyPath = str | os.PathLike[str]


class LocalKeyProvider(KeyProvider):
    """
    Resolves RSA keys from PEM files named by a key id to path mapping.

    Resolution Strategy
    -------------------
    For each requested key id:

    1) Identifier check
        - None/empty/whitespace ids fail with IdentifierNotSet, before any I/O.

    2) Mapping lookup
        - Ids absent from the mapping fail with IdentifierNotFound.
        - A blank path fails with SourceUnavailable.

    3) Read
        - Missing files and directories fail with SourceUnavailable.
        - Any other OS error (permissions, I/O) fails with BackendError.

    4) Parse
        - PEM only; see ``jwt_authentication.keys`` for the accepted blocks.
        - Unsupported formats, bad PEM, non-RSA keys, and keys under
          2048 bits fail with MaterialInvalid.

    The file is read on every call. Wrap the provider in CachingKeyProvider
    to avoid repeated reads.

    Parameters
    ----------
    key_paths : Mapping[str, str | os.PathLike[str]]
        Key id to file path, as a string or a ``pathlib.Path``. Copied at
        construction; later changes to the caller's mapping are not seen.

    Example
    -------
    provider = LocalKeyProvider({"signing": "/etc/keys/private.pem"})
    key = provider.resolve("signing")
    """

    def __init__(self, key_paths: Mapping[str, KeyPath]) -> None:
        self._key_paths: Mapping[str, KeyPath] = MappingProxyType(dict(key_paths))

    def resolve(self, key_id: str | None) -> RSAKey:
        key_id = require_key_id(key_id)
        try:
            path = lookup_locator(self._key_paths, key_id)
            key = load_pem_rsa_key(self._read(key_id, path), key_id)
        except SecurityKeyError as e:
            logger.warning("key.resolve_failed", kid=key_id, kind=e.kind, reason=e.message)
            raise

        logger.debug("key.resolved", kid=key_id, key_size=key.key_size, source="local")
        return key

    @staticmethod
    def _read(key_id: str, location: KeyPath) -> bytes:
        try:
            path = os.fspath(location)
        except TypeError as e:
            raise SourceUnavailable(f"Key path for '{key_id}' is not a file path") from e
        if not path or not path.strip():
            raise SourceUnavailable(f"No key path is configured for '{key_id}'")

        try:
            return Path(path).read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise SourceUnavailable(f"Key file for '{key_id}' not found") from e
        except OSError as e:
            raise BackendError(f"Unable to read key file for '{key_id}': {e.strerror}") from e
