"""
Secret-store (vault) key provider placeholder.
"""

from __future__ import annotations

import structlog

from ..errors import BackendError
from ..protocols import KeyProvider, RSAKey
from .base import require_key_id

logger = structlog.get_logger(__name__)


class VaultKeyProvider(KeyProvider):
    """Placeholder for a secret-store backend such as HashiCorp Vault.

    Every resolution fails with BackendError after the identifier check, so a
    deployment wired to this provider fails loudly instead of running with a
    missing key.
    """

    def resolve(self, key_id: str | None) -> RSAKey:
        key_id = require_key_id(key_id)
        logger.warning("key.resolve_failed", kid=key_id, kind=BackendError.kind, source="vault")
        raise BackendError(
            "Vault integration not implemented; "
            "use LocalKeyProvider, AwsKmsKeyProvider, or AzureKeyVaultKeyProvider"
        )
