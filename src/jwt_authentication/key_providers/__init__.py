"""
Key provider implementations for resolving RSA keys by logical key id.

This package contains implementations of the KeyProvider protocol, allowing
keys to come from local files, cloud key-management services, or a secret
store without the authentication service knowing which.
"""

from .aws_kms import AwsKmsKeyProvider
from .azure_key_vault import AzureKeyVaultKeyProvider
from .base import require_key_id, resolve_async
from .caching import CachingKeyProvider
from .local import LocalKeyProvider
from .vault import VaultKeyProvider

__all__ = [
    "AwsKmsKeyProvider",
    "AzureKeyVaultKeyProvider",
    "CachingKeyProvider",
    "LocalKeyProvider",
    "VaultKeyProvider",
    "require_key_id",
    "resolve_async",
]
