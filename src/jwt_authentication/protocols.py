"""Protocol definitions for key resolution and token extraction.

Structural interfaces (PEP 544) keep the authentication service independent of
where keys live. Any object with a matching ``resolve`` method is a key
provider; no inheritance is needed, which keeps fakes in tests trivial.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

# ============================================================================
# Type Aliases
# ============================================================================

type Claims = Mapping[str, Any]
"""Decoded JWT payload as an immutable mapping."""

type ClaimSet = Mapping[str, Any] | Iterable[tuple[str, Any]]
"""Caller-supplied claims: a mapping, or ordered ``(name, value)`` pairs."""

type RSAKey = RSAPrivateKey | RSAPublicKey
"""A resolved key. Private keys sign and verify; public keys only verify."""

type ViewFunc = Callable[..., Any]
"""Type alias for Flask view functions."""


# ============================================================================
# Core Protocols
# ============================================================================


class KeyProvider(Protocol):
    """Protocol for resolving an RSA key from a logical key identifier.

    Implementations:
    - LocalKeyProvider: PEM files looked up through a key-id to path mapping
    - AwsKmsKeyProvider: public keys fetched from AWS KMS
    - AzureKeyVaultKeyProvider: public keys fetched from Azure Key Vault
    - VaultKeyProvider: placeholder for a secret-store backend
    """

    def resolve(self, key_id: str | None) -> RSAKey:
        """Resolve a key by its identifier.

        Args:
            key_id: Logical key identifier.

        Returns:
            A validated RSA key of at least 2048 bits. Never None.

        Raises:
            IdentifierNotSet: key_id is None, empty, or whitespace.
            IdentifierNotFound: key_id is not in the provider's key space.
            SourceUnavailable: The configured location is missing.
            MaterialInvalid: Stored bytes are not a usable RSA key.
            BackendError: The backend failed unexpectedly.
        """
        ...


class TokenExtractor(Protocol):
    """Protocol for pulling a raw token out of the current Flask request."""

    def extract(self) -> str:
        """Return the raw token string.

        Raises:
            TokenNotSet: No token is present.
            TokenEmpty: A token slot is present but blank.
        """
        ...
