"""
Azure Key Vault key provider.

Fetches RSA public keys from Azure Key Vault. Key Vault returns only the
public JWK components (``n``, ``e``) of a key, so resolved keys can verify
tokens but not sign them.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import structlog

from ..errors import BackendError, IdentifierNotFound, MaterialInvalid, SecurityKeyError
from ..keys import public_key_from_components
from ..protocols import KeyProvider, RSAKey
from .base import lookup_locator, require_key_id

logger = structlog.get_logger(__name__)


class AzureKeyVaultKeyProvider(KeyProvider):
    """
    Resolves RSA public keys through ``KeyClient.get_key``.

    Error Mapping
    -------------
    - HTTP 404 from Key Vault         -> IdentifierNotFound
    - non-RSA key type                -> MaterialInvalid
    - any other SDK or HTTP error     -> BackendError

    Parameters
    ----------
    key_client : Any
        An ``azure.keyvault.keys.KeyClient`` or anything with a compatible
        ``get_key(name)``. Typed as Any to avoid a hard dependency on the
        Azure SDK.

    key_names : Mapping[str, str] | None
        Optional logical key id to Key Vault key name mapping. When None, the
        logical id is the key name.

    Example
    -------
    provider = AzureKeyVaultKeyProvider.from_vault_url(
        "https://my-vault.vault.azure.net/"
    )
    public_key = provider.resolve("token-signing")
    """

    def __init__(self, key_client: Any, key_names: Mapping[str, str] | None = None) -> None:
        self._client = key_client
        self._key_names = (
            MappingProxyType(dict(key_names)) if key_names is not None else None
        )

    @classmethod
    def from_vault_url(
        cls, vault_url: str, key_names: Mapping[str, str] | None = None
    ) -> AzureKeyVaultKeyProvider:
        """Build a provider authenticated with ``DefaultAzureCredential``.

        Requires the ``azure`` extra: pip install "jwt-authentication[azure]"
        """
        from azure.identity import DefaultAzureCredential
        from azure.keyvault.keys import KeyClient

        return cls(
            KeyClient(vault_url=vault_url, credential=DefaultAzureCredential()),
            key_names=key_names,
        )

    def resolve(self, key_id: str | None) -> RSAKey:
        key_id = require_key_id(key_id)
        try:
            key = self._fetch(key_id, lookup_locator(self._key_names, key_id))
        except SecurityKeyError as e:
            logger.warning("key.resolve_failed", kid=key_id, kind=e.kind, reason=e.message)
            raise

        logger.debug("key.resolved", kid=key_id, key_size=key.key_size, source="azure_key_vault")
        return key

    def _fetch(self, key_id: str, key_name: str) -> RSAKey:
        try:
            vault_key = self._client.get_key(key_name)
        except Exception as e:
            if getattr(e, "status_code", None) == 404:
                raise IdentifierNotFound(
                    f"Key ID '{key_id}' not found in Azure Key Vault"
                ) from e
            raise BackendError(f"Azure Key Vault error for '{key_id}': {e}") from e

        jwk = vault_key.key
        kty = getattr(jwk, "kty", None)
        key_type = str(getattr(kty, "value", kty) or "")
        # HSM-backed keys report "RSA-HSM".
        if not key_type.upper().startswith("RSA"):
            raise MaterialInvalid(
                f"Azure Key Vault key '{key_id}' is {key_type or 'untyped'}; "
                "an RSA key is required"
            )

        return public_key_from_components(jwk.n, jwk.e, key_id)
