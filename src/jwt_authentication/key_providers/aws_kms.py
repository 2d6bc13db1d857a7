"""
AWS KMS key provider.

Fetches RSA public keys from AWS Key Management Service. KMS never releases
the private half of an asymmetric key, so keys from this provider can verify
tokens but not sign them.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Final

import structlog

from ..errors import (
    BackendError,
    IdentifierNotFound,
    MaterialInvalid,
    SecurityKeyError,
    SourceUnavailable,
)
from ..keys import load_der_public_key
from ..protocols import KeyProvider, RSAKey
from .base import lookup_locator, require_key_id

logger = structlog.get_logger(__name__)

_NOT_FOUND_CODES: Final[frozenset[str]] = frozenset({"NotFoundException"})
_UNAVAILABLE_CODES: Final[frozenset[str]] = frozenset(
    {"DisabledException", "KMSInvalidStateException"}
)


class AwsKmsKeyProvider(KeyProvider):
    """
    Resolves RSA public keys through ``kms.get_public_key``.

    Error Mapping
    -------------
    - ``NotFoundException``                 -> IdentifierNotFound
    - ``DisabledException``,
      ``KMSInvalidStateException``          -> SourceUnavailable
    - key spec/usage not RSA signing        -> MaterialInvalid
    - any other client or transport error   -> BackendError

    Parameters
    ----------
    kms_client : Any
        A boto3 KMS client, or anything with a compatible ``get_public_key``.
        Typed as Any to avoid a hard dependency on boto3 types. boto3 clients
        are thread-safe; build one up front and share it.

    key_ids : Mapping[str, str] | None
        Optional logical key id to KMS key id/ARN/alias mapping. When given,
        ids outside it fail with IdentifierNotFound without calling KMS.
        When None, the logical id is passed to KMS as-is.

    Example
    -------
    provider = AwsKmsKeyProvider.from_region(
        "eu-west-1", key_ids={"signing": "alias/token-signing"}
    )
    public_key = provider.resolve("signing")
    """

    def __init__(self, kms_client: Any, key_ids: Mapping[str, str] | None = None) -> None:
        self._client = kms_client
        self._key_ids = MappingProxyType(dict(key_ids)) if key_ids is not None else None

    @classmethod
    def from_region(
        cls, region_name: str, key_ids: Mapping[str, str] | None = None
    ) -> AwsKmsKeyProvider:
        """Build a provider with a fresh boto3 KMS client for ``region_name``.

        Requires the ``aws`` extra: pip install "jwt-authentication[aws]"
        """
        import boto3

        return cls(boto3.client("kms", region_name=region_name), key_ids=key_ids)

    def resolve(self, key_id: str | None) -> RSAKey:
        key_id = require_key_id(key_id)
        try:
            key = self._fetch(key_id, lookup_locator(self._key_ids, key_id))
        except SecurityKeyError as e:
            logger.warning("key.resolve_failed", kid=key_id, kind=e.kind, reason=e.message)
            raise

        logger.debug("key.resolved", kid=key_id, key_size=key.key_size, source="aws_kms")
        return key

    def _fetch(self, key_id: str, kms_key_id: str) -> RSAKey:
        try:
            response = self._client.get_public_key(KeyId=kms_key_id)
        except Exception as e:
            code = _error_code(e)
            if code in _NOT_FOUND_CODES:
                raise IdentifierNotFound(f"Key ID '{key_id}' not found in AWS KMS") from e
            if code in _UNAVAILABLE_CODES:
                raise SourceUnavailable(f"AWS KMS key '{key_id}' is not usable ({code})") from e
            raise BackendError(f"AWS KMS error for '{key_id}': {e}") from e

        key_spec = response.get("KeySpec") or response.get("CustomerMasterKeySpec", "")
        if key_spec and not key_spec.startswith("RSA_"):
            raise MaterialInvalid(f"AWS KMS key '{key_id}' is {key_spec}; an RSA key is required")

        usage = response.get("KeyUsage")
        if usage and usage != "SIGN_VERIFY":
            raise MaterialInvalid(
                f"AWS KMS key '{key_id}' has usage {usage}; SIGN_VERIFY is required"
            )

        der = response.get("PublicKey")
        if not der:
            raise MaterialInvalid(f"AWS KMS returned no public key for '{key_id}'")

        return load_der_public_key(bytes(der), key_id)


def _error_code(exc: Exception) -> str | None:
    """Pull the service error code out of a botocore ClientError, if present."""
    response = getattr(exc, "response", None)
    if not isinstance(response, Mapping):
        return None
    return response.get("Error", {}).get("Code")
