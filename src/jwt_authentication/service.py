"""Token issuance and validation on top of a pluggable KeyProvider.

This module provides the authentication service that:
- Mints RS256 tokens from caller claims, signed with a key resolved by key id
- Validates presented tokens against the same key id and policy
- Generates opaque refresh token strings
- Maps PyJWT exceptions to domain-specific error types

The service holds no per-call state. Policy comes from an immutable
``JwtOptions`` and keys come fresh from the injected ``KeyProvider`` on every
call, so one instance can be shared freely across threads.
"""

from __future__ import annotations

import base64
import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final

import jwt
import structlog

from .errors import (
    ClaimsNotSet,
    MaterialInvalid,
    TokenEmpty,
    TokenExpired,
    TokenInvalid,
    TokenNotSet,
)
from .key_providers.base import require_key_id, resolve_async
from .keys import is_private, verification_key

if TYPE_CHECKING:
    from .config import JwtOptions
    from .protocols import Claims, ClaimSet, KeyProvider, RSAKey

logger = structlog.get_logger(__name__)

REFRESH_TOKEN_BYTES: Final[int] = 64
"""Random bytes behind every refresh token string."""

_MANAGED_CLAIMS: Final[tuple[str, ...]] = ("exp", "iat", "iss", "aud")
"""Registered claims the service sets from policy; caller values are replaced."""

_STRING_CLAIMS: Final[tuple[str, ...]] = ("sub", "jti")
"""Registered claims that must be strings for the token to validate."""


@dataclass(frozen=True, slots=True)
class TokenPrincipal:
    """Result of a successful token validation.

    Attributes:
        claims: The caller claims the token was issued with, without the
            registered claims the service manages (exp, iat, iss, aud).
        issuer: The ``iss`` claim, if present.
        audience: The ``aud`` claim, if present.
        expires_at: The ``exp`` claim as an aware UTC datetime, if present.
        issued_at: The ``iat`` claim as an aware UTC datetime, if present.
        raw: The full decoded payload.
    """

    claims: Claims
    issuer: str | None = None
    audience: str | list[str] | None = None
    expires_at: datetime | None = None
    issued_at: datetime | None = None
    raw: Claims = field(default_factory=dict)

    @property
    def name(self) -> Any:
        """The ``name`` claim, if the token carries one."""
        return self.claims.get("name")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> TokenPrincipal:
        claims = {k: v for k, v in payload.items() if k not in _MANAGED_CLAIMS}
        return cls(
            claims=MappingProxyType(claims),
            issuer=payload.get("iss"),
            audience=payload.get("aud"),
            expires_at=_timestamp(payload.get("exp")),
            issued_at=_timestamp(payload.get("iat")),
            raw=MappingProxyType(dict(payload)),
        )


class AuthenticationService:
    """Issues and validates RS256 tokens with keys resolved by key id.

    Architecture:
        1. Check caller input (claims / token, then key id) without any I/O
        2. Resolve the key via KeyProvider; its errors propagate unchanged
        3. Sign or verify via PyJWT
        4. Map PyJWT exceptions to domain errors

    Thread Safety:
        Thread-safe as long as the KeyProvider is. JwtOptions is frozen.

    Example:
        ```python
        options = JwtOptions(
            issuer="TestIssuer",
            audience="TestAudience",
            expiration_minutes=30,
            key_paths={"signing": "/etc/keys/private.pem"},
        )
        service = AuthenticationService(options, LocalKeyProvider(options.key_paths))

        token = service.generate_token([("name", "testuser")], "signing")

        try:
            principal = service.get_token_principal(token, "signing")
            user = principal.name
        except TokenExpired:
            # Token expired, prompt re-authentication
        except TokenInvalid:
            # Token invalid, reject request
        ```

    Attributes:
        _opt: Immutable token policy.
        _keys: KeyProvider responsible for resolving keys.
    """

    def __init__(self, options: JwtOptions, key_provider: KeyProvider) -> None:
        self._opt = options
        self._keys = key_provider

    @property
    def options(self) -> JwtOptions:
        return self._opt

    def generate_refresh_token_string(self) -> str:
        """Return a base64 string of 64 bytes from the OS CSPRNG."""
        return base64.b64encode(secrets.token_bytes(REFRESH_TOKEN_BYTES)).decode("ascii")

    def generate_token(self, claims: ClaimSet | None, key_id: str | None) -> str:
        """Sign a token carrying ``claims`` with the key named by ``key_id``.

        Args:
            claims: Mapping or ordered ``(name, value)`` pairs. May be empty,
                must not be None. Repeated names in pair form become a list.
            key_id: Identifier of a private signing key.

        Returns:
            The compact JWT string. Its header carries ``kid=key_id``.

        Raises:
            ClaimsNotSet: claims is None.
            IdentifierNotSet: key_id is None, empty, or whitespace.
            MaterialInvalid: The resolved key is public-only and cannot sign.
            SecurityKeyError: Any other failure from the KeyProvider.
        """
        normalized = _normalize_claims(claims)
        key_id = require_key_id(key_id)
        key = self.get_security_key(key_id)
        return self._sign(normalized, key, key_id)

    def get_security_key(self, key_id: str | None) -> RSAKey:
        """Resolve and return the key named by ``key_id``.

        Raises:
            IdentifierNotSet: key_id is None, empty, or whitespace.
            SecurityKeyError: Any other failure from the KeyProvider.
        """
        return self._keys.resolve(require_key_id(key_id))

    def get_token_principal(self, token: str | None, key_id: str | None) -> TokenPrincipal:
        """Verify ``token`` against the key named by ``key_id``.

        Signature is always checked. Issuer and audience are checked when the
        policy sets them; lifetime is checked unless ``validate_lifetime`` is
        False.

        Raises:
            TokenNotSet: token is None.
            TokenEmpty: token is empty or whitespace-only.
            IdentifierNotSet: key_id is None, empty, or whitespace.
            SecurityKeyError: Any other failure from the KeyProvider.
            TokenExpired: The token's exp has passed (accounting for leeway).
            TokenInvalid: Malformed token, bad signature, or claim mismatch.
        """
        _require_token(token)
        key_id = require_key_id(key_id)
        key = self.get_security_key(key_id)
        return self._decode(token, key, key_id)

    # ------------------------------------------------------------------
    # Async variants: key resolution runs on a worker thread, bounded by
    # options.resolve_timeout. Signing and verification are CPU-only.
    # ------------------------------------------------------------------

    async def get_security_key_async(self, key_id: str | None) -> RSAKey:
        return await resolve_async(self._keys, key_id, timeout=self._opt.resolve_timeout)

    async def generate_token_async(self, claims: ClaimSet | None, key_id: str | None) -> str:
        normalized = _normalize_claims(claims)
        key_id = require_key_id(key_id)
        key = await self.get_security_key_async(key_id)
        return self._sign(normalized, key, key_id)

    async def get_token_principal_async(
        self, token: str | None, key_id: str | None
    ) -> TokenPrincipal:
        _require_token(token)
        key_id = require_key_id(key_id)
        key = await self.get_security_key_async(key_id)
        return self._decode(token, key, key_id)

    def _sign(self, claims: dict[str, Any], key: RSAKey, key_id: str) -> str:
        if not is_private(key):
            raise MaterialInvalid(
                f"Key '{key_id}' is verification-only; a private key is required to sign tokens"
            )

        overridden = [name for name in _MANAGED_CLAIMS if name in claims]
        if overridden:
            logger.warning("token.claims_overridden", kid=key_id, claims=overridden)

        now = datetime.now(UTC)
        expires_at = now + timedelta(minutes=self._opt.expiration_minutes)

        payload = {k: v for k, v in claims.items() if k not in _MANAGED_CLAIMS}
        payload["iat"] = now
        payload["exp"] = expires_at
        if self._opt.issuer:
            payload["iss"] = self._opt.issuer
        if self._opt.audience:
            payload["aud"] = self._opt.audience

        token = jwt.encode(
            payload,
            key,
            algorithm=self._opt.algorithm,
            headers={"kid": key_id},
        )
        logger.info(
            "token.issued",
            kid=key_id,
            expires_at=expires_at.isoformat(),
            claims=sorted(claims),
        )
        return token

    def _decode(self, token: str, key: RSAKey, key_id: str) -> TokenPrincipal:
        validate_lifetime = self._opt.validate_lifetime
        try:
            payload = jwt.decode(
                token,
                verification_key(key),
                algorithms=[self._opt.algorithm],  # Explicit allowlist
                audience=self._opt.audience or None,
                issuer=self._opt.issuer or None,
                leeway=self._opt.leeway,
                options={
                    "verify_exp": validate_lifetime,
                    "verify_iat": validate_lifetime,
                    "verify_aud": bool(self._opt.audience),
                    "verify_iss": bool(self._opt.issuer),
                    "require": ["exp"] if validate_lifetime else [],
                },
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("token.rejected", kid=key_id, kind=TokenExpired.kind, reason="expired")
            raise TokenExpired("Token has expired") from e
        except jwt.InvalidTokenError as e:
            logger.info("token.rejected", kid=key_id, kind=TokenInvalid.kind, reason=str(e))
            raise TokenInvalid(f"Invalid token: {e}") from e

        return TokenPrincipal.from_payload(payload)


def _require_token(token: str | None) -> None:
    if token is None:
        raise TokenNotSet("Token is not set")
    if not token.strip():
        raise TokenEmpty("Token is empty")


def _normalize_claims(claims: ClaimSet | None) -> dict[str, Any]:
    """Turn a mapping or ``(name, value)`` pairs into a payload dict.

    Names repeated in pair form are collected into a list in input order.

    Raises:
        ClaimsNotSet: claims is None.
        TypeError: claims is not a mapping or an iterable of pairs with
            string names. Also raised when ``sub`` or ``jti`` is not a
            single string, since such tokens would fail validation.
    """
    if claims is None:
        raise ClaimsNotSet("Claims are not set")

    if isinstance(claims, Mapping):
        pairs = list(claims.items())
    elif isinstance(claims, (str, bytes)):
        raise TypeError("claims must be a mapping or (name, value) pairs, not a string")
    else:
        pairs = list(claims)

    normalized: dict[str, Any] = {}
    repeated: set[str] = set()
    for pair in pairs:
        try:
            name, value = pair
        except (TypeError, ValueError) as e:
            raise TypeError(f"claim {pair!r} is not a (name, value) pair") from e
        if not isinstance(name, str):
            raise TypeError(f"claim name must be a string, got {type(name).__name__}")

        if name not in normalized:
            normalized[name] = value
        elif name in repeated:
            normalized[name].append(value)
        else:
            normalized[name] = [normalized[name], value]
            repeated.add(name)

    for name in _STRING_CLAIMS:
        if name in normalized and not isinstance(normalized[name], str):
            raise TypeError(
                f"claim '{name}' must be a string, got {type(normalized[name]).__name__}"
            )
    return normalized


def _timestamp(value: Any) -> datetime | None:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=UTC)
    return None
