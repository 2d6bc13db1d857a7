"""
RS256 bearer token issuance and validation with pluggable key sources.

High-level flow
---------------
1. A ``KeyProvider`` turns a logical key id into an RSA key (local PEM file,
   AWS KMS, Azure Key Vault, ...). The key is size-checked (>= 2048 bits)
   before it is returned.
2. ``AuthenticationService.generate_token(claims, key_id)`` signs the claims
   plus ``exp``/``iat``/``iss``/``aud`` from ``JwtOptions``.
3. ``AuthenticationService.get_token_principal(token, key_id)`` verifies the
   signature, issuer, audience and lifetime, and returns the claims.
4. Every failure is an ``AuthError`` subclass carrying an ``ErrorKind``.

Security notes
--------------
- Issuer and audience are validated whenever they are configured.
- Only the configured RSA algorithm is accepted on validation.
- Keys from cloud KMS backends are public-only and can verify but never sign.
- Refresh token strings come from the OS CSPRNG.

Example usage
-------------

.. code-block:: python

    from jwt_authentication import (
        AuthenticationService,
        JwtOptions,
        LocalKeyProvider,
        TokenInvalid,
    )

    options = JwtOptions(
        issuer="TestIssuer",
        audience="TestAudience",
        expiration_minutes=30,
        key_paths={"signing": "/etc/keys/private.pem"},
    )
    service = AuthenticationService(options, LocalKeyProvider(options.key_paths))

    token = service.generate_token([("name", "testuser")], "signing")
    principal = service.get_token_principal(token, "signing")
    assert principal.name == "testuser"

    refresh_token = service.generate_refresh_token_string()
"""

# Cache stores
from .cache_stores import InMemoryKeyCache

# Configuration
from .config import JwtOptions

# Errors
from .errors import (
    AuthError,
    BackendError,
    ClaimsNotSet,
    ErrorKind,
    IdentifierNotFound,
    IdentifierNotSet,
    MaterialInvalid,
    SecurityKeyError,
    SourceUnavailable,
    TokenEmpty,
    TokenError,
    TokenExpired,
    TokenInvalid,
    TokenNotSet,
)

# Extractors
from .extractors import BearerExtractor, CookieExtractor

# Flask extension
from .flask_extension import AuthExtension, get_authentication_service

# Key providers
from .key_providers import (
    AwsKmsKeyProvider,
    AzureKeyVaultKeyProvider,
    CachingKeyProvider,
    LocalKeyProvider,
    VaultKeyProvider,
    resolve_async,
)

# Key material
from .keys import MIN_RSA_KEY_SIZE

# Protocols
from .protocols import Claims, ClaimSet, KeyProvider, RSAKey, TokenExtractor

# Service
from .service import AuthenticationService, TokenPrincipal

__all__ = [
    # Errors
    "AuthError",
    "BackendError",
    "ClaimsNotSet",
    "ErrorKind",
    "IdentifierNotFound",
    "IdentifierNotSet",
    "MaterialInvalid",
    "SecurityKeyError",
    "SourceUnavailable",
    "TokenEmpty",
    "TokenError",
    "TokenExpired",
    "TokenInvalid",
    "TokenNotSet",
    # Protocols
    "Claims",
    "ClaimSet",
    "KeyProvider",
    "RSAKey",
    "TokenExtractor",
    # Configuration
    "JwtOptions",
    # Key material
    "MIN_RSA_KEY_SIZE",
    # Key providers
    "AwsKmsKeyProvider",
    "AzureKeyVaultKeyProvider",
    "CachingKeyProvider",
    "LocalKeyProvider",
    "VaultKeyProvider",
    "resolve_async",
    # Cache stores
    "InMemoryKeyCache",
    # Service
    "AuthenticationService",
    "TokenPrincipal",
    # Extractors
    "BearerExtractor",
    "CookieExtractor",
    # Flask extension
    "AuthExtension",
    "get_authentication_service",
]
