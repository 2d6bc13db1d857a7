"""Key resolution and token lifecycle errors.

Every failure raised by a key provider or by the authentication service is one
of the exceptions below. Each carries an ``ErrorKind`` so callers can branch on
``exc.kind`` without importing the concrete class, and low-level exceptions
(``OSError``, ``cryptography`` parse errors, PyJWT errors, SDK errors) are always
chained as ``__cause__`` rather than passed through unlabeled.

Two families mirror the two halves of the contract:

- ``SecurityKeyError``: resolving a key by identifier failed.
- ``TokenError``: the caller's claims or token were unusable.

Security Note:
    Messages name the key identifier and the failing step, never key material,
    claim values, or token contents.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Stable tag for every failure the package can report."""

    CLAIMS_NOT_SET = "claims_not_set"
    IDENTIFIER_NOT_SET = "identifier_not_set"
    IDENTIFIER_NOT_FOUND = "identifier_not_found"
    SOURCE_UNAVAILABLE = "source_unavailable"
    MATERIAL_INVALID = "material_invalid"
    BACKEND_ERROR = "backend_error"
    TOKEN_NOT_SET = "token_not_set"
    TOKEN_EMPTY = "token_empty"
    TOKEN_INVALID = "token_invalid"


class AuthError(Exception):
    """Base exception for all key resolution and token failures.

    Application code can catch this single type to handle any failure, then
    inspect ``kind`` for the precise reason.

    Attributes:
        kind: The ``ErrorKind`` tag of this failure.
        message: Human-readable description.
    """

    kind: ErrorKind

    def __init__(self, message: str | None = None) -> None:
        self.message = message or (self.__doc__ or type(self).__name__).splitlines()[0]
        super().__init__(self.message)

    @property
    def cause(self) -> BaseException | None:
        """The wrapped low-level exception, if any."""
        return self.__cause__


# ============================================================================
# Key resolution
# ============================================================================


class SecurityKeyError(AuthError):
    """Key could not be resolved."""


class IdentifierNotSet(SecurityKeyError):  # noqa: N818
    """Key identifier is not set."""

    kind = ErrorKind.IDENTIFIER_NOT_SET


class IdentifierNotFound(SecurityKeyError):  # noqa: N818
    """Key identifier is not present in the key space."""

    kind = ErrorKind.IDENTIFIER_NOT_FOUND


class SourceUnavailable(SecurityKeyError):  # noqa: N818
    """Key source is missing or unreachable."""

    kind = ErrorKind.SOURCE_UNAVAILABLE


class MaterialInvalid(SecurityKeyError):  # noqa: N818
    """Key material is unparseable, in the wrong format, or too weak."""

    kind = ErrorKind.MATERIAL_INVALID


class BackendError(SecurityKeyError):
    """Key backend failed unexpectedly."""

    kind = ErrorKind.BACKEND_ERROR


# ============================================================================
# Claims and tokens
# ============================================================================


class TokenError(AuthError):
    """Token could not be issued or validated."""


class ClaimsNotSet(TokenError):  # noqa: N818
    """Claims are not set."""

    kind = ErrorKind.CLAIMS_NOT_SET


class TokenNotSet(TokenError):  # noqa: N818
    """Token is not set."""

    kind = ErrorKind.TOKEN_NOT_SET


class TokenEmpty(TokenError):  # noqa: N818
    """Token is empty."""

    kind = ErrorKind.TOKEN_EMPTY


class TokenInvalid(TokenError):  # noqa: N818
    """Invalid token.

    Raised when signature, structure, issuer, audience, or lifetime
    verification fails.
    """

    kind = ErrorKind.TOKEN_INVALID


class TokenExpired(TokenInvalid):  # noqa: N818
    """Token has expired.

    Shares ``TokenInvalid``'s kind; the subclass only exists so expiry can be
    told apart in logs and metrics.
    """
