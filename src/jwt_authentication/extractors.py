"""Where a protected Flask view finds its token.

Both extractors report the same two failures as ``get_token_principal``:
``TokenNotSet`` when nothing token-shaped was sent and ``TokenEmpty`` when
the carrier is present but blank. The Flask extension maps both to 401.
"""

from __future__ import annotations

from flask import request

from .errors import TokenEmpty, TokenNotSet

_BEARER = "bearer"


def _non_blank(value: str, where: str) -> str:
    value = value.strip()
    if not value:
        raise TokenEmpty(f"{where} is empty")
    return value


class BearerExtractor:
    """Reads ``Authorization: Bearer <token>``. The scheme is case-insensitive.

    Prefer this over cookies: headers are not sent automatically by browsers,
    so no CSRF protection is needed. Only use it over HTTPS.
    """

    def extract(self) -> str:
        header = request.headers.get("Authorization", "").strip()
        if not header:
            raise TokenNotSet("Missing Authorization header")

        scheme, _, credentials = header.partition(" ")
        if scheme.lower() != _BEARER:
            raise TokenNotSet("Invalid authorization scheme (expected 'Bearer')")

        return _non_blank(credentials, "Bearer token")


class CookieExtractor:
    """Reads the token from a named cookie, for browser front ends.

    The cookie should be set ``HttpOnly`` and ``Secure``, and the app needs its
    own CSRF defence.
    """

    def __init__(self, cookie_name: str = "access_token") -> None:
        if not cookie_name or not cookie_name.strip():
            raise ValueError("cookie_name must be a non-empty string")
        self.cookie_name = cookie_name

    def extract(self) -> str:
        value = request.cookies.get(self.cookie_name)
        if value is None:
            raise TokenNotSet(f"Missing cookie '{self.cookie_name}'")
        return _non_blank(value, f"Cookie '{self.cookie_name}'")
