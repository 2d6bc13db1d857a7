"""Flask integration for the authentication service.

Registers one ``AuthenticationService`` per Flask app and protects views with
a decorator that validates the request's bearer token.

Key Components:
- AuthExtension: Registers the service on the app and provides ``require()``
- get_authentication_service: Looks up the registered service

Request flow for a protected view:
1. Extract the token from the request (header or cookie)
2. Validate it with ``AuthenticationService.get_token_principal``
3. Store the principal in ``flask.g.jwt_principal``
4. Convert failures to HTTP responses (401 for token problems, 500 for key
   configuration problems)
"""

from __future__ import annotations

from functools import wraps
from typing import TYPE_CHECKING, Any, Final

import structlog
from flask import Flask, abort, current_app, g

from .errors import AuthError, ErrorKind
from .extractors import BearerExtractor

if TYPE_CHECKING:
    from collections.abc import Callable

    from .protocols import TokenExtractor, ViewFunc
    from .service import AuthenticationService

logger = structlog.get_logger(__name__)

_EXT_KEY: Final[str] = "jwt_authentication"
"""Flask extensions registry key for AuthExtension."""

_STATUS_BY_KIND: Final[dict[ErrorKind, int]] = {
    ErrorKind.TOKEN_NOT_SET: 401,
    ErrorKind.TOKEN_EMPTY: 401,
    ErrorKind.TOKEN_INVALID: 401,
    # Key resolution problems are server misconfiguration, not client errors.
    ErrorKind.IDENTIFIER_NOT_SET: 500,
    ErrorKind.IDENTIFIER_NOT_FOUND: 500,
    ErrorKind.SOURCE_UNAVAILABLE: 500,
    ErrorKind.MATERIAL_INVALID: 500,
    ErrorKind.BACKEND_ERROR: 500,
}

_DESCRIPTION_BY_STATUS: Final[dict[int, str]] = {
    401: "Invalid token",
    500: "Authentication unavailable",
}


class AuthExtension:
    """
    Flask glue for the authentication service.

    Responsibilities:
    - Register the AuthenticationService on the app
    - Extract the token from each protected request
    - Validate it against the configured key id
    - Store the principal in ``flask.g.jwt_principal``
    - Convert domain errors to HTTP responses (abort)

    Pattern:
        auth = AuthExtension()
        auth.init_app(app, service=service, key_id="signing")

    Usage:
        @app.get("/me")
        @auth.require()
        def me():
            return {"name": g.jwt_principal.name}
    """

    def __init__(
        self,
        service: AuthenticationService | None = None,
        key_id: str | None = None,
        extractor: TokenExtractor | None = None,
    ) -> None:
        self._service = service
        self._key_id = key_id
        self._extractor: TokenExtractor = extractor or BearerExtractor()

    @property
    def service(self) -> AuthenticationService:
        if self._service is None:
            raise RuntimeError("AuthExtension has no AuthenticationService configured")
        return self._service

    def init_app(
        self,
        app: Flask,
        *,
        service: AuthenticationService | None = None,
        key_id: str | None = None,
        extractor: TokenExtractor | None = None,
    ) -> None:
        """Register this extension (and its service) on ``app``.

        Args:
            app: The Flask application instance.
            service: Authentication service. Overrides the constructor value.
            key_id: Key id tokens are validated against. Overrides the
                constructor value.
            extractor: Token extractor. Overrides the constructor value.
        """
        if service is not None:
            self._service = service
        if key_id is not None:
            self._key_id = key_id
        if extractor is not None:
            self._extractor = extractor

        app.extensions[_EXT_KEY] = self

    def require(self) -> Callable[[ViewFunc], ViewFunc]:
        """Decorator that rejects requests without a valid token.

        Error mapping:
        - ``TokenNotSet`` / ``TokenEmpty`` / ``TokenInvalid`` -> HTTP 401
        - key resolution errors                               -> HTTP 500
        - any other error                                     -> HTTP 401

        Side Effects:
            - Writes the TokenPrincipal to ``flask.g.jwt_principal`` before
              calling the view.
            - May end request handling early via ``flask.abort``.
        """

        def decorator(view: ViewFunc) -> ViewFunc:
            @wraps(view)
            def wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    token = self._extractor.extract()
                    g.jwt_principal = self.service.get_token_principal(token, self._key_id)
                except AuthError as e:
                    status = _STATUS_BY_KIND.get(e.kind, 401)
                    logger.info("request.unauthenticated", kind=e.kind, status=status)
                    abort(status, description=_DESCRIPTION_BY_STATUS[status])
                except Exception:
                    logger.exception("request.authentication_failed")
                    abort(401, description="Authentication failed")

                return view(*args, **kwargs)

            return wrapper

        return decorator


def get_authentication_service(app: Flask | None = None) -> AuthenticationService:
    """Return the service registered on ``app`` (or the current app).

    Raises:
        RuntimeError: No AuthExtension with a service is registered.
    """
    app = app or current_app
    ext = app.extensions.get(_EXT_KEY)
    if ext is None:
        raise RuntimeError("AuthExtension is not registered on this app; call init_app() first")
    return ext.service
