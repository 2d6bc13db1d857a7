"""Token policy and key-source configuration.

``JwtOptions`` is built once at startup and passed explicitly to the key
provider and the authentication service. It is frozen and its key mapping is a
read-only proxy, so one instance can be shared across threads.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from dotenv import load_dotenv

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True, slots=True)
class JwtOptions:
    """Policy shared by every token one service instance issues or validates.

    Attributes:
        issuer: Value of the ``iss`` claim. Validated on read only when non-empty.
        audience: Value of the ``aud`` claim. Validated on read only when non-empty.
        expiration_minutes: Token lifetime, counted from issuance. Must be > 0.
        key_paths: Key identifier to PEM file path, used by LocalKeyProvider.
        validate_lifetime: Enforce ``exp`` on validation. Disable only for
            tooling that inspects old tokens.
        algorithm: Signing algorithm. Only RSA algorithms make sense here.
        leeway: Clock skew tolerance in seconds for ``exp``/``iat`` checks.
        resolve_timeout: Seconds an async key resolution may take before it
            is reported as a backend failure. None waits indefinitely.

    Example:
        ```python
        options = JwtOptions(
            issuer="TestIssuer",
            audience="TestAudience",
            expiration_minutes=30,
            key_paths={"signing": "/etc/keys/private.pem"},
        )
        ```
    """

    issuer: str = ""
    audience: str = ""
    expiration_minutes: int = 30
    key_paths: Mapping[str, str] = field(default_factory=dict)
    validate_lifetime: bool = True
    algorithm: str = "RS256"
    leeway: int = 0
    resolve_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.expiration_minutes <= 0:
            raise ValueError(
                f"expiration_minutes must be positive, got {self.expiration_minutes}"
            )
        if not self.algorithm.startswith(("RS", "PS")):
            raise ValueError(f"algorithm must be an RSA algorithm, got {self.algorithm!r}")
        if self.leeway < 0:
            raise ValueError(f"leeway must not be negative, got {self.leeway}")
        if self.resolve_timeout is not None and self.resolve_timeout <= 0:
            raise ValueError(
                f"resolve_timeout must be positive, got {self.resolve_timeout}"
            )
        # Snapshot the caller's mapping so later mutation cannot leak in.
        object.__setattr__(self, "key_paths", MappingProxyType(dict(self.key_paths)))

    @classmethod
    def from_env(
        cls,
        dotenv_path: str | os.PathLike[str] | None = None,
        prefix: str = "JWT_",
    ) -> JwtOptions:
        """Build options from environment variables, loading a .env file first.

        Recognised variables (with the default ``JWT_`` prefix):
        ``JWT_ISSUER``, ``JWT_AUDIENCE``, ``JWT_EXPIRATION_MINUTES``,
        ``JWT_KEY_PATHS`` (JSON object of key id to path),
        ``JWT_VALIDATE_LIFETIME``, ``JWT_ALGORITHM``, ``JWT_LEEWAY``,
        ``JWT_RESOLVE_TIMEOUT``. Unset variables keep the dataclass defaults.

        Raises:
            ValueError: A variable is present but malformed.
        """
        load_dotenv(dotenv_path)
        env = {
            name[len(prefix) :]: value
            for name, value in os.environ.items()
            if name.startswith(prefix)
        }

        kwargs: dict[str, object] = {}
        if "ISSUER" in env:
            kwargs["issuer"] = env["ISSUER"]
        if "AUDIENCE" in env:
            kwargs["audience"] = env["AUDIENCE"]
        if "ALGORITHM" in env:
            kwargs["algorithm"] = env["ALGORITHM"]
        if "EXPIRATION_MINUTES" in env:
            kwargs["expiration_minutes"] = _parse_int(
                prefix + "EXPIRATION_MINUTES", env["EXPIRATION_MINUTES"]
            )
        if "LEEWAY" in env:
            kwargs["leeway"] = _parse_int(prefix + "LEEWAY", env["LEEWAY"])
        if "RESOLVE_TIMEOUT" in env:
            raw = env["RESOLVE_TIMEOUT"]
            try:
                kwargs["resolve_timeout"] = float(raw)
            except ValueError as e:
                raise ValueError(f"{prefix}RESOLVE_TIMEOUT must be a number, got {raw!r}") from e
        if "VALIDATE_LIFETIME" in env:
            kwargs["validate_lifetime"] = _parse_bool(
                prefix + "VALIDATE_LIFETIME", env["VALIDATE_LIFETIME"]
            )
        if "KEY_PATHS" in env:
            kwargs["key_paths"] = _parse_key_paths(prefix + "KEY_PATHS", env["KEY_PATHS"])

        return cls(**kwargs)  # type: ignore[arg-type]


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_key_paths(name: str, raw: str) -> dict[str, str]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{name} must be a JSON object") from e

    if not isinstance(parsed, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in parsed.items()
    ):
        raise ValueError(f"{name} must map key ids to path strings")
    return parsed
