from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from flask import Flask

import jwt_authentication as m

KEY_ID = "Keys/private.xml"


@pytest.fixture(scope="session")
def rsa_private_key() -> RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_private_key() -> RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def weak_rsa_private_key() -> RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=1024)


@pytest.fixture(scope="session")
def ec_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


def private_pem(key: Any, fmt: str = "pkcs8") -> bytes:
    private_format = (
        serialization.PrivateFormat.PKCS8
        if fmt == "pkcs8"
        else serialization.PrivateFormat.TraditionalOpenSSL
    )
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=private_format,
        encryption_algorithm=serialization.NoEncryption(),
    )


def public_pem(key: Any) -> bytes:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def public_der(key: Any) -> bytes:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture
def pem() -> SimpleNamespace:
    """Key serialization helpers: pem.private(key), pem.public(key), pem.der(key)."""
    return SimpleNamespace(private=private_pem, public=public_pem, der=public_der)


@pytest.fixture
def write_key(tmp_path: Path) -> Callable[[str, bytes], str]:
    """
    Factory fixture that writes key material and returns its path.

    Usage in tests:
        path = write_key("private.pem", private_pem(key))
    """

    def _write(name: str, data: bytes) -> str:
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)

    return _write


@pytest.fixture
def key_paths(
    tmp_path: Path,
    write_key: Callable[[str, bytes], str],
    rsa_private_key: RSAPrivateKey,
) -> dict[str, str]:
    """Key space mirroring the typical layout: one good key, one bad, one missing."""
    return {
        KEY_ID: write_key("private.pem", private_pem(rsa_private_key)),
        "Keys/emptyKey.xml": write_key("emptyKey.xml", b"<RSAKeyValue></RSAKeyValue>"),
        "Keys/notExistingKey.xml": str(tmp_path / "notExistingKey.xml"),
    }


@pytest.fixture
def options(key_paths: dict[str, str]) -> m.JwtOptions:
    return m.JwtOptions(
        issuer="TestIssuer",
        audience="TestAudience",
        expiration_minutes=30,
        key_paths=key_paths,
    )


@pytest.fixture
def service(options: m.JwtOptions) -> m.AuthenticationService:
    return m.AuthenticationService(options, m.LocalKeyProvider(options.key_paths))


@pytest.fixture()
def app():
    app = Flask(__name__)
    app.config["TESTING"] = True
    return app


class FakeClientError(Exception):
    """Mimics botocore.exceptions.ClientError's ``response`` shape."""

    def __init__(self, code: str, message: str = "boom"):
        super().__init__(f"An error occurred ({code}): {message}")
        self.response = {"Error": {"Code": code, "Message": message}}


class FakeKmsClient:
    """
    Minimal boto3 KMS stub.
    Serves DER public keys by KMS key id and records calls.
    """

    def __init__(self, keys: dict[str, bytes] | None = None, **overrides: Any):
        self._keys = keys or {}
        self._overrides = overrides
        self.calls: list[str] = []
        self.error: Exception | None = None

    def get_public_key(self, KeyId: str) -> dict[str, Any]:  # noqa: N803
        self.calls.append(KeyId)
        if self.error is not None:
            raise self.error
        if KeyId not in self._keys:
            raise FakeClientError("NotFoundException", f"Key '{KeyId}' does not exist")
        response = {
            "KeyId": KeyId,
            "PublicKey": self._keys[KeyId],
            "KeySpec": "RSA_2048",
            "KeyUsage": "SIGN_VERIFY",
        }
        response.update(self._overrides)
        return response


class FakeHttpError(Exception):
    """Mimics azure.core.exceptions.HttpResponseError's ``status_code``."""

    def __init__(self, status_code: int, message: str = "boom"):
        super().__init__(message)
        self.status_code = status_code


class FakeKeyClient:
    """Minimal azure KeyClient stub returning KeyVaultKey-shaped objects."""

    def __init__(self, keys: dict[str, RSAPrivateKey] | None = None, kty: str = "RSA"):
        self._keys = keys or {}
        self._kty = kty
        self.calls: list[str] = []
        self.error: Exception | None = None

    def get_key(self, name: str) -> SimpleNamespace:
        self.calls.append(name)
        if self.error is not None:
            raise self.error
        if name not in self._keys:
            raise FakeHttpError(404, f"Key '{name}' was not found")

        numbers = self._keys[name].public_key().public_numbers()
        jwk = SimpleNamespace(
            kty=self._kty,
            n=numbers.n.to_bytes((numbers.n.bit_length() + 7) // 8, "big"),
            e=numbers.e.to_bytes((numbers.e.bit_length() + 7) // 8, "big"),
        )
        return SimpleNamespace(name=name, key=jwk)


@pytest.fixture
def kms_client(rsa_private_key: RSAPrivateKey) -> FakeKmsClient:
    return FakeKmsClient({"arn:aws:kms:eu-west-1:123:key/abc": public_der(rsa_private_key)})


@pytest.fixture
def key_vault_client(rsa_private_key: RSAPrivateKey) -> FakeKeyClient:
    return FakeKeyClient({"token-signing": rsa_private_key})


@pytest.fixture
def fakes() -> SimpleNamespace:
    """Backend stub classes, for tests that need a custom setup."""
    return SimpleNamespace(
        ClientError=FakeClientError,
        KmsClient=FakeKmsClient,
        HttpError=FakeHttpError,
        KeyClient=FakeKeyClient,
    )


@pytest.fixture
def key_id() -> str:
    return KEY_ID
