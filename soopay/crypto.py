"""RSA PKCS#1 v1.5 sign/verify/encrypt/decrypt + base64 helpers."""
from __future__ import annotations
import base64
import binascii
import enum
from typing import Optional
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from .errors import CryptoError, SignatureInvalidError


class Digest(enum.Enum):
    SHA1 = "sha1"
    SHA256 = "sha256"

    def algorithm(self) -> hashes.HashAlgorithm:
        return hashes.SHA1() if self is Digest.SHA1 else hashes.SHA256()


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")

def b64_decode(s: str) -> bytes:
    try:
        return base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError(f"invalid base64: {e}") from e


class PrivateKey:
    """Merchant RSA private key (optionally with its certificate): signs and decrypts."""

    __slots__ = ("_key", "_cert")

    def __init__(self, key: rsa.RSAPrivateKey, certificate: Optional[x509.Certificate] = None):
        if not isinstance(key, rsa.RSAPrivateKey):
            raise CryptoError(f"expected an RSA private key, got {type(key).__name__}")
        self._key = key
        self._cert = certificate

    @property
    def certificate(self) -> Optional[x509.Certificate]:
        return self._cert

    def public_key(self) -> "PublicKey":
        return PublicKey(self._key.public_key())

    def sign(self, digest: Digest, message: bytes) -> bytes:
        try:
            return self._key.sign(message, padding.PKCS1v15(), digest.algorithm())
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoError(f"rsa sign failed: {e}") from e

    def decrypt(self, cipher: bytes) -> bytes:
        try:
            return self._key.decrypt(cipher, padding.PKCS1v15())
        except (ValueError, TypeError) as e:
            raise CryptoError(f"rsa decrypt failed: {e}") from e


class PublicKey:
    """Gateway RSA public key: verifies and encrypts."""

    __slots__ = ("_key",)

    def __init__(self, key: rsa.RSAPublicKey):
        if not isinstance(key, rsa.RSAPublicKey):
            raise CryptoError(f"expected an RSA public key, got {type(key).__name__}")
        self._key = key

    def verify(self, digest: Digest, message: bytes, signature: bytes) -> None:
        try:
            self._key.verify(signature, message, padding.PKCS1v15(), digest.algorithm())
        except InvalidSignature as e:
            raise SignatureInvalidError("rsa signature mismatch") from e
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoError(f"rsa verify failed: {e}") from e

    def encrypt(self, plain: bytes) -> bytes:
        try:
            return self._key.encrypt(plain, padding.PKCS1v15())
        except (ValueError, TypeError) as e:
            raise CryptoError(f"rsa encrypt failed: {e}") from e
