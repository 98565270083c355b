"""Key loading: merchant PKCS#12 store, gateway certificate, PEM keys.

Every loader accepts either a file path or the raw file contents as bytes.
"""
from __future__ import annotations
import logging
import os
from typing import Optional, Union
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.serialization import (
    load_der_public_key,
    load_pem_private_key,
    load_pem_public_key,
    pkcs12,
)
from .crypto import PrivateKey, PublicKey
from .errors import CryptoError

logger = logging.getLogger("soopay.keys")

Source = Union[str, "os.PathLike[str]", bytes]


def _read(source: Source) -> bytes:
    if isinstance(source, bytes):
        return source
    path = os.path.abspath(os.path.normpath(os.fspath(source)))
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise CryptoError(f"cannot read key file {path}: {e}") from e


def load_private_key_from_pfx(source: Source, password: str) -> PrivateKey:
    """
    Load the merchant key and certificate from a PKCS#12 (.pfx/.p12) store.

    The gateway issues stores encrypted with "TripleDES-SHA1"; newer
    PBES2/AES stores load as well.
    """
    data = _read(source)
    try:
        key, cert, _ = pkcs12.load_key_and_certificates(
            data, password.encode("utf-8") if password else None
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CryptoError(f"invalid pkcs12 store: {e}") from e
    if key is None:
        raise CryptoError("pkcs12 store holds no private key")
    if cert is not None:
        logger.debug(f"loaded pfx key, cert subject {cert.subject.rfc4514_string()}")
    return PrivateKey(key, cert)


def load_private_key_from_pem(source: Source, password: Optional[str] = None) -> PrivateKey:
    data = _read(source)
    try:
        key = load_pem_private_key(data, password=password.encode("utf-8") if password else None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CryptoError(f"invalid pem private key: {e}") from e
    return PrivateKey(key)


def load_public_key_from_cert(source: Source) -> PublicKey:
    """Load the gateway public key from an X.509 certificate (PEM or DER)."""
    data = _read(source)
    try:
        if b"-----BEGIN" in data:
            cert = x509.load_pem_x509_certificate(data)
        else:
            cert = x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise CryptoError(f"invalid certificate: {e}") from e
    return PublicKey(cert.public_key())


def load_public_key_from_pem(source: Source) -> PublicKey:
    """Load a SubjectPublicKeyInfo ("PUBLIC KEY") or PKCS#1 ("RSA PUBLIC KEY") key; DER is accepted too."""
    data = _read(source)
    try:
        if b"-----BEGIN" in data:
            key = load_pem_public_key(data)
        else:
            key = load_der_public_key(data)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CryptoError(f"invalid public key: {e}") from e
    return PublicKey(key)
