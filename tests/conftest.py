import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

from soopay import PrivateKey, PublicKey, V
from soopay.crypto import Digest, b64
from soopay.envelope import REPLY_TEMPLATE, VERIFY_OPTIONS

PFX_PASSWORD = "secret"


def _rsa():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _self_signed(key, cn):
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(datetime.datetime(2024, 1, 1))
        .not_valid_after(datetime.datetime(2034, 1, 1))
        .sign(key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def merchant_rsa():
    return _rsa()


@pytest.fixture(scope="session")
def gateway_rsa():
    return _rsa()


@pytest.fixture(scope="session")
def merchant_cert(merchant_rsa):
    return _self_signed(merchant_rsa, "merchant")


@pytest.fixture(scope="session")
def gateway_cert(gateway_rsa):
    return _self_signed(gateway_rsa, "gateway")


@pytest.fixture(scope="session")
def merchant_key(merchant_rsa, merchant_cert):
    return PrivateKey(merchant_rsa, merchant_cert)


@pytest.fixture(scope="session")
def gateway_public(gateway_rsa):
    return PublicKey(gateway_rsa.public_key())


@pytest.fixture(scope="session")
def merchant_public(merchant_rsa):
    return PublicKey(merchant_rsa.public_key())


@pytest.fixture(scope="session")
def gateway_private(gateway_rsa):
    return PrivateKey(gateway_rsa)


@pytest.fixture(scope="session")
def merchant_pfx(merchant_rsa, merchant_cert):
    """Merchant store encrypted the legacy way (TripleDES-SHA1)."""
    encryption = (
        serialization.PrivateFormat.PKCS12.encryption_builder()
        .kdf_rounds(2048)
        .key_cert_algorithm(pkcs12.PBES.PBESv1SHA1And3KeyTripleDESCBC)
        .hmac_hash(hashes.SHA1())
        .build(PFX_PASSWORD.encode())
    )
    return pkcs12.serialize_key_and_certificates(b"merchant", merchant_rsa, merchant_cert, None, encryption)


@pytest.fixture(scope="session")
def gateway_sign(gateway_private):
    """Sign fields the way the gateway does (SHA-256, every field kept); returns the query string."""
    def sign(fields):
        data = V(fields)
        sign_str = data.encode("=", "&", options=VERIFY_OPTIONS)
        data.set("sign", b64(gateway_private.sign(Digest.SHA256, sign_str.encode())))
        data.set("sign_type", "RSA")
        return data.encode("=", "&", escape=True)
    return sign


@pytest.fixture(scope="session")
def gateway_html(gateway_sign):
    def html(fields):
        return REPLY_TEMPLATE.format(content=gateway_sign(fields)).encode()
    return html
