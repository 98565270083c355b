"""Python SDK for the Soopay (UMPay) mobile-payment gateway."""
from .client import DEFAULT_GATEWAY, OK, Client, ClientConfig
from .crypto import Digest, PrivateKey, PublicKey
from .envelope import REPLY_DIGEST, REQUEST_DIGEST, RESPONSE_DIGEST
from .errors import (
    ConfigError,
    CryptoError,
    HTTPStatusError,
    KeyMissingError,
    MalformedResponseError,
    RequestCancelledError,
    SignatureInvalidError,
    SoopayError,
    TransportError,
)
from .keys import (
    load_private_key_from_pem,
    load_private_key_from_pfx,
    load_public_key_from_cert,
    load_public_key_from_pem,
)
from .transport import HTTPClient, HTTPOptions, HTTPResponse, HTTPXClient
from .values import EmptyMode, EncodeOptions, V

__version__ = "0.1.0"
