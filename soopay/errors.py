"""
Soopay SDK exception hierarchy.

Every failure raised by the SDK derives from SoopayError and carries a stable
error code so callers can branch without parsing messages.
"""
from __future__ import annotations
from typing import Any, Dict, Optional


class SoopayError(Exception):
    """Base exception for all SDK errors."""

    def __init__(
        self,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class KeyMissingError(SoopayError):
    """
    An operation needs a key the client was not configured with.

    Configuration error, not retryable:
    - signing or decrypting without the merchant private key
    - verifying or encrypting without the gateway public key
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("soopay:key_missing", message, details)


class CryptoError(SoopayError):
    """The underlying RSA primitive failed (bad key, oversized message, corrupt ciphertext)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("soopay:crypto_failure", message, details)


class SignatureInvalidError(SoopayError):
    """
    Signature verification completed but did not match.

    The whole payload must be treated as untrusted.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("soopay:signature_invalid", message, details)


class MalformedResponseError(SoopayError):
    """The gateway answer lacks the expected structure (e.g. no MobilePayPlatform meta tag)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("soopay:malformed_response", message, details)


class TransportError(SoopayError):
    """Network failure talking to the gateway."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = "soopay:transport_failure"
    ):
        super().__init__(error_code, message, details)


class HTTPStatusError(TransportError):
    """Gateway answered with a status other than 200."""

    def __init__(self, status_code: int, details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        super().__init__(
            f"HTTP request error, status code = {status_code}",
            details,
            error_code="soopay:http_status",
        )


class RequestCancelledError(TransportError):
    """The caller's deadline expired while the gateway call was outstanding."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, error_code="soopay:request_cancelled")


class ConfigError(SoopayError):
    """Client configuration could not be loaded."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("soopay:config_invalid", message, details)
