"""Small helpers (charset transcoding, key=value argument parsing)."""
from __future__ import annotations
from typing import Iterable
from .errors import CryptoError
from .values import V

LEGACY_CHARSET = "gbk"

def decode_legacy(data: bytes, charset: str = LEGACY_CHARSET) -> str:
    """Decrypted gateway fields are GBK bytes; return them as text."""
    try:
        return data.decode(charset)
    except (UnicodeDecodeError, LookupError) as e:
        raise CryptoError(f"cannot decode {charset} plaintext: {e}") from e

def parse_pairs(items: Iterable[str]) -> V:
    """`["amount=100", "order_no=A001"]` -> V. Raises ValueError on an item without '='."""
    ret = V()
    for item in items:
        if "=" not in item:
            raise ValueError(f"expected key=value, got: {item}")
        k, v = item.split("=", 1)
        ret.set(k.strip(), v)
    return ret
