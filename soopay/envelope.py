"""Signed envelopes: request form, gateway response verification, notify reply."""
from __future__ import annotations
import logging
from typing import Mapping, Optional, Union
import lxml.html
from lxml import etree
from .crypto import Digest, PrivateKey, PublicKey, b64, b64_decode
from .errors import CryptoError, KeyMissingError, MalformedResponseError, SignatureInvalidError
from .values import EmptyMode, EncodeOptions, V

logger = logging.getLogger("soopay.envelope")

# The gateway uses different digests per direction: outbound requests are
# signed with SHA-1, while gateway responses and our notify replies use
# SHA-256. Do NOT unify these, the real gateway rejects anything else.
REQUEST_DIGEST = Digest.SHA1
RESPONSE_DIGEST = Digest.SHA256
REPLY_DIGEST = Digest.SHA256

META_NAME = "MobilePayPlatform"
CHARSET = "UTF-8"
SIGN_TYPE = "RSA"
RES_FORMAT = "HTML"
VERSION = "4.0"

SIGN_EXCLUDED = frozenset({"sign", "sign_type"})

# signing string for outbound data (request + reply)
SIGN_OPTIONS = EncodeOptions(empty_mode=EmptyMode.IGNORE, ignore_keys=SIGN_EXCLUDED)
# signing string re-derived from gateway data: every received field kept
VERIFY_OPTIONS = EncodeOptions(ignore_keys=SIGN_EXCLUDED)
# transport body / meta content
FORM_OPTIONS = EncodeOptions(empty_mode=EmptyMode.IGNORE, escape=True)

REPLY_TEMPLATE = (
    '<!DOCTYPE HTML PUBLIC "-//W3C//DTD HTML 4.01 Transitional//EN">'
    '<html><head><META NAME="MobilePayPlatform" CONTENT="{content}"/></head><body></body></html>'
)


def _sign(private_key: PrivateKey, digest: Digest, data: V) -> None:
    sign_str = data.encode("=", "&", options=SIGN_OPTIONS)
    data.set("sign", b64(private_key.sign(digest, sign_str.encode("utf-8"))))


def request_form(private_key: Optional[PrivateKey], mch_id: str, service: str, biz_data: V) -> str:
    """
    Complete `biz_data` with the protocol fields, sign it and return the form body.

    `biz_data` is mutated: it ends up holding the protocol fields and `sign`.
    """
    if private_key is None:
        raise KeyMissingError("private key is nil (forgotten configure?)")

    biz_data.set("service", service)
    biz_data.set("charset", CHARSET)
    biz_data.set("sign_type", SIGN_TYPE)
    biz_data.set("res_format", RES_FORMAT)
    biz_data.set("version", VERSION)
    biz_data.set("mer_id", mch_id)

    _sign(private_key, REQUEST_DIGEST, biz_data)
    return biz_data.encode("=", "&", options=FORM_OPTIONS)


def meta_content(body: bytes) -> str:
    """Return the MobilePayPlatform meta content of an HTML document."""
    try:
        # gateway pages carry no charset meta; read them as UTF-8, not Latin-1
        doc = lxml.html.fromstring(body, parser=lxml.html.HTMLParser(encoding="utf-8"))
    except (etree.LxmlError, ValueError) as e:
        raise MalformedResponseError(f"unparsable html: {e}") from e

    found = doc.xpath(f"//meta[@name='{META_NAME}']/@content")
    if not found or not found[0]:
        raise MalformedResponseError("err empty meta content")
    return str(found[0])


def verify_html(public_key: Optional[PublicKey], body: bytes) -> V:
    return verify_query(public_key, meta_content(body))


def verify_query(public_key: Optional[PublicKey], query: Union[str, bytes, Mapping]) -> V:
    """
    Verify a signed parameter set and return every field it carries.

    `query` is a raw query string or an already parsed one (e.g. the query
    params of an inbound notification). Nothing is returned unless the
    signature checks out.
    """
    if public_key is None:
        raise KeyMissingError("public key is nil (forgotten configure?)")

    ret = V.from_query(query)
    sign = ret.get("sign")
    if not sign:
        raise SignatureInvalidError("missing sign", {"fields": sorted(ret)})
    try:
        signature = b64_decode(sign)
    except CryptoError as e:
        raise SignatureInvalidError("sign is not valid base64") from e

    sign_str = ret.encode("=", "&", options=VERIFY_OPTIONS)
    try:
        public_key.verify(RESPONSE_DIGEST, sign_str.encode("utf-8"), signature)
    except SignatureInvalidError:
        logger.warning(f"signature mismatch, fields: {sorted(ret)}")
        raise
    logger.debug(f"verified {len(ret)} fields")
    return ret


def reply_html(private_key: Optional[PrivateKey], mch_id: str, data: V) -> str:
    """Signed HTML acknowledgment for a gateway notification."""
    if private_key is None:
        raise KeyMissingError("private key is nil (forgotten configure?)")

    data.set("mer_id", mch_id)
    data.set("sign_type", SIGN_TYPE)
    data.set("version", VERSION)

    _sign(private_key, REPLY_DIGEST, data)
    return REPLY_TEMPLATE.format(content=data.encode("=", "&", options=FORM_OPTIONS))
