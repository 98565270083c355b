from urllib.parse import quote_plus

import pytest

from soopay import (
    KeyMissingError,
    MalformedResponseError,
    SignatureInvalidError,
    V,
    envelope,
)
from soopay.crypto import Digest, b64, b64_decode
from soopay.envelope import REPLY_DIGEST, REQUEST_DIGEST, RESPONSE_DIGEST, SIGN_OPTIONS, VERIFY_OPTIONS


def test_direction_digests():
    # requests go out SHA-1, gateway answers and our replies are SHA-256
    assert REQUEST_DIGEST is Digest.SHA1
    assert RESPONSE_DIGEST is Digest.SHA256
    assert REPLY_DIGEST is Digest.SHA256
    assert REQUEST_DIGEST is not RESPONSE_DIGEST


def test_request_form_end_to_end(merchant_key, merchant_public):
    biz = V(amount="100", order_no="A001", remark="")
    form = envelope.request_form(merchant_key, "M1", "buy", biz)

    for part in ("service=buy", "mer_id=M1", "sign_type=RSA", "version=4.0",
                 "charset=UTF-8", "res_format=HTML", "amount=100", "order_no=A001"):
        assert part in form.split("&")
    assert "remark" not in form

    sent = V.from_query(form)
    assert sent["sign"]
    # caller's map accumulated the protocol fields
    assert biz["sign"] == sent["sign"]

    sign_str = (
        "amount=100&charset=UTF-8&mer_id=M1&order_no=A001"
        "&res_format=HTML&service=buy&version=4.0"
    )
    assert sent.encode("=", "&", options=SIGN_OPTIONS) == sign_str
    merchant_public.verify(Digest.SHA1, sign_str.encode(), b64_decode(sent["sign"]))
    with pytest.raises(SignatureInvalidError):
        merchant_public.verify(Digest.SHA256, sign_str.encode(), b64_decode(sent["sign"]))


def test_request_form_without_key():
    biz = V(amount="100")
    with pytest.raises(KeyMissingError):
        envelope.request_form(None, "M1", "buy", biz)
    assert "sign" not in biz


def test_verify_html(gateway_public, gateway_html):
    body = gateway_html({"ret_code": "0000", "ret_msg": "成功", "order_id": "A001", "trade_no": ""})
    ret = envelope.verify_html(gateway_public, body)
    assert ret["ret_code"] == "0000"
    assert ret["ret_msg"] == "成功"
    assert ret["trade_no"] == ""
    assert ret["sign_type"] == "RSA"
    assert "sign" in ret


def test_verify_html_lowercase_meta(gateway_public, gateway_sign):
    body = (
        '<html><head><meta name="MobilePayPlatform" content="%s"></head></html>'
        % gateway_sign({"ret_code": "0000"})
    ).encode()
    assert envelope.verify_html(gateway_public, body)["ret_code"] == "0000"


@pytest.mark.parametrize("body", [
    b"<html><head><title>x</title></head><body>busy</body></html>",
    b'<html><head><meta name="MobilePayPlatform" content=""></head></html>',
    b'<html><head><meta name="Other" content="a=1"></head></html>',
    b"",
])
def test_verify_html_malformed(gateway_public, body):
    with pytest.raises(MalformedResponseError):
        envelope.verify_html(gateway_public, body)


def test_verify_html_tampered_sign(gateway_public, gateway_sign):
    fields = V.from_query(gateway_sign({"ret_code": "0000", "amount": "100"}))
    s = fields["sign"]
    fields["sign"] = s[:10] + ("B" if s[10] != "B" else "C") + s[11:]
    body = envelope.REPLY_TEMPLATE.format(content=fields.encode("=", "&", escape=True)).encode()
    with pytest.raises(SignatureInvalidError):
        envelope.verify_html(gateway_public, body)


def test_verify_query_tampered_field(gateway_public, gateway_sign):
    fields = V.from_query(gateway_sign({"ret_code": "0000", "amount": "100"}))
    fields["amount"] = "1"
    with pytest.raises(SignatureInvalidError):
        envelope.verify_query(gateway_public, fields.encode("=", "&", escape=True))


def test_verify_query_parsed_params(gateway_public, gateway_sign):
    from urllib.parse import parse_qs

    params = parse_qs(gateway_sign({"order_id": "A001", "mer_id": "M1"}), keep_blank_values=True)
    ret = envelope.verify_query(gateway_public, params)
    assert ret["order_id"] == "A001"


def test_verify_query_missing_or_bad_sign(gateway_public):
    with pytest.raises(SignatureInvalidError):
        envelope.verify_query(gateway_public, "ret_code=0000")
    with pytest.raises(SignatureInvalidError):
        envelope.verify_query(gateway_public, "ret_code=0000&sign=%21%21%21")


def test_verify_without_public_key(gateway_sign):
    with pytest.raises(KeyMissingError):
        envelope.verify_query(None, gateway_sign({"a": "1"}))


def test_verify_signed_with_wrong_direction_digest(gateway_public, gateway_private):
    # a SHA-1 signature (request direction) must not pass response verification
    from soopay.crypto import b64

    data = V(ret_code="0000")
    sig = gateway_private.sign(Digest.SHA1, data.encode("=", "&").encode())
    data.set("sign", b64(sig))
    with pytest.raises(SignatureInvalidError):
        envelope.verify_query(gateway_public, data.encode("=", "&", escape=True))


def test_reply_html(merchant_key, merchant_public):
    data = V(order_id="A001", ret_code="0000", ret_msg="")
    html = envelope.reply_html(merchant_key, "M1", data)

    assert html.startswith('<!DOCTYPE HTML PUBLIC "-//W3C//DTD HTML 4.01 Transitional//EN"><html><head>')
    assert html.endswith('"/></head><body></body></html>')

    content = envelope.meta_content(html.encode())
    ret = V.from_query(content)
    assert ret["mer_id"] == "M1"
    assert ret["version"] == "4.0"
    assert ret["sign_type"] == "RSA"
    assert "ret_msg" not in ret

    sign_str = ret.encode("=", "&", options=SIGN_OPTIONS)
    assert sign_str == "mer_id=M1&order_id=A001&ret_code=0000&version=4.0"
    merchant_public.verify(Digest.SHA256, sign_str.encode(), b64_decode(ret["sign"]))
    with pytest.raises(SignatureInvalidError):
        merchant_public.verify(Digest.SHA1, sign_str.encode(), b64_decode(ret["sign"]))


def test_reply_without_key():
    with pytest.raises(KeyMissingError):
        envelope.reply_html(None, "M1", V(order_id="A001"))


def test_verify_html_raw_utf8_content(gateway_public, gateway_private):
    # content written without percent-escaping, only the sign escaped
    data = V(ret_code="0000", ret_msg="成功")
    sign = b64(gateway_private.sign(Digest.SHA256, data.encode("=", "&", options=VERIFY_OPTIONS).encode()))
    content = data.encode("=", "&") + "&sign=" + quote_plus(sign)
    body = envelope.REPLY_TEMPLATE.format(content=content).encode("utf-8")

    assert envelope.meta_content(body).startswith("ret_code=0000&ret_msg=成功&")
    assert envelope.verify_html(gateway_public, body)["ret_msg"] == "成功"
