"""
Soopay client: builds and signs gateway requests, sends them and verifies the answer.

A Client is created once per merchant account and is safe to share between
concurrent tasks: its config and keys are read-only and every call works on
its own parameter map.
"""
from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import Mapping, Optional, Union
from . import envelope
from .crypto import PrivateKey, PublicKey, b64, b64_decode
from .errors import HTTPStatusError, KeyMissingError, SoopayError
from .reqlog import LogHook, ReqLog
from .transport import HTTPClient, HTTPOptions, HTTPXClient
from .utils import decode_legacy
from .values import V

DEFAULT_GATEWAY = "https://pay.soopay.net/spay/pay/payservice.do"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# ret_code of a successful gateway answer
OK = "0000"


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable client settings.

    private_key: merchant key, needed to sign requests/replies and decrypt.
    public_key: gateway key, needed to verify answers and encrypt.
    logger: optional hook receiving one flattened summary per gateway call.
    timeout: default deadline (seconds) for a gateway call; None = unbounded.
    """
    mch_id: str
    gateway: str = DEFAULT_GATEWAY
    private_key: Optional[PrivateKey] = None
    public_key: Optional[PublicKey] = None
    logger: Optional[LogHook] = None
    verify_tls: bool = True
    timeout: Optional[float] = None


class Client:
    def __init__(self, config: ClientConfig, http_client: Optional[HTTPClient] = None):
        self._config = config
        self._owns_http = http_client is None
        # default transport is opened on the first gateway call
        self._http: Optional[HTTPClient] = http_client

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def mch_id(self) -> str:
        return self._config.mch_id

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def _transport(self) -> HTTPClient:
        if self._http is None:
            self._http = HTTPXClient(verify=self._config.verify_tls)
        return self._http

    async def aclose(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    def encrypt(self, plain: str) -> str:
        """RSA-encrypt a sensitive field (card number, id number...) for the request."""
        if self._config.public_key is None:
            raise KeyMissingError("public key is nil (forgotten configure?)")
        return b64(self._config.public_key.encrypt(plain.encode("utf-8")))

    def decrypt(self, cipher: str) -> str:
        """Decrypt a sensitive field of a gateway answer; the plaintext is GBK encoded."""
        if self._config.private_key is None:
            raise KeyMissingError("private key is nil (forgotten configure?)")
        plain = self._config.private_key.decrypt(b64_decode(cipher))
        return decode_legacy(plain)

    async def do(
        self,
        service: str,
        biz_data: V,
        *,
        timeout: Optional[float] = None,
        options: Optional[HTTPOptions] = None,
    ) -> V:
        """
        Call `service` with `biz_data` and return the verified answer fields.

        One attempt only; retries are the caller's business. `timeout` falls
        back to the configured default and, when hit, raises
        RequestCancelledError. Task cancellation propagates as-is.
        """
        log = ReqLog("POST", self._config.gateway)
        try:
            form = envelope.request_form(self._config.private_key, self._config.mch_id, service, biz_data)
            log.set_req_body(form)

            opts = options or HTTPOptions()
            if not any(k.lower() == "content-type" for k, _ in opts.headers):
                opts = opts.with_header("Content-Type", FORM_CONTENT_TYPE)

            resp = await self._transport().do(
                "POST",
                self._config.gateway,
                form.encode("utf-8"),
                opts,
                timeout if timeout is not None else self._config.timeout,
            )
            log.set_resp_header(resp.headers)
            log.set_status_code(resp.status_code)
            if resp.status_code != 200:
                raise HTTPStatusError(resp.status_code)

            log.set_resp_body(resp.body.decode("utf-8", "replace"))
            return envelope.verify_html(self._config.public_key, resp.body)
        except (SoopayError, asyncio.CancelledError) as e:
            log.set_error(e)
            raise
        finally:
            log.emit(self._config.logger)

    def verify_html(self, body: bytes) -> V:
        return envelope.verify_html(self._config.public_key, body)

    def verify_notify(self, query: Union[str, bytes, Mapping]) -> V:
        """Verify the query params of an inbound gateway notification."""
        return envelope.verify_query(self._config.public_key, query)

    def reply_notify(self, data: V) -> str:
        """Signed HTML acknowledging a notification; `data` holds the reply fields."""
        return envelope.reply_html(self._config.private_key, self._config.mch_id, data)
