"""HTTP transport used to reach the gateway (httpx based by default)."""
from __future__ import annotations
import asyncio
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Protocol, Tuple
import httpx
from .errors import RequestCancelledError, TransportError


@dataclass(frozen=True)
class HTTPOptions:
    """Per-request options. Builders return a new instance."""
    headers: Tuple[Tuple[str, str], ...] = ()
    cookies: Tuple[Tuple[str, str], ...] = ()
    close: bool = False

    def with_header(self, key: str, *vals: str) -> "HTTPOptions":
        """One value replaces any existing `key`; several values are appended."""
        headers = self.headers
        if len(vals) == 1:
            headers = tuple(h for h in headers if h[0].lower() != key.lower())
        return replace(self, headers=headers + tuple((key, v) for v in vals))

    def with_cookies(self, **cookies: str) -> "HTTPOptions":
        return replace(self, cookies=tuple(cookies.items()))

    def with_close(self) -> "HTTPOptions":
        return replace(self, close=True)

    def build_headers(self) -> httpx.Headers:
        headers = httpx.Headers(list(self.headers))
        if self.cookies:
            headers["Cookie"] = "; ".join(f"{k}={v}" for k, v in self.cookies)
        if self.close:
            headers["Connection"] = "close"
        return headers


@dataclass
class HTTPResponse:
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""


class HTTPClient(Protocol):
    async def do(
        self,
        method: str,
        url: str,
        body: bytes,
        options: Optional[HTTPOptions] = None,
        timeout: Optional[float] = None,
    ) -> HTTPResponse:
        """Send one request. `timeout` bounds the whole exchange."""
        ...

    async def aclose(self) -> None:
        ...


def default_async_client(verify: bool = True) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        verify=verify,
        trust_env=True,  # proxy from environment
        timeout=httpx.Timeout(None, connect=30.0),
        limits=httpx.Limits(
            max_connections=1000,
            max_keepalive_connections=1000,
            keepalive_expiry=60.0,
        ),
    )


class HTTPXClient:
    """`HTTPClient` over an `httpx.AsyncClient`; closes the client only if it created it."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, *, verify: bool = True):
        self._owned = client is None
        self._client = client if client is not None else default_async_client(verify)

    async def do(
        self,
        method: str,
        url: str,
        body: bytes,
        options: Optional[HTTPOptions] = None,
        timeout: Optional[float] = None,
    ) -> HTTPResponse:
        headers = (options or HTTPOptions()).build_headers()
        try:
            resp = await asyncio.wait_for(
                self._client.request(method, url, content=body, headers=headers),
                timeout,
            )
        except asyncio.TimeoutError as e:
            # caller deadline hit while the call was outstanding
            raise RequestCancelledError(f"{method} {url} cancelled: deadline exceeded", {"timeout": timeout}) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
        return HTTPResponse(resp.status_code, resp.headers, resp.content)

    async def aclose(self) -> None:
        if self._owned:
            await self._client.aclose()
