"""Per-call request log handed to the user's logging hook."""
from __future__ import annotations
import logging
from typing import Callable, Dict, Mapping, Optional

logger = logging.getLogger("soopay.reqlog")

LogHook = Callable[[Dict[str, str]], None]


class ReqLog:
    def __init__(self, method: str, url: str):
        self.data: Dict[str, str] = {"method": method, "url": url}

    def set_req_body(self, body: str) -> None:
        self.data["body"] = body

    def set_resp_header(self, headers: Mapping[str, str]) -> None:
        self.data["resp_header"] = "; ".join(f"{k}: {v}" for k, v in headers.items())

    def set_status_code(self, code: int) -> None:
        self.data["status_code"] = str(code)

    def set_resp_body(self, body: str) -> None:
        self.data["resp_body"] = body

    def set_error(self, err: BaseException) -> None:
        self.data["error"] = f"{type(err).__name__}: {err}"

    def emit(self, hook: Optional[LogHook]) -> None:
        """Deliver the summary; a failing hook never fails the call."""
        logger.debug(
            f"{self.data['method']} {self.data['url']} -> {self.data.get('status_code', '-')}"
            + (f" ({self.data['error']})" if "error" in self.data else "")
        )
        if hook is None:
            return
        try:
            hook(dict(self.data))
        except Exception as e:
            logger.warning(f"request log hook failed: {type(e).__name__}: {e}")
