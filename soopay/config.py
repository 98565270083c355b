"""Client configuration from a YAML file + SOOPAY_* environment variables.

Example soopay.yaml:

    mch_id: "60000100"
    gateway: https://pay.soopay.net/spay/pay/payservice.do
    pfx: certs/merchant.p12
    pfx_password: secret
    public_cert: certs/cert_2d59.crt
    timeout: 30
"""
from __future__ import annotations
import logging
import os
from typing import Any, Dict, Mapping, Optional
import yaml
from .client import DEFAULT_GATEWAY, ClientConfig
from .errors import ConfigError
from .keys import (
    load_private_key_from_pem,
    load_private_key_from_pfx,
    load_public_key_from_cert,
    load_public_key_from_pem,
)
from .reqlog import LogHook

logger = logging.getLogger("soopay.config")

ENV_PREFIX = "SOOPAY_"
KNOWN_KEYS = (
    "mch_id",
    "gateway",
    "pfx",
    "pfx_password",
    "private_key",
    "private_key_password",
    "public_cert",
    "public_key",
    "timeout",
    "verify_tls",
)


def load_config(path: str = "soopay.yaml", environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Read settings from `path` (optional) and let SOOPAY_<KEY> env vars override them."""
    data: Dict[str, Any] = {}
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"{path}: invalid yaml: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must be a mapping")
        unknown = sorted(set(data) - set(KNOWN_KEYS))
        if unknown:
            logger.warning(f"{path}: ignoring unknown keys {unknown}")

    env = os.environ if environ is None else environ
    for key in KNOWN_KEYS:
        val = env.get(ENV_PREFIX + key.upper())
        if val is not None:
            data[key] = val
    return {k: v for k, v in data.items() if k in KNOWN_KEYS}


def _as_bool(val: Any) -> bool:
    if isinstance(val, bool):
        return val
    s = str(val).strip().lower()
    if s in ("1", "true", "yes", "on"):
        return True
    if s in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"verify_tls: expected a boolean, got {val!r}")


def _password(val: Any) -> Optional[str]:
    # yaml reads `1234` as an int
    return None if val is None else str(val)


def build_config(settings: Mapping[str, Any], logger_hook: Optional[LogHook] = None) -> ClientConfig:
    """Load the configured keys and return the ClientConfig."""
    mch_id = settings.get("mch_id")
    if not mch_id:
        raise ConfigError("mch_id is required")

    private_key = None
    if settings.get("pfx"):
        private_key = load_private_key_from_pfx(settings["pfx"], _password(settings.get("pfx_password")) or "")
    elif settings.get("private_key"):
        private_key = load_private_key_from_pem(settings["private_key"], _password(settings.get("private_key_password")))

    public_key = None
    if settings.get("public_cert"):
        public_key = load_public_key_from_cert(settings["public_cert"])
    elif settings.get("public_key"):
        public_key = load_public_key_from_pem(settings["public_key"])

    timeout = settings.get("timeout")
    if timeout is not None:
        try:
            timeout = float(timeout)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"timeout: expected seconds, got {timeout!r}") from e

    return ClientConfig(
        mch_id=str(mch_id),
        gateway=settings.get("gateway") or DEFAULT_GATEWAY,
        private_key=private_key,
        public_key=public_key,
        logger=logger_hook,
        verify_tls=_as_bool(settings.get("verify_tls", True)),
        timeout=timeout,
    )
