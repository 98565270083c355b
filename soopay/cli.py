"""soopay command line: signed gateway calls, response verification, notify replies.

Usage:
    soopay --config soopay.yaml call pay_req_shortcut order_id=A001 amount=100
    soopay verify response.html
    soopay reply ret_code=0000 order_id=A001
    soopay encrypt 6222020000000000000
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from .client import Client
from .config import build_config, load_config
from .errors import SoopayError
from .utils import parse_pairs


def _read_input(path: str) -> bytes:
    if path == "-":
        return sys.stdin.buffer.read()
    with open(path, "rb") as f:
        return f.read()


async def _call(client: Client, service: str, pairs: List[str], timeout: Optional[float]) -> int:
    async with client:
        ret = await client.do(service, parse_pairs(pairs), timeout=timeout)
    print(json.dumps(ret, ensure_ascii=False, indent=2, sort_keys=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="soopay", description="Soopay mobile-payment gateway client")
    parser.add_argument("--config", default="soopay.yaml", help="Path to config yaml (default: soopay.yaml)")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="cmd", required=True)

    p = sub.add_parser("call", help="send a signed request and print the verified answer")
    p.add_argument("service")
    p.add_argument("fields", nargs="*", metavar="key=value")
    p.add_argument("--timeout", type=float, default=None, help="deadline in seconds")

    p = sub.add_parser("verify", help="verify a gateway HTML answer")
    p.add_argument("file", help="HTML file, - for stdin")

    p = sub.add_parser("reply", help="print a signed notify reply")
    p.add_argument("fields", nargs="*", metavar="key=value")

    p = sub.add_parser("encrypt", help="encrypt a sensitive field with the gateway key")
    p.add_argument("text")

    p = sub.add_parser("decrypt", help="decrypt a sensitive field with the merchant key")
    p.add_argument("cipher")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = build_config(load_config(args.config))
        if args.cmd == "call":
            return asyncio.run(_call(Client(config), args.service, args.fields, args.timeout))

        # offline commands: the transport is never opened
        client = Client(config)
        if args.cmd == "verify":
            ret = client.verify_html(_read_input(args.file))
            print(json.dumps(ret, ensure_ascii=False, indent=2, sort_keys=True))
        elif args.cmd == "reply":
            print(client.reply_notify(parse_pairs(args.fields)))
        elif args.cmd == "encrypt":
            print(client.encrypt(args.text))
        elif args.cmd == "decrypt":
            print(client.decrypt(args.cipher))
    except ValueError as e:
        parser.error(str(e))
    except SoopayError as e:
        print(f"error [{e.error_code}]: {e.message}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
