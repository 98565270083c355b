"""Ordered parameter map with a deterministic canonical encoding."""
from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Union
from urllib.parse import parse_qs, quote_plus
from .errors import MalformedResponseError


class EmptyMode(enum.Enum):
    """How `V.encode` treats keys whose value is the empty string."""
    KEEP = "keep"          # key=
    IGNORE = "ignore"      # pair dropped
    ONLY_KEY = "only_key"  # key


@dataclass(frozen=True)
class EncodeOptions:
    empty_mode: EmptyMode = EmptyMode.KEEP
    ignore_keys: frozenset = frozenset()
    escape: bool = False


class V(dict):
    """String to string protocol fields.

    Iteration order is irrelevant: `encode` always sorts keys, so two maps with
    the same contents produce the same string no matter how they were built.
    """

    def set(self, key: str, value: str) -> None:
        self[key] = value

    def encode(
        self,
        kv_sep: str,
        pair_sep: str,
        *,
        empty_mode: EmptyMode = EmptyMode.KEEP,
        ignore_keys: Iterable[str] = (),
        escape: bool = False,
        options: Optional[EncodeOptions] = None,
    ) -> str:
        if options is None:
            options = EncodeOptions(empty_mode, frozenset(ignore_keys), escape)

        parts: List[str] = []
        # code point order == UTF-8 byte order
        for k in sorted(k for k in self if k not in options.ignore_keys):
            val = self[k]
            if not val and options.empty_mode is EmptyMode.IGNORE:
                continue
            key = quote_plus(k) if options.escape else k
            if not val and options.empty_mode is EmptyMode.ONLY_KEY:
                parts.append(key)
                continue
            if options.escape:
                val = quote_plus(val)
            parts.append(f"{key}{kv_sep}{val}")
        return pair_sep.join(parts)

    @classmethod
    def from_query(cls, query: Union[str, bytes, Mapping]) -> "V":
        """Build a map from a query string or parsed query, keeping the first of repeated values."""
        if isinstance(query, bytes):
            try:
                query = query.decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedResponseError(f"query is not valid utf-8: {e}") from e
        if isinstance(query, str):
            query = parse_qs(query, keep_blank_values=True)

        ret = cls()
        for k, vs in query.items():
            if isinstance(vs, str):
                ret.set(k, vs)
            elif vs:
                ret.set(k, vs[0])
        return ret
