"""JSON decoding and encoding that keeps a result exactly as the server wrote it.

Numbers stay as their original literal text and object members keep their
order, duplicates included, so re-indenting a result never changes a value.
``NaN`` and ``Infinity`` are rejected; they are not JSON.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from wsrpc_cli.errors import EncodingError


class Number:
    """A JSON number kept as the literal text it was written with."""

    __slots__ = ("text",)

    def __init__(self, text: str):
        self.text = text

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Number) and other.text == self.text

    def __hash__(self) -> int:
        return hash(self.text)

    def __repr__(self) -> str:
        return f"Number({self.text!r})"


class Object(list):
    """Object members as (key, value) pairs in document order."""

    def get(self, key: str, default: Any = None) -> Any:
        for k, v in reversed(self):
            if k == key:
                return v
        return default


def reject_constant(name: str) -> Any:
    raise EncodingError(f"{name} is not valid JSON")


def loads(text: str, what: str = "JSON value") -> Any:
    try:
        return json.loads(
            text,
            parse_float=Number,
            parse_int=Number,
            parse_constant=reject_constant,
            object_pairs_hook=Object,
        )
    except json.JSONDecodeError as e:
        raise EncodingError(f"malformed {what}: {e}") from e


def dumps(value: Any, indent: Optional[int] = None) -> str:
    """Encode a value from ``loads``; compact unless ``indent`` is given."""
    return _encode(value, indent, 0)


def _encode(value: Any, indent: Optional[int], level: int) -> str:
    if value is None or value is True or value is False:
        return json.dumps(value)
    if isinstance(value, Number):
        return value.text
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, Object):
        sep = ":" if indent is None else ": "
        members = [f"{json.dumps(k, ensure_ascii=False)}{sep}{_encode(v, indent, level + 1)}"
                   for k, v in value]
        return _wrap("{", "}", members, indent, level)
    if isinstance(value, list):
        return _wrap("[", "]", [_encode(v, indent, level + 1) for v in value], indent, level)
    raise EncodingError(f"cannot encode {type(value).__name__} as JSON")


def _wrap(open_: str, close: str, items: list[str], indent: Optional[int], level: int) -> str:
    if not items:
        return open_ + close
    if indent is None:
        return open_ + ",".join(items) + close
    inner = "\n" + " " * (indent * (level + 1))
    return open_ + inner + ("," + inner).join(items) + "\n" + " " * (indent * level) + close
