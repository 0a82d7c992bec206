"""Deterministic JSON serialization (``gls-det-1``).

Every hash and signature in the protocol is computed over the string
produced by :func:`canonical_json`. The verifying node applies the same
rules, so the output must match it character for character:

- mapping keys are sorted (UTF-16 code unit order) and emitted without
  whitespace;
- a key that is missing from a mapping is not emitted at all;
- a key that is present with the value ``None`` is emitted as ``null``;
- numbers use the ECMAScript ``Number#toString`` form, so ``1.0`` becomes
  ``1`` and ``1e-7`` stays ``1e-7``.
"""

from __future__ import annotations

import hashlib
import json
import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from pydantic import BaseModel


def _utf16_key(key: str) -> bytes:
    return key.encode("utf-16-be", "surrogatepass")


def _format_number(value: float) -> str:
    if not math.isfinite(value):
        return "null"
    if value == 0:
        return "0"
    if value < 0:
        return "-" + _format_number(-value)

    # repr() yields the shortest round-tripping digits; re-lay them out the
    # way Number#toString does.
    _, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    digits = "".join(str(d) for d in digit_tuple).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    k = len(digits)
    n = exponent + k

    if k <= n <= 21:
        return digits + "0" * (n - k)
    if 0 < n <= 21:
        return digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return "0." + "0" * (-n) + digits
    e = n - 1
    mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
    return f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"


def canonical_json(value: Any) -> str:
    """Serialize *value* into its single canonical string form.

    Accepts ``None``, booleans, integers, floats, strings, lists, tuples,
    mappings with string keys and pydantic models (dumped by alias).

    Raises:
        TypeError: If *value* contains an unsupported type.
    """
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", by_alias=True)

    if value is None or isinstance(value, (bool, str)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_number(value)
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(canonical_json(item) for item in value) + "]"
    if isinstance(value, Mapping):
        pairs = []
        for key in sorted(value, key=lambda k: _utf16_key(str(k))):
            pairs.append(f"{json.dumps(str(key), ensure_ascii=False)}:{canonical_json(value[key])}")
        return "{" + ",".join(pairs) + "}"
    raise TypeError(f"cannot canonicalize value of type {type(value).__name__}")


def canonical_bytes(value: Any) -> bytes:
    return canonical_json(value).encode("utf-8")


def canonical_hash(value: Any) -> str:
    """Hex SHA-256 of the canonical UTF-8 serialization of *value*."""
    return hashlib.sha256(canonical_bytes(value)).hexdigest()
