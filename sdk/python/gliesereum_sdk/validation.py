"""Format rules shared by the transaction builders and validators.

Every predicate is total: it accepts anything (a pydantic model, a plain
mapping decoded from JSON, or garbage) and returns a bool without raising.
Callers should not tell users which rule failed; the reason is only
logged at DEBUG.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel

from gliesereum_sdk.canonical import canonical_bytes
from gliesereum_sdk.identity import validate_address
from gliesereum_sdk.params import PROTOCOL

logger = logging.getLogger(__name__)

_EVENT_KIND_RE = re.compile(r"[a-z][a-z0-9._-]*")
_METHOD_ID_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9._:-]*")
_COMPRESSED_KEY_RE = re.compile(r"0[23][0-9a-fA-F]{64}")
_HEX_RE = re.compile(r"[0-9a-fA-F]+")
_COMPARATORS = frozenset({"<", "<=", "==", ">=", ">"})

# A DER secp256k1 signature is 8 to 72 bytes.
_MIN_DER_HEX = 16
_MAX_DER_HEX = 144


def _as_mapping(value: Any) -> Mapping[str, Any] | None:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, Mapping):
        return value
    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _reject(rule: str, reason: str) -> bool:
    logger.debug("Validation rule failed", extra={"event": "validation.failed", "rule": rule, "reason": reason})
    return False


# ---------------------------------------------------------------------------
# Scalar formats
# ---------------------------------------------------------------------------


def _decimal_pattern(decimals: int) -> re.Pattern[str]:
    return re.compile(rf"[0-9]+(\.[0-9]{{1,{decimals}}})?")


def _parse_decimal(value: Any, decimals: int) -> Decimal | None:
    if not isinstance(value, str) or not _decimal_pattern(decimals).fullmatch(value):
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        return None


def is_valid_fee_format(fee: Any, decimals: int = PROTOCOL.smart_decimals) -> bool:
    """Fee strings: ASCII decimal, up to *decimals* fractional digits, zero allowed."""
    parsed = _parse_decimal(fee, decimals)
    return parsed is not None and parsed >= 0


def is_valid_amount_format(amount: Any, decimals: int = PROTOCOL.smart_decimals) -> bool:
    """Amount strings: like fees but strictly positive."""
    parsed = _parse_decimal(amount, decimals)
    return parsed is not None and parsed > 0


def is_valid_memo(memo: Any) -> bool:
    return isinstance(memo, str) and 0 < len(memo) <= PROTOCOL.max_memo_length


def is_valid_event_kind(kind: Any) -> bool:
    return (
        isinstance(kind, str)
        and len(kind) <= PROTOCOL.max_event_kind_length
        and _EVENT_KIND_RE.fullmatch(kind) is not None
    )


def is_valid_event_data(data: Any) -> bool:
    """Event payloads must be objects whose canonical form fits in 1 KiB."""
    if not isinstance(data, Mapping):
        return False
    try:
        size = len(canonical_bytes(data))
    except (TypeError, ValueError, RecursionError):
        return False
    return size <= PROTOCOL.max_event_data_bytes


def is_valid_raw_data(raw: Any) -> bool:
    if not isinstance(raw, str) or not raw:
        return False
    try:
        size = len(raw.encode("utf-8"))
    except UnicodeEncodeError:
        return False
    return size <= PROTOCOL.max_raw_bytes


def is_valid_address_field(address: Any) -> bool:
    """Address fields must have the fixed encoded length and a valid checksum."""
    return isinstance(address, str) and len(address) == PROTOCOL.address_length and validate_address(address)


def is_valid_public_key_hex(key: Any) -> bool:
    return isinstance(key, str) and _COMPRESSED_KEY_RE.fullmatch(key) is not None


def is_valid_signature_hex(sig: Any) -> bool:
    return (
        isinstance(sig, str)
        and _MIN_DER_HEX <= len(sig) <= _MAX_DER_HEX
        and len(sig) % 2 == 0
        and _HEX_RE.fullmatch(sig) is not None
    )


def is_valid_method_id(method_id: Any) -> bool:
    return (
        isinstance(method_id, str)
        and len(method_id) <= PROTOCOL.max_method_id_length
        and _METHOD_ID_RE.fullmatch(method_id) is not None
    )


# ---------------------------------------------------------------------------
# Signatures and co-signing
# ---------------------------------------------------------------------------


def is_valid_transaction_signature(signature: Any) -> bool:
    sig = _as_mapping(signature)
    if sig is None:
        return _reject("transaction_signature", "not_object")
    if not is_valid_public_key_hex(sig.get("kid")):
        return _reject("transaction_signature", "kid")
    if sig.get("alg") != PROTOCOL.signature_alg:
        return _reject("transaction_signature", "alg")
    if not is_valid_signature_hex(sig.get("sig")):
        return _reject("transaction_signature", "sig")
    return True


def is_valid_cosign_signature(cosig: Any) -> bool:
    data = _as_mapping(cosig)
    if data is None:
        return _reject("cosign_signature", "not_object")
    if not is_valid_method_id(data.get("method_id")):
        return _reject("cosign_signature", "method_id")
    return is_valid_transaction_signature({k: data.get(k) for k in ("kid", "alg", "sig")})


def is_valid_cosign_method(method: Any, *, now_ms: int | None = None) -> bool:
    """Structural check of a co-signing method descriptor.

    A deadline, when present, must lie after *now_ms* (defaults to the
    current time).
    """
    data = _as_mapping(method)
    if data is None:
        return _reject("cosign_method", "not_object")
    if data.get("type") != "cosign":
        return _reject("cosign_method", "type")
    if not is_valid_method_id(data.get("id")):
        return _reject("cosign_method", "id")

    threshold = _as_mapping(data.get("threshold"))
    if threshold is None:
        return _reject("cosign_method", "threshold")
    k, n = threshold.get("k"), threshold.get("n")
    if not (_is_int(k) and _is_int(n)) or k <= 0 or n <= 0 or k > n:
        return _reject("cosign_method", "threshold")

    approvers = data.get("approvers")
    if not isinstance(approvers, list) or not 0 < len(approvers) <= PROTOCOL.max_approvers:
        return _reject("cosign_method", "approvers")
    if not all(is_valid_public_key_hex(a) for a in approvers):
        return _reject("cosign_method", "approver_key")

    deadline = data.get("deadline_ms")
    if deadline is not None:
        if not _is_int(deadline):
            return _reject("cosign_method", "deadline")
        if deadline <= (now_ms if now_ms is not None else _now_ms()):
            return _reject("cosign_method", "deadline_passed")
    return True


# ---------------------------------------------------------------------------
# Smart operations
# ---------------------------------------------------------------------------


def _check_transfer(op: Mapping[str, Any]) -> bool:
    if not is_valid_address_field(op.get("to")):
        return False
    if not is_valid_amount_format(op.get("amount")):
        return False
    return "memo" not in op or op["memo"] is None or is_valid_memo(op["memo"])


def _check_assert_time(op: Mapping[str, Any]) -> bool:
    before, after = op.get("before_ms"), op.get("after_ms")
    for bound in (before, after):
        if bound is not None and (not _is_int(bound) or bound <= 0):
            return False
    return before is None or after is None or after < before


def _check_assert_balance(op: Mapping[str, Any]) -> bool:
    return is_valid_address_field(op.get("address")) and is_valid_amount_format(op.get("gte"))


def _check_assert_compare(op: Mapping[str, Any]) -> bool:
    left, right = op.get("left"), op.get("right")
    return (
        isinstance(left, str)
        and isinstance(right, str)
        and bool(left)
        and bool(right)
        and op.get("cmp") in _COMPARATORS
    )


def _check_emit_event(op: Mapping[str, Any]) -> bool:
    if not is_valid_event_kind(op.get("kind")):
        return False
    return op.get("data") is None or is_valid_event_data(op["data"])


_OP_RULES: dict[str, Callable[[Mapping[str, Any]], bool]] = {
    "transfer": _check_transfer,
    "assert.time": _check_assert_time,
    "assert.balance": _check_assert_balance,
    "assert.compare": _check_assert_compare,
    "emit.event": _check_emit_event,
}

SMART_OP_KINDS = frozenset(_OP_RULES)


def is_valid_smart_operation(op: Any) -> bool:
    """Dispatch on the ``op`` tag; unknown tags are invalid."""
    data = _as_mapping(op)
    if data is None:
        return _reject("smart_operation", "not_object")
    rule = _OP_RULES.get(data.get("op")) if isinstance(data.get("op"), str) else None
    if rule is None:
        return _reject("smart_operation", "unknown_op")
    if not rule(data):
        return _reject("smart_operation", str(data["op"]))
    return True
