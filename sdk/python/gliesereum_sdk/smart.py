"""Smart transactions: multi-operation transactions with co-signing.

A smart transaction carries 1 to 16 operations (transfers, assertions,
events). Its *signing view* is the whole transaction minus ``signatures``
and ``cosigs``; the canonical form of that view is prefixed with the
domain separator ``STELS-TX:<chain_id>:smart-1.0:chain:<chain_id>:`` and
signed. Co-signatures satisfy k-of-n approval methods attached to the
transaction and are added after the sender has signed.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Self, Union

from pydantic import BaseModel, ValidationError

from gliesereum_sdk.canonical import canonical_json
from gliesereum_sdk.exceptions import (
    DataTooLargeError,
    InvalidCosignMethodError,
    InvalidCosignSignatureError,
    InvalidFeeError,
    InvalidOperationError,
)
from gliesereum_sdk.identity import (
    sign_message,
    sign_with_domain,
    verify_public_key_address,
    verify_signature,
    verify_with_domain,
)
from gliesereum_sdk.params import DEFAULT_FEE_SCHEDULE, PROTOCOL, FeeSchedule
from gliesereum_sdk.types import (
    CosignMethod,
    CosignSignature,
    CosignThreshold,
    SmartArgs,
    SmartOp,
    SmartOpModel,
    SmartTransaction,
    TransactionSignature,
    Wallet,
    smart_op_adapter,
)
from gliesereum_sdk.validation import (
    is_valid_address_field,
    is_valid_cosign_method,
    is_valid_cosign_signature,
    is_valid_fee_format,
    is_valid_memo,
    is_valid_raw_data,
    is_valid_smart_operation,
    is_valid_transaction_signature,
)

logger = logging.getLogger(__name__)

_VIEW_EXCLUDE = ("signatures", "cosigs")
_COSIGN_CORE_FIELDS = ("type", "method", "args", "from", "fee", "currency", "timestamp")
_FEE_QUANTUM = Decimal("0.000001")

OpLike = Union[SmartOpModel, Mapping[str, Any]]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _as_dict(value: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return dict(value)


def _entry(value: Any) -> dict[str, Any] | None:
    if isinstance(value, (BaseModel, Mapping)):
        return _as_dict(value)
    return None


def _op_kind(op: OpLike) -> Any:
    return op.op if isinstance(op, BaseModel) else op.get("op")


# ---------------------------------------------------------------------------
# Signing view and domain
# ---------------------------------------------------------------------------


def smart_sign_domain(chain_id: int = PROTOCOL.default_chain_id) -> list[str | int]:
    """The ordered domain separator parts for smart transactions on *chain_id*."""
    return [PROTOCOL.protocol_tag, chain_id, PROTOCOL.tx_version, f"chain:{chain_id}"]


def signing_view(tx: SmartTransaction | Mapping[str, Any]) -> dict[str, Any]:
    """Every field of *tx* except ``signatures`` and ``cosigs``."""
    return {k: v for k, v in _as_dict(tx).items() if k not in _VIEW_EXCLUDE}


def signing_message(tx: SmartTransaction | Mapping[str, Any]) -> str:
    return canonical_json(signing_view(tx))


# ---------------------------------------------------------------------------
# Fees
# ---------------------------------------------------------------------------


def calculate_smart_transaction_fee(
    ops: Sequence[OpLike],
    raw_bytes: int = 0,
    tx_size_bytes: int | None = None,
    *,
    schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> str:
    """Compute the minimum fee for a smart transaction.

    ``base + sum(per_op[kind]) + per_byte * size + per_raw_byte * raw_bytes``,
    where ``size`` is *tx_size_bytes* or, when omitted, the estimate
    ``200 + 100 * len(ops)``.

    Returns:
        The fee as a decimal string with exactly six fractional digits.

    Raises:
        InvalidOperationError: If *ops* is empty, longer than 16, or holds
            an unknown operation kind.
        DataTooLargeError: If *raw_bytes* exceeds the raw payload ceiling.
    """
    if not ops:
        raise InvalidOperationError("at least one operation is required", field="ops", constraint=">= 1")
    if len(ops) > PROTOCOL.max_ops:
        raise InvalidOperationError(
            f"at most {PROTOCOL.max_ops} operations are allowed", field="ops", constraint=f"<= {PROTOCOL.max_ops}"
        )
    if raw_bytes < 0 or (tx_size_bytes is not None and tx_size_bytes < 0):
        raise InvalidOperationError("byte sizes must be non-negative", field="raw_bytes", constraint=">= 0")
    if raw_bytes > PROTOCOL.max_raw_bytes:
        raise DataTooLargeError(
            f"raw data exceeds {PROTOCOL.max_raw_bytes} bytes",
            field="raw",
            constraint=f"<= {PROTOCOL.max_raw_bytes} bytes",
        )

    fee = schedule.base
    for index, op in enumerate(ops):
        kind = _op_kind(op)
        if kind not in schedule.per_op:
            raise InvalidOperationError(f"unknown operation kind: {kind!r}", field=f"ops[{index}].op", constraint="known kind")
        fee += schedule.per_op[kind]

    if tx_size_bytes is None:
        tx_size_bytes = schedule.estimated_base_size + len(ops) * schedule.estimated_size_per_op
    fee += schedule.per_byte * tx_size_bytes
    fee += schedule.per_raw_byte * raw_bytes

    return str(fee.quantize(_FEE_QUANTUM, rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def _parse_ops(ops: Sequence[OpLike]) -> list[SmartOp]:
    if not ops:
        raise InvalidOperationError("at least one operation is required", field="args.ops", constraint=">= 1")
    if len(ops) > PROTOCOL.max_ops:
        raise InvalidOperationError(
            f"at most {PROTOCOL.max_ops} operations are allowed",
            field="args.ops",
            constraint=f"<= {PROTOCOL.max_ops}",
        )

    parsed: list[SmartOp] = []
    for index, op in enumerate(ops):
        field = f"args.ops[{index}]"
        if not is_valid_smart_operation(op):
            raise InvalidOperationError(f"invalid operation: {_op_kind(op)!r}", field=field, constraint="operation rules")
        try:
            parsed.append(op if isinstance(op, BaseModel) else smart_op_adapter.validate_python(op))
        except ValidationError as exc:
            raise InvalidOperationError(f"invalid operation: {exc.errors()[0]['msg']}", field=field) from exc
    return parsed


def create_smart_transaction(
    wallet: Wallet,
    ops: Sequence[OpLike],
    fee: str = PROTOCOL.default_fee,
    memo: str | None = None,
    prev_hash: str | None = None,
    raw_data: str | None = None,
    chain_id: int = PROTOCOL.default_chain_id,
    methods: Sequence[CosignMethod] | None = None,
    *,
    timestamp: int | None = None,
) -> SmartTransaction:
    """Build and sign a smart transaction.

    Args:
        wallet: Sender wallet; signs the transaction.
        ops: 1 to 16 operations, as models or plain dicts.
        fee: Decimal string with up to six fractional digits.
        memo: Optional transaction memo, 1 to 256 characters.
        prev_hash: Optional hash of the previous transaction for ordering.
        raw_data: Optional UTF-8 payload, at most 65536 bytes.
        chain_id: Chain the signature is bound to.
        methods: Optional co-signing methods required for execution.
        timestamp: Creation time in milliseconds. Defaults to now.

    Returns:
        A :class:`SmartTransaction` carrying exactly one signature from
        *wallet*.

    Raises:
        InvalidFeeError: If *fee* is malformed.
        InvalidOperationError: If the operation list or memo is invalid.
        DataTooLargeError: If *raw_data* exceeds the ceiling.
        InvalidCosignMethodError: If a method descriptor is invalid.
    """
    if not is_valid_fee_format(fee):
        raise InvalidFeeError(f"invalid fee format: {fee!r}", field="fee", constraint="decimal(6) >= 0")
    parsed_ops = _parse_ops(ops)
    if memo is not None and not is_valid_memo(memo):
        raise InvalidOperationError(
            f"memo must be 1 to {PROTOCOL.max_memo_length} characters",
            field="args.memo",
            constraint=f"1..{PROTOCOL.max_memo_length} chars",
        )
    for index, method in enumerate(methods or ()):
        if not is_valid_cosign_method(method):
            raise InvalidCosignMethodError("invalid cosign method", field=f"methods[{index}]")

    fields: dict[str, Any] = {
        "args": SmartArgs(ops=parsed_ops, memo=memo),
        "sender": wallet.address,
        "fee": fee,
        "currency": PROTOCOL.currency,
        "prev_hash": prev_hash,
        "timestamp": timestamp if timestamp is not None else _now_ms(),
    }
    if methods:
        fields["methods"] = list(methods)
    if raw_data is not None:
        if not is_valid_raw_data(raw_data):
            raise DataTooLargeError(
                f"raw data must be 1 to {PROTOCOL.max_raw_bytes} bytes",
                field="raw",
                constraint=f"1..{PROTOCOL.max_raw_bytes} bytes",
            )
        fields["raw"] = raw_data
        fields["raw_encoding"] = PROTOCOL.raw_encoding
        fields["raw_sha256"] = hashlib.sha256(raw_data.encode("utf-8")).hexdigest()

    unsigned = SmartTransaction(**fields)
    signature = sign_with_domain(signing_message(unsigned), wallet.private_key, smart_sign_domain(chain_id))
    tx = unsigned.model_copy(
        update={"signatures": [TransactionSignature(kid=wallet.public_key, sig=signature)]}
    )
    logger.debug(
        "Signed smart transaction",
        extra={"event": "smart_tx.signed", "ops": len(parsed_ops), "chain_id": chain_id},
    )
    return tx


class SmartTransactionBuilder:
    """Fluent builder for smart transactions.

    Example::

        tx = (
            SmartTransactionBuilder()
            .assert_balance(wallet.address, "100.000000")
            .transfer("g...", "50.000000")
            .emit_event("payment.sent", {"ref": 42})
            .memo("invoice 42")
            .build(wallet)
        )
    """

    def __init__(self) -> None:
        self._ops: list[SmartOp | Mapping[str, Any]] = []
        self._fee: str | None = None
        self._memo: str | None = None
        self._prev_hash: str | None = None
        self._raw: str | None = None
        self._chain_id: int = PROTOCOL.default_chain_id
        self._methods: list[CosignMethod] = []
        self._timestamp: int | None = None

    def op(self, op: OpLike) -> Self:
        """Append an already-built operation."""
        self._ops.append(op)
        return self

    def transfer(self, to: str, amount: str, memo: str | None = None) -> Self:
        op: dict[str, Any] = {"op": "transfer", "to": to, "amount": amount}
        if memo is not None:
            op["memo"] = memo
        return self.op(op)

    def assert_time(self, *, before_ms: int | None = None, after_ms: int | None = None) -> Self:
        op: dict[str, Any] = {"op": "assert.time"}
        if before_ms is not None:
            op["before_ms"] = before_ms
        if after_ms is not None:
            op["after_ms"] = after_ms
        return self.op(op)

    def assert_balance(self, address: str, gte: str) -> Self:
        return self.op({"op": "assert.balance", "address": address, "gte": gte})

    def assert_compare(self, left: str, cmp: str, right: str) -> Self:
        return self.op({"op": "assert.compare", "left": left, "cmp": cmp, "right": right})

    def emit_event(self, kind: str, data: Mapping[str, Any] | None = None) -> Self:
        op: dict[str, Any] = {"op": "emit.event", "kind": kind}
        if data is not None:
            op["data"] = dict(data)
        return self.op(op)

    def fee(self, fee: str) -> Self:
        """Set an explicit fee. Without one, :meth:`build` uses the computed minimum."""
        self._fee = fee
        return self

    def memo(self, memo: str) -> Self:
        self._memo = memo
        return self

    def prev_hash(self, prev_hash: str) -> Self:
        self._prev_hash = prev_hash
        return self

    def raw(self, raw_data: str) -> Self:
        self._raw = raw_data
        return self

    def chain(self, chain_id: int) -> Self:
        self._chain_id = chain_id
        return self

    def cosign_method(self, method: CosignMethod) -> Self:
        self._methods.append(method)
        return self

    def timestamp(self, ts: int) -> Self:
        self._timestamp = ts
        return self

    def build(self, wallet: Wallet) -> SmartTransaction:
        """Validate, sign with *wallet* and return the transaction."""
        fee = self._fee
        if fee is None:
            raw_bytes = len(self._raw.encode("utf-8")) if self._raw else 0
            fee = calculate_smart_transaction_fee(self._ops, raw_bytes)
        return create_smart_transaction(
            wallet,
            self._ops,
            fee=fee,
            memo=self._memo,
            prev_hash=self._prev_hash,
            raw_data=self._raw,
            chain_id=self._chain_id,
            methods=self._methods or None,
            timestamp=self._timestamp,
        )


# ---------------------------------------------------------------------------
# Validation and verification
# ---------------------------------------------------------------------------


def _bounded_list(value: Any, limit: int) -> bool:
    return isinstance(value, list) and 0 < len(value) <= limit


def validate_smart_transaction(tx: SmartTransaction | Mapping[str, Any], *, now_ms: int | None = None) -> bool:
    """Check the structure and field formats of a smart transaction.

    This does not verify signatures cryptographically; use
    :func:`verify_smart_transaction` for that.

    Returns:
        ``True`` if every structural rule holds, ``False`` otherwise.
    """
    if not isinstance(tx, (SmartTransaction, Mapping)):
        return False
    data = _as_dict(tx)

    if data.get("type") != PROTOCOL.tx_type or data.get("method") != PROTOCOL.tx_method:
        return False
    if not is_valid_address_field(data.get("from")):
        return False
    if not is_valid_fee_format(data.get("fee")):
        return False
    if not isinstance(data.get("currency"), str) or not data["currency"]:
        return False
    if not isinstance(data.get("timestamp"), int) or isinstance(data["timestamp"], bool):
        return False
    if data.get("prev_hash") is not None and not isinstance(data["prev_hash"], str):
        return False

    args = data.get("args")
    if not isinstance(args, Mapping):
        return False
    ops = args.get("ops")
    if not _bounded_list(ops, PROTOCOL.max_ops) or not all(is_valid_smart_operation(op) for op in ops):
        return False
    if args.get("memo") is not None and not is_valid_memo(args["memo"]):
        return False

    signatures = data.get("signatures")
    if not _bounded_list(signatures, PROTOCOL.max_signatures):
        return False
    if not all(is_valid_transaction_signature(sig) for sig in signatures):
        return False

    if data.get("raw") is not None:
        raw = data["raw"]
        if not is_valid_raw_data(raw) or data.get("raw_encoding") != PROTOCOL.raw_encoding:
            return False
        if data.get("raw_sha256") != hashlib.sha256(raw.encode("utf-8")).hexdigest():
            return False

    method_ids: set[str] = set()
    if data.get("methods") is not None:
        methods = data["methods"]
        if not isinstance(methods, list):
            return False
        for method in methods:
            entry = _entry(method)
            if entry is None or not is_valid_cosign_method(entry, now_ms=now_ms):
                return False
            method_ids.add(entry["id"])

    if data.get("cosigs") is not None:
        cosigs = data["cosigs"]
        if not isinstance(cosigs, list):
            return False
        for cosig in cosigs:
            entry = _entry(cosig)
            if entry is None or not is_valid_cosign_signature(entry) or entry["method_id"] not in method_ids:
                return False

    return True


def verify_smart_transaction(
    tx: SmartTransaction | Mapping[str, Any],
    chain_id: int = PROTOCOL.default_chain_id,
) -> bool:
    """Verify every sender signature against the domain-separated signing view.

    At least one signer's key must derive the ``from`` address. Malformed
    input returns ``False``.
    """
    try:
        data = _as_dict(tx)
        message = signing_message(data)
    except (TypeError, ValueError):
        return False

    signatures = data.get("signatures")
    if not isinstance(signatures, list) or not signatures:
        return False

    domain = smart_sign_domain(chain_id)
    owner_signed = False
    for sig in signatures:
        if not is_valid_transaction_signature(sig):
            return False
        if not verify_with_domain(message, sig["sig"], sig["kid"], domain):
            logger.debug("Smart transaction signature rejected", extra={"event": "smart_tx.signature_invalid"})
            return False
        owner_signed = owner_signed or verify_public_key_address(sig["kid"], data.get("from"))
    return owner_signed


# ---------------------------------------------------------------------------
# Co-signing
# ---------------------------------------------------------------------------


def create_cosign_method(
    method_id: str,
    approvers: Sequence[str],
    threshold: CosignThreshold | Mapping[str, int],
    deadline_ms: int | None = None,
    *,
    now_ms: int | None = None,
) -> CosignMethod:
    """Describe a k-of-n approval gate.

    Raises:
        InvalidCosignMethodError: If the id, approver list (max 16 compressed
            keys), threshold (``0 < k <= n``) or deadline is invalid.
    """
    if not isinstance(threshold, (BaseModel, Mapping)):
        raise InvalidCosignMethodError(
            "threshold must be an object with k and n", field="threshold", constraint="{k, n}"
        )
    if isinstance(approvers, (str, bytes)) or not isinstance(approvers, Sequence):
        raise InvalidCosignMethodError(
            "approvers must be a list of public keys", field="approvers", constraint="list"
        )
    if len(approvers) > PROTOCOL.max_approvers:
        raise InvalidCosignMethodError(
            f"at most {PROTOCOL.max_approvers} approvers are allowed",
            field="approvers",
            constraint=f"<= {PROTOCOL.max_approvers}",
        )
    candidate = {
        "id": method_id,
        "type": "cosign",
        "threshold": _as_dict(threshold),
        "approvers": list(approvers),
        "deadline_ms": deadline_ms,
    }
    if not is_valid_cosign_method(candidate, now_ms=now_ms):
        raise InvalidCosignMethodError("invalid cosign method", field="methods", constraint="cosign rules")
    return CosignMethod.model_validate(candidate)


def cosign_view(method_id: str, tx: SmartTransaction | Mapping[str, Any]) -> dict[str, Any]:
    """The object a co-signer signs: the method id and the transaction's core fields."""
    data = _as_dict(tx)
    return {
        "method_id": method_id,
        "transaction": {key: data.get(key) for key in _COSIGN_CORE_FIELDS},
    }


def create_cosign_signature(
    method_id: str,
    public_key: str,
    private_key: str,
    transaction: SmartTransaction | Mapping[str, Any],
) -> CosignSignature:
    """Sign *transaction* as an approver of method *method_id*."""
    signature = sign_message(canonical_json(cosign_view(method_id, transaction)), private_key)
    return CosignSignature(method_id=method_id, kid=public_key, sig=signature)


def verify_cosign_signature(
    cosig: CosignSignature | Mapping[str, Any],
    transaction: SmartTransaction | Mapping[str, Any],
) -> bool:
    if not is_valid_cosign_signature(cosig):
        return False
    data = _as_dict(cosig)
    try:
        message = canonical_json(cosign_view(data["method_id"], transaction))
    except (TypeError, ValueError):
        return False
    return verify_signature(message, data["sig"], data["kid"])


def add_cosignature(tx: SmartTransaction, cosig: CosignSignature) -> SmartTransaction:
    """Return a copy of *tx* with *cosig* appended.

    Co-signatures are outside the signing view, so the sender's signature
    stays valid.

    Raises:
        InvalidCosignSignatureError: If *cosig* is malformed or names a
            method the transaction does not declare.
    """
    if not is_valid_cosign_signature(cosig):
        raise InvalidCosignSignatureError("malformed cosign signature", field="cosigs", constraint="cosign signature rules")
    if not any(m.id == cosig.method_id for m in tx.methods or ()):
        raise InvalidCosignSignatureError(
            f"transaction declares no method {cosig.method_id!r}",
            field="cosigs.method_id",
            constraint="declared method",
        )
    return tx.model_copy(update={"cosigs": [*(tx.cosigs or ()), cosig]})


def cosign_threshold_met(
    tx: SmartTransaction | Mapping[str, Any],
    method_id: str,
    *,
    now_ms: int | None = None,
) -> bool:
    """Return ``True`` once at least ``k`` distinct approvers have validly co-signed.

    A method whose deadline has passed is never satisfied.
    """
    data = _as_dict(tx)
    raw_methods = data.get("methods")
    methods = [_entry(m) for m in raw_methods] if isinstance(raw_methods, list) else []
    method = next((m for m in methods if m is not None and m.get("id") == method_id), None)
    if method is None or not is_valid_cosign_method(method, now_ms=now_ms):
        return False

    approvers = set(method["approvers"])
    signed: set[str] = set()
    raw_cosigs = data.get("cosigs")
    for cosig in map(_entry, raw_cosigs if isinstance(raw_cosigs, list) else []):
        if cosig is None or cosig.get("method_id") != method_id:
            continue
        if cosig.get("kid") in approvers and verify_cosign_signature(cosig, data):
            signed.add(cosig["kid"])
    return len(signed) >= method["threshold"]["k"]
