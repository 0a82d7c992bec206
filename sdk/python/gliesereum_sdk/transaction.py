"""Legacy transfer transactions: construction, hashing, signing, validation.

A legacy transaction is hashed and signed over the canonical
(``gls-det-1``) serialization of every field except ``hash`` and
``signature``. The node recomputes both independently, so the body built
here must match its view key for key, including ``data: null`` when no
payload is attached.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Mapping
from typing import Any

from gliesereum_sdk.canonical import canonical_json
from gliesereum_sdk.crypto import constant_time_equal
from gliesereum_sdk.exceptions import (
    DataTooLargeError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidFeeError,
    TransactionIntegrityError,
)
from gliesereum_sdk.identity import (
    get_uncompressed_public_key,
    sign_message,
    validate_address,
    verify_signature,
)
from gliesereum_sdk.params import PROTOCOL
from gliesereum_sdk.types import Transaction, Wallet

logger = logging.getLogger(__name__)

_UNSIGNED_EXCLUDE = ("hash", "signature")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _as_dict(tx: Transaction | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(tx, Transaction):
        return tx.to_wire()
    return dict(tx)


def signable_body(tx: Transaction | Mapping[str, Any]) -> dict[str, Any]:
    """Every field of *tx* except ``hash`` and ``signature``."""
    return {k: v for k, v in _as_dict(tx).items() if k not in _UNSIGNED_EXCLUDE}


def transaction_hash(tx: Transaction | Mapping[str, Any]) -> str:
    """Recompute the hex SHA-256 of the canonical signable body of *tx*."""
    return hashlib.sha256(canonical_json(signable_body(tx)).encode("utf-8")).hexdigest()


def create_signed_transaction(
    wallet: Wallet,
    to: str,
    amount: int,
    fee: int,
    data: str | None = None,
    *,
    timestamp: int | None = None,
) -> Transaction:
    """Build, hash and sign a transfer of *amount* base units to *to*.

    Args:
        wallet: Sender wallet; its private key signs the transaction.
        to: Recipient address.
        amount: Non-negative integer amount in base units.
        fee: Positive integer fee in base units.
        data: Optional opaque payload, at most 2 MiB of UTF-8.
        timestamp: Creation time in milliseconds. Defaults to now.

    Raises:
        InvalidAddressError: If the sender or recipient address is malformed.
        InvalidAmountError: If *amount* is not a non-negative integer.
        InvalidFeeError: If *fee* is not a positive integer.
        DataTooLargeError: If *data* exceeds the payload ceiling.
    """
    if not validate_address(wallet.address):
        raise InvalidAddressError("sender address is invalid", field="from.address", constraint="address")
    if not validate_address(to):
        raise InvalidAddressError("recipient address is invalid", field="to", constraint="address")
    if not _is_int(amount) or amount < 0:
        raise InvalidAmountError("amount must be a non-negative integer", field="amount", constraint=">= 0")
    if not _is_int(fee) or fee <= 0:
        raise InvalidFeeError("fee must be a positive integer", field="fee", constraint="> 0")
    if data is not None and len(data.encode("utf-8")) > PROTOCOL.max_legacy_data_bytes:
        raise DataTooLargeError(
            f"data exceeds {PROTOCOL.max_legacy_data_bytes} bytes",
            field="data",
            constraint=f"<= {PROTOCOL.max_legacy_data_bytes} bytes",
        )

    # The node expects the uncompressed key in legacy transfers.
    body: dict[str, Any] = {
        "from": {
            "publicKey": get_uncompressed_public_key(wallet.private_key),
            "address": wallet.address,
            "number": wallet.number,
        },
        "to": to,
        "amount": amount,
        "fee": fee,
        "verified": False,
        "validators": [],
        "timestamp": timestamp if timestamp is not None else time.time_ns() // 1_000_000,
        "data": data,
    }

    message = canonical_json(body)
    tx = Transaction.model_validate(
        {
            **body,
            "hash": hashlib.sha256(message.encode("utf-8")).hexdigest(),
            "signature": sign_message(message, wallet.private_key),
        }
    )
    logger.debug("Signed legacy transaction", extra={"event": "transaction.signed", "tx_hash": tx.hash})
    return tx


def validate_transaction(tx: Transaction | Mapping[str, Any]) -> bool:
    """Check a legacy transaction's hash and signature.

    Returns:
        The result of verifying ``signature`` against ``from.publicKey``.

    Raises:
        TransactionIntegrityError: If the stored hash does not match the
            recomputed one, or the signature is missing. Either means the
            object was altered after signing.
    """
    wire = _as_dict(tx)
    message = canonical_json(signable_body(wire))
    recomputed = hashlib.sha256(message.encode("utf-8")).hexdigest()

    stored = wire.get("hash")
    if not isinstance(stored, str) or not constant_time_equal(recomputed.encode(), stored.encode()):
        logger.warning("Transaction hash mismatch", extra={"event": "transaction.hash_mismatch"})
        raise TransactionIntegrityError("transaction hash mismatch", field="hash", constraint="sha256(body)")

    signature = wire.get("signature")
    if not signature:
        raise TransactionIntegrityError("transaction is missing its signature", field="signature", constraint="required")

    sender = wire.get("from")
    public_key = sender.get("publicKey") if isinstance(sender, Mapping) else None
    if not isinstance(public_key, str):
        return False
    return verify_signature(message, signature, public_key)
