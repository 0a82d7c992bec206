"""Gliesereum wallet core for Python.

Provides the cryptographic core of a Gliesereum wallet: secp256k1 keys,
address derivation, deterministic canonical serialization, legacy transfer
transactions and multi-operation smart transactions with co-signing.
Everything is synchronous and side-effect free; submitting transactions to
a node is left to the caller.

Quick start::

    from gliesereum_sdk import create_wallet, create_smart_transaction

    wallet = create_wallet()
    tx = create_smart_transaction(
        wallet,
        [{"op": "transfer", "to": "g...", "amount": "1.000000"}],
    )
    payload = tx.to_wire()
"""

import logging

from gliesereum_sdk.amounts import format_amount, from_raw_balance, to_raw_balance
from gliesereum_sdk.canonical import canonical_bytes, canonical_hash, canonical_json
from gliesereum_sdk.crypto import (
    bytes_to_hex,
    checksum4,
    concat_bytes,
    constant_time_equal,
    hash160,
    hex_to_bytes,
)
from gliesereum_sdk.exceptions import (
    DataTooLargeError,
    GliesereumError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidCosignMethodError,
    InvalidCosignSignatureError,
    InvalidFeeError,
    InvalidKeyFormatError,
    InvalidOperationError,
    TransactionIntegrityError,
)
from gliesereum_sdk.identity import (
    address_from_public_key,
    compress_public_key,
    derive_address,
    generate_keypair,
    get_uncompressed_public_key,
    private_key_to_public,
    sign_message,
    sign_with_domain,
    validate_address,
    verify_public_key_address,
    verify_signature,
    verify_with_domain,
)
from gliesereum_sdk.params import DEFAULT_FEE_SCHEDULE, PROTOCOL, FeeSchedule, ProtocolParams
from gliesereum_sdk.smart import (
    SmartTransactionBuilder,
    add_cosignature,
    calculate_smart_transaction_fee,
    cosign_threshold_met,
    cosign_view,
    create_cosign_method,
    create_cosign_signature,
    create_smart_transaction,
    signing_view,
    smart_sign_domain,
    validate_smart_transaction,
    verify_cosign_signature,
    verify_smart_transaction,
)
from gliesereum_sdk.transaction import (
    create_signed_transaction,
    transaction_hash,
    validate_transaction,
)
from gliesereum_sdk.types import (
    AssertBalanceOp,
    AssertCompareOp,
    AssertTimeOp,
    CosignMethod,
    CosignSignature,
    CosignThreshold,
    EmitEventOp,
    SmartArgs,
    SmartOp,
    SmartTransaction,
    Transaction,
    TransactionSender,
    TransactionSignature,
    TransferOp,
    Wallet,
)
from gliesereum_sdk.validation import (
    is_valid_amount_format,
    is_valid_cosign_method,
    is_valid_cosign_signature,
    is_valid_event_data,
    is_valid_event_kind,
    is_valid_fee_format,
    is_valid_memo,
    is_valid_raw_data,
    is_valid_smart_operation,
    is_valid_transaction_signature,
)
from gliesereum_sdk.wallet import card_number, create_wallet, import_wallet, luhn_check_digit, luhn_is_valid

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Amounts
    "format_amount",
    "from_raw_balance",
    "to_raw_balance",
    # Canonical serialization
    "canonical_bytes",
    "canonical_hash",
    "canonical_json",
    # Byte / hash helpers
    "bytes_to_hex",
    "checksum4",
    "concat_bytes",
    "constant_time_equal",
    "hash160",
    "hex_to_bytes",
    # Errors
    "DataTooLargeError",
    "GliesereumError",
    "InvalidAddressError",
    "InvalidAmountError",
    "InvalidCosignMethodError",
    "InvalidCosignSignatureError",
    "InvalidFeeError",
    "InvalidKeyFormatError",
    "InvalidOperationError",
    "TransactionIntegrityError",
    # Identity
    "address_from_public_key",
    "compress_public_key",
    "derive_address",
    "generate_keypair",
    "get_uncompressed_public_key",
    "private_key_to_public",
    "sign_message",
    "sign_with_domain",
    "validate_address",
    "verify_public_key_address",
    "verify_signature",
    "verify_with_domain",
    # Parameters
    "DEFAULT_FEE_SCHEDULE",
    "PROTOCOL",
    "FeeSchedule",
    "ProtocolParams",
    # Smart transactions
    "SmartTransactionBuilder",
    "add_cosignature",
    "calculate_smart_transaction_fee",
    "cosign_threshold_met",
    "cosign_view",
    "create_cosign_method",
    "create_cosign_signature",
    "create_smart_transaction",
    "signing_view",
    "smart_sign_domain",
    "validate_smart_transaction",
    "verify_cosign_signature",
    "verify_smart_transaction",
    # Legacy transactions
    "create_signed_transaction",
    "transaction_hash",
    "validate_transaction",
    # Types
    "AssertBalanceOp",
    "AssertCompareOp",
    "AssertTimeOp",
    "CosignMethod",
    "CosignSignature",
    "CosignThreshold",
    "EmitEventOp",
    "SmartArgs",
    "SmartOp",
    "SmartTransaction",
    "Transaction",
    "TransactionSender",
    "TransactionSignature",
    "TransferOp",
    "Wallet",
    # Validation
    "is_valid_amount_format",
    "is_valid_cosign_method",
    "is_valid_cosign_signature",
    "is_valid_event_data",
    "is_valid_event_kind",
    "is_valid_fee_format",
    "is_valid_memo",
    "is_valid_raw_data",
    "is_valid_smart_operation",
    "is_valid_transaction_signature",
    # Wallet
    "card_number",
    "create_wallet",
    "import_wallet",
    "luhn_check_digit",
    "luhn_is_valid",
]

__version__ = "0.1.0"
