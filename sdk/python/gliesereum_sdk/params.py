"""Protocol constants and the smart transaction fee schedule.

Everything here is part of the wire contract with the verifying node.
Changing the domain tag, version byte or fee constants invalidates
signatures or fees produced under the old values.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ProtocolParams(BaseModel):
    """Fixed parameters of the Gliesereum network."""

    model_config = ConfigDict(frozen=True)

    # Addresses
    address_version: int = Field(default=98, ge=0, le=255, description="Version byte, renders as a leading 'g'")
    address_length: int = 34
    checksum_size: int = 4

    # Keys and signatures
    signature_alg: str = "ecdsa-secp256k1"
    compressed_key_hex_length: int = 66
    uncompressed_key_hex_length: int = 130

    # Smart transactions
    protocol_tag: str = "STELS-TX"
    tx_version: str = "smart-1.0"
    default_chain_id: int = 2
    currency: str = "SLI"
    tx_type: str = "smart"
    tx_method: str = "smart.exec"
    raw_encoding: str = "utf8"
    default_fee: str = "0.000100"
    smart_decimals: int = 6
    balance_decimals: int = 8

    # Limits
    max_ops: int = 16
    max_signatures: int = 8
    max_approvers: int = 16
    max_raw_bytes: int = 65536
    max_memo_length: int = 256
    max_event_kind_length: int = 64
    max_event_data_bytes: int = 1024
    max_method_id_length: int = 64
    max_legacy_data_bytes: int = 2048 * 1024


class FeeSchedule(BaseModel):
    """Fee constants for smart transactions, in whole currency units."""

    model_config = ConfigDict(frozen=True)

    base: Decimal = Decimal("0.0001")
    per_byte: Decimal = Decimal("0.0000002")
    per_raw_byte: Decimal = Decimal("0.0000006")
    estimated_base_size: int = 200
    estimated_size_per_op: int = 100
    per_op: dict[str, Decimal] = Field(
        default_factory=lambda: {
            "transfer": Decimal("0.000020"),
            "assert.time": Decimal("0.000004"),
            "assert.balance": Decimal("0.000006"),
            "assert.compare": Decimal("0.000006"),
            "emit.event": Decimal("0.000008"),
        }
    )


PROTOCOL = ProtocolParams()
DEFAULT_FEE_SCHEDULE = FeeSchedule()
