"""Tests for gliesereum_sdk.transaction — legacy transfer transactions."""

from __future__ import annotations

import pytest

from gliesereum_sdk.canonical import canonical_json
from gliesereum_sdk.exceptions import (
    DataTooLargeError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidFeeError,
    TransactionIntegrityError,
)
from gliesereum_sdk.identity import sign_message, verify_signature
from gliesereum_sdk.transaction import (
    create_signed_transaction,
    signable_body,
    transaction_hash,
    validate_transaction,
)
from gliesereum_sdk.types import Wallet

from conftest import FIXED_TS


class TestCreateSignedTransaction:
    """Construction, hashing and signing of a transfer."""

    def test_valid_roundtrip(self, sender: Wallet, receiver: Wallet) -> None:
        tx = create_signed_transaction(sender, receiver.address, 500, 10)
        assert validate_transaction(tx) is True

    def test_wire_shape(self, sender: Wallet, receiver: Wallet) -> None:
        wire = create_signed_transaction(sender, receiver.address, 500, 10, timestamp=FIXED_TS).to_wire()
        assert wire["from"]["address"] == sender.address
        assert wire["from"]["number"] == sender.number
        assert len(wire["from"]["publicKey"]) == 130
        assert wire["from"]["publicKey"].startswith("04")
        assert wire["to"] == receiver.address
        assert wire["amount"] == 500
        assert wire["fee"] == 10
        assert wire["verified"] is False
        assert wire["validators"] == []
        assert wire["timestamp"] == FIXED_TS
        assert "status" not in wire

    def test_absent_data_is_null(self, sender: Wallet, receiver: Wallet) -> None:
        wire = create_signed_transaction(sender, receiver.address, 1, 1).to_wire()
        assert "data" in wire
        assert wire["data"] is None
        assert '"data":null' in canonical_json(signable_body(wire))

    def test_data_payload_is_signed(self, sender: Wallet, receiver: Wallet) -> None:
        tx = create_signed_transaction(sender, receiver.address, 1, 1, data="invoice 7")
        assert tx.data == "invoice 7"
        assert validate_transaction(tx) is True

    def test_hash_covers_body(self, sender: Wallet, receiver: Wallet) -> None:
        tx = create_signed_transaction(sender, receiver.address, 500, 10)
        assert transaction_hash(tx) == tx.hash
        assert "hash" not in signable_body(tx)
        assert "signature" not in signable_body(tx)

    def test_signature_over_canonical_body(self, sender: Wallet, receiver: Wallet) -> None:
        tx = create_signed_transaction(sender, receiver.address, 500, 10)
        message = canonical_json(signable_body(tx))
        assert verify_signature(message, tx.signature, sender.public_key) is True

    def test_deterministic_with_fixed_timestamp(self, sender: Wallet, receiver: Wallet) -> None:
        a = create_signed_transaction(sender, receiver.address, 5, 1, timestamp=FIXED_TS)
        b = create_signed_transaction(sender, receiver.address, 5, 1, timestamp=FIXED_TS)
        assert a == b

    def test_zero_amount_allowed(self, sender: Wallet, receiver: Wallet) -> None:
        assert validate_transaction(create_signed_transaction(sender, receiver.address, 0, 1)) is True


class TestCreateSignedTransactionErrors:
    def test_invalid_recipient(self, sender: Wallet) -> None:
        with pytest.raises(InvalidAddressError) as excinfo:
            create_signed_transaction(sender, "not-an-address", 1, 1)
        assert excinfo.value.field == "to"

    @pytest.mark.parametrize("padding", [" ", "\n"])
    def test_padded_recipient_rejected(self, sender: Wallet, receiver: Wallet, padding: str) -> None:
        with pytest.raises(InvalidAddressError):
            create_signed_transaction(sender, receiver.address + padding, 1, 1)

    @pytest.mark.parametrize("amount", [-1, 1.5, True, "10"])
    def test_invalid_amount(self, sender: Wallet, receiver: Wallet, amount: object) -> None:
        with pytest.raises(InvalidAmountError):
            create_signed_transaction(sender, receiver.address, amount, 1)  # type: ignore[arg-type]

    @pytest.mark.parametrize("fee", [0, -5, 0.5, False])
    def test_invalid_fee(self, sender: Wallet, receiver: Wallet, fee: object) -> None:
        with pytest.raises(InvalidFeeError):
            create_signed_transaction(sender, receiver.address, 1, fee)  # type: ignore[arg-type]

    def test_data_too_large(self, sender: Wallet, receiver: Wallet) -> None:
        with pytest.raises(DataTooLargeError):
            create_signed_transaction(sender, receiver.address, 1, 1, data="x" * (2048 * 1024 + 1))

    def test_errors_are_value_errors(self, sender: Wallet) -> None:
        with pytest.raises(ValueError):
            create_signed_transaction(sender, "nope", 1, 1)


class TestValidateTransaction:
    """Tampering is detected loudly, bad signatures quietly."""

    def test_altered_amount_raises(self, sender: Wallet, receiver: Wallet) -> None:
        tx = create_signed_transaction(sender, receiver.address, 500, 10)
        with pytest.raises(TransactionIntegrityError):
            validate_transaction(tx.model_copy(update={"amount": 501}))

    def test_altered_wire_dict_raises(self, sender: Wallet, receiver: Wallet) -> None:
        wire = create_signed_transaction(sender, receiver.address, 500, 10).to_wire()
        wire["to"] = sender.address
        with pytest.raises(TransactionIntegrityError):
            validate_transaction(wire)

    def test_wire_dict_validates(self, sender: Wallet, receiver: Wallet) -> None:
        wire = create_signed_transaction(sender, receiver.address, 500, 10).to_wire()
        assert validate_transaction(wire) is True

    def test_missing_signature_raises(self, sender: Wallet, receiver: Wallet) -> None:
        tx = create_signed_transaction(sender, receiver.address, 500, 10)
        with pytest.raises(TransactionIntegrityError) as excinfo:
            validate_transaction(tx.model_copy(update={"signature": None}))
        assert excinfo.value.field == "signature"

    def test_foreign_signature_returns_false(self, sender: Wallet, receiver: Wallet) -> None:
        tx = create_signed_transaction(sender, receiver.address, 500, 10)
        forged = sign_message(canonical_json(signable_body(tx)), receiver.private_key)
        assert validate_transaction(tx.model_copy(update={"signature": forged})) is False

    def test_garbage_signature_returns_false(self, sender: Wallet, receiver: Wallet) -> None:
        tx = create_signed_transaction(sender, receiver.address, 500, 10)
        assert validate_transaction(tx.model_copy(update={"signature": "00ff"})) is False
