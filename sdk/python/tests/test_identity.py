"""Tests for gliesereum_sdk.identity — keys, signing, address encoding."""

from __future__ import annotations

import base58
import pytest
from ecdsa import SECP256k1
from ecdsa.util import sigdecode_der

from gliesereum_sdk.crypto import checksum4, hash160
from gliesereum_sdk.exceptions import InvalidKeyFormatError
from gliesereum_sdk.identity import (
    address_from_public_key,
    compress_public_key,
    derive_address,
    domain_message,
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

KEY_ONE = "00" * 31 + "01"
KEY_ONE_COMPRESSED = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
KEY_ONE_UNCOMPRESSED = (
    "0479be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
    "483ada7726a3c4655da4fbfc0e1108a8fd17b448a68554199c47d08ffb10d4b8"
)


class TestKeypairGeneration:
    """secp256k1 keypair generation."""

    def test_generate_returns_correct_lengths(self) -> None:
        sk, pk = generate_keypair()
        assert len(sk) == 64, "private key must be 64 hex characters"
        assert len(pk) == 66, "public key must be 66 hex characters (compressed)"
        assert pk[:2] in ("02", "03")

    def test_generate_produces_unique_keys(self) -> None:
        sk1, pk1 = generate_keypair()
        sk2, pk2 = generate_keypair()
        assert sk1 != sk2
        assert pk1 != pk2

    def test_generated_public_key_matches_private(self) -> None:
        sk, pk = generate_keypair()
        assert private_key_to_public(sk) == pk


class TestKeyDerivation:
    def test_known_vector_compressed(self) -> None:
        assert private_key_to_public(KEY_ONE) == KEY_ONE_COMPRESSED

    def test_known_vector_uncompressed(self) -> None:
        assert get_uncompressed_public_key(KEY_ONE) == KEY_ONE_UNCOMPRESSED

    def test_compress_uncompressed_key(self) -> None:
        assert compress_public_key(bytes.fromhex(KEY_ONE_UNCOMPRESSED)).hex() == KEY_ONE_COMPRESSED

    def test_compress_passes_compressed_key_through(self) -> None:
        raw = bytes.fromhex(KEY_ONE_COMPRESSED)
        assert compress_public_key(raw) == raw

    @pytest.mark.parametrize(
        "bad_key",
        [
            "zz" * 32,
            "ab" * 31,
            "ab" * 33,
            "00" * 32,
            format(SECP256k1.order, "064x"),
        ],
    )
    def test_invalid_private_keys_raise(self, bad_key: str) -> None:
        with pytest.raises(InvalidKeyFormatError) as excinfo:
            private_key_to_public(bad_key)
        assert excinfo.value.field == "privateKey"


class TestSigningAndVerification:
    """ECDSA sign / verify over SHA-256 of the UTF-8 message."""

    def test_sign_verify_roundtrip(self) -> None:
        sk, pk = generate_keypair()
        sig = sign_message("transfer 100 SLI to alice", sk)
        assert verify_signature("transfer 100 SLI to alice", sig, pk) is True

    def test_verify_with_uncompressed_key(self) -> None:
        sig = sign_message("hello", KEY_ONE)
        assert verify_signature("hello", sig, KEY_ONE_UNCOMPRESSED) is True

    def test_signature_is_der(self) -> None:
        sig = bytes.fromhex(sign_message("hello", KEY_ONE))
        assert sig[0] == 0x30
        assert sig[1] == len(sig) - 2

    def test_signature_is_low_s(self) -> None:
        for i in range(8):
            sig = bytes.fromhex(sign_message(f"message {i}", KEY_ONE))
            _, s = sigdecode_der(sig, SECP256k1.order)
            assert s <= SECP256k1.order // 2

    def test_deterministic_signatures(self) -> None:
        assert sign_message("deterministic", KEY_ONE) == sign_message("deterministic", KEY_ONE)

    def test_wrong_message_fails(self) -> None:
        sk, pk = generate_keypair()
        sig = sign_message("correct message", sk)
        assert verify_signature("wrong message", sig, pk) is False

    def test_wrong_key_fails(self) -> None:
        sk1, _ = generate_keypair()
        _, pk2 = generate_keypair()
        assert verify_signature("hello", sign_message("hello", sk1), pk2) is False

    def test_flipped_signature_byte_fails(self) -> None:
        sk, pk = generate_keypair()
        sig = bytearray.fromhex(sign_message("hello", sk))
        sig[-1] ^= 0x01
        assert verify_signature("hello", sig.hex(), pk) is False

    def test_empty_message(self) -> None:
        sk, pk = generate_keypair()
        assert verify_signature("", sign_message("", sk), pk) is True

    def test_unicode_message(self) -> None:
        sk, pk = generate_keypair()
        assert verify_signature("платёж ✓", sign_message("платёж ✓", sk), pk) is True

    @pytest.mark.parametrize(
        ("signature", "public_key"),
        [
            ("not-hex", KEY_ONE_COMPRESSED),
            ("3006020101020101", KEY_ONE_COMPRESSED),
            ("deadbeef", KEY_ONE_COMPRESSED),
            ("", KEY_ONE_COMPRESSED),
            ("3006020101020101", "02" + "00" * 32),
            ("3006020101020101", "zz"),
        ],
    )
    def test_malformed_input_returns_false(self, signature: str, public_key: str) -> None:
        assert verify_signature("hello", signature, public_key) is False


class TestDomainSeparation:
    def test_domain_message_layout(self) -> None:
        assert domain_message("{}", ["STELS-TX", 2, "smart-1.0", "chain:2"]) == "STELS-TX:2:smart-1.0:chain:2:{}"

    def test_domain_roundtrip(self) -> None:
        domain = ["STELS-TX", 2, "smart-1.0", "chain:2"]
        sig = sign_with_domain("payload", KEY_ONE, domain)
        assert verify_with_domain("payload", sig, KEY_ONE_COMPRESSED, domain) is True

    def test_signature_does_not_verify_without_domain(self) -> None:
        sig = sign_with_domain("payload", KEY_ONE, ["STELS-TX", 2])
        assert verify_signature("payload", sig, KEY_ONE_COMPRESSED) is False

    def test_signature_does_not_verify_under_other_domain(self) -> None:
        sig = sign_with_domain("payload", KEY_ONE, ["STELS-TX", 2, "smart-1.0", "chain:2"])
        other = ["STELS-TX", 3, "smart-1.0", "chain:3"]
        assert verify_with_domain("payload", sig, KEY_ONE_COMPRESSED, other) is False


class TestAddresses:
    """base58 version/hash160/checksum addresses."""

    def test_roundtrip_validates(self) -> None:
        for _ in range(10):
            _, pk = generate_keypair()
            assert validate_address(address_from_public_key(pk)) is True

    def test_fixed_length_and_prefix(self) -> None:
        for _ in range(10):
            _, pk = generate_keypair()
            address = address_from_public_key(pk)
            assert len(address) == 34
            assert address.startswith("g")

    def test_payload_layout(self) -> None:
        decoded = base58.b58decode(address_from_public_key(KEY_ONE_COMPRESSED))
        assert len(decoded) == 25
        assert decoded[0] == 98
        assert decoded[1:21] == hash160(bytes.fromhex(KEY_ONE_COMPRESSED))
        assert decoded[21:] == checksum4(decoded[:21])

    def test_compressed_and_uncompressed_give_same_address(self) -> None:
        assert derive_address(bytes.fromhex(KEY_ONE_UNCOMPRESSED)) == derive_address(bytes.fromhex(KEY_ONE_COMPRESSED))

    def test_deterministic_address(self) -> None:
        assert address_from_public_key(KEY_ONE_COMPRESSED) == address_from_public_key(KEY_ONE_COMPRESSED)

    def test_corrupted_checksum_fails(self) -> None:
        decoded = bytearray(base58.b58decode(address_from_public_key(KEY_ONE_COMPRESSED)))
        decoded[-1] ^= 0xFF
        assert validate_address(base58.b58encode(bytes(decoded)).decode()) is False

    def test_wrong_version_byte_fails_even_with_valid_checksum(self) -> None:
        payload = bytes([0]) + hash160(bytes.fromhex(KEY_ONE_COMPRESSED))
        address = base58.b58encode(payload + checksum4(payload)).decode()
        assert validate_address(address) is False

    @pytest.mark.parametrize(
        "bad", ["", "1111", "0OIl0OIl", "g" * 34, "not an address", None, 123, b"gAddr"]
    )
    def test_malformed_addresses_fail(self, bad: object) -> None:
        assert validate_address(bad) is False

    @pytest.mark.parametrize("padding", [" ", "\n", "\t", "\r\n"])
    def test_surrounding_whitespace_fails(self, padding: str) -> None:
        address = address_from_public_key(KEY_ONE_COMPRESSED)
        assert validate_address(address) is True
        assert validate_address(address + padding) is False
        assert validate_address(padding + address) is False

    def test_verify_public_key_address(self) -> None:
        address = address_from_public_key(KEY_ONE_COMPRESSED)
        assert verify_public_key_address(KEY_ONE_COMPRESSED, address) is True
        assert verify_public_key_address(KEY_ONE_UNCOMPRESSED, address) is True
        _, other = generate_keypair()
        assert verify_public_key_address(other, address) is False
        assert verify_public_key_address("zz", address) is False
        assert verify_public_key_address(None, address) is False  # type: ignore[arg-type]
        assert verify_public_key_address(123, address) is False  # type: ignore[arg-type]
