"""Wallet creation, import and the display card number.

A :class:`~gliesereum_sdk.types.Wallet` is built in one step from a
keypair: the compressed public key, the address derived from it and a
16-digit Luhn-valid card number derived from the address. The card number
is cosmetic; it is not secret and proves nothing about key ownership.
"""

from __future__ import annotations

import logging

from gliesereum_sdk.crypto import hmac_sha256, hex_to_bytes, sha256
from gliesereum_sdk.identity import derive_address, generate_keypair, private_key_to_public
from gliesereum_sdk.types import Wallet

logger = logging.getLogger(__name__)

_CARD_LENGTH = 16


def luhn_check_digit(number: str) -> str:
    """Compute the Luhn check digit to append to *number*.

    Raises:
        ValueError: If *number* contains a non-digit character.
    """
    total = 0
    # The check digit will occupy the rightmost position, so doubling starts
    # with the payload's last digit.
    for position, char in enumerate(reversed(number)):
        if not char.isdigit() or not char.isascii():
            raise ValueError(f"invalid digit in card number: {char!r}")
        digit = int(char)
        if position % 2 == 0:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return str((10 - total % 10) % 10)


def luhn_is_valid(number: str) -> bool:
    """Return ``True`` if *number* (check digit included) passes the Luhn test."""
    if len(number) < 2 or not number.isascii() or not number.isdigit():
        return False
    return luhn_check_digit(number[:-1]) == number[-1]


def card_number(data: str | bytes, prefix: str = "0", secret_key: str | bytes | None = None) -> str:
    """Derive a deterministic 16-digit Luhn-valid number from *data*.

    Args:
        data: Input to hash, usually the wallet address. Strings are UTF-8
            encoded.
        prefix: Leading digits of the result.
        secret_key: When given, HMAC-SHA-256 keyed with it replaces plain
            SHA-256.

    Returns:
        ``prefix`` + body digits + one Luhn check digit, 16 characters total.
    """
    payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    if secret_key is not None:
        key = secret_key.encode("utf-8") if isinstance(secret_key, str) else bytes(secret_key)
        digest = hmac_sha256(key, payload)
    else:
        digest = sha256(payload)

    digits_needed = _CARD_LENGTH - len(prefix) - 1
    body = str(int.from_bytes(digest, "big")).zfill(digits_needed)[:digits_needed]
    base = prefix + body
    return base + luhn_check_digit(base)


def _wallet_from_keys(private_key: str, public_key: str) -> Wallet:
    address = derive_address(hex_to_bytes(public_key))
    return Wallet(
        public_key=public_key,
        private_key=private_key,
        address=address,
        biometric=None,
        number=card_number(address),
    )


def create_wallet() -> Wallet:
    """Generate a new wallet with a random keypair."""
    private_key, public_key = generate_keypair()
    wallet = _wallet_from_keys(private_key, public_key)
    logger.debug("Created wallet", extra={"event": "wallet.created", "address": wallet.address})
    return wallet


def import_wallet(private_key: str) -> Wallet:
    """Rebuild a wallet from a 64-character hex private key.

    Importing the same key always yields an identical wallet.

    Raises:
        InvalidKeyFormatError: If *private_key* is not 64 hex characters or
            is not a valid secp256k1 scalar.
    """
    public_key = private_key_to_public(private_key)
    wallet = _wallet_from_keys(private_key, public_key)
    logger.debug("Imported wallet", extra={"event": "wallet.imported", "address": wallet.address})
    return wallet
