"""Byte, hex and hash primitives shared by the address codec and signers.

These helpers are pure and stateless. RIPEMD-160 comes from PyCryptodome
because OpenSSL 3 builds of :mod:`hashlib` may not expose it.
"""

from __future__ import annotations

import hashlib
import hmac
import string
from collections.abc import Iterable

from Crypto.Hash import RIPEMD160

_HEX_DIGITS = frozenset(string.hexdigits)


# ---------------------------------------------------------------------------
# Hex / bytes codec
# ---------------------------------------------------------------------------


def hex_to_bytes(value: str) -> bytes:
    """Decode a hex string, tolerating a ``0x`` prefix and odd length.

    Odd-length input is left-padded with a single ``0`` nibble.

    Raises:
        ValueError: If *value* contains non-hex characters.
    """
    if value.startswith("0x"):
        value = value[2:]
    if not all(c in _HEX_DIGITS for c in value):
        raise ValueError("hex string contains non-hex characters")
    if len(value) % 2:
        value = "0" + value
    return bytes.fromhex(value)


def bytes_to_hex(data: bytes) -> str:
    """Encode bytes as lowercase hex, two characters per byte."""
    return bytes(data).hex()


def concat_bytes(parts: Iterable[bytes]) -> bytes:
    return b"".join(bytes(p) for p in parts)


def constant_time_equal(a: bytes, b: bytes) -> bool:
    """Compare two byte strings without an early exit on the first difference.

    Only the lengths are compared up front; unequal lengths return ``False``
    immediately.
    """
    if len(a) != len(b):
        return False
    result = 0
    for x, y in zip(a, b):
        result |= x ^ y
    return result == 0


# ---------------------------------------------------------------------------
# Hashes
# ---------------------------------------------------------------------------


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def ripemd160(data: bytes) -> bytes:
    return RIPEMD160.new(data).digest()


def hash160(data: bytes) -> bytes:
    """``RIPEMD160(SHA256(data))``, the address payload hash."""
    return ripemd160(sha256(data))


def checksum4(data: bytes) -> bytes:
    """First four bytes of ``SHA256(data)``."""
    return sha256(data)[:4]


def hmac_sha256(key: bytes, data: bytes) -> bytes:
    return hmac.new(key, data, hashlib.sha256).digest()
