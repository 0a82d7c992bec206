"""Gliesereum identity primitives: secp256k1 keys, signing, address encoding.

All elliptic-curve operations use the ``ecdsa`` package on secp256k1.
Signatures are RFC 6979 deterministic, normalised to low-S and DER encoded,
which is the form strict verifiers on the node accept. Addresses are
base58 strings of ``version || hash160(compressed_pubkey) || checksum4``.
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Sequence

import base58
from ecdsa import (
    SECP256k1,
    BadDigestError,
    BadSignatureError,
    MalformedPointError,
    SigningKey,
    VerifyingKey,
)
from ecdsa.der import UnexpectedDER
from ecdsa.util import sigdecode_der, sigencode_der_canonize

from gliesereum_sdk.crypto import (
    bytes_to_hex,
    checksum4,
    constant_time_equal,
    hash160,
    hex_to_bytes,
)
from gliesereum_sdk.exceptions import InvalidKeyFormatError
from gliesereum_sdk.params import PROTOCOL

logger = logging.getLogger(__name__)

_CURVE = SECP256k1
_PRIVATE_KEY_RE = re.compile(r"[0-9a-fA-F]{64}")
_BASE58_RE = re.compile(r"[1-9A-HJ-NP-Za-km-z]+")
_DOMAIN_SEPARATOR = ":"


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


def _load_signing_key(private_key: str) -> SigningKey:
    if not isinstance(private_key, str) or not _PRIVATE_KEY_RE.fullmatch(private_key):
        raise InvalidKeyFormatError(
            "private key must be exactly 64 hex characters",
            field="privateKey",
            constraint="hex64",
        )
    secret = int(private_key, 16)
    if not 1 <= secret < _CURVE.order:
        raise InvalidKeyFormatError(
            "private key is outside the secp256k1 scalar range",
            field="privateKey",
            constraint="1 <= key < n",
        )
    return SigningKey.from_secret_exponent(secret, curve=_CURVE, hashfunc=hashlib.sha256)


def generate_keypair() -> tuple[str, str]:
    """Generate a random secp256k1 keypair from the OS CSPRNG.

    Returns:
        A ``(private_key_hex, public_key_hex)`` tuple. The private key is 64
        hex characters, the public key is the 66-character compressed form.
    """
    sk = SigningKey.generate(curve=_CURVE, hashfunc=hashlib.sha256)
    return bytes_to_hex(sk.to_string()), bytes_to_hex(sk.get_verifying_key().to_string("compressed"))


def private_key_to_public(private_key: str, *, compressed: bool = True) -> str:
    """Derive the hex public key for a hex private key.

    Raises:
        InvalidKeyFormatError: If *private_key* is malformed.
    """
    vk = _load_signing_key(private_key).get_verifying_key()
    return bytes_to_hex(vk.to_string("compressed" if compressed else "uncompressed"))


def get_uncompressed_public_key(private_key: str) -> str:
    """Return the 130-character ``04``-prefixed public key for *private_key*."""
    return private_key_to_public(private_key, compressed=False)


def compress_public_key(public_key: bytes) -> bytes:
    """Compress a 65-byte ``04``-prefixed key; any other input is returned unchanged."""
    if len(public_key) == 65 and public_key[0] == 0x04:
        vk = VerifyingKey.from_string(bytes(public_key), curve=_CURVE)
        return vk.to_string("compressed")
    return bytes(public_key)


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


def sign_message(message: str, private_key: str) -> str:
    """Sign the UTF-8 encoding of *message*.

    The message is hashed with SHA-256 and signed with a deterministic
    nonce. The signature is normalised to low-S.

    Returns:
        The DER-encoded signature as lowercase hex.

    Raises:
        InvalidKeyFormatError: If *private_key* is malformed.
    """
    sk = _load_signing_key(private_key)
    digest = hashlib.sha256(message.encode("utf-8")).digest()
    signature = sk.sign_digest_deterministic(digest, hashfunc=hashlib.sha256, sigencode=sigencode_der_canonize)
    return bytes_to_hex(signature)


def verify_signature(message: str, signature: str, public_key: str) -> bool:
    """Verify a DER hex signature over the UTF-8 encoding of *message*.

    Args:
        message: The signed text.
        signature: DER-encoded signature, hex.
        public_key: Compressed (66 chars) or uncompressed (130 chars) hex key.

    Returns:
        ``True`` if the signature is valid, ``False`` on any mismatch or
        malformed input.
    """
    try:
        vk = VerifyingKey.from_string(hex_to_bytes(public_key), curve=_CURVE)
        digest = hashlib.sha256(message.encode("utf-8")).digest()
        return vk.verify_digest(hex_to_bytes(signature), digest, sigdecode=sigdecode_der)
    except (BadSignatureError, BadDigestError, UnexpectedDER, MalformedPointError, ValueError, TypeError, AttributeError) as exc:
        logger.debug(
            "Signature verification failed",
            extra={"event": "signature.verify_failed", "reason": type(exc).__name__},
        )
        return False


def domain_message(message: str, domain: Sequence[str | int]) -> str:
    """Prefix *message* with its domain separator: ``"a:b:c:" + message``."""
    return _DOMAIN_SEPARATOR.join(str(part) for part in domain) + _DOMAIN_SEPARATOR + message


def sign_with_domain(message: str, private_key: str, domain: Sequence[str | int]) -> str:
    """Sign *message* under a domain separator so it cannot be replayed elsewhere."""
    return sign_message(domain_message(message, domain), private_key)


def verify_with_domain(message: str, signature: str, public_key: str, domain: Sequence[str | int]) -> bool:
    return verify_signature(domain_message(message, domain), signature, public_key)


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


def derive_address(public_key: bytes) -> str:
    """Encode a public key as a Gliesereum address.

    Uncompressed keys are compressed first, so both forms of the same key
    map to the same address.

    Returns:
        A 34-character base58 string starting with ``g``.
    """
    version_and_hash = bytes([PROTOCOL.address_version]) + hash160(compress_public_key(public_key))
    return base58.b58encode(version_and_hash + checksum4(version_and_hash)).decode("ascii")


def address_from_public_key(public_key: str) -> str:
    return derive_address(hex_to_bytes(public_key))


def validate_address(address: str) -> bool:
    """Check an address's base58 encoding, version byte and checksum.

    Returns:
        ``True`` for a well-formed address of this network. Malformed input
        of any kind returns ``False``.
    """
    # b58decode strips surrounding whitespace before decoding.
    if not isinstance(address, str) or _BASE58_RE.fullmatch(address) is None:
        logger.debug("Address validation failed", extra={"event": "address.invalid", "reason": "base58"})
        return False
    decoded = base58.b58decode(address)

    size = PROTOCOL.checksum_size
    if len(decoded) < size + 1:
        logger.debug("Address validation failed", extra={"event": "address.invalid", "reason": "too_short"})
        return False
    version = decoded[0]
    if version != PROTOCOL.address_version:
        logger.debug("Address validation failed", extra={"event": "address.invalid", "reason": "version"})
        return False

    expected = checksum4(decoded[:-size])
    if not constant_time_equal(expected, decoded[-size:]):
        logger.debug("Address validation failed", extra={"event": "address.invalid", "reason": "checksum"})
        return False
    return True


def verify_public_key_address(public_key: str, address: str) -> bool:
    """Return ``True`` if *address* is the address derived from *public_key*."""
    if not isinstance(public_key, str):
        return False
    try:
        return address_from_public_key(public_key) == address
    except (ValueError, MalformedPointError):
        return False
