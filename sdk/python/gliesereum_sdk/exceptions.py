"""Errors raised by the Gliesereum SDK builders.

Construction-time problems raise a :class:`GliesereumError` subclass that
names the offending field and the rule it broke, so an application can turn
it into an actionable message. Predicates that check untrusted input
(address validation, signature verification, the ``is_valid_*`` rules)
never raise; they return ``False``.
"""

from __future__ import annotations


class GliesereumError(ValueError):
    """Base class for every error raised by the SDK.

    Attributes:
        field: Name of the field that failed, when known.
        constraint: Short description of the violated rule.
    """

    def __init__(self, message: str, *, field: str | None = None, constraint: str | None = None) -> None:
        self.field = field
        self.constraint = constraint
        super().__init__(message)


class InvalidKeyFormatError(GliesereumError):
    """A private key is not 64 hex characters or is outside the curve order."""


class InvalidAddressError(GliesereumError):
    """An address failed base58, version byte or checksum validation."""


class InvalidAmountError(GliesereumError):
    """An amount is negative, non-integral or not a well-formed decimal."""


class InvalidFeeError(GliesereumError):
    """A fee is not positive (legacy) or not a well-formed decimal string (smart)."""


class DataTooLargeError(GliesereumError):
    """An attached payload exceeds its byte ceiling."""


class InvalidOperationError(GliesereumError):
    """A smart transaction operation list or one of its operations is malformed."""


class InvalidCosignMethodError(GliesereumError):
    """A co-signing method descriptor violates its structural rules."""


class InvalidCosignSignatureError(GliesereumError):
    """A co-signature is malformed or references an unknown method."""


class TransactionIntegrityError(GliesereumError):
    """A signed transaction no longer matches its hash or lacks a signature.

    This indicates tampering or corruption after signing rather than bad
    user input.
    """
