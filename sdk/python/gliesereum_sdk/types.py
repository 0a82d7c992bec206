"""Core types for the Gliesereum SDK.

All public-facing data structures are pydantic v2 models. They serialize
(``model_dump(mode="json", by_alias=True)``) to exactly the JSON objects the
node hashes and verifies:

- keys listed in a model's ``omitted_when_none`` are left out entirely when
  unset, every other ``None`` is written as ``null``;
- camelCase and reserved wire keys (``from``, ``publicKey``) are aliases.

Wallets and transactions are immutable value objects (``frozen=True``).
"""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    TypeAdapter,
    model_serializer,
)


class WireModel(BaseModel):
    """Base for models that are canonicalized, hashed and signed."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    omitted_when_none: ClassVar[frozenset[str]] = frozenset()

    @model_serializer(mode="wrap")
    def _drop_absent_fields(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        for name in self.omitted_when_none:
            if getattr(self, name) is None:
                alias = type(self).model_fields[name].alias
                data.pop(name, None)
                if alias:
                    data.pop(alias, None)
        return data

    def to_wire(self) -> dict[str, Any]:
        """The JSON-ready dict the node receives."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


class Wallet(BaseModel):
    """Identity material for a single user.

    ``address`` and ``number`` are pure functions of ``public_key``. The
    private key is excluded from ``repr`` so it does not end up in logs.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    public_key: str = Field(alias="publicKey", min_length=66, max_length=66)
    private_key: str = Field(alias="privateKey", min_length=64, max_length=64, repr=False)
    address: str
    biometric: str | None = None
    number: str = Field(min_length=16, max_length=16)


# ---------------------------------------------------------------------------
# Legacy transfer transaction
# ---------------------------------------------------------------------------


class TransactionSender(WireModel):
    """Sender identity snapshot embedded in a legacy transaction."""

    address: str
    public_key: str = Field(alias="publicKey")
    number: str


class Transaction(WireModel):
    """A signed legacy transfer; ``hash`` and ``signature`` cover every other field."""

    omitted_when_none = frozenset({"status", "signature"})

    sender: TransactionSender = Field(alias="from")
    to: str
    amount: int
    fee: int
    timestamp: int
    verified: bool = False
    validators: list[str] = Field(default_factory=list)
    data: str | None = None
    status: Literal["pending", "confirmed", "failed"] | None = None
    hash: str
    signature: str | None = None


# ---------------------------------------------------------------------------
# Smart operations
# ---------------------------------------------------------------------------


class TransferOp(WireModel):
    omitted_when_none = frozenset({"memo"})

    op: Literal["transfer"] = "transfer"
    to: str
    amount: str
    memo: str | None = None


class AssertTimeOp(WireModel):
    """Holds only while the block time lies within ``(after_ms, before_ms)``."""

    omitted_when_none = frozenset({"before_ms", "after_ms"})

    op: Literal["assert.time"] = "assert.time"
    before_ms: int | None = None
    after_ms: int | None = None


class AssertBalanceOp(WireModel):
    op: Literal["assert.balance"] = "assert.balance"
    address: str
    gte: str


class AssertCompareOp(WireModel):
    op: Literal["assert.compare"] = "assert.compare"
    left: str
    cmp: Literal["<", "<=", "==", ">=", ">"]
    right: str


class EmitEventOp(WireModel):
    omitted_when_none = frozenset({"data"})

    op: Literal["emit.event"] = "emit.event"
    kind: str
    data: dict[str, Any] | None = None


SmartOpModel = Union[TransferOp, AssertTimeOp, AssertBalanceOp, AssertCompareOp, EmitEventOp]
SmartOp = Annotated[SmartOpModel, Field(discriminator="op")]

smart_op_adapter: TypeAdapter[SmartOp] = TypeAdapter(SmartOp)


# ---------------------------------------------------------------------------
# Signatures and co-signing
# ---------------------------------------------------------------------------


class TransactionSignature(WireModel):
    kid: str
    alg: Literal["ecdsa-secp256k1"] = "ecdsa-secp256k1"
    sig: str


class CosignThreshold(WireModel):
    k: int
    n: int


class CosignMethod(WireModel):
    """A k-of-n approval gate over a smart transaction."""

    id: str
    type: Literal["cosign"] = "cosign"
    threshold: CosignThreshold
    approvers: list[str]
    deadline_ms: int | None = None


class CosignSignature(WireModel):
    method_id: str
    kid: str
    alg: Literal["ecdsa-secp256k1"] = "ecdsa-secp256k1"
    sig: str


# ---------------------------------------------------------------------------
# Smart transaction
# ---------------------------------------------------------------------------


class SmartArgs(WireModel):
    ops: list[SmartOp]
    memo: str | None = None


class SmartTransaction(WireModel):
    """A multi-operation transaction.

    ``signatures`` and ``cosigs`` are outside the signing view; every other
    field is covered by each signature.
    """

    omitted_when_none = frozenset({"raw", "raw_encoding", "raw_sha256", "methods", "cosigs"})

    type: Literal["smart"] = "smart"
    method: Literal["smart.exec"] = "smart.exec"
    args: SmartArgs
    sender: str = Field(alias="from")
    fee: str
    currency: str
    prev_hash: str | None = None
    timestamp: int
    signatures: list[TransactionSignature] = Field(default_factory=list)
    raw: str | None = None
    raw_encoding: Literal["utf8"] | None = None
    raw_sha256: str | None = None
    methods: list[CosignMethod] | None = None
    cosigs: list[CosignSignature] | None = None
