"""Shared fixtures: deterministic wallets imported from fixed private keys."""

from __future__ import annotations

import pytest

from gliesereum_sdk.types import Wallet
from gliesereum_sdk.wallet import import_wallet

SENDER_KEY = "11" * 32
RECEIVER_KEY = "22" * 32
APPROVER_A_KEY = "33" * 32
APPROVER_B_KEY = "44" * 32

FIXED_TS = 1_700_000_000_000


@pytest.fixture
def sender() -> Wallet:
    return import_wallet(SENDER_KEY)


@pytest.fixture
def receiver() -> Wallet:
    return import_wallet(RECEIVER_KEY)


@pytest.fixture
def approvers() -> tuple[Wallet, Wallet]:
    return import_wallet(APPROVER_A_KEY), import_wallet(APPROVER_B_KEY)
