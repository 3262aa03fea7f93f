"""Shared fixtures: in-memory stores and a fake ledger client."""

from __future__ import annotations

import base64
import json
from decimal import Decimal
from typing import Any

import pytest

from ripple_api.assets import Asset, AssetRepository
from ripple_api.balances import BalanceRepository
from ripple_api.db import Database
from ripple_api.encoding import canonical_json
from ripple_api.exceptions import AccountNotFound
from ripple_api.history import HistoryRepository
from ripple_api.operations import OperationRepository
from ripple_api.xrpl.client import (
    AccountInfo,
    AccountSettings,
    Instructions,
    LedgerBalance,
    PaymentSpec,
    PreparedPayment,
    SubmitResult,
)
from ripple_api.xrpl.tx import build_payment, xrp_to_drops

ADDR_A = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"
ADDR_B = "rPT1Sjq2YGrBMTttX4GZHjKu9dyfzbpAYe"
ISSUER = "rf1BiGeXwwQoi8Z2ueFYTEXSwuJYfV2Jpn"

OP_1 = "8d2f6a34-0a5b-4a38-9b1f-3f7f2f5b7c10"
OP_2 = "1c9e4b7a-55d2-4e0f-8a61-0d3c2b9e7f41"
OP_3 = "f0b1c2d3-e4f5-4a6b-8c7d-9e0f1a2b3c4d"

USD = Asset(asset_id="USD", address=ISSUER, name="US Dollar", accuracy=2)


def to_base64(obj: Any) -> str:
    """Broadcast envelope as a client would send it: base64 of the JSON."""
    return base64.b64encode(json.dumps(obj).encode("utf-8")).decode("ascii")


# ---------------------------------------------------------------------------
# Fake ledger client
# ---------------------------------------------------------------------------


class FakeLedgerClient:
    """In-memory LedgerClient with canned fee, balances and submit results."""

    def __init__(
        self,
        *,
        fee: Decimal = Decimal("0.000012"),
        ledger_index: int = 1000,
        result_code: str = "tesSUCCESS",
        result_message: str | None = None,
    ) -> None:
        self.fee = fee
        self.ledger_index = ledger_index
        self.result_code = result_code
        self.result_message = result_message
        self.balances: dict[str, list[LedgerBalance]] = {}
        self.accounts: dict[str, AccountSettings] = {}
        self.submit_error: Exception | None = None
        self.submitted: list[str] = []
        self.prepared: list[PaymentSpec] = []

    def fund(self, address: str, *balances: LedgerBalance) -> None:
        self.balances[address] = list(balances)
        self.accounts.setdefault(address, AccountSettings())

    async def get_fee(self) -> Decimal:
        return self.fee

    async def get_account_info(self, address: str) -> AccountInfo:
        if address not in self.accounts:
            raise AccountNotFound(f"Account [{address}] not found")
        xrp = sum(
            (b.value for b in self.balances.get(address, []) if b.currency == "XRP"),
            Decimal(0),
        )
        return AccountInfo(address=address, balance=xrp, sequence=7)

    async def get_account_settings(self, address: str) -> AccountSettings | None:
        return self.accounts.get(address)

    async def get_balances(self, address: str) -> list[LedgerBalance]:
        return list(self.balances.get(address, []))

    async def get_ledger_index(self) -> int:
        return self.ledger_index

    async def prepare_payment(
        self,
        address: str,
        payment: PaymentSpec,
        instructions: Instructions,
    ) -> PreparedPayment:
        self.prepared.append(payment)
        max_ledger_version = self.ledger_index + instructions.max_ledger_version_offset
        tx = build_payment(
            payment,
            sequence=7,
            fee_drops=xrp_to_drops(instructions.fee if instructions.fee is not None else self.fee),
            last_ledger_sequence=max_ledger_version,
        )
        return PreparedPayment(tx_json=canonical_json(tx), max_ledger_version=max_ledger_version)

    async def submit(self, signed_transaction: str) -> SubmitResult:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(signed_transaction)
        return SubmitResult(
            result_code=self.result_code,
            result_message=self.result_message,
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db() -> Database:
    return Database(":memory:")


@pytest.fixture
def operations(db: Database) -> OperationRepository:
    return OperationRepository(db)


@pytest.fixture
def assets(db: Database) -> AssetRepository:
    repo = AssetRepository(db)
    repo.ensure_native_asset()
    repo.upsert(USD)
    return repo


@pytest.fixture
def balances(db: Database) -> BalanceRepository:
    return BalanceRepository(db)


@pytest.fixture
def history(db: Database) -> HistoryRepository:
    return HistoryRepository(db)


@pytest.fixture
def ledger() -> FakeLedgerClient:
    return FakeLedgerClient()
