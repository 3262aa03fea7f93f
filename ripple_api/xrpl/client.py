"""
Ledger client protocol: the network boundary.

Defines the interface the builder and broadcast coordinator depend on, not
a concrete implementation. This keeps both testable and keeps HTTP calls
out of business logic.

Concrete implementations:
    - JsonRpcClient (rippled JSON-RPC)
    - FakeLedgerClient (tests)

All methods are async. None of them retry: retry policy belongs to the
caller. Transport failures raise LedgerUnavailableError, server-level
errors raise LedgerRequestError, and a missing account raises
AccountNotFound. Ledger rejections of a submitted transaction are NOT
exceptions: they come back in SubmitResult.result_code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable


# =========================================================================
# Request types
# =========================================================================


@dataclass(frozen=True)
class PaymentAmount:
    """An amount of an asset. counterparty is the issuer, None for XRP."""

    value: Decimal
    currency: str
    counterparty: str | None = None


@dataclass(frozen=True)
class PaymentSpec:
    """What to pay, from whom, to whom.

    Attributes:
        source: Sender r-address.
        destination: Recipient r-address.
        amount: Amount delivered to the destination.
        source_tag: Optional source tag.
        destination_tag: Optional destination tag.
    """

    source: str
    destination: str
    amount: PaymentAmount
    source_tag: int | None = None
    destination_tag: int | None = None


@dataclass(frozen=True)
class Instructions:
    """Transaction instructions applied when preparing a payment.

    Attributes:
        max_ledger_version_offset: Ledgers after the current one until the
            transaction expires (LastLedgerSequence).
        fee: Fee in XRP. None means "ask the ledger".
    """

    max_ledger_version_offset: int
    fee: Decimal | None = None


# =========================================================================
# Result types
# =========================================================================


@dataclass(frozen=True)
class AccountInfo:
    address: str
    balance: Decimal
    sequence: int
    flags: int = 0
    owner_count: int = 0


@dataclass(frozen=True)
class AccountSettings:
    require_destination_tag: bool = False
    disallow_incoming_xrp: bool = False


@dataclass(frozen=True)
class LedgerBalance:
    """One balance of an account. counterparty is None for XRP."""

    currency: str
    value: Decimal
    counterparty: str | None = None


@dataclass(frozen=True)
class PreparedPayment:
    """An unsigned, fully autofilled payment.

    Attributes:
        tx_json: JSON string of the unsigned transaction, ready to sign.
        max_ledger_version: LastLedgerSequence of the transaction.
    """

    tx_json: str
    max_ledger_version: int


@dataclass(frozen=True)
class SubmitResult:
    """Result of submitting a signed transaction blob.

    Attributes:
        result_code: Engine result (e.g. "tesSUCCESS", "tefPAST_SEQ").
        result_message: Human-readable engine result message.
        tx_hash: Hash reported by the node, if any.
        raw: The node's full result object, for diagnostics.
    """

    result_code: str
    result_message: str | None = None
    tx_hash: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class LedgerClient(Protocol):
    """Interface for XRP Ledger operations used by the core."""

    async def get_fee(self) -> Decimal:
        """Current transaction fee in XRP."""
        ...

    async def get_account_info(self, address: str) -> AccountInfo:
        """Account root of an address. Raises AccountNotFound."""
        ...

    async def get_account_settings(self, address: str) -> AccountSettings | None:
        """Account flags, or None if the account does not exist."""
        ...

    async def get_balances(self, address: str) -> list[LedgerBalance]:
        """XRP and issued-currency balances; empty for unfunded accounts."""
        ...

    async def get_ledger_index(self) -> int:
        """Index of the current (open) ledger."""
        ...

    async def prepare_payment(
        self,
        address: str,
        payment: PaymentSpec,
        instructions: Instructions,
    ) -> PreparedPayment:
        """Build an unsigned, autofilled Payment transaction."""
        ...

    async def submit(self, signed_transaction: str) -> SubmitResult:
        """Submit a hex-encoded signed transaction blob."""
        ...
