"""
Tests for the broadcast coordinator: the operation state machine.

Covers:
- Simulated transfers: hash from operation id, balance conservation,
  history, completion fields, synthetic block
- Real submissions: hash from id or blob, SendTime, ambiguous codes
- Idempotence: a second broadcast conflicts and never re-submits
- Duplicate-hash exclusivity and error replay
- Payload kind (signed blob or none) must match how the operation was built
- tefPAST_SEQ / tem* handling
- Transport failure keeps the claimed hash and allows a retry
"""

from decimal import Decimal

import pytest

from conftest import ADDR_A, ADDR_B, OP_1, OP_2, FakeLedgerClient, to_base64
from ripple_api.assets import AssetRepository
from ripple_api.balances import BalanceRepository
from ripple_api.broadcast import BroadcastCoordinator, simulated_tx_id
from ripple_api.builder import TransactionBuilder
from ripple_api.exceptions import (
    BuildingShouldBeRepeatedError,
    ConflictError,
    DuplicateHashError,
    ErrorCode,
    InvalidSignedTransactionError,
    LedgerUnavailableError,
    NotFoundError,
    UnknownRejectionError,
)
from ripple_api.history import HistoryAddressCategory, HistoryRepository
from ripple_api.operations import OperationRepository, OperationState
from ripple_api.status import get_status
from ripple_api.xrpl.client import LedgerBalance
from ripple_api.xrpl.tx import transaction_hash

BLOB = "12000022800000002400000007"
TX_HASH = "AB" * 32


@pytest.fixture
def builder(
    operations: OperationRepository,
    assets: AssetRepository,
    balances: BalanceRepository,
    ledger: FakeLedgerClient,
) -> TransactionBuilder:
    return TransactionBuilder(operations, assets, balances, ledger, reserve=Decimal(20))


@pytest.fixture
def coordinator(
    operations: OperationRepository,
    assets: AssetRepository,
    balances: BalanceRepository,
    history: HistoryRepository,
    ledger: FakeLedgerClient,
) -> BroadcastCoordinator:
    return BroadcastCoordinator(operations, assets, balances, history, ledger)


@pytest.fixture
def funded(ledger: FakeLedgerClient) -> FakeLedgerClient:
    ledger.fund(ADDR_A, LedgerBalance(currency="XRP", value=Decimal(1000)))
    return ledger


def _signed(blob: str | None = BLOB, tx_id: str | None = TX_HASH) -> str:
    payload: dict[str, str] = {}
    if blob is not None:
        payload["signedTransaction"] = blob
    if tx_id is not None:
        payload["id"] = tx_id
    return to_base64(payload)


# ---------------------------------------------------------------------------
# Simulated transfers
# ---------------------------------------------------------------------------


class TestSimulated:
    @pytest.mark.asyncio
    async def test_same_owner_scenario(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        operations: OperationRepository,
        balances: BalanceRepository,
        history: HistoryRepository,
        ledger: FakeLedgerClient,
    ) -> None:
        balances.upsert(ADDR_A, "XRP", "deposit", Decimal(2), 2_000_000, 1)
        await builder.build(OP_1, ADDR_A, ADDR_A, "XRP", 1_000_000)

        result = await coordinator.broadcast(OP_1, _signed(blob=None, tx_id="c1"))

        assert result.tx_id == simulated_tx_id(OP_1)
        assert result.tx_id == OP_1.replace("-", "").upper()

        op = operations.get(OP_1)
        assert op is not None
        assert op.tx_id == result.tx_id
        assert op.completion_time is not None
        assert op.send_time == op.completion_time == op.block_time
        assert op.block == 1000 * 10 + 1
        assert op.state is OperationState.COMPLETED

        entries = [
            e.amount_in_base_unit
            for e in balances.list_entries(ADDR_A, "XRP")
            if e.operation_id == OP_1
        ]
        assert sorted(entries) == [-1_000_000, 1_000_000]
        assert sum(entries) == 0
        balance = balances.get(ADDR_A, "XRP")
        assert balance is not None
        assert balance.amount_in_base_unit == 2_000_000

        page = history.get(HistoryAddressCategory.FROM, ADDR_A, 10)
        assert [e.tx_id for e in page] == [result.tx_id]
        assert ledger.submitted == []

    @pytest.mark.asyncio
    async def test_moves_balance_between_tags(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        balances: BalanceRepository,
    ) -> None:
        source, destination = f"{ADDR_A}+1", f"{ADDR_A}+2"
        balances.upsert(source, "XRP", "deposit", Decimal(3), 3_000_000, 1)
        await builder.build(OP_1, source, destination, "XRP", 1_000_000)

        await coordinator.broadcast(OP_1, _signed(blob=None, tx_id="c1"))

        source_balance = balances.get(source, "XRP")
        destination_balance = balances.get(destination, "XRP")
        assert source_balance is not None and destination_balance is not None
        assert source_balance.amount_in_base_unit == 2_000_000
        assert destination_balance.amount_in_base_unit == 1_000_000
        assert destination_balance.block == 10_001

    @pytest.mark.asyncio
    async def test_second_broadcast_does_not_reapply(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        balances: BalanceRepository,
    ) -> None:
        source, destination = f"{ADDR_A}+1", f"{ADDR_A}+2"
        balances.upsert(source, "XRP", "deposit", Decimal(3), 3_000_000, 1)
        await builder.build(OP_1, source, destination, "XRP", 1_000_000)
        await coordinator.broadcast(OP_1, _signed(blob=None, tx_id="c1"))

        with pytest.raises(ConflictError, match="completed"):
            await coordinator.broadcast(OP_1, _signed(blob=None, tx_id="c1"))

        balance = balances.get(source, "XRP")
        assert balance is not None
        assert balance.amount_in_base_unit == 2_000_000

    @pytest.mark.asyncio
    async def test_block_constants_configurable(
        self,
        operations: OperationRepository,
        assets: AssetRepository,
        balances: BalanceRepository,
        history: HistoryRepository,
        builder: TransactionBuilder,
        ledger: FakeLedgerClient,
    ) -> None:
        coordinator = BroadcastCoordinator(
            operations, assets, balances, history, ledger, block_scale=100, block_offset=7
        )
        balances.upsert(ADDR_A, "XRP", "deposit", Decimal(2), 2_000_000, 1)
        await builder.build(OP_1, ADDR_A, ADDR_A, "XRP", 1_000_000)

        await coordinator.broadcast(OP_1, _signed(blob=None, tx_id=None))

        op = operations.get(OP_1)
        assert op is not None
        assert op.block == 100_007


# ---------------------------------------------------------------------------
# Real submissions
# ---------------------------------------------------------------------------


class TestSubmit:
    @pytest.mark.asyncio
    async def test_accepted(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        operations: OperationRepository,
        funded: FakeLedgerClient,
    ) -> None:
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 1_000_000)

        result = await coordinator.broadcast(OP_1, _signed(tx_id=TX_HASH.lower()))

        assert result.tx_id == TX_HASH
        assert funded.submitted == [BLOB]
        op = operations.get(OP_1)
        assert op is not None
        assert op.tx_id == TX_HASH
        assert op.send_time is not None
        assert op.completion_time is None
        assert op.blockchain_error is None
        assert operations.get_operation_id_by_tx_id(TX_HASH) == OP_1

    @pytest.mark.asyncio
    async def test_hash_from_blob_when_id_missing(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        funded: FakeLedgerClient,
    ) -> None:
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 1_000_000)
        result = await coordinator.broadcast(OP_1, _signed(tx_id=None))
        assert result.tx_id == transaction_hash(BLOB)

    @pytest.mark.asyncio
    async def test_blob_not_hex(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        funded: FakeLedgerClient,
    ) -> None:
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 1_000_000)
        with pytest.raises(InvalidSignedTransactionError):
            await coordinator.broadcast(OP_1, _signed(blob="zz", tx_id=None))
        assert funded.submitted == []

    @pytest.mark.asyncio
    async def test_ambiguous_code_is_sent_with_annotation(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        operations: OperationRepository,
        funded: FakeLedgerClient,
    ) -> None:
        funded.result_code = "tecPATH_DRY"
        funded.result_message = "Path could not send partial amount."
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 1_000_000)

        result = await coordinator.broadcast(OP_1, _signed())

        assert result.tx_id == TX_HASH
        op = operations.get(OP_1)
        assert op is not None
        assert op.send_time is not None
        assert op.fail_time is None
        assert op.blockchain_error == "tecPATH_DRY: Path could not send partial amount."
        status = get_status(operations, OP_1)
        assert status is not None
        assert status.state is OperationState.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_second_broadcast_conflicts_without_resubmitting(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        funded: FakeLedgerClient,
    ) -> None:
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 1_000_000)
        await coordinator.broadcast(OP_1, _signed())

        with pytest.raises(ConflictError, match="inProgress") as exc_info:
            await coordinator.broadcast(OP_1, _signed())

        assert exc_info.value.details == {"state": "inProgress"}
        assert funded.submitted == [BLOB]


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


class TestGuards:
    @pytest.mark.asyncio
    async def test_unknown_operation(self, coordinator: BroadcastCoordinator) -> None:
        with pytest.raises(NotFoundError):
            await coordinator.broadcast(OP_1, _signed())

    @pytest.mark.asyncio
    async def test_invalid_envelope_changes_nothing(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        operations: OperationRepository,
        funded: FakeLedgerClient,
    ) -> None:
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 1_000_000)

        with pytest.raises(InvalidSignedTransactionError):
            await coordinator.broadcast(OP_1, "!!not-base64!!")

        op = operations.get(OP_1)
        assert op is not None
        assert op.tx_id is None
        assert op.is_running is False

    @pytest.mark.asyncio
    async def test_duplicate_hash(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        operations: OperationRepository,
        funded: FakeLedgerClient,
    ) -> None:
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 1_000_000)
        await builder.build(OP_2, ADDR_A, ADDR_B, "XRP", 1_000_000)
        await coordinator.broadcast(OP_1, _signed())

        with pytest.raises(DuplicateHashError) as exc_info:
            await coordinator.broadcast(OP_2, _signed(tx_id=TX_HASH.lower()))

        assert exc_info.value.error_code is ErrorCode.BUILDING_SHOULD_BE_REPEATED
        assert funded.submitted == [BLOB]
        op2 = operations.get(OP_2)
        assert op2 is not None
        assert op2.fail_time is not None
        assert op2.error_code is ErrorCode.BUILDING_SHOULD_BE_REPEATED
        assert op2.tx_id is None
        assert operations.get_operation_id_by_tx_id(TX_HASH) == OP_1

    @pytest.mark.asyncio
    async def test_failed_operation_replays_recorded_error(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        funded: FakeLedgerClient,
    ) -> None:
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 1_000_000)
        await builder.build(OP_2, ADDR_A, ADDR_B, "XRP", 1_000_000)
        await coordinator.broadcast(OP_1, _signed())
        with pytest.raises(DuplicateHashError) as first:
            await coordinator.broadcast(OP_2, _signed())

        with pytest.raises(DuplicateHashError) as replay:
            await coordinator.broadcast(OP_2, _signed())

        assert replay.value.message == first.value.message
        assert replay.value.details == {"hash": TX_HASH}
        assert replay.value.error_code is ErrorCode.BUILDING_SHOULD_BE_REPEATED
        assert funded.submitted == [BLOB]

    @pytest.mark.asyncio
    async def test_id_only_payload_for_ledger_payment(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        operations: OperationRepository,
        balances: BalanceRepository,
        history: HistoryRepository,
        funded: FakeLedgerClient,
    ) -> None:
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 5_000_000)

        with pytest.raises(InvalidSignedTransactionError, match="ledger payment"):
            await coordinator.broadcast(OP_1, _signed(blob=None, tx_id="c1"))

        op = operations.get(OP_1)
        assert op is not None
        assert op.is_running is False
        assert op.tx_id is None
        assert balances.get(ADDR_B, "XRP") is None
        assert balances.get(ADDR_A, "XRP") is None
        assert history.get(HistoryAddressCategory.TO, ADDR_B, 10) == []
        assert operations.get_operation_id_by_tx_id(simulated_tx_id(OP_1)) is None
        assert funded.submitted == []

        result = await coordinator.broadcast(OP_1, _signed())
        assert result.tx_id == TX_HASH

    @pytest.mark.asyncio
    async def test_signed_blob_for_same_owner_transfer(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        operations: OperationRepository,
        balances: BalanceRepository,
        ledger: FakeLedgerClient,
    ) -> None:
        source, destination = f"{ADDR_A}+1", f"{ADDR_A}+2"
        balances.upsert(source, "XRP", "deposit", Decimal(3), 3_000_000, 1)
        await builder.build(OP_1, source, destination, "XRP", 1_000_000)

        with pytest.raises(InvalidSignedTransactionError, match="same-owner"):
            await coordinator.broadcast(OP_1, _signed())

        op = operations.get(OP_1)
        assert op is not None
        assert op.is_running is False
        assert op.tx_id is None
        assert operations.get_operation_id_by_tx_id(TX_HASH) is None
        assert balances.get(destination, "XRP") is None
        assert ledger.submitted == []


# ---------------------------------------------------------------------------
# Ledger rejections and transport failures
# ---------------------------------------------------------------------------


class TestRejections:
    @pytest.mark.asyncio
    async def test_past_seq_requires_rebuild(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        operations: OperationRepository,
        funded: FakeLedgerClient,
    ) -> None:
        funded.result_code = "tefPAST_SEQ"
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 1_000_000)

        with pytest.raises(BuildingShouldBeRepeatedError) as exc_info:
            await coordinator.broadcast(OP_1, _signed())

        assert exc_info.value.error_code is ErrorCode.BUILDING_SHOULD_BE_REPEATED
        op = operations.get(OP_1)
        assert op is not None
        assert op.send_time is None
        assert op.fail_time is None
        assert op.error_code is ErrorCode.BUILDING_SHOULD_BE_REPEATED
        assert get_status(operations, OP_1) is None

    @pytest.mark.asyncio
    async def test_max_ledger_requires_rebuild(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        funded: FakeLedgerClient,
    ) -> None:
        funded.result_code = "tefMAX_LEDGER"
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 1_000_000)
        with pytest.raises(BuildingShouldBeRepeatedError):
            await coordinator.broadcast(OP_1, _signed())

    @pytest.mark.asyncio
    async def test_malformed_fails_operation(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        operations: OperationRepository,
        funded: FakeLedgerClient,
    ) -> None:
        funded.result_code = "temBAD_FEE"
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 1_000_000)

        with pytest.raises(UnknownRejectionError) as exc_info:
            await coordinator.broadcast(OP_1, _signed())

        assert exc_info.value.error_code is ErrorCode.UNKNOWN
        op = operations.get(OP_1)
        assert op is not None
        assert op.fail_time is not None
        assert op.send_time is None
        assert op.error == "temBAD_FEE"
        status = get_status(operations, OP_1)
        assert status is not None
        assert status.state is OperationState.FAILED

        with pytest.raises(UnknownRejectionError):
            await coordinator.broadcast(OP_1, _signed())
        assert funded.submitted == [BLOB]

    @pytest.mark.asyncio
    async def test_transport_failure_keeps_hash_and_allows_retry(
        self,
        builder: TransactionBuilder,
        coordinator: BroadcastCoordinator,
        operations: OperationRepository,
        funded: FakeLedgerClient,
    ) -> None:
        await builder.build(OP_1, ADDR_A, ADDR_B, "XRP", 1_000_000)
        funded.submit_error = LedgerUnavailableError("timed out")

        with pytest.raises(LedgerUnavailableError):
            await coordinator.broadcast(OP_1, _signed())

        op = operations.get(OP_1)
        assert op is not None
        assert op.tx_id == TX_HASH
        assert op.send_time is None
        assert op.is_running is False

        funded.submit_error = None
        result = await coordinator.broadcast(OP_1, _signed())
        assert result.tx_id == TX_HASH
        assert funded.submitted == [BLOB]
