"""
Broadcast coordinator: the operation state machine.

    Built ──broadcast──> Sent ──(reconciliation)──> Completed | Failed
      │
      ├──simulated────> Completed
      └──rejected─────> Failed

Order of work for one broadcast call:

    1. Guard: the operation must exist and must not be running. A failed
       operation with a recorded error replays that error instead.
    2. Decode the base64 envelope and derive the transaction hash. The
       payload must match the build: a signed blob for a ledger payment,
       none for a same-owner transfer.
    3. Claim the hash in the tx-id index and attach it to the operation.
       A hash owned by another operation fails this one (duplicate hash).
    4. Submit (real) or apply the balance move (simulated).

The hash is durably bound to the operation before the ledger is called.
If the process dies mid-submit, the reconciliation job still finds the
operation by hash; a retry of the same operation re-claims its own hash
and resubmits the same signature, which the ledger applies at most once.

Submission results are classified conservatively. Only codes that prove
the signed transaction can never apply fail the call; anything else
records SendTime, optionally annotated with the ledger's message.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ripple_api.addresses import split_address
from ripple_api.assets import AssetRepository
from ripple_api.balances import BalanceRepository
from ripple_api.db import utc_now
from ripple_api.encoding import SignedTransaction, decode_signed_transaction
from ripple_api.exceptions import (
    BuildingShouldBeRepeatedError,
    ConflictError,
    DuplicateHashError,
    ErrorCode,
    InvalidSignedTransactionError,
    NotFoundError,
    RippleApiError,
    UnknownAssetError,
    UnknownRejectionError,
    error_for_code,
)
from ripple_api.history import HistoryRepository
from ripple_api.logging import get_logger
from ripple_api.operations import OperationEntity, OperationRepository
from ripple_api.xrpl.client import LedgerClient
from ripple_api.xrpl.errors import SubmitOutcome, classify_submit_result
from ripple_api.xrpl.tx import transaction_hash

logger = get_logger(__name__)

_DUPLICATE_HASH_MESSAGE = "Transaction [{tx_id}] already used by operation [{owner}]"
_DUPLICATE_HASH_RE = re.compile(r"^Transaction \[(?P<tx_id>[^\]]+)\] already used by operation \[")


@dataclass(frozen=True)
class BroadcastResult:
    tx_id: str


def simulated_tx_id(operation_id: str) -> str:
    """Hash of a simulated transfer: the operation id as upper-case hex.

    Derived from the operation alone so that retries of one operation
    always claim the same hash.
    """
    return operation_id.replace("-", "").upper()


class BroadcastCoordinator:
    """Submits signed transactions and applies simulated transfers.

    Args:
        operations: Operation store.
        assets: Asset registry.
        balances: Internal balances, moved by simulated transfers.
        history: Transfer history, appended by simulated transfers.
        ledger: Ledger client.
        block_scale: Synthetic block = ledger index * block_scale + block_offset.
        block_offset: See block_scale.
    """

    def __init__(
        self,
        operations: OperationRepository,
        assets: AssetRepository,
        balances: BalanceRepository,
        history: HistoryRepository,
        ledger: LedgerClient,
        *,
        block_scale: int = 10,
        block_offset: int = 1,
    ) -> None:
        self._operations = operations
        self._assets = assets
        self._balances = balances
        self._history = history
        self._ledger = ledger
        self._block_scale = block_scale
        self._block_offset = block_offset

    async def broadcast(self, operation_id: str, signed_transaction: str) -> BroadcastResult:
        """Broadcast a signed transaction for a built operation.

        Raises:
            NotFoundError: No such operation.
            ConflictError: The operation is already running.
            InvalidSignedTransactionError: The envelope cannot be decoded, or
                its kind does not match how the operation was built.
            DuplicateHashError: The hash belongs to another operation.
            BuildingShouldBeRepeatedError: Stale sequence or expired.
            UnknownRejectionError: The ledger rejected the transaction as malformed.
            LedgerUnavailableError: The ledger could not be reached; the
                submission outcome is unknown.
        """
        operation = self._operations.get(operation_id)
        if operation is None:
            raise NotFoundError(f"Operation [{operation_id}] not found")

        if operation.is_running:
            if operation.fail_time and operation.error_code and operation.error:
                raise _recorded_error(operation.error_code, operation.error)
            raise ConflictError(
                f"Operation [{operation_id}] already {operation.state}",
                details={"state": str(operation.state)},
            )

        decoded = decode_signed_transaction(signed_transaction)
        _check_transfer_kind(operation, decoded)
        tx_id = self._derive_tx_id(operation_id, decoded)

        owner = self._operations.attach_tx_id(operation_id, tx_id)
        if owner != operation_id:
            message = _DUPLICATE_HASH_MESSAGE.format(tx_id=tx_id, owner=owner)
            logger.warning(
                "duplicate_transaction_hash",
                operation_id=operation_id,
                tx_id=tx_id,
                owner_operation_id=owner,
            )
            self._operations.update(
                operation_id,
                fail_time=utc_now(),
                error=message,
                error_code=ErrorCode.BUILDING_SHOULD_BE_REPEATED,
            )
            raise DuplicateHashError(message, details={"hash": tx_id})

        if decoded.is_simulated:
            await self._apply_simulated(operation, tx_id)
        else:
            await self._submit(operation, decoded.signed_transaction or "", tx_id)

        return BroadcastResult(tx_id=tx_id)

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _derive_tx_id(self, operation_id: str, decoded: SignedTransaction) -> str:
        if decoded.is_simulated:
            return simulated_tx_id(operation_id)
        if decoded.id:
            return decoded.id.upper()
        try:
            return transaction_hash(decoded.signed_transaction or "")
        except ValueError as exc:
            raise InvalidSignedTransactionError(
                "Signed transaction is not a hex-encoded blob"
            ) from exc

    async def _submit(self, operation: OperationEntity, blob: str, tx_id: str) -> None:
        operation_id = operation.operation_id
        result = await self._ledger.submit(blob)
        outcome = classify_submit_result(result.result_code)
        message = result.result_code
        if result.result_message:
            message = f"{message}: {result.result_message}"

        if outcome is SubmitOutcome.REBUILD:
            logger.warning(
                "transaction_expired",
                operation_id=operation_id,
                tx_id=tx_id,
                result_code=result.result_code,
            )
            self._operations.update(
                operation_id,
                error=message,
                error_code=ErrorCode.BUILDING_SHOULD_BE_REPEATED,
            )
            raise BuildingShouldBeRepeatedError(message, details={"hash": tx_id})

        if outcome is SubmitOutcome.MALFORMED:
            logger.warning(
                "transaction_rejected",
                operation_id=operation_id,
                tx_id=tx_id,
                result_code=result.result_code,
            )
            self._operations.update(
                operation_id,
                fail_time=utc_now(),
                error=message,
                error_code=ErrorCode.UNKNOWN,
            )
            raise UnknownRejectionError(message, details={"hash": tx_id})

        if outcome is SubmitOutcome.AMBIGUOUS:
            logger.warning(
                "transaction_submitted_with_error",
                operation_id=operation_id,
                tx_id=tx_id,
                result_code=result.result_code,
            )
            self._operations.update(
                operation_id,
                send_time=utc_now(),
                blockchain_error=message,
            )
        else:
            self._operations.update(operation_id, send_time=utc_now())

        logger.info(
            "transaction_sent",
            operation_id=operation_id,
            tx_id=tx_id,
            result_code=result.result_code,
        )

    async def _apply_simulated(self, operation: OperationEntity, tx_id: str) -> None:
        operation_id = operation.operation_id
        asset = self._assets.get(operation.asset_id)
        if asset is None:
            raise UnknownAssetError(f"Unknown asset [{operation.asset_id}]")

        ledger_index = await self._ledger.get_ledger_index()
        block = ledger_index * self._block_scale + self._block_offset
        now = utc_now()

        changes = (
            (operation.from_address, -operation.amount, -operation.amount_in_base_unit),
            (operation.to_address, operation.amount, operation.amount_in_base_unit),
        )
        for address, amount, amount_in_base_unit in changes:
            applied = self._balances.upsert(
                address,
                asset.asset_id,
                operation_id,
                amount,
                amount_in_base_unit,
                block,
            )
            logger.info(
                "balance_changed",
                operation_id=operation_id,
                address=address,
                base_address=split_address(address).address,
                asset_id=asset.asset_id,
                amount=str(amount),
                amount_in_base_unit=amount_in_base_unit,
                block=block,
                applied=applied,
            )

        self._history.upsert(
            operation.from_address,
            operation.to_address,
            asset.asset_id,
            operation.amount,
            operation.amount_in_base_unit,
            block,
            now,
            tx_id,
            operation_id,
        )
        logger.info(
            "history_recorded",
            operation_id=operation_id,
            tx_id=tx_id,
            from_address=operation.from_address,
            to_address=operation.to_address,
            amount=str(operation.amount),
        )

        self._operations.update(
            operation_id,
            send_time=now,
            completion_time=now,
            block_time=now,
            block=block,
        )


def _check_transfer_kind(operation: OperationEntity, decoded: SignedTransaction) -> None:
    same_owner = (
        split_address(operation.from_address).address
        == split_address(operation.to_address).address
    )
    if decoded.is_simulated and not same_owner:
        raise InvalidSignedTransactionError(
            f"Operation [{operation.operation_id}] was built as a ledger payment "
            "and needs a signed transaction"
        )
    if not decoded.is_simulated and same_owner:
        raise InvalidSignedTransactionError(
            f"Operation [{operation.operation_id}] was built as a same-owner transfer "
            "and takes no signed transaction"
        )


def _recorded_error(error_code: ErrorCode, error: str) -> RippleApiError:
    """Rebuild the error a failed operation was rejected with."""
    match = _DUPLICATE_HASH_RE.match(error)
    if error_code is ErrorCode.BUILDING_SHOULD_BE_REPEATED and match:
        return DuplicateHashError(error, details={"hash": match["tx_id"]})
    return error_for_code(error_code, error)
