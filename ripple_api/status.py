"""
Operation status queries and soft delete.

Only running operations are reported: an unknown operation and a built
but not yet broadcast one both yield None.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ripple_api.db import to_rfc3339, utc_now
from ripple_api.exceptions import ErrorCode
from ripple_api.logging import get_logger
from ripple_api.operations import OperationRepository, OperationState

logger = get_logger(__name__)


@dataclass(frozen=True)
class OperationStatus:
    """Caller-visible state of a broadcast operation.

    Amounts are in base units.
    """

    operation_id: str
    state: OperationState
    timestamp: datetime
    amount: int
    fee: int
    hash: str | None
    block: int | None
    error: str | None
    error_code: ErrorCode | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "operationId": self.operation_id,
            "state": str(self.state),
            "timestamp": to_rfc3339(self.timestamp),
            "amount": str(self.amount),
            "fee": str(self.fee),
            "hash": self.hash,
            "block": self.block,
            "error": self.error,
            "errorCode": str(self.error_code) if self.error_code else None,
        }


def get_status(operations: OperationRepository, operation_id: str) -> OperationStatus | None:
    operation = operations.get(operation_id)
    if operation is None or not operation.is_running or operation.timestamp is None:
        return None

    return OperationStatus(
        operation_id=operation.operation_id,
        state=operation.state,
        timestamp=operation.timestamp,
        amount=operation.amount_in_base_unit,
        fee=operation.fee_in_base_unit,
        hash=operation.tx_id,
        block=operation.block,
        error=operation.error,
        error_code=operation.error_code,
    )


def delete_operation(operations: OperationRepository, operation_id: str) -> bool:
    """Mark an operation deleted. Unknown operations are left alone.

    Returns:
        True if the operation exists.
    """
    deleted = operations.update(operation_id, delete_time=utc_now())
    if deleted:
        logger.info("operation_deleted", operation_id=operation_id)
    return deleted
