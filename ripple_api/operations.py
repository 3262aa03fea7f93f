"""
Operation store.

One row per logical payment attempt, keyed by the client-supplied
operation id, plus two index tables:

    - operations_by_expiration: (expiration ledger index, operation id).
      Written once at build time when the built transaction has a
      LastLedgerSequence; range-scanned by the expiry sweep.
    - operations_by_tx_id: (tx hash → operation id). Claimed at broadcast
      time before the ledger is called; first writer wins, so two
      operations can never share a transaction hash.

Lifecycle (derived from timestamps, never stored as a status column):

    Built ──> Sent ──> Completed
      │         └────> Failed
      ├──────────────> Completed   (simulated transfers)
      └──────────────> Failed      (duplicate hash, malformed tx)

    DeleteTime is an orthogonal soft-delete marker.

Invariants:
    - is_running ⇔ any of send_time, completion_time, fail_time is set.
    - build_time is set once, when the row is first created.
    - update() only ever sets the fields it is given (merge semantics).
    - Decimal amounts are stored as strings, base-unit amounts as 64-bit
      integers; timestamps as RFC3339 UTC.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

from ripple_api.db import Database, from_rfc3339, to_rfc3339, utc_now
from ripple_api.exceptions import ErrorCode
from ripple_api.logging import get_logger

logger = get_logger(__name__)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS operations (
    operation_id TEXT PRIMARY KEY,
    asset_id TEXT NOT NULL,
    from_address TEXT NOT NULL,
    to_address TEXT NOT NULL,
    amount TEXT NOT NULL,
    amount_in_base_unit INTEGER NOT NULL,
    fee TEXT NOT NULL,
    fee_in_base_unit INTEGER NOT NULL,
    build_time TEXT NOT NULL,
    expiration INTEGER,
    tx_id TEXT,
    send_time TEXT,
    block INTEGER,
    block_time TEXT,
    completion_time TEXT,
    fail_time TEXT,
    error TEXT,
    error_code TEXT,
    blockchain_error TEXT,
    delete_time TEXT
);

CREATE TABLE IF NOT EXISTS operations_by_expiration (
    expiration INTEGER NOT NULL,
    operation_id TEXT NOT NULL,
    PRIMARY KEY (expiration, operation_id)
);

CREATE TABLE IF NOT EXISTS operations_by_tx_id (
    tx_id TEXT PRIMARY KEY,
    operation_id TEXT NOT NULL
);
"""


class OperationState(StrEnum):
    """Caller-visible state of a running operation."""

    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Column mapping
# ---------------------------------------------------------------------------

# Field name → (column, kind). Kinds: text, int64, decimal, time.
# Everything read or written by this module goes through this table.
_COLUMNS: dict[str, tuple[str, str]] = {
    "operation_id": ("operation_id", "text"),
    "asset_id": ("asset_id", "text"),
    "from_address": ("from_address", "text"),
    "to_address": ("to_address", "text"),
    "amount": ("amount", "decimal"),
    "amount_in_base_unit": ("amount_in_base_unit", "int64"),
    "fee": ("fee", "decimal"),
    "fee_in_base_unit": ("fee_in_base_unit", "int64"),
    "build_time": ("build_time", "time"),
    "expiration": ("expiration", "int64"),
    "tx_id": ("tx_id", "text"),
    "send_time": ("send_time", "time"),
    "block": ("block", "int64"),
    "block_time": ("block_time", "time"),
    "completion_time": ("completion_time", "time"),
    "fail_time": ("fail_time", "time"),
    "error": ("error", "text"),
    "error_code": ("error_code", "text"),
    "blockchain_error": ("blockchain_error", "text"),
    "delete_time": ("delete_time", "time"),
}

# Fields update() may set. Build fields are fixed by upsert(), tx_id by
# attach_tx_id().
_UPDATABLE = (
    "send_time",
    "block",
    "block_time",
    "completion_time",
    "fail_time",
    "error",
    "error_code",
    "blockchain_error",
    "delete_time",
)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _to_column(kind: str, value: Any) -> Any:
    if value is None:
        return None
    if kind == "decimal":
        return str(value)
    if kind == "time":
        return to_rfc3339(value)
    if kind == "int64":
        value = int(value)
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise ValueError(f"value out of int64 range: {value}")
        return value
    return str(value)


def _from_column(kind: str, value: Any) -> Any:
    if value is None:
        return None
    if kind == "decimal":
        return Decimal(value)
    if kind == "time":
        return from_rfc3339(value)
    return value


@dataclass(frozen=True)
class OperationEntity:
    """A stored payment attempt."""

    operation_id: str
    asset_id: str
    from_address: str
    to_address: str
    amount: Decimal
    amount_in_base_unit: int
    fee: Decimal
    fee_in_base_unit: int
    build_time: datetime
    expiration: int | None = None
    tx_id: str | None = None
    send_time: datetime | None = None
    block: int | None = None
    block_time: datetime | None = None
    completion_time: datetime | None = None
    fail_time: datetime | None = None
    error: str | None = None
    error_code: ErrorCode | None = None
    blockchain_error: str | None = None
    delete_time: datetime | None = None

    @property
    def is_running(self) -> bool:
        """True once sent, completed or failed; a built operation is not running."""
        return bool(self.send_time or self.completion_time or self.fail_time)

    @property
    def state(self) -> OperationState:
        if self.fail_time:
            return OperationState.FAILED
        if self.completion_time:
            return OperationState.COMPLETED
        return OperationState.IN_PROGRESS

    @property
    def timestamp(self) -> datetime | None:
        return self.fail_time or self.completion_time or self.send_time

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> OperationEntity:
        values = {
            field: _from_column(kind, row[column])
            for field, (column, kind) in _COLUMNS.items()
        }
        if values["error_code"] is not None:
            values["error_code"] = ErrorCode(values["error_code"])
        return cls(**values)


class OperationRepository:
    """SQLite-backed operation store with expiration and tx-id indexes."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._db.init_schema(_SCHEMA)

    # -----------------------------------------------------------------
    # Build-time writes
    # -----------------------------------------------------------------

    def upsert(
        self,
        operation_id: str,
        asset_id: str,
        from_address: str,
        to_address: str,
        amount: Decimal,
        amount_in_base_unit: int,
        fee: Decimal,
        fee_in_base_unit: int,
        expiration: int | None = None,
    ) -> None:
        """Create or overwrite a built (not yet running) operation.

        build_time is kept from the first creation. Transaction hash and
        error annotations of a previous attempt are cleared, since they
        belong to a transaction that is being replaced.
        """
        values = {
            "operation_id": operation_id,
            "asset_id": asset_id,
            "from_address": from_address,
            "to_address": to_address,
            "amount": amount,
            "amount_in_base_unit": amount_in_base_unit,
            "fee": fee,
            "fee_in_base_unit": fee_in_base_unit,
            "build_time": utc_now(),
            "expiration": expiration,
        }
        columns = [_COLUMNS[f][0] for f in values]
        params = [_to_column(_COLUMNS[f][1], v) for f, v in values.items()]
        overwrite = [c for c in columns if c not in ("operation_id", "build_time")]
        assignments = ", ".join(f"{c} = excluded.{c}" for c in overwrite)
        column_list = ", ".join(columns)
        placeholders = ", ".join("?" for _ in columns)

        with self._db.transaction() as conn:
            conn.execute(
                f"""
                INSERT INTO operations ({column_list})
                VALUES ({placeholders})
                ON CONFLICT(operation_id) DO UPDATE SET
                    {assignments},
                    tx_id = NULL,
                    error = NULL,
                    error_code = NULL,
                    blockchain_error = NULL
                """,
                params,
            )

            if expiration is not None:
                conn.execute(
                    """
                    INSERT OR IGNORE INTO operations_by_expiration (expiration, operation_id)
                    VALUES (?, ?)
                    """,
                    (_to_column("int64", expiration), operation_id),
                )

        logger.info(
            "operation_built",
            operation_id=operation_id,
            asset_id=asset_id,
            from_address=from_address,
            to_address=to_address,
            amount=str(amount),
            fee=str(fee),
            expiration=expiration,
        )

    # -----------------------------------------------------------------
    # Broadcast-time writes
    # -----------------------------------------------------------------

    def attach_tx_id(self, operation_id: str, tx_id: str) -> str:
        """Claim a transaction hash for an operation and attach it.

        The index row is written first; the operation row only gets the
        hash if the claim succeeded. Both happen in one transaction.

        Returns:
            The operation id that owns the hash. Equal to ``operation_id``
            on success (including re-claims by the same operation); any
            other value means the hash belongs to another operation and
            nothing was written.
        """
        with self._db.transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO operations_by_tx_id (tx_id, operation_id) VALUES (?, ?)",
                (tx_id, operation_id),
            )
            owner = conn.execute(
                "SELECT operation_id FROM operations_by_tx_id WHERE tx_id = ?",
                (tx_id,),
            ).fetchone()["operation_id"]

            if owner == operation_id:
                conn.execute(
                    "UPDATE operations SET tx_id = ? WHERE operation_id = ?",
                    (tx_id, operation_id),
                )

        if owner == operation_id:
            logger.info("tx_id_attached", operation_id=operation_id, tx_id=tx_id)
        return str(owner)

    def update(self, operation_id: str, **fields: Any) -> bool:
        """Merge the given non-None fields into an existing operation.

        Accepts any of: send_time, block, block_time, completion_time,
        fail_time, error, error_code, blockchain_error, delete_time. The
        transaction hash is only ever set through attach_tx_id().

        Used by the broadcast coordinator, soft delete and the external
        reconciliation job.

        Returns:
            False if the operation does not exist.
        """
        unknown = set(fields) - set(_UPDATABLE)
        if unknown:
            raise ValueError(f"fields cannot be updated: {sorted(unknown)}")

        values = {f: v for f, v in fields.items() if v is not None}
        if not values:
            return self.get(operation_id) is not None

        assignments = ", ".join(f"{_COLUMNS[f][0]} = ?" for f in values)
        params = [_to_column(_COLUMNS[f][1], v) for f, v in values.items()]

        with self._db.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE operations SET {assignments} WHERE operation_id = ?",
                (*params, operation_id),
            )
            return cursor.rowcount == 1

    # -----------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------

    def get(self, operation_id: str) -> OperationEntity | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM operations WHERE operation_id = ?",
                (operation_id,),
            ).fetchone()
        if row is None:
            return None
        return OperationEntity.from_row(row)

    def get_operation_id_by_tx_id(self, tx_id: str) -> str | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT operation_id FROM operations_by_tx_id WHERE tx_id = ?",
                (tx_id,),
            ).fetchone()
        if row is None:
            return None
        return str(row["operation_id"])

    def get_operation_ids_by_expiration(self, from_ledger: int, to_ledger: int) -> list[str]:
        """Operation ids whose expiration is in (from_ledger, to_ledger]."""
        with self._db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT operation_id FROM operations_by_expiration
                WHERE expiration > ? AND expiration <= ?
                ORDER BY expiration, operation_id
                """,
                (from_ledger, to_ledger),
            ).fetchall()
        return [str(row["operation_id"]) for row in rows]
