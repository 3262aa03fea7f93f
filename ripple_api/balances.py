"""
Balance store for simulated (same-owner) transfers.

Balances are kept as an entry log rather than a single mutable counter:
every simulated transfer writes one debit entry for the source and one
credit entry for the destination, keyed by the operation that caused it.
An address's balance is the sum of its entries.

Invariants:
    - Entries are keyed by (address, asset_id, operation_id, direction);
      re-applying the same operation is a no-op.
    - Base-unit amounts are integers; decimal amounts are stored as
      strings so they sum exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ripple_api.db import Database

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS balance_entries (
    address TEXT NOT NULL,
    asset_id TEXT NOT NULL,
    operation_id TEXT NOT NULL,
    direction TEXT NOT NULL,
    amount TEXT NOT NULL,
    amount_in_base_unit INTEGER NOT NULL,
    block INTEGER NOT NULL,
    PRIMARY KEY (address, asset_id, operation_id, direction)
);
"""


@dataclass(frozen=True)
class Balance:
    address: str
    asset_id: str
    amount: Decimal
    amount_in_base_unit: int
    block: int


@dataclass(frozen=True)
class BalanceEntry:
    address: str
    asset_id: str
    operation_id: str
    amount: Decimal
    amount_in_base_unit: int
    block: int


class BalanceRepository:
    """SQLite-backed balance entries."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._db.init_schema(_SCHEMA)

    def upsert(
        self,
        address: str,
        asset_id: str,
        operation_id: str,
        amount: Decimal,
        amount_in_base_unit: int,
        block: int,
    ) -> bool:
        """Record a balance change. Returns False if it was already recorded."""
        direction = "out" if amount_in_base_unit < 0 else "in"
        with self._db.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO balance_entries
                (address, asset_id, operation_id, direction, amount, amount_in_base_unit, block)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (address, asset_id, operation_id, direction, str(amount), amount_in_base_unit, block),
            )
            return cursor.rowcount == 1

    def get(self, address: str, asset_id: str) -> Balance | None:
        entries = self.list_entries(address, asset_id)
        if not entries:
            return None
        return Balance(
            address=address,
            asset_id=asset_id,
            amount=sum((e.amount for e in entries), Decimal(0)),
            amount_in_base_unit=sum(e.amount_in_base_unit for e in entries),
            block=max(e.block for e in entries),
        )

    def list_entries(self, address: str, asset_id: str) -> list[BalanceEntry]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM balance_entries
                WHERE address = ? AND asset_id = ?
                ORDER BY block, rowid
                """,
                (address, asset_id),
            ).fetchall()
        return [
            BalanceEntry(
                address=row["address"],
                asset_id=row["asset_id"],
                operation_id=row["operation_id"],
                amount=Decimal(row["amount"]),
                amount_in_base_unit=row["amount_in_base_unit"],
                block=row["block"],
            )
            for row in rows
        ]
