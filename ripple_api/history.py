"""
Transfer history.

Append-only record of completed transfers. Rows are written once, when a
transfer completes, one per (transaction, sender, recipient); re-writing
the same row is a no-op. Pages are returned in insertion order,
continuing after a given transaction hash.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from ripple_api.db import Database, from_rfc3339, to_rfc3339

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS history (
    tx_id TEXT NOT NULL,
    operation_id TEXT,
    from_address TEXT NOT NULL,
    to_address TEXT NOT NULL,
    asset_id TEXT NOT NULL,
    amount TEXT NOT NULL,
    amount_in_base_unit INTEGER NOT NULL,
    block INTEGER NOT NULL,
    block_time TEXT NOT NULL,
    PRIMARY KEY (tx_id, from_address, to_address)
);

CREATE INDEX IF NOT EXISTS idx_history_from
ON history(from_address);

CREATE INDEX IF NOT EXISTS idx_history_to
ON history(to_address);
"""


class HistoryAddressCategory(StrEnum):
    FROM = "From"
    TO = "To"


_CATEGORY_COLUMN = {
    HistoryAddressCategory.FROM: "from_address",
    HistoryAddressCategory.TO: "to_address",
}


@dataclass(frozen=True)
class HistoryEntry:
    tx_id: str
    operation_id: str | None
    from_address: str
    to_address: str
    asset_id: str
    amount: Decimal
    amount_in_base_unit: int
    block: int
    block_time: datetime

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": to_rfc3339(self.block_time),
            "fromAddress": self.from_address,
            "toAddress": self.to_address,
            "assetId": self.asset_id,
            "amount": str(self.amount_in_base_unit),
            "hash": self.tx_id,
        }


class HistoryRepository:
    """SQLite-backed transfer history."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._db.init_schema(_SCHEMA)

    def upsert(
        self,
        from_address: str,
        to_address: str,
        asset_id: str,
        amount: Decimal,
        amount_in_base_unit: int,
        block: int,
        block_time: datetime,
        tx_id: str,
        operation_id: str | None = None,
    ) -> bool:
        """Record a completed transfer. Returns False if already recorded."""
        with self._db.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO history
                (tx_id, operation_id, from_address, to_address, asset_id,
                 amount, amount_in_base_unit, block, block_time)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    tx_id,
                    operation_id,
                    from_address,
                    to_address,
                    asset_id,
                    str(amount),
                    amount_in_base_unit,
                    block,
                    to_rfc3339(block_time),
                ),
            )
            return cursor.rowcount == 1

    def get(
        self,
        category: HistoryAddressCategory,
        address: str,
        take: int,
        after_hash: str | None = None,
    ) -> list[HistoryEntry]:
        """Page through an address's history.

        Args:
            category: Whether ``address`` is matched as sender or recipient.
            address: Address to match.
            take: Maximum number of entries.
            after_hash: Continue after the last entry with this hash;
                unknown hashes start from the beginning.
        """
        column = _CATEGORY_COLUMN[HistoryAddressCategory(category)]

        with self._db.transaction() as conn:
            after_rowid = 0
            if after_hash:
                row = conn.execute(
                    "SELECT MAX(rowid) FROM history WHERE tx_id = ?",
                    (after_hash,),
                ).fetchone()
                if row[0] is not None:
                    after_rowid = row[0]

            rows = conn.execute(
                f"""
                SELECT * FROM history
                WHERE {column} = ? AND rowid > ?
                ORDER BY rowid
                LIMIT ?
                """,
                (address, after_rowid, take),
            ).fetchall()

        return [
            HistoryEntry(
                tx_id=row["tx_id"],
                operation_id=row["operation_id"],
                from_address=row["from_address"],
                to_address=row["to_address"],
                asset_id=row["asset_id"],
                amount=Decimal(row["amount"]),
                amount_in_base_unit=row["amount_in_base_unit"],
                block=row["block"],
                block_time=from_rfc3339(row["block_time"]),  # type: ignore[arg-type]
            )
            for row in rows
        ]
