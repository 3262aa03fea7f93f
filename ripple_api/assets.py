"""
Asset registry.

An asset is either the native asset (XRP, no issuer) or an issued currency
identified by its currency code and issuer address. Amounts travel between
services as integers in the asset's smallest unit ("base unit"); the
ledger works with decimal values. ``accuracy`` is the number of decimal
places between the two:

    from_base_unit(1500000) == Decimal("1.500000")   # accuracy 6
    to_base_unit(Decimal("1.5")) == 1500000
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal

from ripple_api.db import Database
from ripple_api.logging import get_logger

XRP = "XRP"
XRP_ACCURACY = 6

logger = get_logger(__name__)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS assets (
    asset_id TEXT PRIMARY KEY,
    address TEXT NOT NULL DEFAULT '',
    name TEXT NOT NULL,
    accuracy INTEGER NOT NULL
);
"""


@dataclass(frozen=True)
class Asset:
    """A transferable asset.

    Attributes:
        asset_id: Currency code ("XRP" for the native asset).
        address: Issuer r-address; "" for the native asset.
        name: Display name.
        accuracy: Decimal places of one base unit.
    """

    asset_id: str
    address: str
    name: str
    accuracy: int

    @property
    def is_native(self) -> bool:
        return self.asset_id == XRP and not self.address

    def from_base_unit(self, value: int) -> Decimal:
        return Decimal(value).scaleb(-self.accuracy)

    def to_base_unit(self, value: Decimal) -> int:
        """Convert to base units, dropping digits beyond the asset's accuracy."""
        return int(value.scaleb(self.accuracy).to_integral_value(rounding=ROUND_DOWN))

    def quantize(self, value: Decimal) -> Decimal:
        return value.quantize(Decimal(1).scaleb(-self.accuracy), rounding=ROUND_DOWN)

    def to_dict(self) -> dict[str, object]:
        return {
            "assetId": self.asset_id,
            "address": self.address,
            "name": self.name,
            "accuracy": self.accuracy,
        }


NATIVE_ASSET = Asset(asset_id=XRP, address="", name="Ripple native asset", accuracy=XRP_ACCURACY)


class AssetRepository:
    """SQLite-backed asset registry."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._db.init_schema(_SCHEMA)

    def get(self, asset_id: str) -> Asset | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM assets WHERE asset_id = ?",
                (asset_id,),
            ).fetchone()
        if row is None:
            return None
        return Asset(
            asset_id=row["asset_id"],
            address=row["address"],
            name=row["name"],
            accuracy=row["accuracy"],
        )

    def upsert(self, asset: Asset) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO assets (asset_id, address, name, accuracy)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(asset_id) DO UPDATE SET
                    address = excluded.address,
                    name = excluded.name,
                    accuracy = excluded.accuracy
                """,
                (asset.asset_id, asset.address, asset.name, asset.accuracy),
            )

    def ensure_native_asset(self) -> Asset:
        """Register XRP if it is missing; return the registered record."""
        existing = self.get(XRP)
        if existing is not None:
            return existing
        self.upsert(NATIVE_ASSET)
        logger.info("native_asset_registered", asset_id=XRP, accuracy=XRP_ACCURACY)
        return NATIVE_ASSET
