"""
Transaction builder.

Turns a build request into an unsigned transaction context and a stored,
not-yet-running operation. The caller signs the context off-system and
hands it to the broadcast coordinator.

Two paths, chosen by comparing base addresses (tags stripped):

    - Same owner (from == to): a simulated transfer between tags of one
      account. Never touches the ledger. Checked against the internal
      balance of the full source address; fee 0; no expiration; the
      context is the DUMMY_TX sentinel.
    - Cross address: a real Payment. Fee comes from the ledger; the
      source account must hold the reserve plus everything the payment
      spends, per currency; the prepared payload's LastLedgerSequence
      becomes the operation's expiration.

All checks happen before the operation is written: a failed build leaves
no partial state.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ripple_api.addresses import is_positive_integer, split_address
from ripple_api.assets import NATIVE_ASSET, XRP, Asset, AssetRepository
from ripple_api.balances import BalanceRepository
from ripple_api.exceptions import (
    AmountTooSmallError,
    ConflictError,
    InvalidAmountError,
    NotEnoughBalanceError,
    UnknownAssetError,
)
from ripple_api.logging import get_logger
from ripple_api.operations import OperationRepository
from ripple_api.xrpl.client import (
    Instructions,
    LedgerBalance,
    LedgerClient,
    PaymentAmount,
    PaymentSpec,
)

# Transaction context returned for simulated transfers.
DUMMY_TX = "dummy_tx"

logger = get_logger(__name__)


@dataclass(frozen=True)
class BuildResult:
    """Result of build().

    Attributes:
        transaction_context: Unsigned transaction JSON to sign, or DUMMY_TX
            for a simulated transfer.
        simulated: True for a same-owner transfer.
    """

    transaction_context: str
    simulated: bool = False


def _available(balances: list[LedgerBalance], asset: Asset) -> Decimal:
    """Sum of the ledger balances that count towards an asset."""
    total = Decimal(0)
    for balance in balances:
        if balance.currency != asset.asset_id:
            continue
        if asset.address and balance.counterparty and balance.counterparty != asset.address:
            continue
        total += balance.value
    return total


class TransactionBuilder:
    """Builds single-input, single-output transfers.

    Args:
        operations: Operation store.
        assets: Asset registry.
        balances: Internal balances (simulated transfers).
        ledger: Ledger client.
        reserve: XRP the source account must keep.
        expiration: Ledgers until an unsent transaction expires.
    """

    def __init__(
        self,
        operations: OperationRepository,
        assets: AssetRepository,
        balances: BalanceRepository,
        ledger: LedgerClient,
        *,
        reserve: Decimal = Decimal(0),
        expiration: int = 20,
    ) -> None:
        self._operations = operations
        self._assets = assets
        self._balances = balances
        self._ledger = ledger
        self._reserve = reserve
        self._expiration = expiration

    async def build(
        self,
        operation_id: str,
        from_address: str,
        to_address: str,
        asset_id: str,
        amount_in_base_unit: int | str,
        include_fee: bool = False,
    ) -> BuildResult:
        """Build an unsigned transfer and store it as a built operation.

        Raises:
            ConflictError: The operation is already running.
            UnknownAssetError: The asset is not registered.
            InvalidAmountError: The amount is not a positive integer.
            NotEnoughBalanceError: The source cannot cover the transfer.
            AmountTooSmallError: include_fee and the amount is below the fee.
            LedgerUnavailableError: The ledger could not be reached.
        """
        operation = self._operations.get(operation_id)
        if operation is not None and operation.is_running:
            raise ConflictError(
                f"Operation [{operation_id}] already {operation.state}",
                details={"state": str(operation.state)},
            )

        asset = self._assets.get(asset_id)
        if asset is None:
            raise UnknownAssetError(f"Unknown asset [{asset_id}]")

        if not is_positive_integer(amount_in_base_unit):
            raise InvalidAmountError(f"Invalid amount [{amount_in_base_unit}]")

        requested = int(amount_in_base_unit)
        amount = asset.from_base_unit(requested)
        source = split_address(from_address)
        destination = split_address(to_address)

        fee = Decimal(0)
        expiration: int | None = None

        if source.address == destination.address:
            balance = self._balances.get(from_address, asset_id)
            balance_in_base_unit = balance.amount_in_base_unit if balance else 0
            if balance_in_base_unit < requested:
                raise NotEnoughBalanceError(
                    f"Not enough [{asset_id}] on address [{from_address}]"
                )
            context = DUMMY_TX
            simulated = True
        else:
            # fee is always paid in the native asset
            fee = await self._ledger.get_fee()
            required: dict[str, Decimal] = {XRP: self._reserve}

            if asset.is_native:
                if include_fee:
                    if amount < fee:
                        raise AmountTooSmallError(
                            f"Amount [{amount}] is less than fee [{fee}]"
                        )
                    amount -= fee
                required[XRP] += amount + fee
            else:
                required[XRP] += fee
                required[asset_id] = amount

            ledger_balances = await self._ledger.get_balances(source.address)
            for currency, needed in required.items():
                currency_asset = asset if currency == asset_id else NATIVE_ASSET
                if _available(ledger_balances, currency_asset) < needed:
                    raise NotEnoughBalanceError(
                        f"Not enough [{currency}] on address [{source.address}]",
                        details={"required": str(needed)},
                    )

            prepared = await self._ledger.prepare_payment(
                source.address,
                PaymentSpec(
                    source=source.address,
                    destination=destination.address,
                    amount=PaymentAmount(
                        value=asset.quantize(amount),
                        currency=asset.asset_id,
                        counterparty=asset.address or None,
                    ),
                    source_tag=source.tag,
                    destination_tag=destination.tag,
                ),
                Instructions(max_ledger_version_offset=self._expiration, fee=fee),
            )
            expiration = prepared.max_ledger_version
            context = prepared.tx_json
            simulated = False

        self._operations.upsert(
            operation_id,
            asset_id,
            from_address,
            to_address,
            amount,
            asset.to_base_unit(amount),
            fee,
            NATIVE_ASSET.to_base_unit(fee),
            expiration,
        )

        logger.debug(
            "transaction_context_built",
            operation_id=operation_id,
            simulated=simulated,
            expiration=expiration,
        )
        return BuildResult(transaction_context=context, simulated=simulated)
