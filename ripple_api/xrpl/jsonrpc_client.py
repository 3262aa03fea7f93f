"""
XRPL JSON-RPC client: real network implementation of LedgerClient.

Translates rippled JSON-RPC responses into the result types of client.py.
Uses an injectable transport (JsonRpcTransport) so the HTTP layer can be
swapped for test fakes without changing parsing logic.

No retry loops. No secrets. Transport failures of any kind become
LedgerUnavailableError; the caller must not assume a submission did or
did not reach the ledger when it sees one.

Response conventions (rippled):
    - Success: {"result": {"status": "success", ...}}
    - Error:   {"result": {"status": "error", "error": "...", ...}}
"""

from __future__ import annotations

import itertools
from decimal import ROUND_UP, Decimal
from typing import Any

import httpx

from ripple_api.encoding import canonical_json
from ripple_api.exceptions import (
    AccountNotFound,
    LedgerRequestError,
    LedgerUnavailableError,
)
from ripple_api.logging import get_logger
from ripple_api.xrpl.client import (
    AccountInfo,
    AccountSettings,
    Instructions,
    LedgerBalance,
    PaymentSpec,
    PreparedPayment,
    SubmitResult,
)
from ripple_api.xrpl.transport import HttpxTransport, JsonRpcTransport
from ripple_api.xrpl.tx import (
    LSF_DISALLOW_XRP,
    LSF_REQUIRE_DEST_TAG,
    XRP_CURRENCY,
    build_payment,
    drops_to_xrp,
    xrp_to_drops,
)

logger = get_logger(__name__)

_DROP = Decimal("0.000001")


class JsonRpcClient:
    """XRPL JSON-RPC client implementing the LedgerClient protocol.

    Args:
        url: The rippled JSON-RPC endpoint URL (e.g. "http://localhost:5005").
        transport: Injectable transport for HTTP POST. Defaults to
            HttpxTransport. Pass a FakeTransport for testing.
        fee_cushion: Multiplier applied to the node's current fee.
    """

    def __init__(
        self,
        url: str,
        transport: JsonRpcTransport | None = None,
        *,
        fee_cushion: Decimal = Decimal("1.2"),
    ) -> None:
        self._url = url
        self._transport = transport or HttpxTransport()
        self._fee_cushion = fee_cushion
        self._request_ids = itertools.count(1)

    @property
    def url(self) -> str:
        return self._url

    async def aclose(self) -> None:
        close = getattr(self._transport, "aclose", None)
        if close is not None:
            await close()

    # -----------------------------------------------------------------
    # Request plumbing
    # -----------------------------------------------------------------

    async def _request(
        self,
        method: str,
        params: dict[str, Any],
        *,
        allow_errors: frozenset[str] = frozenset(),
    ) -> dict[str, Any]:
        """Send one JSON-RPC call and return its ``result`` object.

        Server-level errors raise LedgerRequestError unless their error
        name is in ``allow_errors``, in which case the error result is
        returned for the caller to interpret.
        """
        payload = {
            "method": method,
            "params": [params],
            "id": next(self._request_ids),
        }

        try:
            response = await self._transport.post_json(self._url, payload)
        except (httpx.HTTPError, OSError) as exc:
            logger.warning("ledger_unavailable", method=method, url=self._url, error=str(exc))
            raise LedgerUnavailableError(
                f"Ledger node request [{method}] failed: {exc}",
                details={"method": method},
            ) from exc
        except ValueError as exc:
            raise LedgerRequestError(
                f"Ledger node returned invalid JSON for [{method}]",
                details={"method": method},
            ) from exc

        result = response.get("result")
        if not isinstance(result, dict):
            raise LedgerRequestError(
                f"Ledger node returned no result for [{method}]",
                details={"method": method},
            )

        if result.get("status") == "error":
            error = result.get("error", "unknown")
            if error in allow_errors:
                return result
            raise LedgerRequestError(
                f"Ledger node rejected [{method}]: "
                f"{result.get('error_message') or error}",
                details={"method": method, "error": error},
            )

        return result

    # -----------------------------------------------------------------
    # LedgerClient protocol methods
    # -----------------------------------------------------------------

    async def get_fee(self) -> Decimal:
        """Current fee in XRP: base fee × load factor × cushion, in whole drops."""
        result = await self._request("server_info", {})
        info = result.get("info", {})
        ledger = info.get("validated_ledger") or info.get("closed_ledger") or {}

        base_fee = Decimal(str(ledger.get("base_fee_xrp", "0.00001")))
        load_factor = Decimal(str(info.get("load_factor", 1)))

        fee = base_fee * load_factor * self._fee_cushion
        return fee.quantize(_DROP, rounding=ROUND_UP)

    async def get_account_info(self, address: str) -> AccountInfo:
        result = await self._request(
            "account_info",
            {"account": address, "ledger_index": "current"},
            allow_errors=frozenset({"actNotFound"}),
        )
        if result.get("status") == "error":
            raise AccountNotFound(
                f"Account [{address}] not found",
                details={"address": address},
            )

        data = result.get("account_data", {})
        return AccountInfo(
            address=data.get("Account", address),
            balance=drops_to_xrp(data.get("Balance", "0")),
            sequence=int(data.get("Sequence", 0)),
            flags=int(data.get("Flags", 0)),
            owner_count=int(data.get("OwnerCount", 0)),
        )

    async def get_account_settings(self, address: str) -> AccountSettings | None:
        try:
            info = await self.get_account_info(address)
        except AccountNotFound:
            return None
        return AccountSettings(
            require_destination_tag=bool(info.flags & LSF_REQUIRE_DEST_TAG),
            disallow_incoming_xrp=bool(info.flags & LSF_DISALLOW_XRP),
        )

    async def get_balances(self, address: str) -> list[LedgerBalance]:
        try:
            info = await self.get_account_info(address)
        except AccountNotFound:
            return []

        balances = [LedgerBalance(currency=XRP_CURRENCY, value=info.balance)]

        marker: Any = None
        while True:
            params: dict[str, Any] = {"account": address, "ledger_index": "current"}
            if marker is not None:
                params["marker"] = marker
            result = await self._request("account_lines", params)

            for line in result.get("lines", []):
                balances.append(
                    LedgerBalance(
                        currency=line["currency"],
                        value=Decimal(str(line["balance"])),
                        counterparty=line.get("account"),
                    )
                )

            marker = result.get("marker")
            if marker is None:
                break

        return balances

    async def get_ledger_index(self) -> int:
        result = await self._request("ledger_current", {})
        return int(result["ledger_current_index"])

    async def prepare_payment(
        self,
        address: str,
        payment: PaymentSpec,
        instructions: Instructions,
    ) -> PreparedPayment:
        """Autofill Sequence, Fee and LastLedgerSequence and build the Payment."""
        info = await self.get_account_info(address)
        ledger_index = await self.get_ledger_index()
        fee = instructions.fee if instructions.fee is not None else await self.get_fee()

        max_ledger_version = ledger_index + instructions.max_ledger_version_offset
        tx = build_payment(
            payment,
            sequence=info.sequence,
            fee_drops=xrp_to_drops(fee),
            last_ledger_sequence=max_ledger_version,
        )
        return PreparedPayment(
            tx_json=canonical_json(tx),
            max_ledger_version=max_ledger_version,
        )

    async def submit(self, signed_transaction: str) -> SubmitResult:
        result = await self._request("submit", {"tx_blob": signed_transaction})

        engine_result = result.get("engine_result")
        if engine_result is None:
            raise LedgerRequestError(
                "Ledger node returned no engine_result for [submit]",
                details={"method": "submit"},
            )

        tx_hash = None
        tx_json = result.get("tx_json")
        if isinstance(tx_json, dict):
            tx_hash = tx_json.get("hash")

        return SubmitResult(
            result_code=engine_result,
            result_message=result.get("engine_result_message"),
            tx_hash=tx_hash,
            raw=result,
        )
