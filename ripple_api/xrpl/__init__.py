"""
XRP Ledger client adapter.

Pure layer (no I/O):
    - Transaction construction: ``build_payment``, ``format_amount``,
      ``xrp_to_drops``, ``drops_to_xrp``, ``transaction_hash``.
    - Submission classification: ``classify_submit_result``.

Impure layer (network I/O):
    - ``JsonRpcClient``: rippled JSON-RPC implementation of LedgerClient.

Protocols (for dependency injection):
    - ``LedgerClient``: network boundary used by builder and broadcast.
    - ``JsonRpcTransport``: HTTP boundary used by JsonRpcClient.
"""

from ripple_api.xrpl.client import (
    AccountInfo,
    AccountSettings,
    Instructions,
    LedgerBalance,
    LedgerClient,
    PaymentAmount,
    PaymentSpec,
    PreparedPayment,
    SubmitResult,
)
from ripple_api.xrpl.errors import SubmitOutcome, classify_submit_result
from ripple_api.xrpl.jsonrpc_client import JsonRpcClient
from ripple_api.xrpl.transport import HttpxTransport, JsonRpcTransport
from ripple_api.xrpl.tx import (
    build_payment,
    drops_to_xrp,
    format_amount,
    transaction_hash,
    xrp_to_drops,
)

__all__ = [
    "AccountInfo",
    "AccountSettings",
    "HttpxTransport",
    "Instructions",
    "JsonRpcClient",
    "JsonRpcTransport",
    "LedgerBalance",
    "LedgerClient",
    "PaymentAmount",
    "PaymentSpec",
    "PreparedPayment",
    "SubmitOutcome",
    "SubmitResult",
    "build_payment",
    "classify_submit_result",
    "drops_to_xrp",
    "format_amount",
    "transaction_hash",
    "xrp_to_drops",
]
