"""
XRPL Payment transaction construction.

Pure functions: no network state, no secrets. The JSON-RPC client supplies
the network-dependent fields (Sequence, Fee, LastLedgerSequence) and
calls build_payment() to assemble the transaction dict.

Also computes the transaction hash of a signed blob, which is what the
ledger itself uses as the transaction id:

    hash = SHA-512Half(0x54584E00 || blob)      # "TXN\\0" prefix
"""

from __future__ import annotations

import hashlib
from decimal import ROUND_UP, Decimal

from ripple_api.xrpl.client import PaymentAmount, PaymentSpec

XRP_CURRENCY = "XRP"
DROPS_PER_XRP = Decimal(1_000_000)

# Transaction flag: require a fully-canonical signature.
TF_FULLY_CANONICAL_SIG = 0x80000000

# AccountRoot flags.
LSF_REQUIRE_DEST_TAG = 0x00020000
LSF_DISALLOW_XRP = 0x00080000

_TX_HASH_PREFIX = bytes.fromhex("54584E00")


def xrp_to_drops(value: Decimal) -> str:
    """Convert XRP to an integer drops string, rounding partial drops up."""
    drops = (value * DROPS_PER_XRP).to_integral_value(rounding=ROUND_UP)
    return str(int(drops))


def drops_to_xrp(drops: str | int) -> Decimal:
    return Decimal(int(drops)) / DROPS_PER_XRP


def format_amount(amount: PaymentAmount) -> str | dict[str, str]:
    """XRP as a drops string; issued currencies as {currency, issuer, value}."""
    if amount.currency == XRP_CURRENCY and not amount.counterparty:
        return xrp_to_drops(amount.value)
    if not amount.counterparty:
        raise ValueError(f"issued currency {amount.currency!r} requires a counterparty")
    return {
        "currency": amount.currency,
        "issuer": amount.counterparty,
        "value": format(amount.value, "f"),
    }


def build_payment(
    payment: PaymentSpec,
    *,
    sequence: int,
    fee_drops: str,
    last_ledger_sequence: int,
) -> dict[str, object]:
    """Build an unsigned Payment transaction dict in XRPL JSON format.

    Raises:
        ValueError: If source or destination is empty.
    """
    if not payment.source:
        raise ValueError("source must be non-empty")
    if not payment.destination:
        raise ValueError("destination must be non-empty")

    tx: dict[str, object] = {
        "TransactionType": "Payment",
        "Account": payment.source,
        "Destination": payment.destination,
        "Amount": format_amount(payment.amount),
        "Flags": TF_FULLY_CANONICAL_SIG,
        "Sequence": sequence,
        "Fee": fee_drops,
        "LastLedgerSequence": last_ledger_sequence,
    }
    if payment.source_tag is not None:
        tx["SourceTag"] = payment.source_tag
    if payment.destination_tag is not None:
        tx["DestinationTag"] = payment.destination_tag
    return tx


def transaction_hash(signed_blob_hex: str) -> str:
    """Ledger transaction id of a signed blob (64 uppercase hex chars).

    Raises:
        ValueError: If the blob is not hex.
    """
    blob = bytes.fromhex(signed_blob_hex)
    return hashlib.sha512(_TX_HASH_PREFIX + blob).hexdigest()[:64].upper()
