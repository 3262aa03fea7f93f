"""
XRPL submission outcome classification.

Maps the engine result of a ``submit`` call onto what the broadcast
coordinator should do with the operation. The mapping is conservative:
only codes that prove the transaction can never apply are treated as
failures. Everything else is "sent": a preliminary result is not final,
and a transaction that looked rejected at submission time may still be
included in a validated ledger.

XRPL engine result prefixes:
    - tes: success (tesSUCCESS)
    - tec: claimed cost, tx included but "failed"
    - tef: local failure, not forwarded
    - tel: local error, may succeed on another server
    - tem: malformed, never succeeds
    - ter: retry, may succeed later

Reference:
    https://xrpl.org/docs/concepts/transactions/finality-of-results
"""

from __future__ import annotations

from enum import StrEnum


class SubmitOutcome(StrEnum):
    """What a submission result means for the operation."""

    ACCEPTED = "ACCEPTED"          # tesSUCCESS, await validation
    AMBIGUOUS = "AMBIGUOUS"        # provisional rejection, may still apply
    REBUILD = "REBUILD"            # stale sequence or expired
    MALFORMED = "MALFORMED"        # tem*, never applies as signed


# Exact codes that prove the signed transaction can never apply.
_REBUILD_CODES = frozenset({"tefPAST_SEQ", "tefMAX_LEDGER"})


def classify_submit_result(result_code: str) -> SubmitOutcome:
    """Map an XRPL engine result code to a SubmitOutcome.

    Args:
        result_code: Engine result string, e.g. "tesSUCCESS", "temBAD_FEE".

    Returns:
        SubmitOutcome. Unrecognized codes are AMBIGUOUS.
    """
    if result_code == "tesSUCCESS":
        return SubmitOutcome.ACCEPTED
    if result_code in _REBUILD_CODES:
        return SubmitOutcome.REBUILD
    if result_code.startswith("tem"):
        return SubmitOutcome.MALFORMED
    return SubmitOutcome.AMBIGUOUS
