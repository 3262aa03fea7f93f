"""
Error taxonomy for ripple-api.

Every error raised by the core carries:
    - a human-readable message,
    - an optional wire ``error_code`` (see ``ErrorCode``) that clients use
      to decide whether to rebuild, top up, or give up,
    - an optional ``details`` dict for diagnostics (never secrets),
    - the HTTP ``status_code`` the API layer answers with.

Validation and balance errors are raised before any write. Ledger
transport failures are surfaced as ``LedgerUnavailableError`` and never
interpreted: the submission may or may not have reached the ledger.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Machine-readable error codes, persisted on operations and sent on the wire."""

    UNKNOWN = "unknown"
    AMOUNT_IS_TOO_SMALL = "amountIsTooSmall"
    NOT_ENOUGH_BALANCE = "notEnoughBalance"
    BUILDING_SHOULD_BE_REPEATED = "buildingShouldBeRepeated"


class RippleApiError(Exception):
    """Base class for all ripple-api errors."""

    status_code: int = 500
    default_error_code: ErrorCode | None = None

    def __init__(
        self,
        message: str,
        *,
        error_code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "errorMessage": self.message,
            "errorCode": str(self.error_code) if self.error_code else None,
        }
        if self.details:
            result["data"] = self.details
        return result


# ---------------------------------------------------------------------------
# Lookup / state errors
# ---------------------------------------------------------------------------


class NotFoundError(RippleApiError):
    status_code = 404


class AccountNotFound(NotFoundError):
    """The ledger has no account at the given address."""


class ConflictError(RippleApiError):
    """The operation is in the wrong state for the requested transition."""

    status_code = 409


# ---------------------------------------------------------------------------
# Validation errors (raised before any mutation)
# ---------------------------------------------------------------------------


class UnknownAssetError(RippleApiError):
    status_code = 400


class InvalidAmountError(RippleApiError):
    status_code = 400


class InvalidSignedTransactionError(RippleApiError):
    status_code = 400


class AmountTooSmallError(RippleApiError):
    status_code = 400
    default_error_code = ErrorCode.AMOUNT_IS_TOO_SMALL


class NotEnoughBalanceError(RippleApiError):
    status_code = 400
    default_error_code = ErrorCode.NOT_ENOUGH_BALANCE


# ---------------------------------------------------------------------------
# Ledger rejections
# ---------------------------------------------------------------------------


class BuildingShouldBeRepeatedError(RippleApiError):
    """The transaction can never apply as signed; request a fresh build."""

    status_code = 400
    default_error_code = ErrorCode.BUILDING_SHOULD_BE_REPEATED


class DuplicateHashError(BuildingShouldBeRepeatedError):
    """The transaction hash is already bound to another operation."""


class UnknownRejectionError(RippleApiError):
    """The ledger rejected the transaction as malformed."""

    status_code = 400
    default_error_code = ErrorCode.UNKNOWN


# ---------------------------------------------------------------------------
# Upstream failures
# ---------------------------------------------------------------------------


class LedgerUnavailableError(RippleApiError):
    """The ledger node could not be reached (connection refused, timeout, TLS)."""

    status_code = 502


class LedgerRequestError(RippleApiError):
    """The ledger node answered a request with a server-level error."""

    status_code = 502


class NotSupportedError(RippleApiError):
    """The endpoint belongs to the blockchain contract but is not implemented."""

    status_code = 501


_REPLAY_BY_CODE: dict[ErrorCode, type[RippleApiError]] = {
    ErrorCode.UNKNOWN: UnknownRejectionError,
    ErrorCode.AMOUNT_IS_TOO_SMALL: AmountTooSmallError,
    ErrorCode.NOT_ENOUGH_BALANCE: NotEnoughBalanceError,
    ErrorCode.BUILDING_SHOULD_BE_REPEATED: BuildingShouldBeRepeatedError,
}


def error_for_code(
    error_code: ErrorCode | str,
    message: str,
    details: dict[str, Any] | None = None,
) -> RippleApiError:
    """Rebuild the exception for a previously recorded error code."""
    code = ErrorCode(error_code)
    return _REPLAY_BY_CODE[code](message, error_code=code, details=details)
