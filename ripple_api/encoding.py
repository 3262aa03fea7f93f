"""
Wire encodings.

- Canonical JSON: sorted keys, no whitespace, UTF-8. Used for the prepared
  transaction JSON returned as the transaction context, so that the same
  transaction always produces the same bytes.
- Base64 JSON envelope: the ``signedTransaction`` field of a broadcast
  request is ``base64(json({"signedTransaction"?, "id"?}))``.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

import jsonschema  # type: ignore[import-untyped]

from ripple_api.exceptions import InvalidSignedTransactionError

# Shape of the decoded signed-transaction envelope. Both fields are
# optional: no signedTransaction means a simulated (same-owner) transfer.
SIGNED_TRANSACTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "signedTransaction": {"type": ["string", "null"]},
        "id": {"type": ["string", "null"]},
    },
}


def canonical_json(obj: Any) -> str:
    """Serialize object to canonical JSON string."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def from_base64(value: str) -> Any:
    """Decode a base64 string and parse the result as JSON.

    Raises:
        ValueError: If the value is not base64 or not JSON.
    """
    try:
        raw = base64.b64decode(value, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"not a base64 string: {exc}") from exc
    return json.loads(raw.decode("utf-8"))


@dataclass(frozen=True)
class SignedTransaction:
    """Decoded broadcast payload.

    Attributes:
        signed_transaction: Hex-encoded signed transaction blob, or None
            for a simulated transfer.
        id: Transaction hash (real) or client correlation id (simulated).
    """

    signed_transaction: str | None
    id: str | None

    @property
    def is_simulated(self) -> bool:
        return not self.signed_transaction


def decode_signed_transaction(value: str) -> SignedTransaction:
    """Decode and shape-check the base64 envelope of a broadcast request.

    Raises:
        InvalidSignedTransactionError: If the value cannot be decoded or
            does not match SIGNED_TRANSACTION_SCHEMA.
    """
    try:
        data = from_base64(value)
        jsonschema.validate(instance=data, schema=SIGNED_TRANSACTION_SCHEMA)
    except (ValueError, UnicodeDecodeError) as exc:
        raise InvalidSignedTransactionError(
            f"Signed transaction is not a base64-encoded JSON: {exc}"
        ) from exc
    except jsonschema.ValidationError as exc:
        raise InvalidSignedTransactionError(
            f"Signed transaction is invalid: {exc.message}"
        ) from exc

    return SignedTransaction(
        signed_transaction=data.get("signedTransaction") or None,
        id=data.get("id") or None,
    )
