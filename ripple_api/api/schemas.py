"""
Request models.

Requests are validated here, before the builder or coordinator sees them:
operation ids must be UUIDs, addresses r-addresses with an optional
``+tag``, amounts non-empty strings and signed transactions non-empty
base64.
"""

from __future__ import annotations

import base64
import binascii
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from ripple_api.addresses import is_ripple_address, is_uuid


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def _check_uuid(value: str) -> str:
    if not is_uuid(value):
        raise ValueError("must be a UUID")
    return value


def _check_address(value: str) -> str:
    if not is_ripple_address(value):
        raise ValueError("must be a valid Ripple address")
    return value


OperationId = Annotated[str, AfterValidator(_check_uuid)]
RippleAddress = Annotated[str, AfterValidator(_check_address)]


class BuildSingleRequest(_Request):
    """Body of POST /transactions/single.

    Example:
        {
            "operationId": "8d2f6a34-0a5b-4a38-9b1f-3f7f2f5b7c10",
            "fromAddress": "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh",
            "toAddress": "rPT1Sjq2YGrBMTttX4GZHjKu9dyfzbpAYe+42",
            "assetId": "XRP",
            "amount": "1000000",
            "includeFee": false
        }
    """

    operation_id: OperationId = Field(alias="operationId", min_length=1)
    from_address: RippleAddress = Field(alias="fromAddress", min_length=1)
    from_address_context: str | None = Field(default=None, alias="fromAddressContext")
    to_address: RippleAddress = Field(alias="toAddress", min_length=1)
    asset_id: str = Field(alias="assetId", min_length=1)
    amount: str = Field(min_length=1, description="Amount in base units")
    include_fee: bool = Field(default=False, alias="includeFee")


class BroadcastRequest(_Request):
    """Body of POST /transactions/broadcast.

    ``signedTransaction`` is base64 of ``{"signedTransaction"?, "id"?}``.
    """

    operation_id: OperationId = Field(alias="operationId", min_length=1)
    signed_transaction: str = Field(alias="signedTransaction", min_length=1)

    @field_validator("signed_transaction")
    @classmethod
    def check_base64(cls, value: str) -> str:
        try:
            base64.b64decode(value, validate=True)
        except binascii.Error as exc:
            raise ValueError("must be a base64 string") from exc
        return value
