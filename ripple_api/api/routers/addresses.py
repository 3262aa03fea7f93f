"""
Addresses router.

An address is valid when it is a well-formed r-address (optionally with a
``+tag``), the account exists on the ledger, and, if the account requires
a destination tag, the address carries one.
"""

from __future__ import annotations

from fastapi import APIRouter

from ripple_api.addresses import is_ripple_address, split_address
from ripple_api.api.deps import Ledger
from ripple_api.exceptions import NotSupportedError

router = APIRouter(prefix="/addresses")


@router.get("/{address}/validity")
async def get_validity(address: str, ledger: Ledger) -> dict[str, bool]:
    is_valid = False

    if is_ripple_address(address):
        parts = split_address(address)
        settings = await ledger.get_account_settings(parts.address)
        is_valid = settings is not None and (
            not settings.require_destination_tag or parts.tag is not None
        )

    return {"isValid": is_valid}


@router.get("/{address}/explorer-url")
async def get_explorer_url(address: str) -> None:
    raise NotSupportedError("Explorer URLs are not supported")
