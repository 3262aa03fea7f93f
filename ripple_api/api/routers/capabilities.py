"""Capabilities and liveness endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from ripple_api import APP_NAME, __version__
from ripple_api.api.deps import Settings

router = APIRouter()

CAPABILITIES: dict[str, bool] = {
    "isTransactionsRebuildingSupported": False,
    "areManyInputsSupported": False,
    "areManyOutputsSupported": False,
    "isTestingTransfersSupported": False,
    "isPublicAddressExtensionRequired": True,
    "isReceiveTransactionRequired": False,
    "canReturnExplorerUrl": False,
}


@router.get("/capabilities")
async def get_capabilities() -> dict[str, bool]:
    return dict(CAPABILITIES)


@router.get("/isalive")
async def is_alive(settings: Settings) -> dict[str, Any]:
    return {
        "name": APP_NAME,
        "version": __version__,
        "env": settings.env_info,
        "isDebug": settings.debug,
    }
