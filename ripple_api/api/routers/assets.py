"""Assets router."""

from __future__ import annotations

from fastapi import APIRouter

from ripple_api.api.deps import Assets
from ripple_api.exceptions import NotFoundError

router = APIRouter(prefix="/assets")


@router.get("/{asset_id}")
async def get_asset(asset_id: str, assets: Assets) -> dict[str, object]:
    asset = assets.get(asset_id)
    if asset is None:
        raise NotFoundError(f"Asset [{asset_id}] not found")
    return asset.to_dict()
