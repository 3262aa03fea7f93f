"""
Transactions router: build, broadcast, status, delete and history.

Endpoints:
    POST   /transactions/single                        Build a single transfer
    POST   /transactions/broadcast                     Broadcast a signed transfer
    GET    /transactions/broadcast/single/{id}         Status (204 when not broadcast)
    DELETE /transactions/broadcast/{id}                Soft delete
    GET    /transactions/history/{from|to}/{address}   History page
    POST   /transactions/history/{from|to}/{address}/observation
    DELETE /transactions/history/{from|to}/{address}/observation

Many-inputs, many-outputs and rebuilding answer 501.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Response

from ripple_api.addresses import is_ripple_address, is_uuid
from ripple_api.api.deps import Builder, Coordinator, History, Operations
from ripple_api.api.errors import invalid_request
from ripple_api.api.schemas import BroadcastRequest, BuildSingleRequest
from ripple_api.exceptions import NotSupportedError
from ripple_api.history import HistoryAddressCategory
from ripple_api.status import delete_operation, get_status

router = APIRouter(prefix="/transactions")


def _require_uuid(operation_id: str) -> None:
    if not is_uuid(operation_id):
        raise invalid_request("operationId", "must be a UUID")


def _require_address(address: str) -> None:
    if not is_ripple_address(address):
        raise invalid_request("address", "must be a valid Ripple address")


# ── Build ────────────────────────────────────────────────────────────────


@router.post("/single")
async def build_single(body: BuildSingleRequest, builder: Builder) -> dict[str, str]:
    result = await builder.build(
        body.operation_id,
        body.from_address,
        body.to_address,
        body.asset_id,
        body.amount,
        include_fee=body.include_fee,
    )
    return {"transactionContext": result.transaction_context}


@router.post("/many-inputs")
async def build_many_inputs() -> None:
    raise NotSupportedError("Building transactions with many inputs is not supported")


@router.post("/many-outputs")
async def build_many_outputs() -> None:
    raise NotSupportedError("Building transactions with many outputs is not supported")


@router.put("")
async def rebuild() -> None:
    raise NotSupportedError("Rebuilding transactions is not supported")


# ── Broadcast ────────────────────────────────────────────────────────────


@router.post("/broadcast")
async def broadcast(body: BroadcastRequest, coordinator: Coordinator) -> dict[str, str]:
    result = await coordinator.broadcast(body.operation_id, body.signed_transaction)
    return {"txId": result.tx_id}


@router.get("/broadcast/single/{operation_id}", response_model=None)
async def get_broadcast(operation_id: str, operations: Operations) -> dict[str, Any] | Response:
    _require_uuid(operation_id)
    status = get_status(operations, operation_id)
    if status is None:
        return Response(status_code=204)
    return status.to_dict()


@router.get("/broadcast/many-inputs/{operation_id}")
async def get_broadcast_many_inputs(operation_id: str) -> None:
    raise NotSupportedError("Transactions with many inputs are not supported")


@router.get("/broadcast/many-outputs/{operation_id}")
async def get_broadcast_many_outputs(operation_id: str) -> None:
    raise NotSupportedError("Transactions with many outputs are not supported")


@router.delete("/broadcast/{operation_id}")
async def delete_broadcast(operation_id: str, operations: Operations) -> Response:
    _require_uuid(operation_id)
    delete_operation(operations, operation_id)
    return Response(status_code=200)


# ── History ──────────────────────────────────────────────────────────────


def _history_page(
    history: History,
    category: HistoryAddressCategory,
    address: str,
    take: int,
    after_hash: str | None,
) -> list[dict[str, object]]:
    _require_address(address)
    return [e.to_dict() for e in history.get(category, address, take, after_hash)]


@router.get("/history/from/{address}")
async def get_history_from(
    address: str,
    history: History,
    take: int = Query(gt=0),
    after_hash: str | None = Query(default=None, alias="afterHash"),
) -> list[dict[str, object]]:
    return _history_page(history, HistoryAddressCategory.FROM, address, take, after_hash)


@router.get("/history/to/{address}")
async def get_history_to(
    address: str,
    history: History,
    take: int = Query(gt=0),
    after_hash: str | None = Query(default=None, alias="afterHash"),
) -> list[dict[str, object]]:
    return _history_page(history, HistoryAddressCategory.TO, address, take, after_hash)


# Transfers are tracked for every address the node sees, so observation
# requests only validate the address.


@router.post("/history/from/{address}/observation")
async def observe_from(address: str) -> Response:
    _require_address(address)
    return Response(status_code=200)


@router.delete("/history/from/{address}/observation")
async def stop_observing_from(address: str) -> Response:
    _require_address(address)
    return Response(status_code=200)


@router.post("/history/to/{address}/observation")
async def observe_to(address: str) -> Response:
    _require_address(address)
    return Response(status_code=200)


@router.delete("/history/to/{address}/observation")
async def stop_observing_to(address: str) -> Response:
    _require_address(address)
    return Response(status_code=200)
