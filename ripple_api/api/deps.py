"""
FastAPI dependency injection.

The lifespan builds one ``Services`` container per application and stores
it on ``app.state``; routers pull what they need from it:

    @router.post("/single")
    async def build_single(body: BuildSingleRequest, builder: Builder):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from ripple_api.assets import AssetRepository
from ripple_api.balances import BalanceRepository
from ripple_api.broadcast import BroadcastCoordinator
from ripple_api.builder import TransactionBuilder
from ripple_api.db import Database
from ripple_api.history import HistoryRepository
from ripple_api.operations import OperationRepository
from ripple_api.settings import RippleApiSettings, get_settings
from ripple_api.xrpl.client import LedgerClient


@dataclass
class Services:
    """Stores, ledger client and core components of one application."""

    settings: RippleApiSettings
    db: Database
    ledger: LedgerClient
    operations: OperationRepository
    assets: AssetRepository
    balances: BalanceRepository
    history: HistoryRepository
    builder: TransactionBuilder
    coordinator: BroadcastCoordinator

    @classmethod
    def create(
        cls,
        settings: RippleApiSettings,
        db: Database,
        ledger: LedgerClient,
    ) -> Services:
        operations = OperationRepository(db)
        assets = AssetRepository(db)
        balances = BalanceRepository(db)
        history = HistoryRepository(db)
        return cls(
            settings=settings,
            db=db,
            ledger=ledger,
            operations=operations,
            assets=assets,
            balances=balances,
            history=history,
            builder=TransactionBuilder(
                operations,
                assets,
                balances,
                ledger,
                reserve=settings.ripple_reserve,
                expiration=settings.ripple_expiration,
            ),
            coordinator=BroadcastCoordinator(
                operations,
                assets,
                balances,
                history,
                ledger,
                block_scale=settings.block_scale,
                block_offset=settings.block_offset,
            ),
        )


# ── Accessors ────────────────────────────────────────────────────────────


def get_services(request: Request) -> Services:
    services: Services = request.app.state.services
    return services


def get_operations(services: Annotated[Services, Depends(get_services)]) -> OperationRepository:
    return services.operations


def get_assets(services: Annotated[Services, Depends(get_services)]) -> AssetRepository:
    return services.assets


def get_history(services: Annotated[Services, Depends(get_services)]) -> HistoryRepository:
    return services.history


def get_ledger(services: Annotated[Services, Depends(get_services)]) -> LedgerClient:
    return services.ledger


def get_builder(services: Annotated[Services, Depends(get_services)]) -> TransactionBuilder:
    return services.builder


def get_coordinator(services: Annotated[Services, Depends(get_services)]) -> BroadcastCoordinator:
    return services.coordinator


Settings = Annotated[RippleApiSettings, Depends(get_settings)]
Operations = Annotated[OperationRepository, Depends(get_operations)]
Assets = Annotated[AssetRepository, Depends(get_assets)]
History = Annotated[HistoryRepository, Depends(get_history)]
Ledger = Annotated[LedgerClient, Depends(get_ledger)]
Builder = Annotated[TransactionBuilder, Depends(get_builder)]
Coordinator = Annotated[BroadcastCoordinator, Depends(get_coordinator)]
