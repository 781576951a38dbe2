from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..core.removal_reasons import REASON_RENTAL, RemovalReason
from ..deps.auth import require_api_key
from ..deps.store import get_store
from ..schemas.inventory import CustomerGroup, DeviceModelSummary, InventoryStats
from ..services.aggregation import (
    compute_model_summaries,
    compute_stats,
    filter_devices,
    group_by_customer,
)
from ..services.device_store import DeviceStore

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"], dependencies=[Depends(require_api_key)])


@router.get("/stats", response_model=InventoryStats)
def api_inventory_stats(store: DeviceStore = Depends(get_store)):
    return compute_stats(store.list_devices())


@router.get("/models", response_model=list[DeviceModelSummary])
def api_model_summaries(store: DeviceStore = Depends(get_store)):
    return compute_model_summaries(store.list_devices())


@router.get("/customers", response_model=list[CustomerGroup])
def api_customer_groups(
    reason: RemovalReason = REASON_RENTAL,
    q: str | None = Query(default=None, description="Search model, serial or customer name"),
    store: DeviceStore = Depends(get_store),
):
    # Search narrows the devices shown, but customers with no match stay listed.
    groups = group_by_customer(store.list_devices(), reason)
    if q:
        for group in groups.values():
            group.devices = filter_devices(group.devices, q)
    return list(groups.values())
