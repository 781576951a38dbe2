from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query

from ..core.removal_reasons import RemovalReason
from ..core.serials import normalize_serial
from ..deps.auth import require_api_key
from ..deps.store import get_store
from ..schemas.device import (
    BatchCheckoutRequest,
    BatchCreateResult,
    BatchResult,
    BatchReturnRequest,
    CheckoutRequest,
    Device,
    DeviceBatchCreate,
    DeviceCreate,
)
from ..services.aggregation import filter_devices, sort_for_display
from ..services.device_store import DeviceStore

router = APIRouter(prefix="/api/v1/devices", tags=["devices"], dependencies=[Depends(require_api_key)])


@router.get("", response_model=list[Device])
def api_list_devices(
    q: str | None = Query(default=None, description="Search model, serial or customer name"),
    status: Literal["available", "checked_out"] | None = None,
    reason: RemovalReason | None = None,
    store: DeviceStore = Depends(get_store),
):
    devices = filter_devices(store.list_devices(), q)
    if status == "available":
        devices = [d for d in devices if d.exit_date is None]
    elif status == "checked_out":
        devices = [d for d in devices if d.exit_date is not None]
    if reason:
        devices = [d for d in devices if d.removal_reason == reason]
    return sort_for_display(devices)


@router.post("", response_model=Device, status_code=201)
def api_add_device(payload: DeviceCreate, store: DeviceStore = Depends(get_store)):
    device_id = store.add_device(payload.model_name, payload.serial_number, payload.entry_date)
    return store.get_device(device_id)


@router.post("/batch", response_model=BatchCreateResult, status_code=201)
def api_add_devices_batch(payload: DeviceBatchCreate, store: DeviceStore = Depends(get_store)):
    created = store.add_devices_batch(payload.model_name, payload.serial_numbers, payload.entry_date)
    wanted = {normalize_serial(serial) for serial in payload.serial_numbers}
    devices = [d for d in store.list_devices() if d.serial_number in wanted]
    return BatchCreateResult(created=created, devices=devices)


@router.post("/checkout", response_model=BatchResult)
def api_checkout_devices(payload: BatchCheckoutRequest, store: DeviceStore = Depends(get_store)):
    return store.checkout_devices_batch(
        payload.device_ids,
        payload.exit_date,
        payload.reason,
        payload.customer_info,
    )


@router.post("/return", response_model=BatchResult)
def api_return_devices(payload: BatchReturnRequest, store: DeviceStore = Depends(get_store)):
    return store.return_devices_batch(payload.device_ids)


@router.post("/refresh", response_model=list[Device])
def api_refresh_devices(store: DeviceStore = Depends(get_store)):
    return sort_for_display(store.refresh())


@router.get("/{device_id}", response_model=Device)
def api_get_device(device_id: int, store: DeviceStore = Depends(get_store)):
    return store.get_device(device_id)


@router.post("/{device_id}/checkout", response_model=Device)
def api_checkout_device(device_id: int, payload: CheckoutRequest, store: DeviceStore = Depends(get_store)):
    store.checkout_device(device_id, payload.exit_date, payload.reason, payload.customer_info)
    return store.get_device(device_id)


@router.post("/{device_id}/return", response_model=Device)
def api_return_device(device_id: int, store: DeviceStore = Depends(get_store)):
    store.return_device(device_id)
    return store.get_device(device_id)
