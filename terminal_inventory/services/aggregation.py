"""Read-only views derived from a device snapshot.

Every function here is pure: it takes the current list of devices and
returns fresh objects. The whole snapshot is rescanned on each call, which is
fine for the few thousand terminals a single shop holds.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List

from ..core.removal_reasons import REASON_DEVELOPMENT, REASON_LOAN, REASON_RENTAL, REASON_SALE
from ..schemas.device import CustomerKey, Device
from ..schemas.inventory import CustomerGroup, DeviceModelSummary, InventoryStats

_WHITESPACE_RE = re.compile(r"\s+")

_REASON_FIELDS = {
    REASON_RENTAL: "rented_devices",
    REASON_LOAN: "loaned_devices",
    REASON_SALE: "sold_devices",
    REASON_DEVELOPMENT: "development_devices",
}


def model_slug(name: str) -> str:
    """Stable key for a model name: lowercase, whitespace runs become hyphens."""

    return _WHITESPACE_RE.sub("-", name.lower())


def compute_stats(devices: Iterable[Device]) -> InventoryStats:
    counts = {
        "total_devices": 0,
        "available_devices": 0,
        "rented_devices": 0,
        "loaned_devices": 0,
        "sold_devices": 0,
        "development_devices": 0,
    }
    for device in devices:
        counts["total_devices"] += 1
        if device.exit_date is None:
            counts["available_devices"] += 1
        field = _REASON_FIELDS.get(device.removal_reason or "")
        if field:
            counts[field] += 1
    return InventoryStats(**counts)


def compute_model_summaries(devices: Iterable[Device]) -> list[DeviceModelSummary]:
    """Count units per model name in order of first appearance.

    Grouping is on the exact, case-sensitive name; "PAX A920" and "pax a920"
    are two models even though they share a slug.
    """

    totals: Dict[str, Dict[str, int]] = {}
    for device in devices:
        bucket = totals.setdefault(device.model_name, {"total": 0, "available": 0})
        bucket["total"] += 1
        if device.exit_date is None:
            bucket["available"] += 1

    return [
        DeviceModelSummary(
            id=model_slug(name),
            name=name,
            total_count=counts["total"],
            available_count=counts["available"],
        )
        for name, counts in totals.items()
    ]


def group_by_customer(devices: Iterable[Device], reason: str | None) -> dict[CustomerKey, CustomerGroup]:
    """Group checked-out devices with the given reason by exact customer.

    Devices without customer details are skipped.
    """

    groups: Dict[CustomerKey, CustomerGroup] = {}
    for device in devices:
        if device.removal_reason != reason or device.customer_info is None:
            continue
        key = device.customer_info.key
        group = groups.get(key)
        if group is None:
            group = CustomerGroup(customer_info=device.customer_info)
            groups[key] = group
        group.devices.append(device)
    return groups


def filter_devices(devices: Iterable[Device], term: str | None) -> list[Device]:
    """Case-insensitive substring search over model, serial and customer name."""

    needle = (term or "").strip().lower()
    if not needle:
        return list(devices)
    matches: List[Device] = []
    for device in devices:
        haystacks = [device.model_name, device.serial_number]
        if device.customer_info is not None:
            haystacks.append(device.customer_info.name)
        if any(needle in value.lower() for value in haystacks):
            matches.append(device)
    return matches


def sort_for_display(devices: Iterable[Device]) -> list[Device]:
    """Available devices first, then newest entry date first."""

    return sorted(
        devices,
        key=lambda device: (device.exit_date is not None, -device.entry_date.toordinal()),
    )


__all__ = [
    "compute_model_summaries",
    "compute_stats",
    "filter_devices",
    "group_by_customer",
    "model_slug",
    "sort_for_display",
]
