"""Sample terminals for a fresh install.

Only runs against an empty store so it never touches real data.
"""

from __future__ import annotations

import logging
from datetime import date

from ..core.removal_reasons import REASON_RENTAL, REASON_SALE
from ..schemas.device import CustomerInfo
from .device_store import DeviceStore

logger = logging.getLogger(__name__)

DEMO_DEVICES = [
    {
        "model_name": "Verifone V240m",
        "serial_number": "VF-12345",
        "entry_date": date(2023, 2, 15),
    },
    {
        "model_name": "PAX A920",
        "serial_number": "PAX-67890",
        "entry_date": date(2023, 3, 10),
        "checkout": {
            "exit_date": date(2023, 6, 20),
            "reason": REASON_RENTAL,
            "customer_info": CustomerInfo(
                name="Alpha Ltd",
                terminal_id="TER-1234",
                email="alpha@example.com",
                phone="052-1234567",
                account_code="ACC-001",
            ),
        },
    },
    {
        "model_name": "Ingenico Move 5000",
        "serial_number": "ING-54321",
        "entry_date": date(2023, 4, 5),
        "checkout": {
            "exit_date": date(2023, 8, 12),
            "reason": REASON_SALE,
            "customer_info": CustomerInfo(
                name="Beta Ltd",
                terminal_id="TER-5678",
                email="beta@example.com",
                phone="053-7654321",
                account_code="ACC-002",
            ),
        },
    },
]


def seed_demo_devices(store: DeviceStore) -> int:
    """Add the demo terminals when the store is empty; return how many were added."""

    if store.list_devices():
        return 0
    for entry in DEMO_DEVICES:
        device_id = store.add_device(entry["model_name"], entry["serial_number"], entry["entry_date"])
        checkout = entry.get("checkout")
        if checkout:
            store.checkout_device(device_id, **checkout)
    logger.info("store.seeded", extra={"extra_data": {"devices": len(DEMO_DEVICES)}})
    return len(DEMO_DEVICES)


__all__ = ["DEMO_DEVICES", "seed_demo_devices"]
