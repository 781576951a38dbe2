from __future__ import annotations

from functools import lru_cache

from ..db.session import SessionLocal
from ..services.device_store import DeviceStore


@lru_cache(maxsize=1)
def get_store() -> DeviceStore:
    """Process-wide store so every request reads the same snapshot."""

    return DeviceStore(SessionLocal)
