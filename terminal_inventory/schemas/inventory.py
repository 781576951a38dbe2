from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field, computed_field

from .device import CustomerInfo, Device


class InventoryStats(BaseModel):
    total_devices: int = 0
    available_devices: int = 0
    rented_devices: int = 0
    loaned_devices: int = 0
    sold_devices: int = 0
    development_devices: int = 0


class DeviceModelSummary(BaseModel):
    id: str
    name: str
    total_count: int = 0
    available_count: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def in_use_count(self) -> int:
        return self.total_count - self.available_count

    @computed_field  # type: ignore[prop-decorator]
    @property
    def availability_percent(self) -> int:
        if not self.total_count:
            return 0
        ratio = Decimal(self.available_count) * 100 / Decimal(self.total_count)
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CustomerGroup(BaseModel):
    customer_info: CustomerInfo
    devices: list[Device] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def device_count(self) -> int:
        return len(self.devices)
