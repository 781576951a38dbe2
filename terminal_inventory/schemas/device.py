"""Device entities and the request payloads that act on them."""

from __future__ import annotations

from datetime import date
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from ..core.clock import local_today
from ..core.removal_reasons import RemovalReason
from ..core.serials import normalize_serial, split_serials


class CustomerKey(NamedTuple):
    name: str
    terminal_id: str
    email: str
    phone: str
    account_code: str


class CustomerInfo(BaseModel):
    """Who a terminal was handed to.

    Only surrounding whitespace is trimmed; the five fields are otherwise
    compared exactly when grouping or resolving customers.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    name: str = Field(min_length=1)
    terminal_id: str = ""
    email: str = ""
    phone: str = ""
    account_code: str = ""

    @field_validator("name", "terminal_id", "email", "phone", "account_code", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def key(self) -> CustomerKey:
        return CustomerKey(self.name, self.terminal_id, self.email, self.phone, self.account_code)


class Device(BaseModel):
    """One physical terminal as held in the store snapshot.

    ``exit_date``, ``removal_reason`` and ``customer_info`` are either all set
    (checked out) or all empty (in inventory).
    """

    model_config = ConfigDict(frozen=True)

    id: int
    model_name: str
    serial_number: str
    entry_date: date
    exit_date: Optional[date] = None
    removal_reason: Optional[RemovalReason] = None
    customer_info: Optional[CustomerInfo] = None

    @model_validator(mode="after")
    def check_checkout_fields(self) -> "Device":
        present = [
            self.exit_date is not None,
            self.removal_reason is not None,
            self.customer_info is not None,
        ]
        if any(present) and not all(present):
            raise ValueError("exit_date, removal_reason and customer_info must be set or cleared together")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_available(self) -> bool:
        return self.exit_date is None

    @classmethod
    def from_row(cls, row: Any) -> "Device":
        customer = row.customer
        return cls(
            id=row.id,
            model_name=row.model_name,
            serial_number=row.serial_number,
            entry_date=row.entry_date,
            exit_date=row.exit_date,
            removal_reason=row.removal_reason,
            customer_info=CustomerInfo.model_validate(customer) if customer is not None else None,
        )


class DeviceCreate(BaseModel):
    model_name: str = Field(min_length=1)
    serial_number: str = Field(min_length=1)
    entry_date: date = Field(default_factory=local_today)

    @field_validator("model_name", mode="before")
    @classmethod
    def strip_model_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("serial_number", mode="before")
    @classmethod
    def clean_serial(cls, value: Any) -> Any:
        return (normalize_serial(value) or "") if isinstance(value, str) else value


class DeviceBatchCreate(BaseModel):
    """Several units of one model received together.

    ``serial_numbers`` accepts either a list or the raw text of a pasted
    packing list. Duplicates are kept here and rejected by the store.
    """

    model_name: str = Field(min_length=1)
    serial_numbers: list[str] = Field(min_length=1)
    entry_date: date = Field(default_factory=local_today)

    @field_validator("model_name", mode="before")
    @classmethod
    def strip_model_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("serial_numbers", mode="before")
    @classmethod
    def split_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_serials(value)
        return value


class CheckoutRequest(BaseModel):
    exit_date: date = Field(default_factory=local_today)
    reason: RemovalReason
    customer_info: CustomerInfo


class BatchCheckoutRequest(CheckoutRequest):
    device_ids: list[int] = Field(min_length=1)


class BatchReturnRequest(BaseModel):
    device_ids: list[int] = Field(min_length=1)


class BatchFailure(BaseModel):
    device_id: int
    code: str
    message: str


class BatchResult(BaseModel):
    succeeded: int = 0
    failed: list[BatchFailure] = Field(default_factory=list)


class BatchCreateResult(BaseModel):
    created: int
    devices: list[Device] = Field(default_factory=list)


__all__ = [
    "BatchCheckoutRequest",
    "BatchCreateResult",
    "BatchFailure",
    "BatchResult",
    "BatchReturnRequest",
    "CheckoutRequest",
    "CustomerInfo",
    "CustomerKey",
    "Device",
    "DeviceBatchCreate",
    "DeviceCreate",
]
