"""In-memory mirror of the device table and the lifecycle rules around it.

``DeviceStore`` is the only thing allowed to change a device. Every mutation
is validated locally first, then written through the CRUD layer, and only
after the database commits is the snapshot updated. Reads never touch the
database once the snapshot has been loaded.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Iterable, Iterator, Mapping, Sequence

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session

from ..core.errors import (
    DeviceNotFoundError,
    InvalidStateError,
    InventoryError,
    PersistenceError,
    ValidationError,
)
from ..core.removal_reasons import REMOVAL_REASON_CHOICES, normalize_removal_reason
from ..core.serials import find_duplicates, normalize_serial
from ..crud.devices import (
    checkout_device_row,
    get_device_row,
    get_device_rows,
    insert_devices,
    list_device_rows,
    return_device_row,
)
from ..schemas.device import BatchFailure, BatchResult, CustomerInfo, Device

logger = logging.getLogger(__name__)


def _as_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"{field} must be a date", details={"field": field})


def _require_text(value: str | None, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} is required", details={"field": field})
    return cleaned


def _require_reason(value: str | None) -> str:
    reason = normalize_removal_reason(value)
    if reason is None:
        raise ValidationError(
            "removal reason must be one of: " + ", ".join(REMOVAL_REASON_CHOICES),
            details={"field": "reason", "value": value},
        )
    return reason


def _coerce_customer(value: CustomerInfo | Mapping[str, Any] | None) -> CustomerInfo:
    if isinstance(value, CustomerInfo):
        return value
    if value is None:
        raise ValidationError("customer_info is required", details={"field": "customer_info"})
    try:
        return CustomerInfo.model_validate(value)
    except SchemaValidationError as exc:
        raise ValidationError(
            "customer_info is invalid",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def _to_device(row: Any) -> Device:
    try:
        return Device.from_row(row)
    except SchemaValidationError as exc:
        logger.exception("store.unexpected_row", extra={"extra_data": {"device_id": row.id}})
        raise PersistenceError(
            "The inventory database returned an unexpected row",
            details={"device_id": row.id},
        ) from exc


class DeviceStore:
    """Authoritative device collection for one inventory manager.

    ``session_factory`` is any zero-argument callable returning a SQLAlchemy
    ``Session``; the application passes ``SessionLocal`` and tests pass a
    sessionmaker bound to an in-memory engine.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory
        self._lock = threading.RLock()
        self._devices: dict[int, Device] = {}
        self._loaded = False

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.refresh()

    def refresh(self) -> list[Device]:
        """Reload the snapshot from the database."""

        with self._lock:
            with self._session() as db:
                devices = [_to_device(row) for row in list_device_rows(db)]
            self._devices = {device.id: device for device in devices}
            self._loaded = True
            logger.info("store.loaded", extra={"extra_data": {"devices": len(self._devices)}})
            return list(self._devices.values())

    def _reload(self, device_ids: Sequence[int]) -> list[Device]:
        """Copy freshly committed rows into the snapshot.

        If they cannot be read back the snapshot is marked stale and rebuilt
        from the database on the next access.
        """

        try:
            with self._session() as db:
                devices = [_to_device(row) for row in get_device_rows(db, device_ids)]
        except InventoryError:
            self._loaded = False
            raise
        for device in devices:
            self._devices[device.id] = device
        return devices

    def list_devices(self) -> list[Device]:
        with self._lock:
            self._ensure_loaded()
            return list(self._devices.values())

    def get_device(self, device_id: int) -> Device:
        with self._lock:
            self._ensure_loaded()
            device = self._devices.get(device_id)
        if device is None:
            raise DeviceNotFoundError(f"Device {device_id} not found", details={"device_id": device_id})
        return device

    def add_device(self, model_name: str, serial_number: str, entry_date: date) -> int:
        """Add one terminal to inventory and return its id."""

        model = _require_text(model_name, "model_name")
        serial = normalize_serial(serial_number)
        if not serial:
            raise ValidationError("serial_number is required", details={"field": "serial_number"})
        entered = _as_date(entry_date, "entry_date")

        with self._lock:
            self._ensure_loaded()
            with self._session() as db:
                ids = insert_devices(db, model_name=model, serial_numbers=[serial], entry_date=entered)
            self._reload(ids)

        logger.info(
            "device.added",
            extra={"extra_data": {"device_id": ids[0], "model_name": model, "serial_number": serial}},
        )
        return ids[0]

    def add_devices_batch(self, model_name: str, serial_numbers: Sequence[str], entry_date: date) -> int:
        """Add several units of one model; nothing is written if any serial is bad."""

        model = _require_text(model_name, "model_name")
        entered = _as_date(entry_date, "entry_date")
        raw = list(serial_numbers or [])
        if not raw:
            raise ValidationError("serial_numbers must not be empty", details={"field": "serial_numbers"})

        serials = [normalize_serial(value) for value in raw]
        blank_positions = [index for index, serial in enumerate(serials) if not serial]
        if blank_positions:
            raise ValidationError(
                "serial_numbers contains empty values",
                details={"field": "serial_numbers", "positions": blank_positions},
            )
        cleaned = [serial for serial in serials if serial]
        duplicates = find_duplicates(cleaned)
        if duplicates:
            raise ValidationError(
                "Duplicate serial numbers in batch: " + ", ".join(duplicates),
                details={"field": "serial_numbers", "serial_numbers": duplicates},
            )

        with self._lock:
            self._ensure_loaded()
            with self._session() as db:
                ids = insert_devices(db, model_name=model, serial_numbers=cleaned, entry_date=entered)
            self._reload(ids)

        logger.info(
            "device.batch_added",
            extra={"extra_data": {"model_name": model, "count": len(ids)}},
        )
        return len(ids)

    def checkout_device(
        self,
        device_id: int,
        exit_date: date,
        reason: str,
        customer_info: CustomerInfo | Mapping[str, Any],
    ) -> None:
        """Hand an in-inventory device to a customer."""

        reason_value = _require_reason(reason)
        info = _coerce_customer(customer_info)
        left = _as_date(exit_date, "exit_date")
        self._checkout(device_id, left, reason_value, info)

    def _checkout(self, device_id: int, exit_date: date, reason: str, info: CustomerInfo) -> None:
        with self._lock:
            current = self.get_device(device_id)
            if current.exit_date is not None:
                raise InvalidStateError(
                    f"Device {device_id} is already checked out",
                    details={"device_id": device_id, "removal_reason": current.removal_reason},
                )
            if exit_date < current.entry_date:
                raise ValidationError(
                    "exit_date cannot be earlier than entry_date",
                    details={"field": "exit_date", "entry_date": current.entry_date.isoformat()},
                )
            with self._session() as db:
                row = get_device_row(db, device_id)
                if row is None:
                    self._devices.pop(device_id, None)
                    raise DeviceNotFoundError(f"Device {device_id} not found", details={"device_id": device_id})
                if row.exit_date is not None:
                    self._devices[device_id] = _to_device(row)
                    raise InvalidStateError(
                        f"Device {device_id} is already checked out",
                        details={"device_id": device_id, "removal_reason": row.removal_reason},
                    )
                checkout_device_row(db, row, exit_date=exit_date, reason=reason, customer_info=info)
            self._reload([device_id])

        logger.info(
            "device.checked_out",
            extra={"extra_data": {"device_id": device_id, "removal_reason": reason, "customer": info.name}},
        )

    def checkout_devices_batch(
        self,
        device_ids: Iterable[int],
        exit_date: date,
        reason: str,
        customer_info: CustomerInfo | Mapping[str, Any],
    ) -> BatchResult:
        """Check out each device independently and report per-id failures."""

        reason_value = _require_reason(reason)
        info = _coerce_customer(customer_info)
        left = _as_date(exit_date, "exit_date")
        return self._run_batch(device_ids, lambda device_id: self._checkout(device_id, left, reason_value, info))

    def return_device(self, device_id: int) -> None:
        """Put a checked-out device back into inventory."""

        with self._lock:
            current = self.get_device(device_id)
            if current.exit_date is None:
                raise InvalidStateError(
                    f"Device {device_id} is already in inventory",
                    details={"device_id": device_id},
                )
            with self._session() as db:
                row = get_device_row(db, device_id)
                if row is None:
                    self._devices.pop(device_id, None)
                    raise DeviceNotFoundError(f"Device {device_id} not found", details={"device_id": device_id})
                if row.exit_date is None:
                    self._devices[device_id] = _to_device(row)
                    raise InvalidStateError(
                        f"Device {device_id} is already in inventory",
                        details={"device_id": device_id},
                    )
                return_device_row(db, row)
            self._reload([device_id])

        logger.info("device.returned", extra={"extra_data": {"device_id": device_id}})

    def return_devices_batch(self, device_ids: Iterable[int]) -> BatchResult:
        return self._run_batch(device_ids, self.return_device)

    def _run_batch(self, device_ids: Iterable[int], action: Callable[[int], None]) -> BatchResult:
        result = BatchResult()
        for device_id in device_ids:
            try:
                action(device_id)
            except InventoryError as exc:
                result.failed.append(BatchFailure(device_id=device_id, code=exc.code, message=exc.message))
            else:
                result.succeeded += 1
        if result.failed:
            logger.warning(
                "device.batch_partial",
                extra={"extra_data": {"succeeded": result.succeeded, "failed": len(result.failed)}},
            )
        return result


__all__ = ["DeviceStore"]
