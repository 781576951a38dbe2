"""Database operations behind the device store.

Everything here talks SQLAlchemy and nothing else: no snapshot, no
lifecycle rules. Driver failures are translated into the inventory error
types so callers never see a raw ``SQLAlchemyError``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterable, Iterator, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import DuplicateSerialError, PersistenceError
from ..models.device import Customer, Device, DeviceModelRow
from ..schemas.device import CustomerInfo

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(db: Session, serials: Sequence[str] = ()) -> Iterator[None]:
    """Roll back and re-raise driver errors as inventory errors."""

    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        taken = existing_serials(db, serials) if serials else []
        if taken:
            raise DuplicateSerialError(
                "Serial number already exists",
                details={"serial_numbers": taken},
            ) from exc
        logger.exception("store.integrity_error")
        raise PersistenceError("The inventory database rejected the change") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("store.unavailable")
        raise PersistenceError("The inventory database is unavailable") from exc


def list_device_rows(db: Session) -> list[Device]:
    """Return every device joined to its model name and customer."""

    stmt = select(Device).order_by(Device.id)
    with _store_errors(db):
        return list(db.execute(stmt).unique().scalars().all())


def get_device_row(db: Session, device_id: int) -> Device | None:
    with _store_errors(db):
        return db.get(Device, device_id)


def existing_serials(db: Session, serials: Iterable[str]) -> list[str]:
    """Return the subset of ``serials`` already stored, in input order."""

    wanted = list(serials)
    if not wanted:
        return []
    stmt = select(Device.serial_number).where(Device.serial_number.in_(wanted))
    try:
        found = set(db.execute(stmt).scalars().all())
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("The inventory database is unavailable") from exc
    return [serial for serial in wanted if serial in found]


def get_or_create_model(db: Session, name: str) -> DeviceModelRow:
    """Look up a catalogue model by exact name, adding it when missing.

    The new row is flushed but not committed; the caller's commit decides.
    """

    stmt = select(DeviceModelRow).where(DeviceModelRow.name == name)
    model = db.execute(stmt).scalars().first()
    if model:
        return model
    model = DeviceModelRow(name=name)
    db.add(model)
    db.flush()
    return model


def get_or_create_customer(db: Session, info: CustomerInfo) -> Customer:
    """Resolve a customer by the exact five-field tuple, adding it when missing."""

    stmt = select(Customer).where(
        Customer.name == info.name,
        Customer.terminal_id == info.terminal_id,
        Customer.email == info.email,
        Customer.phone == info.phone,
        Customer.account_code == info.account_code,
    )
    customer = db.execute(stmt).scalars().first()
    if customer:
        return customer
    customer = Customer(
        name=info.name,
        terminal_id=info.terminal_id,
        email=info.email,
        phone=info.phone,
        account_code=info.account_code,
    )
    db.add(customer)
    db.flush()
    return customer


def insert_devices(
    db: Session,
    *,
    model_name: str,
    serial_numbers: Sequence[str],
    entry_date: date,
) -> list[int]:
    """Insert one in-inventory device per serial in a single commit.

    Returns the new ids; the caller reloads the rows it needs.
    """

    with _store_errors(db, serial_numbers):
        model = get_or_create_model(db, model_name)
        rows = [
            Device(
                model_id=model.id,
                serial_number=serial,
                entry_date=entry_date,
                exit_date=None,
                removal_reason=None,
                customer_id=None,
            )
            for serial in serial_numbers
        ]
        db.add_all(rows)
        db.flush()
        ids = [row.id for row in rows]
        db.commit()
    return ids


def get_device_rows(db: Session, device_ids: Sequence[int]) -> list[Device]:
    """Return the rows for ``device_ids`` in the order given."""

    if not device_ids:
        return []
    stmt = select(Device).where(Device.id.in_(list(device_ids)))
    with _store_errors(db):
        found = {row.id: row for row in db.execute(stmt).unique().scalars().all()}
    return [found[device_id] for device_id in device_ids if device_id in found]


def checkout_device_row(
    db: Session,
    device: Device,
    *,
    exit_date: date,
    reason: str,
    customer_info: CustomerInfo,
) -> None:
    """Resolve the customer then mark the device as checked out.

    Both steps share one session, so a failure before the commit leaves
    neither the new customer nor the device update behind.
    """

    with _store_errors(db):
        customer = get_or_create_customer(db, customer_info)
        device.exit_date = exit_date
        device.removal_reason = reason
        device.customer_id = customer.id
        db.commit()


def return_device_row(db: Session, device: Device) -> None:
    with _store_errors(db):
        device.exit_date = None
        device.removal_reason = None
        device.customer_id = None
        db.commit()


__all__ = [
    "checkout_device_row",
    "existing_serials",
    "get_device_row",
    "get_device_rows",
    "get_or_create_customer",
    "get_or_create_model",
    "insert_devices",
    "list_device_rows",
    "return_device_row",
]
