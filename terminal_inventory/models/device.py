"""SQLAlchemy rows for terminals, their catalogue models and customers."""

from __future__ import annotations

from sqlalchemy import Column, Date, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class DeviceModelRow(Base):
    """Catalogue entry shared by every physical unit of the same model."""

    __tablename__ = "device_models"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, unique=True, index=True)


class Customer(Base):
    """External party a terminal is checked out to.

    Rows are looked up by the exact five-field tuple, so the same business
    with a different phone number is a separate customer.
    """

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, index=True)
    terminal_id = Column(Text, nullable=False, default="")
    email = Column(Text, nullable=False, default="")
    phone = Column(Text, nullable=False, default="")
    account_code = Column(Text, nullable=False, default="")


class Device(Base):
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, index=True)
    model_id = Column(Integer, ForeignKey("device_models.id"), nullable=False, index=True)
    serial_number = Column(Text, nullable=False, unique=True, index=True)
    entry_date = Column(Date, nullable=False)
    exit_date = Column(Date, nullable=True)
    removal_reason = Column(Text, nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)

    model = relationship("DeviceModelRow", lazy="joined")
    customer = relationship("Customer", lazy="joined")

    @property
    def model_name(self) -> str | None:
        return self.model.name if self.model else None


__all__ = ["Customer", "Device", "DeviceModelRow"]
