"""Shared removal reason constants and helpers."""

from __future__ import annotations

from typing import Literal

REASON_RENTAL = "rental"
REASON_LOAN = "loan"
REASON_SALE = "sale"
REASON_DEVELOPMENT = "development"

REMOVAL_REASON_CHOICES = (
    REASON_RENTAL,
    REASON_LOAN,
    REASON_SALE,
    REASON_DEVELOPMENT,
)

RemovalReason = Literal["rental", "loan", "sale", "development"]


def normalize_removal_reason(value: str | None) -> str | None:
    """Return a lowercase reason, or ``None`` when it is not a known choice."""

    cleaned = (value or "").strip().lower()
    return cleaned if cleaned in REMOVAL_REASON_CHOICES else None


__all__ = [
    "REASON_DEVELOPMENT",
    "REASON_LOAN",
    "REASON_RENTAL",
    "REASON_SALE",
    "REMOVAL_REASON_CHOICES",
    "RemovalReason",
    "normalize_removal_reason",
]
