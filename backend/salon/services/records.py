# Overview: Canonical transaction record and the storage-boundary field mapping.

"""
Transaction records

WHY: Two generations of the backend and several client versions wrote the
same fact under different keys ("cost" vs "amount", "customer" vs
"customerName", "payment" vs "paymentMethod"). Everything is canonicalized
here, once, so the reporting code never branches on key variants.

STORAGE LAYOUT: one row per completed checkout, 13 cells in HEADER_LABELS
order. Rows written by older code may be shorter; missing cells read as
empty.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

UNKNOWN_WORKER = "Unknown Worker"

PAYMENT_CASH = "Cash"
PAYMENT_CARD = "Card"

# Canonical field -> column label, in storage order.
FIELD_ORDER: tuple[str, ...] = (
    "id",
    "date",
    "customer_name",
    "service",
    "worker",
    "amount",
    "tip",
    "payment_method",
    "notes",
    "phone",
    "category",
    "created_at",
    "updated_at",
)

HEADER_LABELS: tuple[str, ...] = (
    "ID",
    "Date",
    "Customer_Name",
    "Service",
    "Worker",
    "Amount",
    "Tip",
    "Payment_Method",
    "Notes",
    "Phone",
    "Category",
    "Created_At",
    "Updated_At",
)

COLUMN_INDEX: dict[str, int] = {name: i for i, name in enumerate(FIELD_ORDER)}

# Every key variant seen in stored rows and client payloads. The first
# alias present in a mapping wins, so canonical spellings come first.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "ID", "Id", "transaction_id", "transactionId"),
    "date": ("date", "Date"),
    "customer_name": ("customer_name", "customerName", "customer", "Customer", "Customer_Name"),
    "service": ("service", "Service", "Service_Type", "serviceType"),
    "worker": ("worker", "Worker", "Worker_Name", "workerName"),
    "amount": ("amount", "Amount", "cost", "Cost", "Service_Cost"),
    "tip": ("tip", "Tip"),
    "payment_method": ("payment_method", "paymentMethod", "payment", "Payment", "Payment_Method"),
    "notes": ("notes", "Notes"),
    "phone": ("phone", "Phone"),
    "category": ("category", "Category"),
    "created_at": ("created_at", "createdAt", "createdat", "Created_At"),
    "updated_at": ("updated_at", "updatedAt", "updatedat", "Updated_At"),
    "timestamp": ("timestamp", "Timestamp"),
}

ALIAS_TO_FIELD: dict[str, str] = {
    alias: field_name
    for field_name, aliases in FIELD_ALIASES.items()
    for alias in aliases
}

_NUMERIC_FIELDS = {"amount", "tip"}


def coerce_money(value: Any) -> Decimal:
    """
    Read a stored amount as a non-negative Decimal.

    Anything that is not a finite, non-negative number (None, "", "abc",
    NaN, -5, True) reads as 0. Never raises.
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            return Decimal(0)
        number = Decimal(str(value))
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return Decimal(0)
    else:
        return Decimal(0)

    if not number.is_finite() or number < 0:
        return Decimal(0)
    return number


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _cell(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


@dataclass(frozen=True)
class TransactionRecord:
    """
    One completed service sale.

    amount and tip keep whatever the store held; use coerce_money() to
    read them as numbers.
    """

    id: str = ""
    date: str = ""
    customer_name: str = ""
    service: str = ""
    worker: str = ""
    amount: Any = 0
    tip: Any = 0
    payment_method: str = ""
    notes: str = ""
    phone: str = ""
    category: str = ""
    created_at: str = ""
    updated_at: str = ""
    # Legacy clients sent only a client-side timestamp.
    timestamp: str = ""

    @property
    def worker_label(self) -> str:
        return self.worker or UNKNOWN_WORKER

    @property
    def amount_value(self) -> Decimal:
        return coerce_money(self.amount)

    @property
    def tip_value(self) -> Decimal:
        return coerce_money(self.tip)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TransactionRecord":
        """Build a record from any historical key spelling."""
        values: dict[str, Any] = {}
        for field_name, aliases in FIELD_ALIASES.items():
            for alias in aliases:
                if alias in data and data[alias] is not None:
                    values[field_name] = data[alias]
                    break

        kwargs: dict[str, Any] = {}
        for field_name, raw in values.items():
            if field_name in _NUMERIC_FIELDS:
                kwargs[field_name] = raw.strip() if isinstance(raw, str) else raw
            else:
                kwargs[field_name] = _text(raw)
        return cls(**kwargs)

    @classmethod
    def from_row(cls, cells: list[Any] | tuple[Any, ...]) -> "TransactionRecord":
        """Build a record from one storage row (short rows are padded)."""
        padded = list(cells) + [""] * (len(FIELD_ORDER) - len(cells))
        kwargs: dict[str, Any] = {}
        for field_name, raw in zip(FIELD_ORDER, padded):
            if field_name in _NUMERIC_FIELDS:
                kwargs[field_name] = 0 if raw in (None, "") else raw
            else:
                kwargs[field_name] = _text(raw)
        return cls(**kwargs)

    def to_row(self) -> list[Any]:
        return [_cell(getattr(self, name)) for name in FIELD_ORDER]

    def with_changes(self, **changes: Any) -> "TransactionRecord":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        data = {f.name: _cell(getattr(self, f.name)) for f in fields(self)}
        if not data["timestamp"]:
            data.pop("timestamp")
        return data


def canonical_patch(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Map a partial payload onto canonical field names.

    Unknown keys are dropped; None values are dropped (a patch never
    clears a field by sending null).
    """
    patch: dict[str, Any] = {}
    for key, value in data.items():
        field_name = ALIAS_TO_FIELD.get(key)
        if field_name is None or value is None or field_name in patch:
            continue
        if field_name in _NUMERIC_FIELDS:
            patch[field_name] = value.strip() if isinstance(value, str) else value
        else:
            patch[field_name] = _text(value)
    return patch
