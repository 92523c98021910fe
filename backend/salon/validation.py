from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from salon.services.records import FIELD_ORDER, canonical_patch


# Maximum amount for a single checkout: 9,999,999.99
MAX_AMOUNT = Decimal("9999999.99")

MAX_TEXT_LENGTHS = {
    "id": 64,
    "date": 32,
    "customer_name": 120,
    "service": 500,
    "worker": 120,
    "payment_method": 32,
    "notes": 1000,
    "phone": 32,
    "category": 255,
}

# Server-assigned; clients may not set them on update
IMMUTABLE_FIELDS = {"id", "created_at"}


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate service name)."""


def parse_money(field_name: str, value: Any, *, allow_zero: bool = True) -> Decimal:
    """
    Strict money parsing for writes.

    Reads are lenient (bad stored amounts count as 0); writes are not:
    a new or corrected amount must be a finite, non-negative number.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(f"{field_name} must be a finite number")
    if isinstance(value, (int, float, Decimal)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field_name} must be a number")
        try:
            number = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field_name} must be a number")
    else:
        raise ValidationError(f"{field_name} must be a number")

    if not number.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")
    if number < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    if not allow_zero and number == 0:
        raise ValidationError(f"{field_name} must be > 0")
    if number > MAX_AMOUNT:
        raise ValidationError(f"{field_name} cannot exceed {MAX_AMOUNT:,}")
    return number


def _check_lengths(patch: dict) -> None:
    for key, value in patch.items():
        limit = MAX_TEXT_LENGTHS.get(key)
        if limit and isinstance(value, str) and len(value) > limit:
            raise ValidationError(f"{key} exceeds max length {limit}")


def validate_transaction_payload(payload: Mapping[str, Any] | None, *, partial: bool) -> dict:
    """
    Validates + normalizes an incoming transaction payload.

    Accepts any historical key spelling and returns a patch keyed by
    canonical field names; unknown keys are ignored.

    partial=False: create semantics (service required, amount defaults to 0)
    partial=True: update semantics (validate only provided keys; id and
    created_at are rejected)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise ValidationError("Invalid JSON payload")

    patch = canonical_patch(payload)

    if partial:
        patch.pop("timestamp", None)
        blocked = sorted(IMMUTABLE_FIELDS & set(patch))
        if blocked:
            raise ValidationError(f"Field not allowed: {', '.join(blocked)}")
        patch.pop("updated_at", None)
    else:
        patch.pop("created_at", None)
        patch.pop("updated_at", None)
        if not patch.get("service"):
            raise ValidationError("service is required")
        patch.setdefault("amount", 0)
        patch.setdefault("tip", 0)

    for money_field in ("amount", "tip"):
        if money_field in patch:
            patch[money_field] = parse_money(money_field, patch[money_field])

    if partial and "service" in patch and not patch["service"]:
        raise ValidationError("service cannot be blank")

    _check_lengths(patch)
    return {key: patch[key] for key in (*FIELD_ORDER, "timestamp") if key in patch}


def validate_service_lines(lines: Any) -> list[dict]:
    """
    Validate the services picked for one checkout.

    Each line needs a name and a non-negative cost; category is optional.
    """
    if not isinstance(lines, list) or not lines:
        raise ValidationError("services must be a non-empty list")

    cleaned = []
    for i, line in enumerate(lines):
        if not isinstance(line, Mapping):
            raise ValidationError(f"services[{i}] must be an object")
        name = str(line.get("name") or line.get("service") or "").strip()
        if not name:
            raise ValidationError(f"services[{i}].name is required")
        cost = parse_money(f"services[{i}].cost", line.get("cost", line.get("amount")))
        category = str(line.get("category") or "").strip()
        cleaned.append({"name": name, "cost": cost, "category": category})
    return cleaned
