# Overview: Service-layer operations for workers and the service price list.

"""
Catalog Service

WHY: The till offers a fixed menu of services (grouped by category) and a
list of workers to attribute them to. Both are reference data: a sale
copies the worker's name and the service name into its row, so editing or
removing catalog entries never rewrites recorded transactions.

DESIGN:
- Prices are stored in cents; callers pass and receive currency units
- A worker email, when given, is unique
- A service name is unique within its category
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from ..extensions import db
from ..models import ServiceItem, Worker
from salon.validation import ConflictError, ValidationError, parse_money

WORKER_STATUSES = ("Active", "Inactive")

DEFAULT_SERVICES: dict[str, dict[str, int]] = {
    "Hair Services": {
        "Basic Hair Cut": 15,
        "Premium Hair Cut": 25,
        "Hair Styling": 20,
        "Hair Wash & Blow Dry": 12,
        "Hair Coloring": 45,
        "Hair Treatment": 35,
        "Highlights": 60,
    },
    "Shaving Services": {
        "Basic Shave": 8,
        "Premium Shave": 15,
        "Beard Trim": 10,
        "Mustache Trim": 5,
    },
    "Facial Services": {
        "Basic Facial": 25,
        "Deep Cleansing Facial": 40,
        "Anti-Aging Facial": 50,
    },
}


class WorkerNotFoundError(Exception):
    """Raised when a worker is not found."""
    pass


class ServiceNotFoundError(Exception):
    """Raised when a price list entry is not found."""
    pass


class CatalogValidationError(Exception):
    """Raised when worker or service data fails validation."""
    pass


def _to_cents(value: Any) -> int:
    try:
        amount = parse_money("cost", value, allow_zero=False)
    except ValidationError as e:
        raise CatalogValidationError(str(e))
    return int((amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


# ----------------------------------------------------------------------
# Workers


def list_workers(*, active_only: bool = False) -> list[Worker]:
    query = db.session.query(Worker)
    if active_only:
        query = query.filter(Worker.status == "Active")
    return query.order_by(Worker.name.asc(), Worker.id.asc()).all()


def get_worker(worker_id: int) -> Worker:
    worker = db.session.query(Worker).filter_by(id=worker_id).first()
    if not worker:
        raise WorkerNotFoundError(f"Worker {worker_id} not found")
    return worker


def _check_email_free(email: str | None, *, exclude_id: int | None = None) -> None:
    if not email:
        return
    query = db.session.query(Worker).filter(Worker.email == email)
    if exclude_id is not None:
        query = query.filter(Worker.id != exclude_id)
    if query.first():
        raise ConflictError(f"A worker with email '{email}' already exists")


def create_worker(
    *,
    name: str,
    email: str | None = None,
    phone: str | None = None,
    role: str | None = None,
    status: str = "Active",
) -> Worker:
    """
    Add a worker.

    Raises:
        CatalogValidationError: name missing or status unknown
        ConflictError: email already used by another worker
    """
    name = _clean(name)
    if not name:
        raise CatalogValidationError("Worker name is required")
    if status not in WORKER_STATUSES:
        raise CatalogValidationError(f"status must be one of {', '.join(WORKER_STATUSES)}")

    email = _clean(email)
    if email:
        email = email.lower()
    _check_email_free(email)

    worker = Worker(
        name=name,
        email=email,
        phone=_clean(phone),
        role=_clean(role) or "Worker",
        status=status,
    )
    db.session.add(worker)
    db.session.commit()
    return worker


def update_worker(worker_id: int, **changes: Any) -> Worker:
    """Apply the provided fields (name, email, phone, role, status)."""
    worker = get_worker(worker_id)

    if "name" in changes:
        name = _clean(changes["name"])
        if not name:
            raise CatalogValidationError("Worker name cannot be empty")
        worker.name = name
    if "email" in changes:
        email = _clean(changes["email"])
        if email:
            email = email.lower()
        _check_email_free(email, exclude_id=worker.id)
        worker.email = email
    if "phone" in changes:
        worker.phone = _clean(changes["phone"])
    if "role" in changes:
        worker.role = _clean(changes["role"]) or "Worker"
    if "status" in changes:
        if changes["status"] not in WORKER_STATUSES:
            raise CatalogValidationError(f"status must be one of {', '.join(WORKER_STATUSES)}")
        worker.status = changes["status"]

    db.session.commit()
    return worker


def delete_worker(worker_id: int) -> None:
    worker = get_worker(worker_id)
    db.session.delete(worker)
    db.session.commit()


# ----------------------------------------------------------------------
# Service price list


def list_services(*, include_inactive: bool = False) -> list[ServiceItem]:
    query = db.session.query(ServiceItem)
    if not include_inactive:
        query = query.filter(ServiceItem.is_active.is_(True))
    return query.order_by(ServiceItem.category.asc(), ServiceItem.name.asc()).all()


def get_service(service_id: int) -> ServiceItem:
    item = db.session.query(ServiceItem).filter_by(id=service_id).first()
    if not item:
        raise ServiceNotFoundError(f"Service {service_id} not found")
    return item


def _check_name_free(category: str, name: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(ServiceItem).filter(
        ServiceItem.category == category,
        ServiceItem.name == name,
    )
    if exclude_id is not None:
        query = query.filter(ServiceItem.id != exclude_id)
    if query.first():
        raise ConflictError(f"Service '{name}' already exists in '{category}'")


def create_service(*, category: str, name: str, cost: Any) -> ServiceItem:
    """
    Add a price list entry.

    Raises:
        CatalogValidationError: missing category/name or cost not > 0
        ConflictError: same name already listed in the category
    """
    category = _clean(category)
    name = _clean(name)
    if not category:
        raise CatalogValidationError("category is required")
    if not name:
        raise CatalogValidationError("name is required")
    cost_cents = _to_cents(cost)
    _check_name_free(category, name)

    item = ServiceItem(category=category, name=name, cost_cents=cost_cents, is_active=True)
    db.session.add(item)
    db.session.commit()
    return item


def update_service(service_id: int, **changes: Any) -> ServiceItem:
    item = get_service(service_id)

    category = _clean(changes["category"]) if "category" in changes else item.category
    name = _clean(changes["name"]) if "name" in changes else item.name
    if not category:
        raise CatalogValidationError("category cannot be empty")
    if not name:
        raise CatalogValidationError("name cannot be empty")
    if (category, name) != (item.category, item.name):
        _check_name_free(category, name, exclude_id=item.id)

    item.category = category
    item.name = name
    if "cost" in changes:
        item.cost_cents = _to_cents(changes["cost"])
    if "is_active" in changes:
        item.is_active = bool(changes["is_active"])

    db.session.commit()
    return item


def delete_service(service_id: int) -> None:
    item = get_service(service_id)
    db.session.delete(item)
    db.session.commit()


def service_menu() -> dict[str, dict[str, float | int]]:
    """Active services as {category: {name: cost}}, what the till renders."""
    menu: dict[str, dict[str, float | int]] = {}
    for item in list_services():
        cost = item.cost_cents // 100 if item.cost_cents % 100 == 0 else item.cost
        menu.setdefault(item.category, {})[item.name] = cost
    return menu


def seed_default_services() -> int:
    """Insert the default price list entries that are missing. Returns how many were added."""
    existing = {
        (item.category, item.name)
        for item in db.session.query(ServiceItem).all()
    }
    added = 0
    for category, services in DEFAULT_SERVICES.items():
        for name, cost in services.items():
            if (category, name) in existing:
                continue
            db.session.add(ServiceItem(category=category, name=name, cost_cents=cost * 100, is_active=True))
            added += 1
    if added:
        db.session.commit()
    return added
