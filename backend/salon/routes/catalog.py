# Overview: Flask API routes for workers and the service price list; parses input and returns JSON responses.

"""
Catalog Routes

Workers and price list entries are reference data for the till. Deleting
either never touches recorded transactions, which keep the names they
were sold under.
"""

from flask import Blueprint, current_app, jsonify, request

from ..services import catalog_service
from ..services.catalog_service import (
    CatalogValidationError,
    ServiceNotFoundError,
    WorkerNotFoundError,
)
from ..validation import ConflictError


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")

WORKER_FIELDS = ("name", "email", "phone", "role", "status")
SERVICE_FIELDS = ("category", "name", "cost", "is_active")


def _json_body():
    data = request.get_json(silent=True)
    if data is None or not isinstance(data, dict):
        return None
    return data


# ----------------------------------------------------------------------
# Workers


@catalog_bp.get("/workers")
def list_workers_route():
    """
    Query parameters:
    - active_only: only workers with status Active (default: false)
    """
    active_only = request.args.get("active_only", "false").lower() == "true"
    workers = catalog_service.list_workers(active_only=active_only)
    return jsonify({
        "items": [w.to_dict() for w in workers],
        "count": len(workers),
    })


@catalog_bp.post("/workers")
def create_worker_route():
    data = _json_body()
    if data is None:
        return jsonify({"error": "Invalid JSON payload"}), 400
    if not data.get("name"):
        return jsonify({"error": "name is required"}), 400

    try:
        worker = catalog_service.create_worker(
            name=data.get("name"),
            email=data.get("email"),
            phone=data.get("phone"),
            role=data.get("role"),
            status=data.get("status", "Active"),
        )
        return jsonify(worker.to_dict()), 201
    except CatalogValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create worker")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.patch("/workers/<int:worker_id>")
def update_worker_route(worker_id: int):
    data = _json_body()
    if data is None:
        return jsonify({"error": "Invalid JSON payload"}), 400

    changes = {key: data[key] for key in WORKER_FIELDS if key in data}
    try:
        worker = catalog_service.update_worker(worker_id, **changes)
        return jsonify(worker.to_dict())
    except WorkerNotFoundError:
        return jsonify({"error": "Worker not found"}), 404
    except CatalogValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409


@catalog_bp.delete("/workers/<int:worker_id>")
def delete_worker_route(worker_id: int):
    try:
        catalog_service.delete_worker(worker_id)
    except WorkerNotFoundError:
        return jsonify({"error": "Worker not found"}), 404
    return jsonify({"deleted": worker_id})


# ----------------------------------------------------------------------
# Service price list


@catalog_bp.get("/services")
def list_services_route():
    """
    Query parameters:
    - include_inactive: include retired entries (default: false)
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    items = catalog_service.list_services(include_inactive=include_inactive)
    return jsonify({
        "items": [s.to_dict() for s in items],
        "count": len(items),
    })


@catalog_bp.get("/services/menu")
def service_menu_route():
    """Active services as {category: {name: cost}}."""
    return jsonify(catalog_service.service_menu())


@catalog_bp.post("/services")
def create_service_route():
    """
    Request body:
    {
        "category": "Hair Services",  // required
        "name": "Basic Hair Cut",     // required
        "cost": 15                    // required, > 0
    }
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        item = catalog_service.create_service(
            category=data.get("category"),
            name=data.get("name"),
            cost=data.get("cost"),
        )
        return jsonify(item.to_dict()), 201
    except CatalogValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create service")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.patch("/services/<int:service_id>")
def update_service_route(service_id: int):
    data = _json_body()
    if data is None:
        return jsonify({"error": "Invalid JSON payload"}), 400

    changes = {key: data[key] for key in SERVICE_FIELDS if key in data}
    try:
        item = catalog_service.update_service(service_id, **changes)
        return jsonify(item.to_dict())
    except ServiceNotFoundError:
        return jsonify({"error": "Service not found"}), 404
    except CatalogValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409


@catalog_bp.delete("/services/<int:service_id>")
def delete_service_route(service_id: int):
    try:
        catalog_service.delete_service(service_id)
    except ServiceNotFoundError:
        return jsonify({"error": "Service not found"}), 404
    return jsonify({"deleted": service_id})
