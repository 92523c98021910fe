# Overview: Flask API routes for the transaction ledger; parses input and returns JSON responses.

"""
Transaction Routes

Records are addressed by transaction ID. DELETE /by-index/<n> exists for
rows written before IDs were assigned; pass ?expected_id= with the ID seen
at that index so a row that has since moved is refused with 409.

Replays: POSTing a record whose ID is already in the log returns the
stored record with 200 instead of 201, so offline tills can resend safely.
"""

from flask import Blueprint, current_app, jsonify, request

from ..services.aggregation_service import ReportError
from ..services.ledger_service import MutationStatus, current_ledger
from ..services.transaction_log import StorageError
from ..validation import ValidationError


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def storage_unavailable(action: str):
    current_app.logger.exception("Transaction log unavailable during %s", action)
    return jsonify({"error": "Transaction storage unavailable, try again later"}), 503


@transactions_bp.get("")
def list_transactions_route():
    """
    Query parameters:
    - date: any recognized date form; omitted lists every record
    """
    date = request.args.get("date")
    try:
        records = current_ledger().list_transactions(date)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        return storage_unavailable("list")

    return jsonify({
        "items": [r.to_dict() for r in records],
        "count": len(records),
    })


@transactions_bp.post("")
def create_transaction_route():
    """
    Record one sale.

    Request body (any historical key spelling is accepted):
    {
        "service": "Basic Hair Cut",   // required unless services is given
        "amount": 15,
        "worker": "Maria",
        "payment_method": "Cash",
        "customer_name": "...", "phone": "...", "notes": "...",
        "category": "...", "tip": 0, "date": "01/06/2024",
        "id": "TXN-..."                // optional, client-assigned
        "services": [{"name": ..., "cost": ..., "category": ...}]  // optional checkout
    }

    Returns:
        201 with the stored record, or 200 when the ID was already recorded
    """
    data = request.get_json(silent=True)
    if data is None or not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    ledger = current_ledger()
    try:
        if "services" in data:
            record, created = ledger.create_checkout(data, data.get("services"))
        else:
            record, created = ledger.create_transaction(data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        return storage_unavailable("create")

    return jsonify(record.to_dict()), 201 if created else 200


@transactions_bp.get("/<txn_id>")
def get_transaction_route(txn_id: str):
    try:
        record = current_ledger().get_transaction(txn_id)
    except StorageError:
        return storage_unavailable("get")
    if record is None:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify(record.to_dict())


@transactions_bp.patch("/<txn_id>")
def update_transaction_route(txn_id: str):
    """
    Correct fields on one record. id and created_at cannot be changed.
    """
    data = request.get_json(silent=True)
    if data is None or not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    ledger = current_ledger()
    try:
        status = ledger.update_transaction(txn_id, data)
        if status is MutationStatus.NOT_FOUND:
            return jsonify({"error": "Transaction not found"}), 404
        record = ledger.get_transaction(txn_id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        return storage_unavailable("update")

    return jsonify(record.to_dict())


@transactions_bp.delete("/<txn_id>")
def delete_transaction_route(txn_id: str):
    try:
        status = current_ledger().delete_transaction(txn_id=txn_id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        return storage_unavailable("delete")

    if status is MutationStatus.NOT_FOUND:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify({"deleted": txn_id, "status": status.value})


@transactions_bp.delete("/by-index/<int:index>")
def delete_transaction_by_index_route(index: int):
    """
    Delete the index-th data row (0-based, header excluded).

    Query parameters:
    - expected_id: the ID the caller saw at that index; mismatch -> 409
    """
    expected_id = request.args.get("expected_id")
    try:
        status = current_ledger().delete_transaction(index=index, expected_id=expected_id)
    except StorageError:
        return storage_unavailable("delete by index")

    if status is MutationStatus.INVALID_INDEX:
        return jsonify({"error": f"Invalid row index: {index}"}), 400
    if status is MutationStatus.CONFLICT:
        return jsonify({"error": "Row at that index no longer matches expected_id"}), 409
    return jsonify({"deleted_index": index, "status": status.value})


@transactions_bp.post("/backfill-ids")
def backfill_ids_route():
    """Assign IDs to rows that have none. Partial failure is reported, not raised."""
    try:
        result = current_ledger().backfill_missing_ids()
    except StorageError:
        return storage_unavailable("backfill")
    return jsonify(result.to_dict())


@transactions_bp.post("/headers")
def add_headers_route():
    try:
        added = current_ledger().add_headers()
    except StorageError:
        return storage_unavailable("add headers")
    return jsonify({"added": added})
