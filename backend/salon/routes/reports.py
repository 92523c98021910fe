# Overview: Flask API routes for sales reports computed from the transaction log.

from flask import Blueprint, jsonify, request

from ..services.aggregation_service import ReportError
from ..services.transaction_log import StorageError
from ..services.ledger_service import current_ledger
from .transactions import storage_unavailable


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _include_transactions() -> bool:
    return request.args.get("include_transactions", "true").lower() == "true"


@reports_bp.get("/daily")
def daily_report():
    """
    Query parameters:
    - date: defaults to today in the salon's timezone
    - include_transactions: per-worker transaction lists (default: true)
    """
    try:
        result = current_ledger().daily_report(request.args.get("date"))
        return jsonify(result.to_dict(_include_transactions())), 200
    except ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except StorageError:
        return storage_unavailable("daily report")


@reports_bp.get("/sales")
def sales_report():
    """Like /daily, but without a date the whole log is aggregated."""
    try:
        result = current_ledger().sales_report(request.args.get("date"))
        return jsonify(result.to_dict(_include_transactions())), 200
    except ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except StorageError:
        return storage_unavailable("sales report")


@reports_bp.get("/range")
def range_report():
    start = request.args.get("start")
    end = request.args.get("end")
    if not start or not end:
        return jsonify({"error": "start and end are required"}), 400

    include_transactions = _include_transactions()
    try:
        overall, per_day = current_ledger().range_report(start, end)
    except ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except StorageError:
        return storage_unavailable("range report")

    return jsonify({
        "start": start,
        "end": end,
        "summary": overall.to_dict(include_transactions),
        # A list, so calendar order survives JSON key sorting
        "days": [day.to_dict(include_transactions) for day in per_day.values()],
    }), 200
