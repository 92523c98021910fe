# Overview: Health endpoint covering the database and the transaction log.

"""
System health endpoint.

Reports database connectivity and the state of the transaction log
(row count, whether a header row is present) for deployment debugging.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import ServiceItem, Worker
from ..services.log_layout import data_start_index
from ..services.transaction_log import SqlTransactionLog
from salon.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a couple of cheap counts.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        worker_count = db.session.query(Worker).count()
        service_count = db.session.query(ServiceItem).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "workers": worker_count,
                "services": service_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_transaction_log_health() -> dict:
    """
    A log without a header row is still usable, so that is reported as
    degraded rather than unhealthy.
    """
    start_time = time.time()
    try:
        log = SqlTransactionLog(current_app.config["TRANSACTIONS_SHEET"])
        rows = log.read_rows()
        has_header = data_start_index(rows) == 1
        elapsed_ms = (time.time() - start_time) * 1000

        result = {
            "status": "healthy" if has_header or not rows else "degraded",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "sheet": log.name,
                "rows": len(rows),
                "has_header": has_header,
            }
        }
        if result["status"] == "degraded":
            result["warning"] = "Transaction log has no header row"
        return result
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Transaction log health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Transaction log error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (still operational)
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    log_health = check_transaction_log_health()

    all_checks = [database_health, log_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    return {
        "status": overall_status,
        "salon": current_app.config["SALON_NAME"],
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "transaction_log": log_health,
        }
    }, http_status
