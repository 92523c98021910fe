"""
API tests through the Flask test client against the SQL-backed log.
"""

from salon.extensions import db
from salon.models import SheetRow
from salon.services.records import HEADER_LABELS
from salon.services.transaction_log import SqlTransactionLog


def _seed_rows(*rows, header=True):
    log = SqlTransactionLog("Transactions")
    if header:
        log.append_row(list(HEADER_LABELS))
    for row in rows:
        log.append_row(row)
    return log


def _row(txn_id, date="01/06/2024", worker="Maria", amount=10, payment="Cash"):
    return [txn_id, date, "", "Shave", worker, amount, 0, payment, "", "", "", "", ""]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["checks"]["database"]["status"] == "healthy"


def test_health_reports_missing_header_as_degraded(client):
    _seed_rows(_row("TXN-1"), header=False)
    data = client.get("/health").get_json()
    assert data["status"] == "degraded"
    assert data["checks"]["transaction_log"]["details"]["has_header"] is False


def test_create_and_list_transactions(client):
    response = client.post("/api/transactions", json={
        "service": "Basic Hair Cut",
        "cost": 15,
        "worker": "Maria",
        "paymentMethod": "Cash",
        "date": "01/06/2024",
    })
    assert response.status_code == 201
    created = response.get_json()
    assert created["id"].startswith("TXN-")
    assert created["amount"] == 15
    assert created["created_at"].endswith("Z")

    listed = client.get("/api/transactions?date=01/06/2024").get_json()
    assert listed["count"] == 1
    assert listed["items"][0]["id"] == created["id"]


def test_create_replay_returns_200(client):
    payload = {"id": "TXN-offline-7", "service": "Shave", "amount": 8}
    assert client.post("/api/transactions", json=payload).status_code == 201
    again = client.post("/api/transactions", json=payload)
    assert again.status_code == 200
    assert db.session.query(SheetRow).count() == 1


def test_create_checkout(client):
    response = client.post("/api/transactions", json={
        "worker": "Sam",
        "payment_method": "Card",
        "services": [
            {"name": "Basic Shave", "cost": 8, "category": "Shaving Services"},
            {"name": "Basic Facial", "cost": 25, "category": "Facial Services"},
        ],
    })
    assert response.status_code == 201
    data = response.get_json()
    assert data["service"] == "Basic Shave, Basic Facial"
    assert data["amount"] == 33


def test_create_validation_errors(client):
    assert client.post("/api/transactions", json={"amount": 5}).status_code == 400
    assert client.post("/api/transactions", data="nope", content_type="text/plain").status_code == 400
    assert client.post("/api/transactions", json={"service": "x", "amount": "ten"}).status_code == 400


def test_update_transaction(client):
    _seed_rows(_row("TXN-1"))
    response = client.patch("/api/transactions/TXN-1", json={"amount": 40, "notes": "price corrected"})
    assert response.status_code == 200
    data = response.get_json()
    assert data["amount"] == 40
    assert data["notes"] == "price corrected"

    assert client.patch("/api/transactions/TXN-404", json={"amount": 1}).status_code == 404
    assert client.patch("/api/transactions/TXN-1", json={"created_at": "x"}).status_code == 400


def test_delete_by_id_and_index(client):
    _seed_rows(_row("TXN-1"), _row("TXN-2"), _row("TXN-3"))

    assert client.delete("/api/transactions/TXN-2").status_code == 200
    assert client.delete("/api/transactions/TXN-2").status_code == 404

    # Data index 1 is now TXN-3
    assert client.delete("/api/transactions/by-index/1?expected_id=TXN-2").status_code == 409
    assert client.delete("/api/transactions/by-index/5").status_code == 400
    assert client.delete("/api/transactions/by-index/1?expected_id=TXN-3").status_code == 200

    ids = [item["id"] for item in client.get("/api/transactions").get_json()["items"]]
    assert ids == ["TXN-1"]
    rows = SqlTransactionLog("Transactions").read_rows()
    assert rows[0] == list(HEADER_LABELS)
    assert [r[0] for r in rows[1:]] == ["TXN-1"]


def test_backfill_and_headers(client):
    _seed_rows(_row(""), _row("TXN-2"), header=False)

    assert client.post("/api/transactions/headers").get_json() == {"added": True}
    assert client.post("/api/transactions/headers").get_json() == {"added": False}

    result = client.post("/api/transactions/backfill-ids").get_json()
    assert result["updated_count"] == 1
    assert result["total_transactions"] == 2
    assert result["partial"] is False

    again = client.post("/api/transactions/backfill-ids").get_json()
    assert again["updated_count"] == 0


def test_daily_and_sales_reports(client):
    _seed_rows(
        _row("TXN-1", amount=50),
        _row("TXN-2", amount=30, payment="Card"),
        _row("TXN-3", date="02/06/2024", worker="Sam", amount=20),
    )

    daily = client.get("/api/reports/daily?date=2024-06-01").get_json()
    assert daily["date"] == "01/06/2024"
    assert daily["total_sales"] == 80
    assert daily["cash_total"] == 50
    assert daily["card_total"] == 30
    assert daily["worker_stats"]["Maria"]["count"] == 2

    overall = client.get("/api/reports/sales").get_json()
    assert overall["total_sales"] == 100
    assert overall["transaction_count"] == 3

    slim = client.get("/api/reports/daily?date=01/06/2024&include_transactions=false").get_json()
    assert "transactions" not in slim["worker_stats"]["Maria"]

    assert client.get("/api/reports/daily?date=whenever").status_code == 400


def test_daily_report_defaults_to_today(client):
    data = client.get("/api/reports/daily").get_json()
    assert data["transaction_count"] == 0
    assert data["date"]


def test_range_report(client):
    _seed_rows(_row("TXN-1", amount=5), _row("TXN-2", date="03/06/2024", amount=7))

    data = client.get("/api/reports/range?start=01/06/2024&end=03/06/2024").get_json()
    assert data["summary"]["total_sales"] == 12
    assert [day["date"] for day in data["days"]] == ["01/06/2024", "03/06/2024"]

    assert client.get("/api/reports/range?start=03/06/2024&end=01/06/2024").status_code == 400
    assert client.get("/api/reports/range?start=01/06/2024").status_code == 400


def test_worker_crud(client):
    response = client.post("/api/workers", json={"name": "Maria", "email": "Maria@Salon.test", "role": "Senior Stylist"})
    assert response.status_code == 201
    worker = response.get_json()
    assert worker["email"] == "maria@salon.test"

    assert client.post("/api/workers", json={"name": "Other", "email": "maria@salon.test"}).status_code == 409
    assert client.post("/api/workers", json={"email": "x@salon.test"}).status_code == 400

    updated = client.patch(f"/api/workers/{worker['id']}", json={"status": "Inactive"}).get_json()
    assert updated["status"] == "Inactive"
    assert client.get("/api/workers?active_only=true").get_json()["count"] == 0

    assert client.delete(f"/api/workers/{worker['id']}").status_code == 200
    assert client.delete(f"/api/workers/{worker['id']}").status_code == 404


def test_service_price_list(client):
    response = client.post("/api/services", json={"category": "Hair Services", "name": "Basic Hair Cut", "cost": 15})
    assert response.status_code == 201
    item = response.get_json()
    assert item["cost_cents"] == 1500

    assert client.post("/api/services", json={"category": "Hair Services", "name": "Basic Hair Cut", "cost": 20}).status_code == 409
    assert client.post("/api/services", json={"category": "Hair Services", "name": "Free", "cost": 0}).status_code == 400

    client.post("/api/services", json={"category": "Shaving Services", "name": "Beard Trim", "cost": "7.50"})
    menu = client.get("/api/services/menu").get_json()
    assert menu == {"Hair Services": {"Basic Hair Cut": 15}, "Shaving Services": {"Beard Trim": 7.5}}

    assert client.patch(f"/api/services/{item['id']}", json={"is_active": False}).status_code == 200
    assert "Hair Services" not in client.get("/api/services/menu").get_json()
    assert client.get("/api/services?include_inactive=true").get_json()["count"] == 2

    assert client.delete(f"/api/services/{item['id']}").status_code == 200
    assert client.patch(f"/api/services/{item['id']}", json={"cost": 1}).status_code == 404
