from decimal import Decimal

import pytest

from salon.services.aggregation_service import (
    UNCATEGORIZED,
    ReportError,
    aggregate,
    aggregate_range,
    recent_transactions,
)
from salon.services.records import UNKNOWN_WORKER, TransactionRecord
from salon.time_utils import normalize_date_key


def txn(**fields):
    return TransactionRecord.from_mapping(fields)


@pytest.fixture
def june_records():
    return [
        txn(id="a", worker="Maria", amount=50, paymentMethod="Cash", date="01/06/2024"),
        txn(id="b", worker="Maria", amount=30, paymentMethod="Card", date="01/06/2024"),
        txn(id="c", worker="Sam", amount=20, paymentMethod="Cash", date="02/06/2024"),
    ]


def test_single_day_filter(june_records):
    result = aggregate(june_records, "01/06/2024")

    assert result.total_sales == 80
    assert result.transaction_count == 2
    assert result.cash_total == 50
    assert result.card_total == 30
    assert list(result.worker_stats) == ["Maria"]
    maria = result.worker_stats["Maria"]
    assert (maria.total, maria.count, maria.cash_total, maria.card_total) == (80, 2, 50, 30)
    assert [t.id for t in maria.transactions] == ["a", "b"]


def test_no_filter_keeps_everything(june_records):
    result = aggregate(june_records)

    assert result.total_sales == 100
    assert result.transaction_count == 3
    assert set(result.worker_stats) == {"Maria", "Sam"}
    assert result.date is None


def test_unparseable_amount_counts_as_zero_but_still_counts():
    result = aggregate([txn(worker="Maria", amount="abc", paymentMethod="Cash", date="01/06/2024")])

    assert result.total_sales == 0
    assert result.cash_total == 0
    assert result.transaction_count == 1


def test_aggregate_is_pure(june_records):
    before = [r.to_dict() for r in june_records]
    first = aggregate(june_records, "01/06/2024").to_dict()
    second = aggregate(june_records, "01/06/2024").to_dict()
    assert first == second
    assert [r.to_dict() for r in june_records] == before


def test_filter_uses_normalized_dates():
    records = [
        txn(id="iso", amount=10, date="2024-06-01"),
        txn(id="loose", amount=10, date="1/6/2024"),
        txn(id="other", amount=10, date="02/06/2024"),
        txn(id="junk", amount=10, date="sometime"),
    ]
    result = aggregate(records, "01/06/2024")
    kept = {t.id for stats in result.worker_stats.values() for t in stats.transactions}
    assert kept == {r.id for r in records if normalize_date_key(r.date) == "01/06/2024"}
    assert kept == {"iso", "loose"}


@pytest.mark.parametrize("day", ["01/06/2024", "15/06/2024", "28/06/2024", "01/01/2024"])
def test_partial_dates_never_land_on_a_real_day(day):
    records = [txn(id="vague", amount=40, date="June 2024"), txn(id="year", amount=5, date="2024")]
    result = aggregate(records, day)
    assert result.total_sales == 0
    assert result.transaction_count == 0


def test_worker_totals_add_up_to_total_sales():
    records = [
        txn(worker="Maria", amount=10),
        txn(worker="", amount="7.5"),
        txn(amount=2),
        txn(worker="Sam", amount="bad"),
    ]
    result = aggregate(records)
    assert result.total_sales == sum(w.total for w in result.worker_stats.values())
    assert result.worker_stats[UNKNOWN_WORKER].count == 2
    assert result.worker_stats[UNKNOWN_WORKER].total == Decimal("9.5")


def test_payment_buckets_are_exact_matches():
    records = [
        txn(amount=10, paymentMethod="Cash"),
        txn(amount=20, paymentMethod="card"),
        txn(amount=30, paymentMethod="Transfer"),
        txn(amount=40, paymentMethod="Card"),
    ]
    result = aggregate(records)
    assert result.cash_total == 10
    assert result.card_total == 40
    assert result.total_sales == 100
    assert result.cash_total + result.card_total <= result.total_sales


def test_negative_amounts_do_not_break_the_payment_bound():
    records = [txn(amount=10, paymentMethod="Cash"), txn(amount=-50, paymentMethod="Other")]
    result = aggregate(records)
    assert result.cash_total + result.card_total <= result.total_sales


def test_empty_input():
    result = aggregate([], "01/06/2024")
    data = result.to_dict()
    assert data["total_sales"] == 0
    assert data["transaction_count"] == 0
    assert data["cash_total"] == 0
    assert data["card_total"] == 0
    assert data["worker_stats"] == {}
    assert data["recent_transactions"] == []


def test_none_input_is_a_programmer_error():
    with pytest.raises(TypeError):
        aggregate(None)


def test_tips_are_reported_separately():
    result = aggregate([txn(worker="Maria", amount=50, tip=5), txn(worker="Maria", amount=20, tip="x")])
    assert result.total_sales == 70
    assert result.total_tips == 5
    assert result.worker_stats["Maria"].tips == 5


def test_recent_transactions_newest_first_and_limited():
    records = [
        txn(id=str(i), amount=1, createdAt=f"2024-06-01T10:0{i}:00Z")
        for i in range(7)
    ]
    recent = aggregate(records).recent_transactions
    assert [t.id for t in recent] == ["6", "5", "4", "3", "2"]


def test_recent_transactions_fall_back_to_client_timestamp():
    records = [
        txn(id="created", createdAt="2024-06-01T10:00:00Z"),
        txn(id="legacy", timestamp="2024-06-01T11:00:00Z"),
    ]
    assert [t.id for t in recent_transactions(records)] == ["legacy", "created"]


def test_recent_transactions_unparseable_sort_oldest_and_stable():
    records = [
        txn(id="junk1", createdAt="not a time"),
        txn(id="tie1", createdAt="2024-06-01T10:00:00Z"),
        txn(id="junk2"),
        txn(id="tie2", createdAt="2024-06-01T10:00:00Z"),
    ]
    assert [t.id for t in recent_transactions(records)] == ["tie1", "tie2", "junk1", "junk2"]


def test_category_stats():
    records = [
        txn(amount=15, category="Hair Services"),
        txn(amount=8, category="Shaving Services"),
        txn(amount=25, category="Hair Services,Shaving Services"),
        txn(amount=5),
    ]
    stats = aggregate(records).category_stats
    assert stats["Hair Services"].total == 15
    assert stats["Hair Services, Shaving Services"].count == 1
    assert stats[UNCATEGORIZED].total == 5


def test_to_dict_renders_whole_amounts_as_ints():
    data = aggregate([txn(worker="Maria", amount="12.50"), txn(worker="Maria", amount=10)]).to_dict()
    assert data["total_sales"] == 22.5
    assert data["worker_stats"]["Maria"]["count"] == 2
    assert "transactions" not in aggregate([txn(worker="Maria", amount=1)]).to_dict(False)["worker_stats"]["Maria"]


def test_aggregate_range(june_records):
    records = june_records + [txn(id="d", worker="Sam", amount=5, date="2024-06-03")]
    overall, per_day = aggregate_range(records, "01/06/2024", "02/06/2024")

    assert overall.total_sales == 100
    assert overall.transaction_count == 3
    assert list(per_day) == ["01/06/2024", "02/06/2024"]
    assert per_day["01/06/2024"].total_sales == 80
    assert per_day["02/06/2024"].worker_stats["Sam"].total == 20


def test_aggregate_range_orders_days_by_calendar():
    records = [txn(amount=1, date="01/07/2024"), txn(amount=1, date="30/06/2024")]
    _, per_day = aggregate_range(records, "01/06/2024", "31/07/2024")
    assert list(per_day) == ["30/06/2024", "01/07/2024"]


def test_aggregate_range_rejects_bad_bounds():
    with pytest.raises(ReportError):
        aggregate_range([], "02/06/2024", "01/06/2024")
    with pytest.raises(ReportError):
        aggregate_range([], "", "01/06/2024")
