# Overview: Daily and worker-level sales statistics computed from transaction records.

"""
Aggregation

WHY: Every report (dashboard, worker drill-down, end-of-day email) is a view
over the same raw log. Aggregates are never stored or updated
incrementally; each call recomputes from the records it is given, so an
edit or delete in the log is reflected the next time anyone asks.

RULES:
- total_sales is the sum of amounts only. Tips are tracked separately in
  total_tips so tip-outs stay distinct from service revenue.
- cash_total / card_total use an exact, case-sensitive match on "Cash" /
  "Card". Other payment methods count toward total_sales and
  transaction_count but neither bucket.
- A record with no worker is attributed to "Unknown Worker".
- A malformed amount counts as 0 but the record still counts.

The engine never reads the clock. Callers that want "today" compute the
key once and pass it in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from salon.time_utils import date_key_to_date, dates_match, normalize_date_key, parse_timestamp

from .records import PAYMENT_CARD, PAYMENT_CASH, TransactionRecord

RECENT_LIMIT = 5
UNCATEGORIZED = "Uncategorized"


class ReportError(Exception):
    """Raised when report parameters are unusable."""
    pass


def _money(value: Decimal) -> float | int:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


@dataclass
class WorkerStats:
    total: Decimal = Decimal(0)
    count: int = 0
    cash_total: Decimal = Decimal(0)
    card_total: Decimal = Decimal(0)
    tips: Decimal = Decimal(0)
    transactions: list[TransactionRecord] = field(default_factory=list)

    def to_dict(self, include_transactions: bool = True) -> dict:
        data = {
            "total": _money(self.total),
            "count": self.count,
            "cash_total": _money(self.cash_total),
            "card_total": _money(self.card_total),
            "tips": _money(self.tips),
        }
        if include_transactions:
            data["transactions"] = [t.to_dict() for t in self.transactions]
        return data


@dataclass
class CategoryStats:
    total: Decimal = Decimal(0)
    count: int = 0

    def to_dict(self) -> dict:
        return {"total": _money(self.total), "count": self.count}


@dataclass
class AggregateResult:
    date: Optional[str] = None
    total_sales: Decimal = Decimal(0)
    transaction_count: int = 0
    cash_total: Decimal = Decimal(0)
    card_total: Decimal = Decimal(0)
    total_tips: Decimal = Decimal(0)
    worker_stats: dict[str, WorkerStats] = field(default_factory=dict)
    category_stats: dict[str, CategoryStats] = field(default_factory=dict)
    recent_transactions: list[TransactionRecord] = field(default_factory=list)

    def to_dict(self, include_transactions: bool = True) -> dict:
        return {
            "date": self.date,
            "total_sales": _money(self.total_sales),
            "transaction_count": self.transaction_count,
            "cash_total": _money(self.cash_total),
            "card_total": _money(self.card_total),
            "total_tips": _money(self.total_tips),
            "worker_stats": {
                name: stats.to_dict(include_transactions)
                for name, stats in self.worker_stats.items()
            },
            "category_stats": {
                name: stats.to_dict() for name, stats in self.category_stats.items()
            },
            "recent_transactions": [t.to_dict() for t in self.recent_transactions],
        }


def _category_label(raw: str) -> str:
    parts = [part.strip() for part in (raw or "").split(",")]
    parts = [part for part in parts if part]
    return ", ".join(parts) if parts else UNCATEGORIZED


def _sort_instant(record: TransactionRecord) -> datetime:
    parsed = parse_timestamp(record.created_at) or parse_timestamp(record.timestamp)
    return parsed or datetime.min


def recent_transactions(records: list[TransactionRecord], limit: int = RECENT_LIMIT) -> list[TransactionRecord]:
    """
    Newest first by created_at, then the client timestamp.

    Records without a usable timestamp sort as oldest. The sort is
    stable, so ties keep their input order.
    """
    if limit <= 0:
        return []
    ordered = sorted(records, key=_sort_instant, reverse=True)
    return ordered[:limit]


def filter_by_date(
    records: Iterable[TransactionRecord],
    target_date_key: Optional[str],
    tz: str | None = None,
) -> list[TransactionRecord]:
    if target_date_key is None:
        return list(records)
    return [
        record for record in records
        if dates_match(normalize_date_key(record.date, tz), target_date_key)
    ]


def aggregate(
    records: Iterable[TransactionRecord],
    target_date_key: Optional[str] = None,
    *,
    recent_limit: int = RECENT_LIMIT,
    tz: str | None = None,
) -> AggregateResult:
    """
    Compute totals, worker and category breakdowns for one filter.

    target_date_key must already be a canonical DD/MM/YYYY key; None keeps
    every record. The input is never modified.
    """
    if records is None:
        raise TypeError("records must be an iterable of TransactionRecord")

    kept = filter_by_date(records, target_date_key, tz)
    result = AggregateResult(date=target_date_key, transaction_count=len(kept))

    for record in kept:
        amount = record.amount_value
        tip = record.tip_value
        is_cash = record.payment_method == PAYMENT_CASH
        is_card = record.payment_method == PAYMENT_CARD

        result.total_sales += amount
        result.total_tips += tip
        if is_cash:
            result.cash_total += amount
        elif is_card:
            result.card_total += amount

        worker = result.worker_stats.setdefault(record.worker_label, WorkerStats())
        worker.total += amount
        worker.count += 1
        worker.tips += tip
        if is_cash:
            worker.cash_total += amount
        elif is_card:
            worker.card_total += amount
        worker.transactions.append(record)

        category = result.category_stats.setdefault(_category_label(record.category), CategoryStats())
        category.total += amount
        category.count += 1

    result.recent_transactions = recent_transactions(kept, recent_limit)
    return result


def aggregate_range(
    records: Iterable[TransactionRecord],
    start_key: str,
    end_key: str,
    *,
    recent_limit: int = RECENT_LIMIT,
    tz: str | None = None,
) -> tuple[AggregateResult, dict[str, AggregateResult]]:
    """
    Aggregate an inclusive date range.

    Returns the aggregate over the whole range and one aggregate per day
    that has transactions, keyed by date key in calendar order. Records
    whose date cannot be normalized fall outside every range.
    """
    start = date_key_to_date(start_key)
    end = date_key_to_date(end_key)
    if start is None or end is None:
        raise ReportError("start and end must be DD/MM/YYYY dates")
    if start > end:
        raise ReportError("start must not be after end")

    in_range: list[TransactionRecord] = []
    days: dict[str, list[TransactionRecord]] = {}
    for record in records:
        key = normalize_date_key(record.date, tz)
        day = date_key_to_date(key)
        if day is None or not (start <= day <= end):
            continue
        in_range.append(record)
        days.setdefault(key, []).append(record)

    overall = aggregate(in_range, None, recent_limit=recent_limit, tz=tz)
    overall.date = None
    per_day = {
        key: aggregate(days[key], key, recent_limit=recent_limit, tz=tz)
        for key in sorted(days, key=date_key_to_date)
    }
    return overall, per_day
