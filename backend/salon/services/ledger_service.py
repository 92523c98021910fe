# Overview: Service-layer operations for the transaction ledger; reads, writes and reports over one log.

"""
Ledger Service

WHY: The salon's sales history is a flat log of rows. This service is the
only code that turns rows into records and back, so header handling, ID
assignment and date normalization happen the same way on every path.

ADDRESSING: Updates and deletes locate rows by transaction ID whenever one
is given. Deleting by index is kept for rows that predate IDs; it re-reads
the log immediately before deleting, and callers can pass the ID they saw
at that index (expected_id) so a row that moved is refused, not deleted.

HOOKS: on_created callbacks run after a new row is committed (receipts,
notifications). Their failures are logged and never undo or fail the sale.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional

from flask import current_app

from salon.time_utils import normalize_date_key, to_utc_z, today_date_key
from salon.validation import ValidationError, validate_service_lines, validate_transaction_payload

from .aggregation_service import RECENT_LIMIT, AggregateResult, ReportError, aggregate, aggregate_range
from .concurrency import exclusive_log_access
from .identity_service import BackfillResult, backfill_missing_ids, new_id
from .log_layout import data_start_index, index_to_position, is_header_row
from .records import COLUMN_INDEX, FIELD_ORDER, HEADER_LABELS, TransactionRecord
from .transaction_log import SqlTransactionLog, TransactionLog

logger = logging.getLogger(__name__)

CreatedHook = Callable[[TransactionRecord], Any]


class MutationStatus(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    INVALID_INDEX = "invalid_index"
    CONFLICT = "conflict"


def bundle_services(lines: list[dict]) -> dict:
    """
    Collapse the services picked at one checkout into record fields.

    Names are joined with ", ", costs summed and distinct categories
    joined in the order they were first picked.
    """
    categories: list[str] = []
    for line in lines:
        if line["category"] and line["category"] not in categories:
            categories.append(line["category"])
    return {
        "service": ", ".join(line["name"] for line in lines),
        "amount": sum((line["cost"] for line in lines), Decimal(0)),
        "category": ", ".join(categories),
    }


class TransactionLedger:
    """Reads, writes and reports over one transaction log."""

    def __init__(
        self,
        log: TransactionLog,
        *,
        on_created: Iterable[CreatedHook] = (),
        recent_limit: int = RECENT_LIMIT,
        tz: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.log = log
        self.on_created = list(on_created)
        self.recent_limit = recent_limit
        self.tz = tz
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Reads

    def _records(self, rows: list[list[Any]]) -> list[TransactionRecord]:
        start = data_start_index(rows)
        return [TransactionRecord.from_row(row) for row in rows[start:]]

    def _find_position(self, rows: list[list[Any]], txn_id: str) -> Optional[int]:
        id_column = COLUMN_INDEX["id"]
        for position in range(data_start_index(rows), len(rows)):
            row = rows[position]
            if row and str(row[id_column]).strip() == txn_id:
                return position
        return None

    def list_transactions(self, date: str | None = None) -> list[TransactionRecord]:
        records = self._records(self.log.read_rows())
        if date is None:
            return records
        key = self.resolve_date_key(date)
        return [r for r in records if normalize_date_key(r.date, self.tz) == key]

    def get_transaction(self, txn_id: str) -> Optional[TransactionRecord]:
        txn_id = (txn_id or "").strip()
        if not txn_id:
            return None
        rows = self.log.read_rows()
        position = self._find_position(rows, txn_id)
        if position is None:
            return None
        return TransactionRecord.from_row(rows[position])

    def resolve_date_key(self, raw: str | None) -> str:
        """Normalize a caller's date, defaulting to today in the salon zone."""
        if raw is None or not str(raw).strip():
            return today_date_key(self.tz, now=self._clock())
        key = normalize_date_key(raw, self.tz)
        if not key:
            raise ReportError(f"Unrecognized date: {raw}")
        return key

    # ------------------------------------------------------------------
    # Writes

    def _stamp(self) -> str:
        return to_utc_z(self._clock())

    def create_transaction(self, payload: Mapping[str, Any]) -> tuple[TransactionRecord, bool]:
        """
        Append one sale. Returns (record, created).

        A payload carrying an ID that is already in the log is a replay
        (e.g. an offline till retrying): the stored record is returned
        with created=False and nothing is written.
        """
        fields = validate_transaction_payload(payload, partial=False)

        if fields.get("date"):
            key = normalize_date_key(fields["date"], self.tz)
            if not key:
                raise ValidationError("date must be a DD/MM/YYYY date")
            fields["date"] = key
        else:
            fields["date"] = today_date_key(self.tz, now=self._clock())

        stamp = self._stamp()
        fields["created_at"] = stamp
        fields["updated_at"] = stamp

        with exclusive_log_access(self.log.name):
            if fields.get("id"):
                rows = self.log.read_rows()
                position = self._find_position(rows, fields["id"])
                if position is not None:
                    logger.info("Transaction %s already recorded; skipping replay", fields["id"])
                    return TransactionRecord.from_row(rows[position]), False
            else:
                fields["id"] = new_id()

            record = TransactionRecord(**fields)
            self.log.append_row(record.to_row())

        self._run_created_hooks(record)
        return record, True

    def create_checkout(self, payload: Mapping[str, Any], services: Any) -> tuple[TransactionRecord, bool]:
        """One record for several services picked together."""
        lines = validate_service_lines(services)
        merged = {k: v for k, v in payload.items() if k != "services"}
        merged.update(bundle_services(lines))
        return self.create_transaction(merged)

    def _run_created_hooks(self, record: TransactionRecord) -> None:
        for hook in self.on_created:
            try:
                hook(record)
            except Exception:
                logger.exception("Post-commit hook %r failed for %s", hook, record.id)

    def update_transaction(self, txn_id: str, payload: Mapping[str, Any]) -> MutationStatus:
        """Apply a correction to the row carrying txn_id."""
        txn_id = (txn_id or "").strip()
        if not txn_id:
            raise ValidationError("id is required")

        patch = validate_transaction_payload(payload, partial=True)
        if "date" in patch:
            key = normalize_date_key(patch["date"], self.tz)
            if not key:
                raise ValidationError("date must be a DD/MM/YYYY date")
            patch["date"] = key

        with exclusive_log_access(self.log.name):
            rows = self.log.read_rows()
            position = self._find_position(rows, txn_id)
            if position is None:
                return MutationStatus.NOT_FOUND

            current = rows[position]
            record = TransactionRecord.from_row(current).with_changes(
                **patch, updated_at=self._stamp()
            )
            extra_cells = current[len(FIELD_ORDER):]
            self.log.write_row(position, record.to_row() + list(extra_cells))

        return MutationStatus.SUCCESS

    def delete_transaction(
        self,
        *,
        txn_id: str | None = None,
        index: int | None = None,
        expected_id: str | None = None,
    ) -> MutationStatus:
        """
        Remove one row by ID, or by 0-based data index.

        Index deletion skips the header row the same way every read does.
        With expected_id, the row found at that index must still carry it.
        """
        if txn_id is not None and str(txn_id).strip():
            txn_id = str(txn_id).strip()
            with exclusive_log_access(self.log.name):
                rows = self.log.read_rows()
                position = self._find_position(rows, txn_id)
                if position is None:
                    return MutationStatus.NOT_FOUND
                self.log.delete_row(position)
            return MutationStatus.SUCCESS

        if index is None:
            raise ValidationError("id or index is required")

        with exclusive_log_access(self.log.name):
            rows = self.log.read_rows()
            position = index_to_position(rows, index)
            if position is None:
                return MutationStatus.INVALID_INDEX
            if expected_id is not None:
                found = TransactionRecord.from_row(rows[position]).id
                if found != str(expected_id).strip():
                    logger.warning(
                        "Refusing delete at index %s: expected %s, found %s",
                        index, expected_id, found or "<no id>",
                    )
                    return MutationStatus.CONFLICT
            self.log.delete_row(position)
        return MutationStatus.SUCCESS

    def backfill_missing_ids(self) -> BackfillResult:
        return backfill_missing_ids(self.log)

    def add_headers(self) -> bool:
        """Insert the column header row when the log has none."""
        with exclusive_log_access(self.log.name):
            rows = self.log.read_rows()
            if rows and is_header_row(rows[0]):
                return False
            self.log.insert_row(0, list(HEADER_LABELS))
        logger.info("Added header row to %s above %d data rows", self.log.name, len(rows))
        return True

    # ------------------------------------------------------------------
    # Reports

    def daily_report(self, date: str | None = None) -> AggregateResult:
        """Aggregate for one day; today in the salon zone when omitted."""
        key = self.resolve_date_key(date)
        records = self._records(self.log.read_rows())
        return aggregate(records, key, recent_limit=self.recent_limit, tz=self.tz)

    def sales_report(self, date: str | None = None) -> AggregateResult:
        """Aggregate over one day, or over the whole log when date is omitted."""
        key = self.resolve_date_key(date) if date else None
        records = self._records(self.log.read_rows())
        return aggregate(records, key, recent_limit=self.recent_limit, tz=self.tz)

    def range_report(self, start: str, end: str) -> tuple[AggregateResult, dict[str, AggregateResult]]:
        if not start or not end:
            raise ReportError("start and end are required")
        start_key = self.resolve_date_key(start)
        end_key = self.resolve_date_key(end)
        records = self._records(self.log.read_rows())
        return aggregate_range(records, start_key, end_key, recent_limit=self.recent_limit, tz=self.tz)


def current_ledger() -> TransactionLedger:
    """Ledger over the configured sheet, with the app's post-create hooks."""
    config = current_app.config
    return TransactionLedger(
        SqlTransactionLog(config["TRANSACTIONS_SHEET"]),
        on_created=current_app.extensions.get("salon.on_created", ()),
        recent_limit=config["RECENT_TRANSACTIONS_LIMIT"],
        tz=config["SALON_TIMEZONE"],
    )
