# Overview: Transaction ID assignment and repair of rows that never received one.

"""
Identity Service

WHY: The log has no central sequence. IDs are minted by whichever client
records the sale (including offline tills), so they must be unique without
coordination: a millisecond timestamp plus a 10-character base-36 random
suffix (~51 bits), e.g. "TXN-1717236000000-k3j9x0a2bq".

Older rows were written before IDs existed; backfill_missing_ids() gives
them one in place. Uniqueness across the log is not re-checked here.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from .concurrency import exclusive_log_access
from .log_layout import data_start_index
from .records import COLUMN_INDEX
from .transaction_log import StorageError, TransactionLog

logger = logging.getLogger(__name__)

ID_PREFIX = "TXN"
SUFFIX_LENGTH = 10
_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def new_id() -> str:
    """Timestamp + random suffix; safe to call from independent clients."""
    millis = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{ID_PREFIX}-{millis}-{suffix}"


def is_missing_id(value) -> bool:
    return value is None or str(value).strip() == ""


@dataclass
class BackfillResult:
    updated_count: int = 0
    total_transactions: int = 0
    # Storage positions whose write failed; they keep an empty ID
    failed_positions: list[int] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failed_positions)

    def to_dict(self) -> dict:
        return {
            "updated_count": self.updated_count,
            "total_transactions": self.total_transactions,
            "failed_positions": list(self.failed_positions),
            "partial": self.partial,
        }


def backfill_missing_ids(log: TransactionLog) -> BackfillResult:
    """
    Give every data row with an empty or whitespace-only ID a new one.

    Runs with exclusive access to the log and reads the rows fresh before
    writing. A failed write is recorded and scanning continues. Running
    it again on the same log updates nothing.
    """
    id_column = COLUMN_INDEX["id"]
    with exclusive_log_access(log.name):
        rows = log.read_rows()
        start = data_start_index(rows)
        result = BackfillResult(total_transactions=len(rows) - start)

        for position in range(start, len(rows)):
            row = rows[position]
            current = row[id_column] if row else None
            if not is_missing_id(current):
                continue
            try:
                log.write_cell(position, id_column, new_id())
            except (StorageError, SQLAlchemyError):
                logger.warning("Could not assign ID to %s row %d", log.name, position, exc_info=True)
                result.failed_positions.append(position)
                continue
            result.updated_count += 1

    if result.partial:
        logger.warning(
            "Backfill on %s finished partially: %d updated, %d failed",
            log.name, result.updated_count, len(result.failed_positions),
        )
    else:
        logger.info("Backfill on %s assigned %d IDs", log.name, result.updated_count)
    return result
