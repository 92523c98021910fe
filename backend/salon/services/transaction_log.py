# Overview: Persistence port for the transaction log and its SQLAlchemy implementation.

"""
Transaction log storage

The ledger only needs a handful of spreadsheet-like primitives. They are
expressed as a Protocol so the reporting and identity code can run against
any ordered row store; SqlTransactionLog keeps the rows in the sheet_rows
table.

POSITIONS: 0-based over the whole log, header row included when present.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import SheetRow
from .concurrency import lock_for_update


class StorageError(Exception):
    """Raised when the backing store cannot complete a read or write."""


class TransactionLog(Protocol):
    name: str

    def read_rows(self) -> list[list[Any]]: ...

    def append_row(self, cells: Sequence[Any]) -> int: ...

    def write_cell(self, position: int, column: int, value: Any) -> None: ...

    def write_row(self, position: int, cells: Sequence[Any]) -> None: ...

    def delete_row(self, position: int) -> None: ...

    def insert_row(self, position: int, cells: Sequence[Any]) -> None: ...


class SqlTransactionLog:
    """Position-addressed log stored in sheet_rows, one sheet per name."""

    def __init__(self, name: str = "Transactions", session=None):
        self.name = name
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _query(self):
        return self.session.query(SheetRow).filter(SheetRow.sheet == self.name)

    def _row_at(self, position: int) -> SheetRow:
        row = lock_for_update(self._query().filter(SheetRow.position == position)).first()
        if row is None:
            raise StorageError(f"No row at position {position} in {self.name}")
        return row

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageError(f"Write to {self.name} failed") from exc

    def read_rows(self) -> list[list[Any]]:
        rows = self._query().order_by(SheetRow.position.asc()).all()
        return [list(row.cells or []) for row in rows]

    def count(self) -> int:
        return self._query().count()

    def append_row(self, cells: Sequence[Any]) -> int:
        last = self.session.query(func.max(SheetRow.position)).filter(
            SheetRow.sheet == self.name
        ).scalar()
        position = 0 if last is None else last + 1
        self.session.add(SheetRow(sheet=self.name, position=position, cells=list(cells)))
        self._commit()
        return position

    def write_cell(self, position: int, column: int, value: Any) -> None:
        row = self._row_at(position)
        cells = list(row.cells or [])
        if column >= len(cells):
            cells.extend([""] * (column + 1 - len(cells)))
        cells[column] = value
        # Reassign so the JSON column is flagged dirty
        row.cells = cells
        self._commit()

    def write_row(self, position: int, cells: Sequence[Any]) -> None:
        row = self._row_at(position)
        row.cells = list(cells)
        self._commit()

    def delete_row(self, position: int) -> None:
        row = self._row_at(position)
        self.session.delete(row)
        self.session.flush()
        self._query().filter(SheetRow.position > position).update(
            {SheetRow.position: SheetRow.position - 1},
            synchronize_session=False,
        )
        self._commit()

    def insert_row(self, position: int, cells: Sequence[Any]) -> None:
        # Shift from the bottom so positions never collide mid-update
        to_shift = self._query().filter(SheetRow.position >= position).order_by(
            SheetRow.position.desc()
        ).all()
        for row in to_shift:
            row.position = row.position + 1
        self.session.flush()
        self.session.add(SheetRow(sheet=self.name, position=position, cells=list(cells)))
        self._commit()
