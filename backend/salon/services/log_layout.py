# Overview: Header-row detection for the flat transaction log.

"""
Log layout

WHY: Some transaction logs start with a row of column labels, others start
straight with data (the header was added to older sheets after the fact).
Every read, update-by-index and delete-by-index must agree on where data
starts, so the decision lives here and nowhere else.
"""

from __future__ import annotations

from typing import Any, Sequence

from .records import HEADER_LABELS

ID_LABEL = HEADER_LABELS[0]
DATE_LABEL = HEADER_LABELS[1]
SERVICE_LABEL = HEADER_LABELS[3]


def _cell(row: Sequence[Any], index: int) -> Any:
    if index < len(row):
        return row[index]
    return None


def is_header_row(first_row: Sequence[Any] | None) -> bool:
    """
    True when the row carries column labels.

    Any one signal is enough: first cell "ID", second cell "Date" or
    fourth cell "Service". Historical sheets are inconsistent, so this is
    deliberately a heuristic rather than a schema check.
    """
    if not first_row:
        return False
    return (
        _cell(first_row, 0) == ID_LABEL
        or _cell(first_row, 1) == DATE_LABEL
        or _cell(first_row, 3) == SERVICE_LABEL
    )


def data_start_index(rows: Sequence[Sequence[Any]]) -> int:
    """Position of the first data row: 1 behind a header, else 0."""
    if rows and is_header_row(rows[0]):
        return 1
    return 0


def index_to_position(rows: Sequence[Sequence[Any]], index: int) -> int | None:
    """
    Translate a 0-based data index into a storage position.

    Returns None when the index does not address a data row.
    """
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        return None
    position = index + data_start_index(rows)
    if position >= len(rows):
        return None
    return position
