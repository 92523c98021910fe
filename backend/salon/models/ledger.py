from __future__ import annotations

from ..extensions import db
from salon.time_utils import to_utc_z


class SheetRow(db.Model):
    """
    One row of a position-addressed log (spreadsheet semantics).

    WHY: The salon's transaction history has always lived in a flat,
    ordered sheet where rows are addressed by position and may or may not
    start with a header row. The table keeps those semantics so imported
    sheets round-trip unchanged.

    POSITIONS: 0-based, contiguous per sheet. Deleting a row shifts every
    later row up by one, exactly like a spreadsheet; a position read
    before someone else's delete may point at a different row afterwards.
    """
    __tablename__ = "sheet_rows"
    __table_args__ = (
        # No unique constraint: shifting positions updates rows one at a time
        db.Index("ix_sheet_rows_sheet_position", "sheet", "position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sheet = db.Column(db.String(64), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    # Raw cell values in column order
    cells = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<SheetRow {self.sheet}[{self.position}]>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sheet": self.sheet,
            "position": self.position,
            "cells": list(self.cells or []),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
