"""
Pytest fixtures for salon backend tests.

Provides the Flask app on an in-memory database, a per-test table wipe,
the test client, and an in-memory transaction log for pure service tests.
"""

from datetime import datetime, timezone

import pytest

from salon import create_app
from salon.extensions import db
from salon.services.ledger_service import TransactionLedger
from salon.services.records import HEADER_LABELS


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SALON_TIMEZONE': 'Asia/Dubai',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client on an empty database."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


class MemoryLog:
    """List-backed log with the same position semantics as sheet_rows."""

    def __init__(self, rows=None, name="Transactions"):
        self.name = name
        self.rows = [list(r) for r in (rows or [])]

    def read_rows(self):
        return [list(r) for r in self.rows]

    def append_row(self, cells):
        self.rows.append(list(cells))
        return len(self.rows) - 1

    def write_cell(self, position, column, value):
        row = self.rows[position]
        if column >= len(row):
            row.extend([""] * (column + 1 - len(row)))
        row[column] = value

    def write_row(self, position, cells):
        self.rows[position] = list(cells)

    def delete_row(self, position):
        del self.rows[position]

    def insert_row(self, position, cells):
        self.rows.insert(position, list(cells))


# 2024-06-01 09:00 UTC = 13:00 in Dubai
FIXED_NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def header():
    return list(HEADER_LABELS)


@pytest.fixture
def memory_log(header):
    return MemoryLog([header])


@pytest.fixture
def ledger(memory_log):
    return TransactionLedger(memory_log, tz="Asia/Dubai", clock=lambda: FIXED_NOW)
