# backend/salon/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/salon.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///salon.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SALON_NAME = os.environ.get("SALON_NAME", "Salon")

    # Day boundaries and display times are computed in this zone,
    # never in the server's local time.
    SALON_TIMEZONE = os.environ.get("SALON_TIMEZONE", "Asia/Dubai")

    RECENT_TRANSACTIONS_LIMIT = int(os.environ.get("RECENT_TRANSACTIONS_LIMIT", "5"))

    # Name of the position-addressed log holding transaction rows
    TRANSACTIONS_SHEET = os.environ.get("TRANSACTIONS_SHEET", "Transactions")

    # Client-side offline queue and the ledger API it replays into
    OFFLINE_QUEUE_PATH = os.environ.get("OFFLINE_QUEUE_PATH", "offline_queue.json")
    LEDGER_API_URL = os.environ.get("LEDGER_API_URL", "http://127.0.0.1:5000")
    LEDGER_API_TIMEOUT = float(os.environ.get("LEDGER_API_TIMEOUT", "10"))
