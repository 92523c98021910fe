# Overview: Serialization of read-modify-write operations against a position-addressed log.

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

_registry_lock = threading.Lock()
_log_locks: dict[str, threading.RLock] = {}


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def _lock_for(name: str) -> threading.RLock:
    with _registry_lock:
        lock = _log_locks.get(name)
        if lock is None:
            lock = threading.RLock()
            _log_locks[name] = lock
        return lock


@contextmanager
def exclusive_log_access(name: str) -> Iterator[None]:
    """
    Hold the in-process lock for one log while mutating it.

    Backfill, update and delete all read positions and then write by
    position; two of them interleaving on the same log could write into
    a row that moved. This only covers writers inside one process: a
    second process editing the same store can still shift rows, which is
    why deletes accept an expected ID to verify before removing.
    """
    lock = _lock_for(name)
    with lock:
        yield
