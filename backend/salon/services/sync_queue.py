# Overview: Client-side offline queue that replays unsaved transactions once the ledger is reachable.

"""
Sync Queue

WHY: A till keeps selling when the network drops. A sale that cannot be
saved is written to a durable local queue and replayed later; it is never
dropped because a request failed.

STATES: an entry is Pending until one persist attempt succeeds, then it is
removed. A failed attempt leaves it Pending for the next drain.

DESIGN:
- drain() fans every pending entry out at once with asyncio.gather; one
  failure never aborts the others.
- Successful entries are removed in one batch after every attempt has
  settled. Entries enqueued while a drain is running are not part of its
  snapshot and stay queued.
- Drains are triggered by the offline -> online edge (ConnectivityMonitor),
  never by a timer. A trigger that arrives while a drain is running joins
  that drain instead of starting a second one.
- Replays carry the record's ID, and the ledger treats a known ID as
  already saved, so an entry that was saved but not yet removed is safe
  to send again.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import secrets
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional

from salon.time_utils import to_utc_z, utcnow

from .identity_service import is_missing_id, new_id
from .records import TransactionRecord

logger = logging.getLogger(__name__)

Persist = Callable[[dict], Awaitable[bool]]


@dataclass
class OfflineQueueEntry:
    record: dict
    queued_at: str
    entry_id: str = field(default_factory=lambda: secrets.token_hex(8))
    synced: bool = False

    def to_dict(self) -> dict:
        return {
            "entry_id": self.entry_id,
            "record": self.record,
            "queued_at": self.queued_at,
            "synced": self.synced,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OfflineQueueEntry":
        return cls(
            record=dict(data.get("record") or {}),
            queued_at=data.get("queued_at") or "",
            entry_id=data.get("entry_id") or secrets.token_hex(8),
            synced=bool(data.get("synced", False)),
        )


class JsonFileQueueStore:
    """
    Durable queue kept as a JSON list in one file.

    Writes go to a temp file first and are moved into place, so a crash
    mid-write leaves the previous queue intact.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> list[OfflineQueueEntry]:
        if not self.path.exists():
            return []
        text = self.path.read_text(encoding="utf-8").strip()
        if not text:
            return []
        return [OfflineQueueEntry.from_dict(item) for item in json.loads(text)]

    def _write(self, entries: list[OfflineQueueEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps([e.to_dict() for e in entries], indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    def load(self) -> list[OfflineQueueEntry]:
        with self._lock:
            return self._read()

    def append(self, entry: OfflineQueueEntry) -> None:
        with self._lock:
            entries = self._read()
            entries.append(entry)
            self._write(entries)

    def remove(self, entry_ids: Iterable[str]) -> int:
        ids = set(entry_ids)
        if not ids:
            return 0
        with self._lock:
            entries = self._read()
            kept = [e for e in entries if e.entry_id not in ids]
            self._write(kept)
            return len(entries) - len(kept)

    def clear(self) -> None:
        with self._lock:
            self._write([])


@dataclass
class DrainResult:
    attempted: int = 0
    succeeded: int = 0
    remaining: int = 0

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded

    def to_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "remaining": self.remaining,
        }


@dataclass
class SubmitResult:
    record: dict
    offline: bool
    entry_id: Optional[str] = None


class SyncQueue:
    """Offline queue plus the replay logic; persist is the only I/O it performs."""

    def __init__(self, store: JsonFileQueueStore, persist: Persist):
        self.store = store
        self.persist = persist
        self._drain_task: Optional[asyncio.Task] = None

    def pending(self) -> list[OfflineQueueEntry]:
        return self.store.load()

    def enqueue(self, record: TransactionRecord | dict) -> OfflineQueueEntry:
        """Store a record locally; never touches the network."""
        data = record.to_dict() if isinstance(record, TransactionRecord) else dict(record)
        entry = OfflineQueueEntry(record=data, queued_at=to_utc_z(utcnow()))
        self.store.append(entry)
        logger.info("Queued transaction %s offline", data.get("id") or "<no id>")
        return entry

    async def _attempt(self, record: dict, persist: Persist | None = None) -> bool:
        try:
            return bool(await (persist or self.persist)(record))
        except Exception:
            logger.warning("Persist attempt for %s failed", record.get("id"), exc_info=True)
            return False

    async def submit(self, record: TransactionRecord | dict, *, online: bool = True) -> SubmitResult:
        """
        Save a new sale, falling back to the offline queue.

        The record gets its ID here, before the first attempt, so a later
        replay is recognized as the same sale.
        """
        data = record.to_dict() if isinstance(record, TransactionRecord) else dict(record)
        if is_missing_id(data.get("id")):
            data["id"] = new_id()

        if online and await self._attempt(data):
            return SubmitResult(record=data, offline=False)

        entry = self.enqueue(data)
        return SubmitResult(record=data, offline=True, entry_id=entry.entry_id)

    async def drain(self, persist: Persist | None = None) -> DrainResult:
        """
        Replay every pending entry; joins a drain that is already running.

        persist overrides the queue's collaborator for this run only.
        """
        if self._drain_task is not None and not self._drain_task.done():
            return await asyncio.shield(self._drain_task)
        self._drain_task = asyncio.get_running_loop().create_task(self._drain_once(persist or self.persist))
        return await asyncio.shield(self._drain_task)

    async def _drain_once(self, persist: Persist) -> DrainResult:
        snapshot = await asyncio.to_thread(self.store.load)
        if not snapshot:
            return DrainResult()

        outcomes = await asyncio.gather(*(self._attempt(entry.record, persist) for entry in snapshot))
        synced_ids = [entry.entry_id for entry, ok in zip(snapshot, outcomes) if ok]
        await asyncio.to_thread(self.store.remove, synced_ids)
        remaining = await asyncio.to_thread(self.store.load)

        result = DrainResult(
            attempted=len(snapshot),
            succeeded=len(synced_ids),
            remaining=len(remaining),
        )
        if result.failed:
            logger.info(
                "Drain synced %d of %d queued transactions; %d still pending",
                result.succeeded, result.attempted, result.remaining,
            )
        else:
            logger.info("Drain synced all %d queued transactions", result.succeeded)
        return result


class ConnectivityMonitor:
    """
    Turns connectivity reports into drains.

    Only the unavailable -> available edge schedules a drain; repeated
    "online" reports while already online do nothing.
    """

    def __init__(self, queue: SyncQueue, *, online: bool = True):
        self.queue = queue
        self.online = online

    def report(self, online: bool) -> Optional[asyncio.Task]:
        """
        Record the latest connectivity state.

        Must be called from inside the running event loop; the drain it may
        schedule is returned as a task on that loop.
        """
        if online and not self.online:
            loop = asyncio.get_running_loop()
            self.online = True
            logger.info("Connectivity restored; draining offline queue")
            return loop.create_task(self.queue.drain())
        self.online = online
        return None
