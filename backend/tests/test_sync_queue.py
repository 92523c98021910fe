import asyncio
import json
import threading

import httpx
import pytest

from salon.services.remote_client import RemoteLedgerClient
from salon.services.sync_queue import ConnectivityMonitor, JsonFileQueueStore, SyncQueue


@pytest.fixture
def store(tmp_path):
    return JsonFileQueueStore(tmp_path / "queue.json")


def _record(txn_id, amount=10):
    return {"id": txn_id, "service": "Shave", "amount": amount, "worker": "Maria"}


class FakeBackend:
    """Persist collaborator that records calls and fails for chosen IDs."""

    def __init__(self, fail_ids=(), delay=0):
        self.fail_ids = set(fail_ids)
        self.delay = delay
        self.saved = []
        self.calls = 0

    async def save(self, record):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if record["id"] in self.fail_ids:
            return False
        self.saved.append(record["id"])
        return True


def test_enqueue_is_durable(store, tmp_path):
    queue = SyncQueue(store, FakeBackend().save)
    entry = queue.enqueue(_record("TXN-1"))

    assert entry.queued_at.endswith("Z")
    assert not entry.synced
    reopened = JsonFileQueueStore(tmp_path / "queue.json")
    assert [e.record["id"] for e in reopened.load()] == ["TXN-1"]
    assert json.loads((tmp_path / "queue.json").read_text())[0]["entry_id"] == entry.entry_id


def test_drain_all_success_empties_queue(store):
    backend = FakeBackend()
    queue = SyncQueue(store, backend.save)
    for i in range(3):
        queue.enqueue(_record(f"TXN-{i}"))

    result = asyncio.run(queue.drain())

    assert (result.attempted, result.succeeded, result.remaining) == (3, 3, 0)
    assert sorted(backend.saved) == ["TXN-0", "TXN-1", "TXN-2"]
    assert store.load() == []


def test_drain_keeps_failed_entries(store):
    backend = FakeBackend(fail_ids={"TXN-1"})
    queue = SyncQueue(store, backend.save)
    for i in range(3):
        queue.enqueue(_record(f"TXN-{i}"))

    result = asyncio.run(queue.drain())

    assert result.attempted == 3
    assert result.succeeded == 2
    assert result.failed == 1
    assert [e.record["id"] for e in store.load()] == ["TXN-1"]


def test_drain_survives_persist_exceptions(store):
    async def explode(record):
        raise httpx.ConnectError("no route to host")

    queue = SyncQueue(store, explode)
    queue.enqueue(_record("TXN-1"))

    result = asyncio.run(queue.drain())

    assert result.succeeded == 0
    assert len(store.load()) == 1


def test_drain_on_empty_queue(store):
    result = asyncio.run(SyncQueue(store, FakeBackend().save).drain())
    assert result.to_dict() == {"attempted": 0, "succeeded": 0, "failed": 0, "remaining": 0}


def test_concurrent_drains_are_coalesced(store):
    backend = FakeBackend(delay=0.01)
    queue = SyncQueue(store, backend.save)
    for i in range(4):
        queue.enqueue(_record(f"TXN-{i}"))

    async def scenario():
        return await asyncio.gather(queue.drain(), queue.drain(), queue.drain())

    results = asyncio.run(scenario())

    assert backend.calls == 4
    assert all(r.attempted == 4 for r in results)
    assert store.load() == []


def test_entries_enqueued_during_a_drain_stay_queued(store):
    backend = FakeBackend(delay=0.01)
    queue = SyncQueue(store, backend.save)
    queue.enqueue(_record("TXN-1"))

    async def scenario():
        drain = asyncio.ensure_future(queue.drain())
        # Wait until the drain has taken its snapshot and is mid-persist
        while backend.calls == 0:
            await asyncio.sleep(0)
        queue.enqueue(_record("TXN-late"))
        return await drain

    result = asyncio.run(scenario())

    assert result.attempted == 1
    assert result.remaining == 1
    assert [e.record["id"] for e in store.load()] == ["TXN-late"]


def test_submit_online_saves_directly(store):
    backend = FakeBackend()
    queue = SyncQueue(store, backend.save)

    result = asyncio.run(queue.submit({"service": "Shave", "amount": 8}))

    assert not result.offline
    assert result.record["id"].startswith("TXN-")
    assert backend.saved == [result.record["id"]]
    assert store.load() == []


def test_submit_falls_back_to_queue(store):
    backend = FakeBackend(fail_ids={"TXN-1"})
    queue = SyncQueue(store, backend.save)

    failed = asyncio.run(queue.submit(_record("TXN-1")))
    offline = asyncio.run(queue.submit(_record("TXN-2"), online=False))

    assert failed.offline and offline.offline
    assert backend.calls == 1
    assert [e.record["id"] for e in store.load()] == ["TXN-1", "TXN-2"]


def test_connectivity_monitor_only_drains_on_reconnect(store):
    backend = FakeBackend()
    queue = SyncQueue(store, backend.save)
    queue.enqueue(_record("TXN-1"))
    monitor = ConnectivityMonitor(queue, online=True)

    async def scenario():
        assert monitor.report(True) is None
        assert monitor.report(False) is None
        task = monitor.report(True)
        assert task is not None
        return await task

    result = asyncio.run(scenario())

    assert result.succeeded == 1
    assert backend.calls == 1


def test_connectivity_monitor_needs_a_running_loop(store):
    monitor = ConnectivityMonitor(SyncQueue(store, FakeBackend().save), online=False)
    with pytest.raises(RuntimeError):
        monitor.report(True)
    assert monitor.online is False


class ThreadRecordingStore(JsonFileQueueStore):
    """Queue file store that notes which thread touched the file."""

    def __init__(self, path):
        super().__init__(path)
        self.io_threads = []

    def load(self):
        self.io_threads.append(threading.get_ident())
        return super().load()

    def remove(self, entry_ids):
        self.io_threads.append(threading.get_ident())
        return super().remove(entry_ids)


def test_drain_keeps_file_io_off_the_event_loop(tmp_path):
    store = ThreadRecordingStore(tmp_path / "queue.json")
    queue = SyncQueue(store, FakeBackend().save)
    queue.enqueue(_record("TXN-1"))
    store.io_threads.clear()

    async def scenario():
        result = await queue.drain()
        return result, threading.get_ident()

    result, loop_thread = asyncio.run(scenario())

    assert result.succeeded == 1
    assert store.io_threads
    assert loop_thread not in store.io_threads


def test_remote_client_maps_responses_to_success():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        if request.url.path != "/api/transactions":
            return httpx.Response(404)
        if seen[-1]["id"] == "TXN-bad":
            return httpx.Response(400, json={"error": "service is required"})
        return httpx.Response(201, json=seen[-1])

    async def scenario():
        async with RemoteLedgerClient("http://ledger.test", transport=httpx.MockTransport(handler)) as client:
            return await client.save(_record("TXN-1")), await client.save(_record("TXN-bad"))

    ok, rejected = asyncio.run(scenario())

    assert ok is True
    assert rejected is False
    assert [r["id"] for r in seen] == ["TXN-1", "TXN-bad"]


def test_remote_client_transport_errors_mean_try_later():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    async def scenario():
        async with RemoteLedgerClient("http://ledger.test", transport=httpx.MockTransport(handler)) as client:
            return await client.save(_record("TXN-1"))

    assert asyncio.run(scenario()) is False


def test_queue_replays_through_remote_client(store):
    stored = {}

    def handler(request):
        record = json.loads(request.content)
        status = 200 if record["id"] in stored else 201
        stored[record["id"]] = record
        return httpx.Response(status, json=record)

    async def scenario():
        async with RemoteLedgerClient("http://ledger.test", transport=httpx.MockTransport(handler)) as client:
            queue = SyncQueue(store, client.save)
            queue.enqueue(_record("TXN-1"))
            queue.enqueue(_record("TXN-1"))
            return await queue.drain()

    result = asyncio.run(scenario())

    assert result.succeeded == 2
    assert list(stored) == ["TXN-1"]
    assert store.load() == []
