from __future__ import annotations

import json
import threading
import time

import pytest

from agent_cashbook.errors import StoreError
from agent_cashbook.storage.tx_store import TxStore


def _record(**overrides) -> dict:
    rec = {
        "date": "2024-05-10",
        "time": "09:00",
        "type": "Cash Deposit",
        "amount": 500000,
        "fee": 3000,
        "createdAt": "2024-05-10T09:00:00.000000+07:00",
    }
    rec.update(overrides)
    return rec


class Recorder:
    def __init__(self):
        self.changes: list[list] = []
        self.errors: list[Exception] = []

    def on_change(self, records):
        self.changes.append(records)

    def on_error(self, err):
        self.errors.append(err)


def test_insert_assigns_id_and_persists(tmp_path):
    store = TxStore(tmp_path)
    rid = store.insert("owner1", _record(id="client-chosen"))

    assert rid and rid != "client-chosen"
    lines = (tmp_path / "owner1.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0])["id"] == rid

    records = store.load_all("owner1")
    assert [r.id for r in records] == [rid]
    assert records[0].amount == 500000
    assert records[0].created_at == "2024-05-10T09:00:00.000000+07:00"


def test_owners_are_isolated(tmp_path):
    store = TxStore(tmp_path)
    store.insert("alice", _record())
    assert store.load_all("bob") == []


def test_invalid_owner_id_rejected(tmp_path):
    store = TxStore(tmp_path)
    with pytest.raises(StoreError):
        store.insert("../evil", _record())


def test_malformed_lines_are_skipped(tmp_path):
    store = TxStore(tmp_path)
    store.insert("owner1", _record())
    with (tmp_path / "owner1.jsonl").open("a", encoding="utf-8") as f:
        f.write("{not json\n")
        f.write("[1, 2]\n")
        f.write("\n")

    assert len(store.load_all("owner1")) == 1


def test_subscribe_delivers_initial_set_and_every_insert(tmp_path):
    store = TxStore(tmp_path)
    store.insert("owner1", _record())

    rec = Recorder()
    store.subscribe("owner1", rec.on_change, rec.on_error)
    assert [len(c) for c in rec.changes] == [1]

    store.insert("owner1", _record(time="10:00"))
    store.insert("other", _record())
    assert [len(c) for c in rec.changes] == [1, 2]
    assert rec.errors == []


def test_cancel_is_idempotent_and_stops_delivery(tmp_path):
    store = TxStore(tmp_path)
    rec = Recorder()
    sub = store.subscribe("owner1", rec.on_change, rec.on_error)

    sub.cancel()
    sub.cancel()
    store.insert("owner1", _record())

    assert len(rec.changes) == 1
    assert store.subscriber_count("owner1") == 0


def test_failing_listener_does_not_break_insert(tmp_path):
    store = TxStore(tmp_path)

    def boom(records):
        raise RuntimeError("listener bug")

    store.subscribe("owner1", boom, lambda err: None)
    rid = store.insert("owner1", _record())
    assert rid


def test_read_failure_goes_to_on_error(tmp_path, monkeypatch):
    store = TxStore(tmp_path)
    store.insert("owner1", _record())

    def broken(*args, **kwargs):
        raise StoreError("permission denied")

    monkeypatch.setattr(store, "load_all", broken)

    rec = Recorder()
    store.subscribe("owner1", rec.on_change, rec.on_error)
    assert rec.changes == []
    assert len(rec.errors) == 1
    assert isinstance(rec.errors[0], StoreError)


def test_poll_picks_up_external_writes(tmp_path):
    store = TxStore(tmp_path)
    rec = Recorder()
    store.subscribe("owner1", rec.on_change, rec.on_error)

    assert store.poll() == 0

    # another process appends to the same ledger
    other = TxStore(tmp_path)
    other.insert("owner1", _record())

    assert store.poll() == 1
    assert [len(c) for c in rec.changes] == [0, 1]
    assert store.poll() == 0


def test_write_failure_raises_store_error(tmp_path):
    store = TxStore(tmp_path)
    (tmp_path / "owner1.jsonl").mkdir()
    with pytest.raises(StoreError):
        store.insert("owner1", _record())


def test_insert_during_slow_poll_delivery_is_delivered_last(tmp_path):
    store = TxStore(tmp_path)
    entered = threading.Event()
    release = threading.Event()
    sizes: list[int] = []

    def on_change(records):
        if threading.current_thread().name == "poller":
            entered.set()
            release.wait(5)
        sizes.append(len(records))

    store.subscribe("owner1", on_change, lambda err: None)
    TxStore(tmp_path).insert("owner1", _record())

    poller = threading.Thread(target=store.poll, name="poller")
    poller.start()
    assert entered.wait(5)
    writer = threading.Thread(target=store.insert, args=("owner1", _record(amount=1)))
    writer.start()
    time.sleep(0.05)
    release.set()
    poller.join(5)
    writer.join(5)

    assert sizes == [0, 1, 2]
    assert store.poll() == 0
