"""Tests for the JSON document store."""

import json
from datetime import datetime, timedelta

import pytest

from agencydesk.sdk.store import DocumentStore, RecordNotFoundError, matches_filters


class StepClock:
    """Clock that advances one minute per call."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(minutes=1)
        return current


@pytest.fixture
def store(tmp_path):
    return DocumentStore(root=tmp_path / "store", clock=StepClock(datetime(2026, 3, 1, 9, 0)))


class TestWrites:

    def test_add_assigns_id_and_timestamps(self, store):
        doc = store.add("clients", {"full_name": "Ana Lopez"})

        assert doc["id"]
        assert doc["full_name"] == "Ana Lopez"
        assert doc["created_at"] == "2026-03-01T09:00:00"
        assert doc["created_at"] == doc["updated_at"]

    def test_caller_cannot_set_timestamps(self, store):
        doc = store.add("clients", {"full_name": "X", "created_at": "1999-01-01T00:00:00", "id": "mine"})
        assert doc["created_at"] == "2026-03-01T09:00:00"
        assert doc["id"] != "mine"

    def test_file_layout(self, store):
        doc = store.add("clients", {"full_name": "Ana"})
        path = store.root / "clients" / f"{doc['id']}.json"
        record = json.loads(path.read_text())
        assert record["meta"]["id"] == doc["id"]
        assert record["data"] == {"full_name": "Ana"}

    def test_update_merges_and_keeps_created_at(self, store):
        doc = store.add("clients", {"full_name": "Ana", "state": "CO"})
        updated = store.update("clients", doc["id"], {"state": "TX"})

        assert updated["full_name"] == "Ana"
        assert updated["state"] == "TX"
        assert updated["created_at"] == doc["created_at"]
        assert updated["updated_at"] > doc["updated_at"]

    def test_update_missing_raises(self, store):
        with pytest.raises(RecordNotFoundError):
            store.update("clients", "missing", {"state": "TX"})

    def test_set_overwrites_but_keeps_created_at(self, store):
        first = store.set("settings", "taxRates", {"rates": {"a": 1}})
        second = store.set("settings", "taxRates", {"rates": {"b": 2}})
        assert second["rates"] == {"b": 2}
        assert second["created_at"] == first["created_at"]

    def test_delete(self, store):
        doc = store.add("clients", {"full_name": "Ana"})
        assert store.delete("clients", doc["id"]) is True
        assert store.get("clients", doc["id"]) is None
        assert store.delete("clients", doc["id"]) is False

    def test_rejects_path_like_ids(self, store):
        with pytest.raises(ValueError):
            store.get("clients", "../etc")


class TestQuery:

    def test_newest_first(self, store):
        ids = [store.add("paystubs", {"n": i})["id"] for i in range(3)]
        assert [d["id"] for d in store.query("paystubs")] == list(reversed(ids))

    def test_equality_filter_and_limit(self, store):
        for cid in ("a", "b", "a", "a"):
            store.add("paystubs", {"client_id": cid})

        assert store.count("paystubs", where=[("client_id", "==", "a")]) == 3
        assert len(store.query("paystubs", where=[("client_id", "==", "a")], limit=2)) == 2

    def test_datetime_range_filter(self, store):
        store.add("clients", {"n": 1})  # 09:00
        store.add("clients", {"n": 2})  # 09:01
        store.add("clients", {"n": 3})  # 09:02

        since = datetime(2026, 3, 1, 9, 0, 30)
        assert [d["n"] for d in store.query("clients", where=[("created_at", ">", since)])] == [3, 2]

    def test_missing_field_never_matches_range(self):
        assert matches_filters({"premium": None}, [("premium", ">", 0)]) is False
        assert matches_filters({}, [("premium", "<", 100)]) is False

    def test_unsupported_operator(self):
        with pytest.raises(ValueError, match="Unsupported operator"):
            matches_filters({"a": 1}, [("a", "~", 1)])

    def test_unreadable_document_skipped(self, store):
        store.add("clients", {"full_name": "Ana"})
        (store.root / "clients" / "broken.json").write_text("{not json")
        assert len(store.query("clients")) == 1

    def test_empty_collection(self, store):
        assert store.query("insurances") == []


class TestSubscribe:

    def test_snapshot_now_and_after_each_write(self, store):
        snapshots = []
        store.subscribe("clients", snapshots.append)
        assert snapshots == [[]]

        first = store.add("clients", {"full_name": "Ana"})
        second = store.add("clients", {"full_name": "Ben"})

        assert len(snapshots) == 3
        assert [d["id"] for d in snapshots[-1]] == [second["id"], first["id"]]

    def test_filtered_subscription(self, store):
        snapshots = []
        store.subscribe("paystubs", snapshots.append, where=[("client_id", "==", "a")])
        store.add("paystubs", {"client_id": "b"})
        store.add("paystubs", {"client_id": "a"})
        assert [len(s) for s in snapshots] == [0, 0, 1]

    def test_other_collections_do_not_notify(self, store):
        snapshots = []
        store.subscribe("clients", snapshots.append)
        store.add("paystubs", {"client_id": "a"})
        assert len(snapshots) == 1

    def test_unsubscribe_stops_delivery(self, store):
        snapshots = []
        unsubscribe = store.subscribe("clients", snapshots.append)
        unsubscribe()
        unsubscribe()
        store.add("clients", {"full_name": "Ana"})
        assert len(snapshots) == 1

    def test_failing_subscriber_does_not_break_writes(self, store):
        def boom(_):
            raise RuntimeError("listener bug")

        store.subscribe("clients", boom)
        doc = store.add("clients", {"full_name": "Ana"})
        assert store.get("clients", doc["id"]) is not None
