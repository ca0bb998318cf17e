"""Tests for client records: validation, archive/restore, search, CSV export."""

from datetime import datetime, timedelta

import pytest

from agencydesk.sdk import clients
from agencydesk.sdk.store import DocumentStore, RecordNotFoundError
from agencydesk.sdk.validation import ValidationError


class StepClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(minutes=1)
        return current


@pytest.fixture
def store(tmp_path):
    return DocumentStore(root=tmp_path / "store", clock=StepClock(datetime(2026, 3, 1, 9, 0)))


def add_client(store, name="Ana Lopez", **fields):
    data = {"full_name": name, "state": "CO", "zip": "80202", "ssn_last4": "1234"}
    data.update(fields)
    return clients.create_client(store, data)


class TestCreateClient:

    def test_cleans_and_activates(self, store):
        client = clients.create_client(store, {
            "full_name": "  Ana Lopez ",
            "state": "co",
            "zip": "80202-1234",
            "account_last4": "9876",
        })
        assert client.id
        assert client.full_name == "Ana Lopez"
        assert client.state == "CO"
        assert client.active is True
        assert client.created_at == datetime(2026, 3, 1, 9, 0)

    def test_required_fields(self, store):
        with pytest.raises(ValidationError) as exc:
            clients.create_client(store, {"address": "1 Main"})
        assert "missing required field: full_name" in exc.value.errors
        assert "missing required field: state" in exc.value.errors

    @pytest.mark.parametrize("field,value", [
        ("zip", "8020"),
        ("ssn_last4", "12a4"),
        ("account_last4", "12345"),
        ("state", "Colorado"),
    ])
    def test_malformed_fields(self, store, field, value):
        with pytest.raises(ValidationError):
            add_client(store, **{field: value})

    def test_nothing_written_on_error(self, store):
        with pytest.raises(ValidationError):
            add_client(store, zip="bad")
        assert store.count("clients") == 0


class TestUpdateAndArchive:

    def test_partial_update(self, store):
        client = add_client(store)
        updated = clients.update_client(store, client.id, {"address": "9 Elm", "state": "tx"})
        assert updated.address == "9 Elm"
        assert updated.state == "TX"
        assert updated.full_name == "Ana Lopez"

    def test_blank_name_rejected(self, store):
        client = add_client(store)
        with pytest.raises(ValidationError, match="full_name cannot be blank"):
            clients.update_client(store, client.id, {"full_name": "  "})

    def test_archive_and_restore(self, store):
        client = add_client(store)

        clients.archive_client(store, client.id)
        assert clients.list_clients(store) == []
        assert [c.id for c in clients.list_clients(store, archived=True)] == [client.id]

        clients.restore_client(store, client.id)
        assert [c.id for c in clients.list_clients(store)] == [client.id]

    def test_missing_client(self, store):
        with pytest.raises(RecordNotFoundError):
            clients.get_client(store, "nope")


class TestListClients:

    def test_newest_first(self, store):
        first = add_client(store, "Ana Lopez")
        second = add_client(store, "Ben Ortiz")
        assert [c.id for c in clients.list_clients(store)] == [second.id, first.id]

    def test_record_without_active_flag_is_active(self, store):
        store.add("clients", {"full_name": "Legacy Person", "state": "CO"})
        assert [c.full_name for c in clients.list_clients(store)] == ["Legacy Person"]

    def test_search_is_case_insensitive_across_fields(self, store):
        add_client(store, "Ana Lopez", ssn_last4="1111")
        add_client(store, "Ben Ortiz", ssn_last4="2222", state="TX")

        assert [c.full_name for c in clients.list_clients(store, search="lopez")] == ["Ana Lopez"]
        assert [c.full_name for c in clients.list_clients(store, search="2222")] == ["Ben Ortiz"]
        assert [c.full_name for c in clients.list_clients(store, search="tx")] == ["Ben Ortiz"]


class TestCsvExport:

    def test_every_cell_quoted(self, store):
        client = add_client(store, 'Ana "Annie" Lopez', address="1 Main, Apt 2")
        text = clients.clients_to_csv([client])
        lines = text.split("\n")

        assert lines[0] == '"Name","Address","State","ZIP","SSN_last4","Account_last4"'
        assert lines[1] == '"Ana ""Annie"" Lopez","1 Main, Apt 2","CO","80202","1234",""'
        assert text.endswith("\n")

    def test_export_writes_filtered_rows(self, store, tmp_path):
        add_client(store, "Ana Lopez")
        archived = add_client(store, "Ben Ortiz")
        clients.archive_client(store, archived.id)

        path = tmp_path / "out" / "clients.csv"
        count = clients.export_clients_csv(store, path)

        assert count == 1
        assert "Ana Lopez" in path.read_text()
        assert "Ben Ortiz" not in path.read_text()
