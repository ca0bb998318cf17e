"""Tests for insurance policy records and the dashboard counts."""

from datetime import datetime, timedelta

import pytest

from agencydesk.sdk import dashboard, insurance
from agencydesk.sdk.store import DocumentStore
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


def add_policy(store, holder="Ana Lopez", **fields):
    data = {"holder_name": holder, "carrier": "Acme Mutual", "premium": "1200.50"}
    data.update(fields)
    return insurance.create_policy(store, data)


class TestPolicies:

    def test_create_defaults_to_active(self, store):
        policy = add_policy(store, state="co", start_date="2026-03-01")
        assert policy.status == "active"
        assert policy.state == "CO"
        assert policy.premium == pytest.approx(1200.50)

    def test_required_fields(self, store):
        with pytest.raises(ValidationError) as exc:
            insurance.create_policy(store, {"vin": "X"})
        assert "missing required field: holder_name" in exc.value.errors
        assert "missing required field: carrier" in exc.value.errors

    @pytest.mark.parametrize("fields", [
        {"start_date": "3/1/2026"},
        {"premium": -5},
        {"status": "lapsed"},
        {"state": "Colorado"},
    ])
    def test_invalid_values(self, store, fields):
        with pytest.raises(ValidationError):
            add_policy(store, **fields)

    def test_archive_cancels_and_activate_restores(self, store):
        policy = add_policy(store)
        assert insurance.archive_policy(store, policy.id).status == "cancelled"
        assert insurance.activate_policy(store, policy.id).status == "active"

    def test_set_status_rejects_unknown(self, store):
        policy = add_policy(store)
        with pytest.raises(ValidationError):
            insurance.set_status(store, policy.id, "gone")

    def test_update_merges(self, store):
        policy = add_policy(store)
        updated = insurance.update_policy(store, policy.id, {"policy_number": "PN-1"})
        assert updated.policy_number == "PN-1"
        assert updated.carrier == "Acme Mutual"

    def test_ordered_by_status_then_newest(self, store):
        a = add_policy(store, "A")
        b = add_policy(store, "B", status="pending")
        c = add_policy(store, "C")
        d = add_policy(store, "D", status="expired")

        ordered = [p.id for p in insurance.list_policies(store)]
        assert ordered == [c.id, a.id, d.id, b.id]

    def test_search_and_status_filter(self, store):
        add_policy(store, "Ana Lopez")
        add_policy(store, "Ben Ortiz", carrier="Summit Insurance", status="pending")

        assert [p.holder_name for p in insurance.list_policies(store, search="summit")] == ["Ben Ortiz"]
        assert [p.holder_name for p in insurance.list_policies(store, status="active")] == ["Ana Lopez"]
        assert insurance.count_active(store) == 1

    def test_delete(self, store):
        policy = add_policy(store)
        assert insurance.delete_policy(store, policy.id) is True
        assert insurance.list_policies(store) == []


class TestPctChange:

    @pytest.mark.parametrize("current,previous,expected", [
        (15, 10, 50.0),
        (5, 10, -50.0),
        (3, 0, 100.0),
        (0, 0, 0.0),
        (10, 10, 0.0),
    ])
    def test_values(self, current, previous, expected):
        assert dashboard.pct_change(current, previous) == pytest.approx(expected)

    def test_format(self):
        assert dashboard.format_pct(12.345) == "+12.3%"
        assert dashboard.format_pct(-4) == "-4.0%"
        assert dashboard.format_pct(0) == "+0.0%"


class TestDashboardStats:

    def test_windows(self, tmp_path):
        clock = StepClock(datetime(2026, 1, 10))
        store = DocumentStore(root=tmp_path / "store", clock=clock)

        # previous window: 2 clients
        store.add("clients", {"full_name": "Old 1"})
        store.add("clients", {"full_name": "Old 2"})
        # current window: 3 clients, 1 paystub, 1 active policy
        clock.now = datetime(2026, 2, 20)
        for name in ("New 1", "New 2", "New 3"):
            store.add("clients", {"full_name": name})
        store.add("paystubs", {"client_id": "x"})
        store.add("insurances", {"holder_name": "H", "carrier": "C", "status": "active"})
        store.add("insurances", {"holder_name": "H", "carrier": "C", "status": "expired"})

        stats = dashboard.get_stats(store, now=datetime(2026, 3, 1))

        assert stats.clients_total == 5
        assert stats.clients_30d == 3
        assert stats.clients_30d_prev == 2
        assert stats.clients_growth == pytest.approx(50.0)
        assert stats.paystubs_30d == 1
        assert stats.paystubs_30d_prev == 0
        assert stats.paystubs_growth == pytest.approx(100.0)
        assert stats.active_policies == 1
