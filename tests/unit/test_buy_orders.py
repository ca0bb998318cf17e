"""Tests for buy order records: defaults, frozen figures, search."""

from datetime import datetime, timedelta

import pytest

from agencydesk.sdk import buy_orders
from agencydesk.sdk.store import DocumentStore, RecordNotFoundError
from agencydesk.sdk.taxes import RateConfig
from agencydesk.sdk.validation import ValidationError


class StepClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(minutes=1)
        return current


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Empty config directory so profile defaults don't leak in."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    monkeypatch.setenv("AGENCY_DESK_CONFIG_PATH", str(config_dir))
    return config_dir


@pytest.fixture
def store(tmp_path, isolated_env):
    return DocumentStore(root=tmp_path / "store", clock=StepClock(datetime(2026, 3, 1, 9, 0)))


def order_data(**overrides):
    data = {
        "buyer_name": "Jane Q Buyer",
        "address": "742 Evergreen Ter",
        "vin": "4t1b11hk5ku123456",
        "make": "Toyota",
        "model": "Camry",
        "price": 10000,
        "down_payment": 1000,
    }
    data.update(overrides)
    return data


class TestCreateBuyOrder:

    def test_defaults_and_frozen_figures(self, store):
        order = buy_orders.create_buy_order(store, order_data())

        assert order.status == "draft"
        assert order.state == "CO"
        assert order.city == "Denver"
        assert order.fee == pytest.approx(47.20)
        assert order.vin == "4T1B11HK5KU123456"
        assert order.total_taxes == pytest.approx(915)
        assert order.subtotal == pytest.approx(10915)
        assert order.total_with_fees == pytest.approx(10962.20)
        assert order.balance_due == pytest.approx(9962.20)
        assert order.state_tax == pytest.approx(290)
        assert order.city_tax == pytest.approx(515)
        assert [t.key for t in order.tax_items] == ["state", "county", "city", "cd", "rtd"]

    def test_default_jurisdiction_from_rates(self, store):
        rates = RateConfig(default_jurisdiction="Aurora")
        order = buy_orders.create_buy_order(store, order_data(), rates)
        assert order.city == "Aurora"

    def test_profile_default_fee(self, store, isolated_env):
        (isolated_env / "profile.yaml").write_text("default_fee: 50.0\n")
        assert buy_orders.create_buy_order(store, order_data()).fee == 50.0

    def test_explicit_zero_fee(self, store):
        assert buy_orders.create_buy_order(store, order_data(fee=0)).fee == 0

    def test_required_fields(self, store):
        with pytest.raises(ValidationError) as exc:
            buy_orders.create_buy_order(store, {"buyer_name": "Jane", "price": 100})
        for field in ("address", "vin", "make", "model"):
            assert f"missing required field: {field}" in exc.value.errors

    def test_negative_amount(self, store):
        with pytest.raises(ValidationError, match="price cannot be negative"):
            buy_orders.create_buy_order(store, order_data(price=-1))

    def test_bad_status(self, store):
        with pytest.raises(ValidationError, match="status"):
            buy_orders.create_buy_order(store, order_data(status="sold"))


class TestUpdateBuyOrder:

    def test_figures_survive_rate_changes_until_edited(self, store):
        order = buy_orders.create_buy_order(store, order_data())
        new_rates = RateConfig().with_component("Denver", "city", 6.0)

        assert buy_orders.get_buy_order(store, order.id).city_tax == pytest.approx(515)

        edited = buy_orders.update_buy_order(store, order.id, {"color": "Blue"}, new_rates)
        assert edited.color == "Blue"
        assert edited.city_tax == pytest.approx(600)
        assert edited.created_at == order.created_at

    def test_price_edit_recomputes(self, store):
        order = buy_orders.create_buy_order(store, order_data())
        edited = buy_orders.update_buy_order(store, order.id, {"price": 20000})
        assert edited.total_taxes == pytest.approx(1830)

    def test_mark_registered_keeps_figures(self, store):
        order = buy_orders.create_buy_order(store, order_data())
        registered = buy_orders.mark_registered(store, order.id)
        assert registered.status == "registered"
        assert registered.balance_due == pytest.approx(order.balance_due)

    def test_missing_order(self, store):
        with pytest.raises(RecordNotFoundError):
            buy_orders.update_buy_order(store, "nope", {"color": "Red"})


class TestListBuyOrders:

    def test_search_and_status(self, store):
        a = buy_orders.create_buy_order(store, order_data())
        b = buy_orders.create_buy_order(store, order_data(buyer_name="Sam Smith", city="Boulder"))
        buy_orders.mark_registered(store, b.id)

        assert [o.id for o in buy_orders.list_buy_orders(store)] == [b.id, a.id]
        assert [o.id for o in buy_orders.list_buy_orders(store, search="boulder")] == [b.id]
        assert [o.id for o in buy_orders.list_buy_orders(store, status="draft")] == [a.id]
        assert [o.id for o in buy_orders.list_buy_orders(store, search="123456")] == [b.id, a.id]
        assert len(buy_orders.list_buy_orders(store, limit=1)) == 1

    def test_delete(self, store):
        order = buy_orders.create_buy_order(store, order_data())
        assert buy_orders.delete_buy_order(store, order.id) is True
        assert buy_orders.list_buy_orders(store) == []
