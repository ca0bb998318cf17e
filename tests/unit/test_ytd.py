"""Tests for year-to-date aggregation.

Year so far: baseline + stored paystub amounts for the current year.
Through a paystub: baseline gross + same-year gross up to the target,
with taxes recomputed once on the cumulative gross.
"""

from datetime import datetime

import pytest

from agencydesk.sdk.schemas import Client, PaystubRecord, YTDBaseline
from agencydesk.sdk.taxes import compute_gross_taxes
from agencydesk.sdk.ytd import ytd_as_of_now, ytd_through_paystub


def make_stub(stub_id: str, created_at, gross: float, federal_pct: float = 0.12,
              state: str = "CO", hours: float = 0, rate: float = 0):
    """Paystub with stored amounts computed the way create_paystub stores them."""
    calc = compute_gross_taxes(gross, state, federal_pct)
    return PaystubRecord(
        id=stub_id,
        client_id="c1",
        created_at=created_at,
        hours=hours,
        rate=rate,
        federal_pct=federal_pct,
        **calc.model_dump(),
    )


def make_client(baseline=None, state="CO"):
    return Client(id="c1", full_name="Ana Lopez", state=state, ytd_base=baseline)


class TestYtdAsOfNow:

    def test_baseline_plus_this_years_paystubs(self):
        base_calc = compute_gross_taxes(1000, "CO", 0.12)
        baseline = YTDBaseline(year=2026, gross=1000, **base_calc.model_dump(exclude={"gross"}))
        stubs = [
            make_stub("p1", datetime(2026, 2, 1), 500),
            make_stub("old", datetime(2025, 12, 20), 9999),
        ]

        summary = ytd_as_of_now(make_client(baseline), stubs, now=datetime(2026, 6, 1))

        assert summary.year == 2026
        assert summary.gross == pytest.approx(1500)
        assert summary.taxes == pytest.approx(base_calc.taxes + compute_gross_taxes(500, "CO").taxes)
        assert summary.paystub_count == 1

    def test_baseline_for_other_year_ignored(self):
        baseline = YTDBaseline(year=2025, gross=1000)
        summary = ytd_as_of_now(make_client(baseline), [], now=datetime(2026, 1, 5))
        assert summary.gross == 0

    def test_split_baseline_counts_regular_and_overtime(self):
        baseline = YTDBaseline(year=2026, regular_gross=800, overtime_gross=200, gross=1000)
        summary = ytd_as_of_now(make_client(baseline), [], now=datetime(2026, 4, 1))
        assert summary.regular == pytest.approx(800)
        assert summary.overtime == pytest.approx(200)
        assert summary.gross == pytest.approx(1000)

    def test_paystub_without_created_at_ignored(self):
        stubs = [make_stub("p1", None, 500)]
        summary = ytd_as_of_now(make_client(), stubs, now=datetime(2026, 4, 1))
        assert summary.paystub_count == 0

    def test_stored_taxes_are_summed_verbatim(self):
        """Each period keeps the federal percent it was created with."""
        stubs = [
            make_stub("p1", datetime(2026, 1, 10), 1000, federal_pct=0.10),
            make_stub("p2", datetime(2026, 1, 24), 1000, federal_pct=0.20),
        ]
        summary = ytd_as_of_now(make_client(), stubs, now=datetime(2026, 2, 1))
        assert summary.federal == pytest.approx(300)


class TestYtdThroughPaystub:

    @pytest.fixture
    def history(self):
        baseline = YTDBaseline(year=2026, regular_gross=800, overtime_gross=200,
                               gross=1000, federal_pct=0.10)
        stubs = [
            make_stub("p1", datetime(2026, 2, 1), 100),
            make_stub("p2", datetime(2026, 2, 15), 200),
            make_stub("p3", datetime(2026, 3, 1), 400),
            make_stub("prev", datetime(2025, 12, 28), 5000),
        ]
        return make_client(baseline), stubs

    def test_cumulative_through_target(self, history):
        client, stubs = history
        summary = ytd_through_paystub(client, stubs, stubs[1])

        assert summary.gross == pytest.approx(1300)
        assert summary.paystub_count == 2

    def test_taxes_recomputed_with_baseline_federal_pct(self, history):
        client, stubs = history
        summary = ytd_through_paystub(client, stubs, stubs[1])
        expected = compute_gross_taxes(1300, "CO", 0.10)

        assert summary.federal == pytest.approx(expected.federal)
        assert summary.taxes == pytest.approx(expected.taxes)
        assert summary.net == pytest.approx(expected.net)

    def test_last_paystub_includes_everything_this_year(self, history):
        client, stubs = history
        assert ytd_through_paystub(client, stubs, stubs[2]).gross == pytest.approx(1700)

    def test_paystubs_created_at_same_instant_both_count(self):
        same = datetime(2026, 4, 1, 9, 30)
        stubs = [make_stub("a", same, 100), make_stub("b", same, 200)]

        summary = ytd_through_paystub(make_client(), stubs, stubs[0])

        assert summary.gross == pytest.approx(300)
        assert summary.paystub_count == 2

    def test_target_without_created_at(self, history):
        client, stubs = history
        target = make_stub("draft", None, 100)
        assert ytd_through_paystub(client, stubs, target) is None

    def test_gross_from_hours_when_not_stored(self):
        stub = PaystubRecord(id="p1", client_id="c1", hours=10, rate=20,
                             created_at=datetime(2026, 5, 1))
        summary = ytd_through_paystub(make_client(), [stub], stub)
        assert summary.gross == pytest.approx(200)


def test_views_disagree_when_federal_pct_varies():
    """Year-so-far sums stored taxes; through-paystub recomputes at 12%."""
    stubs = [
        make_stub("p1", datetime(2026, 1, 10), 1000, federal_pct=0.22),
        make_stub("p2", datetime(2026, 1, 24), 1000, federal_pct=0.22),
    ]
    client = make_client()

    so_far = ytd_as_of_now(client, stubs, now=datetime(2026, 2, 1))
    through = ytd_through_paystub(client, stubs, stubs[1])

    assert so_far.gross == pytest.approx(through.gross)
    assert so_far.federal == pytest.approx(440)
    assert through.federal == pytest.approx(240)
    assert so_far.net != pytest.approx(through.net)
