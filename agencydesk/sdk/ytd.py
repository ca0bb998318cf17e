"""Year-to-date payroll aggregation.

Two views of the same history, deliberately kept separate:

Year so far (ytd_as_of_now):
    Baseline (when its year is the current year) plus the stored gross and
    stored tax fields of every paystub created this year. Stored amounts are
    summed verbatim, so each period keeps the federal percent it was
    created with.

Through a paystub (ytd_through_paystub):
    Baseline gross (when its year matches the paystub's year) plus the gross
    of every same-year paystub created at or before the target, target
    included. Taxes are then recomputed once on that cumulative gross using
    the baseline's federal percent (0.12 when there is none).

When periods used different federal percents the two views disagree on
taxes and net for the same set of paystubs. Both answers are returned as
computed; neither is adjusted to match the other.

Paystubs without a created_at timestamp are ignored by both views.
"""

from datetime import datetime
from typing import Iterable, Optional

from .schemas import Client, PaystubRecord, YTDSummary
from .taxes.payroll import DEFAULT_FEDERAL_PCT, compute_gross_taxes
from .taxes.rates import RateConfig

TAX_FIELDS = ("taxes", "net", "federal", "state_tax", "ss", "medicare")


def _stub_gross(ps: PaystubRecord) -> float:
    """Stored gross, or hours-based gross for records saved without one."""
    if "gross" in ps.model_fields_set:
        return ps.gross
    return ps.regular_gross + ps.overtime_gross


def baseline_for_year(client: Client, year: int):
    """The client's baseline if it applies to year, else None."""
    base = client.ytd_base
    if base is None or int(base.year) != year:
        return None
    return base


def baseline_federal_pct(client: Client) -> float:
    """Federal percent recorded on the baseline, or the default."""
    base = client.ytd_base
    if base is not None and base.federal_pct is not None:
        return base.federal_pct
    return DEFAULT_FEDERAL_PCT


def ytd_as_of_now(
    client: Client,
    paystubs: Iterable[PaystubRecord],
    now: Optional[datetime] = None,
) -> YTDSummary:
    """Sum baseline and this year's stored paystub amounts.

    Args:
        client: Client (its ytd_base is used when the year matches)
        paystubs: The client's paystubs, any order
        now: Reference time (default: datetime.now())
    """
    year = (now or datetime.now()).year
    summary = YTDSummary(year=year)

    base = baseline_for_year(client, year)
    if base is not None:
        if base.has_split:
            summary.regular += base.regular_gross or 0
            summary.overtime += base.overtime_gross or 0
            summary.gross += (base.regular_gross or 0) + (base.overtime_gross or 0)
        else:
            # legacy baselines only have a combined gross; count it as regular
            summary.regular += base.gross
            summary.gross += base.gross
        for field in TAX_FIELDS:
            setattr(summary, field, getattr(summary, field) + getattr(base, field))

    for ps in paystubs:
        if ps.created_at is None or ps.created_at.year != year:
            continue
        summary.regular += ps.regular_gross
        summary.overtime += ps.overtime_gross
        summary.gross += _stub_gross(ps)
        for field in TAX_FIELDS:
            setattr(summary, field, getattr(summary, field) + getattr(ps, field))
        summary.paystub_count += 1

    return summary


def ytd_through_paystub(
    client: Client,
    paystubs: Iterable[PaystubRecord],
    target: PaystubRecord,
    rates: Optional[RateConfig] = None,
) -> Optional[YTDSummary]:
    """Cumulative gross through target with freshly computed taxes.

    Returns:
        YTDSummary, or None when target has no created_at
    """
    if target.created_at is None:
        return None

    year = target.created_at.year
    cutoff = target.created_at

    gross = 0.0
    regular = 0.0
    overtime = 0.0
    count = 0

    base = baseline_for_year(client, year)
    if base is not None:
        gross += base.total_gross
        if base.has_split:
            regular += base.regular_gross or 0
            overtime += base.overtime_gross or 0
        else:
            regular += base.gross

    for ps in paystubs:
        if ps.created_at is None or ps.created_at.year != year:
            continue
        if ps.created_at > cutoff:
            continue
        gross += _stub_gross(ps)
        regular += ps.regular_gross
        overtime += ps.overtime_gross
        count += 1

    calc = compute_gross_taxes(gross, client.state, baseline_federal_pct(client), rates)

    return YTDSummary(
        year=year,
        gross=gross,
        taxes=calc.taxes,
        net=calc.net,
        federal=calc.federal,
        state_tax=calc.state_tax,
        ss=calc.ss,
        medicare=calc.medicare,
        regular=regular,
        overtime=overtime,
        paystub_count=count,
    )
