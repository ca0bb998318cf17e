"""Payroll withholding calculations.

Flat-rate model: every component is a fixed fraction of gross.

    ss        = gross * 0.062
    medicare  = gross * 0.0145
    state_tax = gross * state_pct(state)     (0 for unknown states)
    federal   = gross * federal_pct
    net       = gross - (ss + medicare + state_tax + federal)

Overtime is added into gross and taxed at the same rates. Net is not
clamped; callers keep federal_pct within [0, 1].
"""

from typing import Any, Optional

from ..schemas import PayrollTaxes
from .coerce import num
from .rates import RateConfig

DEFAULT_FEDERAL_PCT = 0.12

_DEFAULT_RATES = RateConfig()


def compute_gross_taxes(
    gross: Any,
    state: Optional[str],
    federal_pct: Any = DEFAULT_FEDERAL_PCT,
    rates: Optional[RateConfig] = None,
) -> PayrollTaxes:
    """Compute withholding and net for an already-combined gross.

    Args:
        gross: Gross pay for the period (or a cumulative YTD gross)
        state: 2-letter state code of the client
        federal_pct: Federal withholding as a fraction (0.12 = 12%)
        rates: RateConfig (built-in defaults when None)

    Returns:
        PayrollTaxes breakdown
    """
    rates = rates or _DEFAULT_RATES
    gross = num(gross)
    federal_pct = num(federal_pct)

    ss = gross * rates.ss_pct
    medicare = gross * rates.medicare_pct
    state_tax = gross * rates.state_pct(state)
    federal = gross * federal_pct

    taxes = ss + medicare + state_tax + federal

    return PayrollTaxes(
        gross=gross,
        ss=ss,
        medicare=medicare,
        state_tax=state_tax,
        federal=federal,
        taxes=taxes,
        net=gross - taxes,
    )


def compute_taxes(
    hours: Any,
    rate: Any,
    state: Optional[str],
    federal_pct: Any = DEFAULT_FEDERAL_PCT,
    rates: Optional[RateConfig] = None,
) -> PayrollTaxes:
    """Compute withholding for hours x rate.

    Example:
        compute_taxes(40, 25, "CO")  # gross 1000, ss 62, medicare 14.50, state 44
    """
    return compute_gross_taxes(num(hours) * num(rate), state, federal_pct, rates)


def compute_paystub(
    hours: Any,
    rate: Any,
    overtime_hours: Any = 0,
    overtime_rate: Any = 0,
    state: Optional[str] = None,
    federal_pct: Any = DEFAULT_FEDERAL_PCT,
    rates: Optional[RateConfig] = None,
) -> PayrollTaxes:
    """Compute withholding for a period with overtime.

    Gross is hours*rate + overtime_hours*overtime_rate; overtime is not
    taxed at a different marginal rate.
    """
    gross = num(hours) * num(rate) + num(overtime_hours) * num(overtime_rate)
    return compute_gross_taxes(gross, state, federal_pct, rates)
