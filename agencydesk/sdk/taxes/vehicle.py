"""Vehicle buy order pricing: jurisdiction sales tax, filing fee, balance due."""

from typing import Any, Optional

from ..schemas import BuyOrderTotals, TaxLineItem
from .coerce import num
from .rates import RateConfig

DEFAULT_FEE = 47.20
DEFAULT_STATE = "CO"

_DEFAULT_RATES = RateConfig()


def tax_display_name(key: str, state: str = DEFAULT_STATE) -> str:
    """Display name for a rate component; unknown keys show as-is."""
    names = {
        "state": f"State Tax ({state})",
        "county": "County Tax",
        "city": "City Tax",
        "cd": "CD Tax",
        "rtd": "RTD Tax",
    }
    return names.get(key, key)


def compute_buy_order(
    price: Any,
    city: Optional[str] = None,
    fee: Any = DEFAULT_FEE,
    down_payment: Any = 0,
    state: str = DEFAULT_STATE,
    rates: Optional[RateConfig] = None,
) -> BuyOrderTotals:
    """Compute the tax breakdown and totals for a vehicle sale.

    The city's components are applied in table order. Unknown cities fall
    back to the default jurisdiction (see RateConfig.jurisdiction).

    Args:
        price: Vehicle selling price
        city: City key in the rate table (e.g., "Colorado_Springs")
        fee: Flat filing fee added after taxes (None means the default)
        down_payment: Cash down
        state: State shown in the state tax line's name
        rates: RateConfig (built-in defaults when None)
    """
    rates = rates or _DEFAULT_RATES
    p = num(price)
    _, components = rates.jurisdiction(city)

    tax_items = []
    for key, value in components.items():
        pct_percent = num(value)
        pct = pct_percent / 100
        tax_items.append(TaxLineItem(
            key=key,
            name=tax_display_name(key, state or DEFAULT_STATE),
            pct=pct,
            pct_percent=pct_percent,
            amount=p * pct,
        ))

    total_taxes = sum(t.amount for t in tax_items)
    subtotal = p + total_taxes
    fee = DEFAULT_FEE if fee is None else num(fee)
    total_with_fees = subtotal + fee
    down = num(down_payment)

    return BuyOrderTotals(
        price=p,
        tax_items=tax_items,
        total_taxes=total_taxes,
        subtotal=subtotal,
        fee=fee,
        total_with_fees=total_with_fees,
        down_payment=down,
        balance_due=max(0.0, total_with_fees - down),
    )
