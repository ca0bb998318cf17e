"""taxes - Rate tables and tax calculations.

Scope:
- Vehicle sales tax components by city (percentages)
- Flat payroll withholding by state plus FICA constants
- Paystub withholding and buy order pricing

Constraints:
- Pure calculation - no store access, no config file reads at call time
- Rates arrive as an explicit RateConfig (load_rate_config builds one)
- Bad numeric input is coerced to 0, never raised

Modules:
- rates: default tables, RateConfig, persisted overrides
- payroll: compute_taxes / compute_paystub / compute_gross_taxes
- vehicle: compute_buy_order

Usage:
    from agencydesk.sdk.taxes import compute_paystub, compute_buy_order, load_rate_config

    rates = load_rate_config(store)
    stub = compute_paystub(40, 25, 5, 37.5, state="CO", federal_pct=0.12, rates=rates)
    order = compute_buy_order(18500, "Aurora", fee=47.20, down_payment=2000, rates=rates)
"""

from .coerce import num

from .rates import (
    CITY_TAX_RATES,
    STATE_TAX,
    SS_PCT,
    MEDICARE_PCT,
    DEFAULT_JURISDICTION,
    RATE_COMPONENTS,
    RateConfig,
    RateTableError,
    load_rate_config,
    save_rate_config,
    load_rates_yaml,
    validate_vehicle_rates,
)

from .payroll import (
    DEFAULT_FEDERAL_PCT,
    compute_taxes,
    compute_paystub,
    compute_gross_taxes,
)

from .vehicle import (
    DEFAULT_FEE,
    compute_buy_order,
    tax_display_name,
)

__all__ = [
    "num",
    # Rates
    "CITY_TAX_RATES",
    "STATE_TAX",
    "SS_PCT",
    "MEDICARE_PCT",
    "DEFAULT_JURISDICTION",
    "RATE_COMPONENTS",
    "RateConfig",
    "RateTableError",
    "load_rate_config",
    "save_rate_config",
    "load_rates_yaml",
    "validate_vehicle_rates",
    # Payroll
    "DEFAULT_FEDERAL_PCT",
    "compute_taxes",
    "compute_paystub",
    "compute_gross_taxes",
    # Vehicle
    "DEFAULT_FEE",
    "compute_buy_order",
    "tax_display_name",
]
