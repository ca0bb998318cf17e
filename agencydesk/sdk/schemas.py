"""Pydantic schemas for Agency Desk records and computed results.

Computed results use extra='forbid' so a typo in a field name is an error.
Stored records use extra='ignore' so documents written by older versions
(or carrying store bookkeeping like updated_at) still load.
"""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


BuyOrderStatus = Literal["draft", "registered"]
PolicyStatus = Literal["active", "expired", "pending", "cancelled"]

POLICY_STATUSES = ("active", "expired", "pending", "cancelled")
BUY_ORDER_STATUSES = ("draft", "registered")


# =============================================================================
# Computed results
# =============================================================================


class PayrollTaxes(BaseModel):
    """Withholding breakdown for a gross amount."""

    model_config = ConfigDict(extra="forbid")

    gross: float = Field(..., description="Gross pay the taxes were computed on")
    ss: float = Field(..., description="Social Security withholding")
    medicare: float = Field(..., description="Medicare withholding")
    state_tax: float = Field(..., description="State income tax withholding")
    federal: float = Field(..., description="Federal income tax withholding")
    taxes: float = Field(..., description="Sum of all withholding")
    net: float = Field(..., description="gross - taxes (not clamped)")


class TaxLineItem(BaseModel):
    """One jurisdiction component of a vehicle sale's tax."""

    model_config = ConfigDict(extra="forbid")

    key: str = Field(..., description="Component key (state, county, city, cd, rtd)")
    name: str = Field(..., description="Display name")
    pct: float = Field(..., description="Rate as a decimal fraction (0.029)")
    pct_percent: float = Field(..., description="Rate as a percentage (2.90)")
    amount: float = Field(..., description="price * pct")


class BuyOrderTotals(BaseModel):
    """Pricing breakdown for a vehicle buy order."""

    model_config = ConfigDict(extra="forbid")

    price: float
    tax_items: List[TaxLineItem]
    total_taxes: float
    subtotal: float = Field(..., description="price + total_taxes")
    fee: float = Field(..., description="Flat filing fee")
    total_with_fees: float = Field(..., description="subtotal + fee")
    down_payment: float
    balance_due: float = Field(..., ge=0, description="max(0, total_with_fees - down_payment)")

    def item(self, key: str) -> Optional[TaxLineItem]:
        """Tax line item for a component key, or None."""
        return next((t for t in self.tax_items if t.key == key), None)


class YTDSummary(BaseModel):
    """Cumulative payroll figures for a client."""

    model_config = ConfigDict(extra="forbid")

    year: int
    gross: float = 0
    taxes: float = 0
    net: float = 0
    federal: float = 0
    state_tax: float = 0
    ss: float = 0
    medicare: float = 0
    regular: float = Field(default=0, description="Regular (non-overtime) gross")
    overtime: float = Field(default=0, description="Overtime gross")
    paystub_count: int = Field(default=0, description="Paystubs that contributed")


# =============================================================================
# Stored records
# =============================================================================


class StoredRecord(BaseModel):
    """Fields the document store assigns to every record."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class YTDBaseline(BaseModel):
    """Payroll accrued before the tracked paystub history, for one year.

    Older baselines carry only a combined ``gross``; newer ones split it
    into regular and overtime and also store the total.
    """

    model_config = ConfigDict(extra="ignore")

    year: int
    regular_gross: Optional[float] = None
    overtime_gross: Optional[float] = None
    gross: float = 0
    federal_pct: Optional[float] = Field(
        default=None, ge=0, le=1, description="Federal withholding fraction used for the baseline"
    )
    taxes: float = 0
    net: float = 0
    federal: float = 0
    state_tax: float = 0
    ss: float = 0
    medicare: float = 0

    @property
    def has_split(self) -> bool:
        return self.regular_gross is not None or self.overtime_gross is not None

    @property
    def total_gross(self) -> float:
        """Regular + overtime when split, else the legacy combined gross."""
        if self.has_split:
            return (self.regular_gross or 0) + (self.overtime_gross or 0)
        return self.gross


class Client(StoredRecord):
    """A payroll client."""

    full_name: str
    address: str = ""
    state: str = ""
    zip: str = ""
    ssn_last4: str = ""
    account_last4: str = ""
    active: bool = True
    ytd_base: Optional[YTDBaseline] = None


class PaystubRecord(StoredRecord):
    """One pay period for one client. Derived amounts are creation-time snapshots."""

    client_id: str
    client_name: str = ""
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    hours: float = 0
    rate: float = 0
    overtime_hours: float = 0
    overtime_rate: float = 0
    federal_pct: float = 0.12
    gross: float = 0
    federal: float = 0
    state_tax: float = 0
    ss: float = 0
    medicare: float = 0
    taxes: float = 0
    net: float = 0

    @property
    def regular_gross(self) -> float:
        return self.hours * self.rate

    @property
    def overtime_gross(self) -> float:
        return self.overtime_hours * self.overtime_rate


class BuyOrderRecord(StoredRecord):
    """A vehicle sale. Tax figures are frozen at save time."""

    # Buyer
    buyer_name: str
    address: str = ""
    phone: str = ""
    city: str = "Denver"
    state: str = "CO"
    zip: str = ""
    license_number: str = ""
    birth_date: str = ""

    # Vehicle
    year: str = ""
    make: str = ""
    model: str = ""
    body: str = ""
    color: str = ""
    mileage: str = ""
    vin: str = ""
    cylinders: str = ""
    fuel_type: str = ""
    stock_number: str = ""

    salesman: str = ""
    source: str = ""

    # Pricing inputs
    price: float = 0
    fee: float = 47.20
    down_payment: float = 0
    trade_allowance: float = 0

    # Frozen derived figures
    tax_items: List[TaxLineItem] = Field(default_factory=list)
    total_taxes: float = 0
    subtotal: float = 0
    total_with_fees: float = 0
    balance_due: float = 0
    state_tax: float = 0
    city_tax: float = 0

    status: BuyOrderStatus = "draft"

    def tax_amount(self, key: str) -> float:
        """Amount of the tax line item with this key (0 if absent)."""
        item = next((t for t in self.tax_items if t.key == key), None)
        return item.amount if item else 0.0


class InsurancePolicyRecord(StoredRecord):
    """An insurance policy; no derived computation."""

    holder_name: str
    carrier: str = ""
    policy_number: str = ""
    vin: str = ""
    year: str = ""
    make: str = ""
    model: str = ""
    address: str = ""
    state: str = ""
    start_date: str = ""
    end_date: str = ""
    premium: float = 0
    status: PolicyStatus = "active"
