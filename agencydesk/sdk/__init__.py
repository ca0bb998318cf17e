"""Agency Desk SDK - payroll, buy order and insurance records for a small agency."""

from .config import (
    get_config_dir,
    get_settings_path,
    load_settings,
    save_settings,
    get_setting,
    set_setting,
    get_profile_path,
    load_profile,
    save_profile,
    get_profile_value,
    set_profile_value,
    validate_profile_key,
    get_dealer_info,
    ProfileNotFoundError,
    # XDG paths
    get_data_path,
    get_output_path,
)

from .store import (
    DocumentStore,
    RecordNotFoundError,
    StoreError,
    open_store,
)

from .validation import ValidationError

from .schemas import (
    PayrollTaxes,
    TaxLineItem,
    BuyOrderTotals,
    YTDSummary,
    YTDBaseline,
    Client,
    PaystubRecord,
    BuyOrderRecord,
    InsurancePolicyRecord,
)

from .ytd import (
    ytd_as_of_now,
    ytd_through_paystub,
)

from .buy_order_pdf import (
    PdfFillError,
    TotalSlotMachine,
    build_field_values,
    resolve_field_value,
    fill_buy_order_pdf,
    format_currency,
)

from . import clients, paystubs, buy_orders, insurance, dashboard, taxes

__all__ = [
    # Config
    "get_config_dir",
    "get_settings_path",
    "load_settings",
    "save_settings",
    "get_setting",
    "set_setting",
    "get_profile_path",
    "load_profile",
    "save_profile",
    "get_profile_value",
    "set_profile_value",
    "validate_profile_key",
    "get_dealer_info",
    "ProfileNotFoundError",
    "get_data_path",
    "get_output_path",
    # Store
    "DocumentStore",
    "RecordNotFoundError",
    "StoreError",
    "open_store",
    "ValidationError",
    # Schemas
    "PayrollTaxes",
    "TaxLineItem",
    "BuyOrderTotals",
    "YTDSummary",
    "YTDBaseline",
    "Client",
    "PaystubRecord",
    "BuyOrderRecord",
    "InsurancePolicyRecord",
    # YTD
    "ytd_as_of_now",
    "ytd_through_paystub",
    # PDF
    "PdfFillError",
    "TotalSlotMachine",
    "build_field_values",
    "resolve_field_value",
    "fill_buy_order_pdf",
    "format_currency",
    # Services
    "clients",
    "paystubs",
    "buy_orders",
    "insurance",
    "dashboard",
    "taxes",
]
