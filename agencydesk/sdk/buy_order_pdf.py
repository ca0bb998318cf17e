"""
Buy order PDF generation.

Maps a saved BuyOrderRecord onto the named text fields of an AcroForm
template and writes a flattened copy.

Field resolution order for each template field:

1. Direct table - exact field name (DlrName, Price, SalesPrice, ...)
2. Alias table - normalized name (lowercase, alphanumerics only), covering
   the naming variants seen across template revisions
3. Heuristics - substring/regex rules on the field name, including the
   two-slot "total" disambiguation handled by TotalSlotMachine

TotalFees and Payoff are always left blank, whatever matches them.

A non-blank value from an earlier tier always wins over a later tier.
"""

import logging
import re
import time
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.errors import PdfReadError
from PyPDF2.generic import (
    BooleanObject,
    DictionaryObject,
    NameObject,
    NumberObject,
    TextStringObject,
)

from .config import get_dealer_info, get_output_path
from .schemas import BuyOrderRecord

logger = logging.getLogger(__name__)

FORCED_BLANK = ("totalfees", "payoff")

RIGHT_ALIGN_RE = re.compile(
    r"\b(Price|Allow|CityTax|StTax|SalesPrice|CashDn|AmtFin|FilingFee|Fees|TotalFees)\b",
    re.IGNORECASE,
)
TRADE_RE = re.compile(r"allow|trade", re.IGNORECASE)
SELLING_PRICE_RE = re.compile(r"^(price|salesprice|sellingprice)$", re.IGNORECASE)
SUBTOTAL_RE = re.compile(r"^subtotal$", re.IGNORECASE)
TOTAL_LIKE_RE = re.compile(
    r"\b(total|balanceowed|pluspayoff|totalwithtaxes|totalamount)\b", re.IGNORECASE
)
DA_FONT_RE = re.compile(r"(/[^\s/]+)\s+[\d.]+\s+Tf")

DEFAULT_FONT_SIZE = 12
DEALER_NAME_FONT_SIZE = 14
VIN_FONT_SIZE = 11.5
DEBUG_FONT_SIZE = 8

# PDF field flag bit 1
READ_ONLY = 1
# /Q quadding value for right-aligned text
ALIGN_RIGHT = 2


class PdfFillError(Exception):
    """Raised when the template cannot be read or the output cannot be written."""
    pass


def format_currency(value: Any) -> str:
    """Format as 1,234.56; blank for None, empty or non-numeric values."""
    if value is None or value == "":
        return ""
    try:
        number = float(str(value).replace(",", "")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return ""
    if number != number:
        return ""
    return f"{number:,.2f}"


def normalize_field_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", str(name or "").lower())


def _rate_text(order: BuyOrderRecord, *keys: str) -> str:
    items = [t for t in order.tax_items if t.key in keys]
    if not items:
        return ""
    total = sum(t.pct_percent for t in items)
    if len(keys) > 1 and not total:
        return ""
    return f"{total:.2f}"


def _deal_date(order: BuyOrderRecord, today: Optional[date] = None) -> str:
    d = order.created_at.date() if order.created_at else (today or date.today())
    return f"{d.month}/{d.day}/{d.year}"


def _amount(value: float) -> str:
    return format_currency(value) if value else ""


# =============================================================================
# Value tables
# =============================================================================


class DerivedFigures:
    """Totals the form prints, derived from the frozen tax line items."""

    def __init__(self, order: BuyOrderRecord):
        self.state_tax = order.tax_amount("state")
        self.county_tax = order.tax_amount("county")
        self.city_tax = order.tax_amount("city")
        self.rtd_combined = order.tax_amount("rtd") + order.tax_amount("cd")
        self.total_taxes = self.state_tax + self.county_tax + self.city_tax + self.rtd_combined
        self.total_price = (order.price or 0) + self.total_taxes
        self.total_other_fees = self.total_price + (order.fee or 0)
        self.cash_down = order.down_payment or 0
        self.amount_to_finance = self.total_other_fees - self.cash_down

        self.selling_price_text = _amount(order.price)
        self.total_text = _amount(self.total_price)
        self.total_other_fees_text = _amount(self.total_other_fees)
        self.cash_down_text = _amount(self.cash_down)
        self.amount_to_finance_text = _amount(self.amount_to_finance)
        self.trade_allowance_text = format_currency(order.trade_allowance or 0)


def build_field_values(
    order: BuyOrderRecord,
    dealer: Optional[Dict[str, str]] = None,
    today: Optional[date] = None,
) -> Tuple[Dict[str, str], Dict[str, str], DerivedFigures]:
    """Build the direct and alias value tables for an order.

    Args:
        order: Saved buy order
        dealer: Dealer identity (name, address, csz, phone); profile when None
        today: Deal date fallback for orders without created_at

    Returns:
        (direct, aliases, figures)
    """
    dealer = dealer or get_dealer_info()
    fig = DerivedFigures(order)

    city = (order.city or "").replace("_", " ")
    mileage = str(order.mileage or "").replace(",", "").strip()

    direct = {
        # Header
        "DlrName": dealer.get("name", ""),
        "DlrAddress": dealer.get("address", ""),
        "DlrCSZ": dealer.get("csz", ""),
        "DlrPh": dealer.get("phone", ""),
        "Slsmn": order.salesman,
        "StockNo": order.stock_number,
        "DealDate": _deal_date(order, today),

        # Purchaser
        "Buyer": order.buyer_name,
        "Address": order.address,
        "BuyerCSZ": f"{city}, {order.state} {order.zip}".strip(),
        "HomePh": order.phone,
        "BuyerDL": order.license_number,
        "BuyerDOB": order.birth_date,

        # Vehicle
        "Yr": order.year,
        "Make": order.make,
        "Model": order.model,
        "Body": order.body,
        "Color": order.color,
        "Miles": mileage if mileage.replace(".", "", 1).isdigit() else "",
        "VIN": order.vin,
        "Cyl": order.cylinders,
        "FuelType": order.fuel_type,

        # Pricing
        "Price": fig.selling_price_text,
        "SalesPrice": fig.total_text,

        # Taxes; the template prints the % sign itself
        "StTax": _amount(fig.state_tax),
        "StTaxRate": _rate_text(order, "state"),
        "CityTax": _amount(fig.city_tax),
        "CityTaxRate": _rate_text(order, "city"),
        "MiscTax": _amount(fig.county_tax),
        "MiscTaxRate": _rate_text(order, "county"),
        "RTDTax": _amount(fig.rtd_combined),
        "RTDTaxRate": _rate_text(order, "rtd", "cd"),

        # Fees and totals
        "FilingFee": _amount(order.fee),
        "FilingFeeDesc": "Filing Fee" if order.fee else "",
        "TotalFees": "",
        "Payoff": "",
        "Fees": fig.total_other_fees_text,
        "Total": fig.total_text,

        # Payments
        "CashDn": fig.cash_down_text,
        "AmtFin": fig.amount_to_finance_text,
    }

    aliases = {normalize_field_name(k): v for k, v in direct.items()}
    aliases.update({
        "total": fig.total_text,
        "subtotal": fig.selling_price_text,
        "balanceowed": fig.total_text,
        "pluspayoff": fig.total_text,
        "totalwithtaxes": fig.total_text,
        "totalotherfees": fig.total_other_fees_text,
        "totalother": fig.total_other_fees_text,
        "otherfees": fig.total_other_fees_text,
        "fees": fig.total_other_fees_text,
        "cashdn": fig.cash_down_text,
        "totalcashdownpayment": fig.cash_down_text,
        "amounttofinance": fig.amount_to_finance_text,
        "amtfin": fig.amount_to_finance_text,
    })
    for key in FORCED_BLANK:
        aliases[key] = ""
    aliases["salesprice"] = fig.total_text

    return direct, aliases, fig


# =============================================================================
# Field resolution
# =============================================================================


class TotalSlotMachine:
    """Decides what an ambiguous "total" field shows.

    Templates print two stacked totals: the first is the selling price
    (a visual subtotal), the next is the tax-inclusive total.

    AWAITING_SUBTOTAL --subtotal filled or total claimed--> AWAITING_TOTAL
    AWAITING_TOTAL    --total claimed-->                    DONE
    """

    AWAITING_SUBTOTAL = "awaiting_subtotal"
    AWAITING_TOTAL = "awaiting_total"
    DONE = "done"

    def __init__(self):
        self.state = self.AWAITING_SUBTOTAL

    def subtotal_filled(self) -> None:
        if self.state == self.AWAITING_SUBTOTAL:
            self.state = self.AWAITING_TOTAL

    def claim_total(self) -> str:
        """Consume one ambiguous total slot; returns "selling_price" or "total"."""
        if self.state == self.AWAITING_SUBTOTAL:
            self.state = self.AWAITING_TOTAL
            return "selling_price"
        self.state = self.DONE
        return "total"


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def resolve_field_value(
    field_name: str,
    direct: Dict[str, str],
    aliases: Dict[str, str],
    figures: DerivedFigures,
    slots: TotalSlotMachine,
) -> str:
    """Resolve one template field to its display value ("" for none)."""
    normalized = normalize_field_name(field_name)
    if normalized in FORCED_BLANK:
        return ""

    value = direct.get(field_name)
    if _blank(value):
        value = aliases.get(normalized, value)

    name = str(field_name or "").strip()
    lname = name.lower()

    if _blank(value) and TRADE_RE.search(lname):
        value = figures.trade_allowance_text

    if _blank(value) and SELLING_PRICE_RE.match(name):
        value = figures.selling_price_text

    if _blank(value) and SUBTOTAL_RE.match(name):
        value = figures.selling_price_text

    if _blank(value) and TOTAL_LIKE_RE.search(lname) and "other" not in lname:
        if slots.claim_total() == "selling_price":
            value = figures.selling_price_text
        else:
            value = figures.total_text

    if _blank(value) and normalized == "cashdn":
        value = figures.cash_down_text
    if _blank(value) and normalized == "amtfin":
        value = figures.amount_to_finance_text

    if normalized == "subtotal" and not _blank(value):
        slots.subtotal_filled()

    return "" if value is None else str(value)


def map_fields(
    order: BuyOrderRecord,
    field_names: List[str],
    dealer: Optional[Dict[str, str]] = None,
    today: Optional[date] = None,
) -> Dict[str, str]:
    """Resolve every field name, in template order, to a value."""
    direct, aliases, figures = build_field_values(order, dealer, today)
    slots = TotalSlotMachine()
    return {
        name: resolve_field_value(name, direct, aliases, figures, slots)
        for name in field_names
    }


def font_size_for(field_name: str) -> float:
    if re.match(r"^DlrName$", field_name, re.IGNORECASE):
        return DEALER_NAME_FONT_SIZE
    if "vin" in field_name.lower():
        return VIN_FONT_SIZE
    return DEFAULT_FONT_SIZE


def is_right_aligned(field_name: str) -> bool:
    return bool(RIGHT_ALIGN_RE.search(field_name))


def output_filename(order: BuyOrderRecord, now_ms: Optional[int] = None) -> str:
    buyer = re.sub(r"\s+", "_", order.buyer_name.strip()) if order.buyer_name else "unknown"
    ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"BUY_ORDER_{buyer}_{ms}.pdf"


# =============================================================================
# PDF writing
# =============================================================================


def _iter_fields(
    fields, inherited_type: Optional[str] = None
) -> Iterator[Tuple[str, Optional[str], DictionaryObject]]:
    """Yield (name, field type, field dict) for each named terminal field."""
    for ref in fields:
        field = ref.get_object()
        field_type = field.get("/FT", inherited_type)
        kids = field.get("/Kids")
        named_kids = [k for k in kids or [] if "/T" in k.get_object()]
        if named_kids:
            yield from _iter_fields(named_kids, field_type)
            continue
        if "/T" in field:
            yield str(field["/T"]), field_type, field


def _widgets(field: DictionaryObject) -> List[DictionaryObject]:
    kids = field.get("/Kids")
    if kids:
        return [k.get_object() for k in kids]
    return [field]


def _with_font_size(da: Optional[str], size: float) -> str:
    size_text = f"{size:g}"
    if da and DA_FONT_RE.search(da):
        return DA_FONT_RE.sub(lambda m: f"{m.group(1)} {size_text} Tf", da, count=1)
    return f"/Helv {size_text} Tf 0 g"


def _write_field(field: DictionaryObject, value: str, size: float, right: bool) -> None:
    field[NameObject("/V")] = TextStringObject(value)
    for target in [field] + [w for w in _widgets(field) if w is not field]:
        target[NameObject("/DA")] = TextStringObject(
            _with_font_size(target.get("/DA") or field.get("/DA"), size)
        )
        if right:
            target[NameObject("/Q")] = NumberObject(ALIGN_RIGHT)


def _flatten(acro_form: DictionaryObject, fields: List[DictionaryObject]) -> None:
    """Mark every field read-only and ask viewers to rebuild appearances."""
    for field in fields:
        flags = int(field.get("/Ff", 0))
        field[NameObject("/Ff")] = NumberObject(flags | READ_ONLY)
    acro_form[NameObject("/NeedAppearances")] = BooleanObject(True)


def template_field_names(template_path: Path) -> List[Tuple[str, Optional[str]]]:
    """(name, field type) for every named field in a template, in form order.

    Raises:
        PdfFillError: Template missing or unreadable
    """
    template_path = Path(template_path)
    if not template_path.exists():
        raise PdfFillError(f"Template not found: {template_path}")
    try:
        reader = PdfReader(str(template_path))
        root = reader.trailer["/Root"]
        if "/AcroForm" not in root:
            return []
        return [(name, ftype) for name, ftype, _ in _iter_fields(root["/AcroForm"].get("/Fields", []))]
    except (PdfReadError, OSError, ValueError, KeyError) as e:
        raise PdfFillError(f"Failed to load template {template_path}: {e}")


def fill_buy_order_pdf(
    order: BuyOrderRecord,
    template_path: Path,
    output_dir: Optional[Path] = None,
    dealer: Optional[Dict[str, str]] = None,
    debug: bool = False,
) -> Dict[str, Any]:
    """Fill the buy order template and write a flattened copy.

    Args:
        order: Saved buy order
        template_path: AcroForm PDF template
        output_dir: Destination directory (default: data/output)
        dealer: Dealer identity override (default: profile)
        debug: Write each field's own name (8pt) instead of its value

    Returns:
        Dict with path, filled, fields and warnings

    Raises:
        PdfFillError: Template missing/unreadable or output not writable
    """
    template_path = Path(template_path)
    if not template_path.exists():
        raise PdfFillError(f"Template not found: {template_path}")

    try:
        reader = PdfReader(str(template_path))
        writer = PdfWriter()
        writer.append_pages_from_reader(reader)
        root = reader.trailer["/Root"]
        acro_form = root["/AcroForm"].clone(writer) if "/AcroForm" in root else None
    except (PdfReadError, OSError, ValueError, KeyError) as e:
        raise PdfFillError(f"Failed to load template {template_path}: {e}")

    warnings = []
    filled = 0

    if acro_form is None or not acro_form.get("/Fields"):
        logger.warning(f"{template_path.name} has no form fields")
        fields = []
    else:
        # PyPDF2 3.x exposes no public setter for the catalog AcroForm
        writer._root_object[NameObject("/AcroForm")] = writer._add_object(acro_form)
        fields = list(_iter_fields(acro_form["/Fields"]))

    logger.debug(f"{len(fields)} form fields in {template_path.name}")

    direct, aliases, figures = build_field_values(order, dealer)
    slots = TotalSlotMachine()

    for name, field_type, field in fields:
        try:
            if field_type != "/Tx":
                logger.debug(f"skipping non-text field '{name}' ({field_type})")
                continue

            value = resolve_field_value(name, direct, aliases, figures, slots)

            if debug:
                _write_field(field, name, DEBUG_FONT_SIZE, right=False)
                filled += 1
                continue

            if not value.strip():
                logger.debug(f"'{name}' - no value")
                continue

            _write_field(field, value, font_size_for(name), is_right_aligned(name))
            filled += 1
            logger.debug(f"'{name}' = '{value}'")
        except Exception as e:
            logger.error(f"failed to fill field '{name}': {e}")

    logger.info(f"filled {filled}/{len(fields)} fields")
    if filled == 0:
        message = "No fields were filled; check the template's field names (try --debug)"
        logger.warning(message)
        warnings.append(message)

    if acro_form is not None:
        _flatten(acro_form, [f for _, _, f in fields])

    output_dir = Path(output_dir) if output_dir else get_output_path()
    output_path = output_dir / output_filename(order)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        with open(output_path, "wb") as f:
            writer.write(f)
    except OSError as e:
        raise PdfFillError(f"Failed to write {output_path}: {e}")

    logger.info(f"wrote {output_path}")
    return {
        "path": output_path,
        "filled": filled,
        "fields": len(fields),
        "warnings": warnings,
    }
