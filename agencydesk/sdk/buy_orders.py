"""Vehicle buy orders: save with frozen tax figures, register, search."""

import logging
from typing import Any, Dict, List, Optional

from .config import get_profile_value
from .schemas import BUY_ORDER_STATUSES, BuyOrderRecord
from .store import DocumentStore, RecordNotFoundError
from .taxes.rates import RateConfig
from .taxes.vehicle import DEFAULT_FEE, DEFAULT_STATE, compute_buy_order
from .validation import (
    ValidationError,
    check_choice,
    check_non_negative,
    check_state,
    check_zip,
    require,
)

logger = logging.getLogger(__name__)

COLLECTION = "buyOrders"

REQUIRED_FIELDS = ["buyer_name", "address", "vin", "make", "model"]
TEXT_FIELDS = (
    "buyer_name", "address", "phone", "city", "state", "zip", "license_number",
    "birth_date", "year", "make", "model", "body", "color", "mileage", "vin",
    "cylinders", "fuel_type", "stock_number", "salesman", "source",
)
AMOUNT_FIELDS = ("price", "fee", "down_payment", "trade_allowance")
SEARCH_FIELDS = ("buyer_name", "address", "vin", "city", "status")


def default_fee() -> float:
    """Filing fee from the profile, else the built-in default."""
    fee = get_profile_value("default_fee")
    return DEFAULT_FEE if fee is None else float(fee)


def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for key in TEXT_FIELDS:
        if key in data and data[key] is not None:
            cleaned[key] = str(data[key]).strip()
    for key in AMOUNT_FIELDS:
        if key in data and data[key] not in (None, ""):
            cleaned[key] = data[key]
    if "status" in data:
        cleaned["status"] = data["status"]
    if cleaned.get("state"):
        cleaned["state"] = cleaned["state"].upper()
    if cleaned.get("vin"):
        cleaned["vin"] = cleaned["vin"].upper()
    return cleaned


def validate_buy_order(data: Dict[str, Any]) -> List[str]:
    errors = require(data, REQUIRED_FIELDS)
    errors += check_state(data.get("state", ""))
    errors += check_zip(data.get("zip", ""))
    errors += check_non_negative(data, AMOUNT_FIELDS)
    errors += check_choice(data.get("status", "draft"), BUY_ORDER_STATUSES, "status")
    return errors


def _priced(data: Dict[str, Any], rates: Optional[RateConfig]) -> Dict[str, Any]:
    """Inputs plus the derived figures frozen at save time."""
    calc = compute_buy_order(
        data.get("price", 0),
        data.get("city"),
        fee=data.get("fee"),
        down_payment=data.get("down_payment", 0),
        state=data.get("state") or DEFAULT_STATE,
        rates=rates,
    )
    state_item = calc.item("state")
    city_item = calc.item("city")
    return {
        **data,
        "price": calc.price,
        "fee": calc.fee,
        "down_payment": calc.down_payment,
        "trade_allowance": float(data.get("trade_allowance") or 0),
        "tax_items": [t.model_dump() for t in calc.tax_items],
        "total_taxes": calc.total_taxes,
        "subtotal": calc.subtotal,
        "total_with_fees": calc.total_with_fees,
        "balance_due": calc.balance_due,
        "state_tax": state_item.amount if state_item else 0.0,
        "city_tax": city_item.amount if city_item else 0.0,
    }


def create_buy_order(
    store: DocumentStore,
    data: Dict[str, Any],
    rates: Optional[RateConfig] = None,
) -> BuyOrderRecord:
    """Price and save a new buy order.

    City defaults to the rate table's default jurisdiction; fee defaults
    to the profile's default_fee.

    Raises:
        ValidationError: Missing buyer/vehicle fields or malformed values
    """
    cleaned = _clean(data)
    cleaned.setdefault("status", "draft")
    cleaned.setdefault("state", DEFAULT_STATE)
    if not cleaned.get("city"):
        cleaned["city"] = rates.default_jurisdiction if rates else "Denver"
    if "fee" not in cleaned:
        cleaned["fee"] = default_fee()

    errors = validate_buy_order(cleaned)
    if errors:
        raise ValidationError(errors)

    doc = store.add(COLLECTION, _priced(cleaned, rates))
    logger.info(f"created buy order {doc['id']} for {cleaned['buyer_name']} ({cleaned['city']})")
    return BuyOrderRecord(**doc)


def get_buy_order(store: DocumentStore, order_id: str) -> BuyOrderRecord:
    doc = store.get(COLLECTION, order_id)
    if doc is None:
        raise RecordNotFoundError(COLLECTION, order_id)
    return BuyOrderRecord(**doc)


def update_buy_order(
    store: DocumentStore,
    order_id: str,
    changes: Dict[str, Any],
    rates: Optional[RateConfig] = None,
) -> BuyOrderRecord:
    """Edit a buy order and re-freeze its figures against the current rates."""
    existing = get_buy_order(store, order_id)
    merged = existing.model_dump(
        exclude={"id", "created_at", "updated_at", "tax_items", "total_taxes", "subtotal",
                 "total_with_fees", "balance_due", "state_tax", "city_tax"}
    )
    merged.update(_clean(changes))

    errors = validate_buy_order(merged)
    if errors:
        raise ValidationError(errors)

    doc = store.update(COLLECTION, order_id, _priced(merged, rates))
    logger.info(f"updated buy order {order_id}")
    return BuyOrderRecord(**doc)


def mark_registered(store: DocumentStore, order_id: str) -> BuyOrderRecord:
    """Set status to registered without touching the frozen figures."""
    doc = store.update(COLLECTION, order_id, {"status": "registered"})
    logger.info(f"buy order {order_id} registered")
    return BuyOrderRecord(**doc)


def delete_buy_order(store: DocumentStore, order_id: str) -> bool:
    deleted = store.delete(COLLECTION, order_id)
    if deleted:
        logger.info(f"deleted buy order {order_id}")
    return deleted


def list_buy_orders(
    store: DocumentStore,
    search: Optional[str] = None,
    status: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[BuyOrderRecord]:
    """Buy orders newest first, filtered by status and a search term."""
    where = [("status", "==", status)] if status else None
    orders = [BuyOrderRecord(**d) for d in store.query(COLLECTION, where=where)]
    if search:
        term = search.strip().lower()
        orders = [
            o for o in orders
            if any(term in str(getattr(o, f) or "").lower() for f in SEARCH_FIELDS)
        ]
    return orders[:limit] if limit is not None else orders
