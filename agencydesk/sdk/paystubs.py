"""
Paystubs and client YTD baselines.

Every derived amount on a paystub (gross, the tax breakdown and net) is
computed once at creation from the client's current state and the
period's federal percent, then stored. Later rate or profile edits never
rewrite existing paystubs.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from .clients import get_client
from .config import get_profile_value
from .schemas import Client, PaystubRecord, YTDBaseline, YTDSummary
from .store import DocumentStore, RecordNotFoundError
from .taxes.payroll import DEFAULT_FEDERAL_PCT, compute_gross_taxes, compute_paystub
from .taxes.rates import RateConfig
from .validation import (
    ValidationError,
    check_date,
    check_non_negative,
    require,
)
from .ytd import ytd_as_of_now, ytd_through_paystub

logger = logging.getLogger(__name__)

COLLECTION = "paystubs"

PERIOD_DAYS = {"weekly": 7, "biweekly": 14}
BULK_COUNT = 4

NUMERIC_FIELDS = ("hours", "rate", "overtime_hours", "overtime_rate")


def default_federal_pct() -> float:
    """Federal withholding fraction from the profile, else the built-in 12%."""
    pct = get_profile_value("default_federal_pct")
    return DEFAULT_FEDERAL_PCT if pct is None else float(pct)


def _federal_pct(value: Any) -> float:
    return default_federal_pct() if value is None else float(value)


def _validate_pay_inputs(data: Dict[str, Any]) -> List[str]:
    errors = require(data, ["hours", "rate"])
    errors += check_non_negative(data, NUMERIC_FIELDS)
    errors += _check_federal_pct(data.get("federal_pct"))
    return errors


def _check_federal_pct(value: Any) -> List[str]:
    if value is None:
        return []
    try:
        pct = float(value)
    except (TypeError, ValueError):
        return [f"federal_pct must be a number, got '{value}'"]
    if not 0 <= pct <= 1:
        return [f"federal_pct must be a fraction between 0 and 1 (0.12 = 12%), got {pct}"]
    return []


def _parse_date(value: Any, field: str) -> date:
    if isinstance(value, date):
        return value
    errors = check_date(value, field)
    if errors:
        raise ValidationError(errors)
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError([f"{field} is not a valid date: '{value}'"])


def _paystub_payload(
    client: Client,
    period_start: date,
    period_end: date,
    hours: float,
    rate: float,
    overtime_hours: float,
    overtime_rate: float,
    federal_pct: float,
    rates: Optional[RateConfig],
) -> Dict[str, Any]:
    calc = compute_paystub(
        hours, rate, overtime_hours, overtime_rate,
        state=client.state, federal_pct=federal_pct, rates=rates,
    )
    return {
        "client_id": client.id,
        "client_name": client.full_name,
        "period_start": period_start.isoformat(),
        "period_end": period_end.isoformat(),
        "hours": hours,
        "rate": rate,
        "overtime_hours": overtime_hours,
        "overtime_rate": overtime_rate,
        "federal_pct": federal_pct,
        **calc.model_dump(),
    }


def create_paystub(
    store: DocumentStore,
    client_id: str,
    data: Dict[str, Any],
    rates: Optional[RateConfig] = None,
) -> PaystubRecord:
    """Create one paystub for a client.

    Args:
        store: Document store
        client_id: Client the period belongs to
        data: period_start, period_end (YYYY-MM-DD), hours, rate and
              optionally overtime_hours, overtime_rate, federal_pct (fraction)
        rates: RateConfig for the state withholding lookup

    Raises:
        RecordNotFoundError: Unknown client
        ValidationError: Missing or malformed inputs
    """
    client = get_client(store, client_id)

    errors = require(data, ["period_start", "period_end"]) + _validate_pay_inputs(data)
    if errors:
        raise ValidationError(errors)

    start = _parse_date(data["period_start"], "period_start")
    end = _parse_date(data["period_end"], "period_end")
    if end < start:
        raise ValidationError([f"period_end {end} is before period_start {start}"])

    payload = _paystub_payload(
        client, start, end,
        float(data["hours"]), float(data["rate"]),
        float(data.get("overtime_hours") or 0), float(data.get("overtime_rate") or 0),
        _federal_pct(data.get("federal_pct")),
        rates,
    )
    doc = store.add(COLLECTION, payload)
    logger.info(f"created paystub {doc['id']} for {client.full_name} ({start} - {end})")
    return PaystubRecord(**doc)


def create_bulk_paystubs(
    store: DocumentStore,
    client_id: str,
    first_start: Any,
    frequency: str,
    data: Dict[str, Any],
    rates: Optional[RateConfig] = None,
) -> List[PaystubRecord]:
    """Create four consecutive periods with identical pay inputs.

    Each period ends (period length - 1) days after it starts and the next
    starts the following day.

    Args:
        frequency: "weekly" (7 days) or "biweekly" (14 days)
        data: hours, rate and optionally overtime_hours, overtime_rate, federal_pct
    """
    if frequency not in PERIOD_DAYS:
        raise ValidationError([f"frequency must be one of {', '.join(PERIOD_DAYS)}, got '{frequency}'"])

    client = get_client(store, client_id)
    errors = _validate_pay_inputs(data)
    if errors:
        raise ValidationError(errors)

    start = _parse_date(first_start, "start")
    length = PERIOD_DAYS[frequency]
    fed = _federal_pct(data.get("federal_pct"))

    created = []
    for i in range(BULK_COUNT):
        s = start + timedelta(days=i * length)
        e = s + timedelta(days=length - 1)
        payload = _paystub_payload(
            client, s, e,
            float(data["hours"]), float(data["rate"]),
            float(data.get("overtime_hours") or 0), float(data.get("overtime_rate") or 0),
            fed,
            rates,
        )
        created.append(PaystubRecord(**store.add(COLLECTION, payload)))

    logger.info(f"created {len(created)} {frequency} paystubs for {client.full_name} from {start}")
    return created


def get_paystub(store: DocumentStore, paystub_id: str) -> PaystubRecord:
    doc = store.get(COLLECTION, paystub_id)
    if doc is None:
        raise RecordNotFoundError(COLLECTION, paystub_id)
    return PaystubRecord(**doc)


def list_paystubs(
    store: DocumentStore,
    client_id: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[PaystubRecord]:
    """Paystubs newest first, optionally for one client."""
    where = [("client_id", "==", client_id)] if client_id else None
    return [PaystubRecord(**d) for d in store.query(COLLECTION, where=where, limit=limit)]


def delete_paystub(store: DocumentStore, paystub_id: str) -> bool:
    deleted = store.delete(COLLECTION, paystub_id)
    if deleted:
        logger.info(f"deleted paystub {paystub_id}")
    return deleted


def adjust_ytd_baseline(
    store: DocumentStore,
    client_id: str,
    year: int,
    regular_gross: Any,
    overtime_gross: Any = 0,
    federal_pct: Any = None,
    rates: Optional[RateConfig] = None,
) -> Client:
    """Replace a client's YTD baseline.

    The tax breakdown is computed on regular + overtime with the client's
    state, and stored together with the split and the combined gross.
    """
    client = get_client(store, client_id)

    values = {"regular_gross": regular_gross, "overtime_gross": overtime_gross}
    errors = check_non_negative(values, values.keys()) + _check_federal_pct(federal_pct)
    if errors:
        raise ValidationError(errors)

    reg = float(regular_gross or 0)
    ot = float(overtime_gross or 0)
    fed = _federal_pct(federal_pct)
    calc = compute_gross_taxes(reg + ot, client.state, fed, rates)

    baseline = YTDBaseline(
        year=int(year),
        regular_gross=reg,
        overtime_gross=ot,
        gross=reg + ot,
        federal_pct=fed,
        taxes=calc.taxes,
        net=calc.net,
        federal=calc.federal,
        state_tax=calc.state_tax,
        ss=calc.ss,
        medicare=calc.medicare,
    )
    doc = store.update("clients", client_id, {"ytd_base": baseline.model_dump()})
    logger.info(f"set {year} YTD baseline for {client.full_name}: gross {reg + ot:.2f}")
    return Client(**doc)


def client_ytd(store: DocumentStore, client_id: str, now=None) -> YTDSummary:
    """Year-so-far totals for a client (baseline + stored paystub amounts)."""
    client = get_client(store, client_id)
    return ytd_as_of_now(client, list_paystubs(store, client_id), now=now)


def paystub_ytd(
    store: DocumentStore,
    paystub_id: str,
    rates: Optional[RateConfig] = None,
) -> Optional[YTDSummary]:
    """Cumulative YTD through one paystub, with freshly computed taxes."""
    target = get_paystub(store, paystub_id)
    client = get_client(store, target.client_id)
    return ytd_through_paystub(client, list_paystubs(store, client.id), target, rates)
