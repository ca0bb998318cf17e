"""Insurance policies: plain records with a status lifecycle, no computation."""

import logging
from typing import Any, Dict, List, Optional

from .schemas import POLICY_STATUSES, InsurancePolicyRecord
from .store import DocumentStore, RecordNotFoundError
from .validation import (
    ValidationError,
    check_choice,
    check_date,
    check_non_negative,
    check_state,
    require,
)

logger = logging.getLogger(__name__)

COLLECTION = "insurances"

TEXT_FIELDS = (
    "holder_name", "carrier", "policy_number", "vin", "year", "make", "model",
    "address", "state", "start_date", "end_date",
)
SEARCH_FIELDS = ("holder_name", "carrier", "policy_number", "state", "status")


def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {k: str(data[k]).strip() for k in TEXT_FIELDS if data.get(k) is not None}
    if data.get("premium") not in (None, ""):
        cleaned["premium"] = data["premium"]
    if "status" in data:
        cleaned["status"] = data["status"]
    if cleaned.get("state"):
        cleaned["state"] = cleaned["state"].upper()
    return cleaned


def validate_policy(data: Dict[str, Any]) -> List[str]:
    errors = require(data, ["holder_name", "carrier"])
    errors += check_state(data.get("state", ""))
    errors += check_date(data.get("start_date"), "start_date")
    errors += check_date(data.get("end_date"), "end_date")
    errors += check_non_negative(data, ["premium"])
    errors += check_choice(data.get("status", "active"), POLICY_STATUSES, "status")
    return errors


def _finalize(data: Dict[str, Any]) -> Dict[str, Any]:
    if "premium" in data:
        data["premium"] = float(data["premium"])
    return data


def create_policy(store: DocumentStore, data: Dict[str, Any]) -> InsurancePolicyRecord:
    """
    Raises:
        ValidationError: Missing holder/carrier, bad dates or unknown status
    """
    cleaned = _clean(data)
    cleaned.setdefault("status", "active")
    errors = validate_policy(cleaned)
    if errors:
        raise ValidationError(errors)
    doc = store.add(COLLECTION, _finalize(cleaned))
    logger.info(f"created policy {doc['id']} for {cleaned['holder_name']}")
    return InsurancePolicyRecord(**doc)


def get_policy(store: DocumentStore, policy_id: str) -> InsurancePolicyRecord:
    doc = store.get(COLLECTION, policy_id)
    if doc is None:
        raise RecordNotFoundError(COLLECTION, policy_id)
    return InsurancePolicyRecord(**doc)


def update_policy(store: DocumentStore, policy_id: str, changes: Dict[str, Any]) -> InsurancePolicyRecord:
    existing = get_policy(store, policy_id)
    merged = existing.model_dump(exclude={"id", "created_at", "updated_at"})
    merged.update(_clean(changes))
    errors = validate_policy(merged)
    if errors:
        raise ValidationError(errors)
    return InsurancePolicyRecord(**store.update(COLLECTION, policy_id, _finalize(merged)))


def set_status(store: DocumentStore, policy_id: str, status: str) -> InsurancePolicyRecord:
    errors = check_choice(status, POLICY_STATUSES, "status")
    if errors:
        raise ValidationError(errors)
    doc = store.update(COLLECTION, policy_id, {"status": status})
    logger.info(f"policy {policy_id} -> {status}")
    return InsurancePolicyRecord(**doc)


def archive_policy(store: DocumentStore, policy_id: str) -> InsurancePolicyRecord:
    """Archiving a policy cancels it; the record is kept."""
    return set_status(store, policy_id, "cancelled")


def activate_policy(store: DocumentStore, policy_id: str) -> InsurancePolicyRecord:
    return set_status(store, policy_id, "active")


def delete_policy(store: DocumentStore, policy_id: str) -> bool:
    deleted = store.delete(COLLECTION, policy_id)
    if deleted:
        logger.info(f"deleted policy {policy_id}")
    return deleted


def list_policies(
    store: DocumentStore,
    search: Optional[str] = None,
    status: Optional[str] = None,
) -> List[InsurancePolicyRecord]:
    """Policies ordered by status (alphabetical), then newest first."""
    where = [("status", "==", status)] if status else None
    docs = store.query(COLLECTION, where=where)
    # query() already returns created_at desc; a stable sort on status keeps it
    docs.sort(key=lambda d: d.get("status") or "")
    policies = [InsurancePolicyRecord(**d) for d in docs]
    if search:
        term = search.strip().lower()
        policies = [
            p for p in policies
            if any(term in str(getattr(p, f) or "").lower() for f in SEARCH_FIELDS)
        ]
    return policies


def count_active(store: DocumentStore) -> int:
    return store.count(COLLECTION, where=[("status", "==", "active")])
