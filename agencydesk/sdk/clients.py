"""Payroll clients: create, edit, archive/restore, search and CSV export."""

import csv
import io
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .schemas import Client
from .store import DocumentStore, RecordNotFoundError
from .validation import (
    ValidationError,
    check_last4,
    check_state,
    check_zip,
    require,
)

logger = logging.getLogger(__name__)

COLLECTION = "clients"

CLIENT_FIELDS = ("full_name", "address", "state", "zip", "ssn_last4", "account_last4")
CSV_HEADERS = ["Name", "Address", "State", "ZIP", "SSN_last4", "Account_last4"]
SEARCH_FIELDS = ("full_name", "address", "state", "zip", "ssn_last4", "account_last4")


def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for key in CLIENT_FIELDS:
        if key in data and data[key] is not None:
            cleaned[key] = str(data[key]).strip()
    if "state" in cleaned:
        cleaned["state"] = cleaned["state"].upper()
    return cleaned


def validate_client(data: Dict[str, Any], partial: bool = False) -> List[str]:
    """Form-level checks; returns a list of error strings."""
    errors = [] if partial else require(data, ["full_name", "state"])
    if partial and "full_name" in data and not data["full_name"]:
        errors.append("full_name cannot be blank")
    errors += check_state(data.get("state", ""))
    errors += check_zip(data.get("zip", ""))
    errors += check_last4(data.get("ssn_last4", ""), "ssn_last4")
    errors += check_last4(data.get("account_last4", ""), "account_last4")
    return errors


def create_client(store: DocumentStore, data: Dict[str, Any]) -> Client:
    """Create an active client.

    Raises:
        ValidationError: If required fields are missing or malformed
    """
    cleaned = _clean(data)
    errors = validate_client(cleaned)
    if errors:
        raise ValidationError(errors)

    doc = store.add(COLLECTION, {**cleaned, "active": True})
    logger.info(f"created client {doc['id']} ({cleaned['full_name']})")
    return Client(**doc)


def get_client(store: DocumentStore, client_id: str) -> Client:
    """
    Raises:
        RecordNotFoundError: If no client has this id
    """
    doc = store.get(COLLECTION, client_id)
    if doc is None:
        raise RecordNotFoundError(COLLECTION, client_id)
    return Client(**doc)


def update_client(store: DocumentStore, client_id: str, changes: Dict[str, Any]) -> Client:
    """Edit identity fields. The YTD baseline is edited via paystubs.adjust_ytd_baseline."""
    cleaned = _clean(changes)
    errors = validate_client(cleaned, partial=True)
    if errors:
        raise ValidationError(errors)
    return Client(**store.update(COLLECTION, client_id, cleaned))


def set_active(store: DocumentStore, client_id: str, active: bool) -> Client:
    """Archive (active=False) or restore a client. Paystubs are kept either way."""
    doc = store.update(COLLECTION, client_id, {"active": active})
    logger.info(f"{'restored' if active else 'archived'} client {client_id}")
    return Client(**doc)


def archive_client(store: DocumentStore, client_id: str) -> Client:
    return set_active(store, client_id, False)


def restore_client(store: DocumentStore, client_id: str) -> Client:
    return set_active(store, client_id, True)


def matches_search(client: Client, term: Optional[str]) -> bool:
    if not term:
        return True
    term = term.strip().lower()
    return any(term in str(getattr(client, f) or "").lower() for f in SEARCH_FIELDS)


def list_clients(
    store: DocumentStore,
    archived: bool = False,
    search: Optional[str] = None,
) -> List[Client]:
    """Active (or archived) clients, newest first, optionally filtered by a search term."""
    # records saved without an active flag count as active
    clients = [Client(**d) for d in store.query(COLLECTION)]
    return [c for c in clients if c.active != archived and matches_search(c, search)]


def _write_client_rows(writer, clients: List[Client]) -> None:
    writer.writerow(CSV_HEADERS)
    for c in clients:
        writer.writerow([
            "" if v is None else v
            for v in (c.full_name, c.address, c.state, c.zip, c.ssn_last4, c.account_last4)
        ])


def clients_to_csv(clients: List[Client]) -> str:
    """CSV with every cell double-quoted and embedded quotes doubled."""
    output = io.StringIO()
    _write_client_rows(csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n"), clients)
    return output.getvalue()


def export_clients_csv(
    store: DocumentStore,
    path: Path,
    archived: bool = False,
    search: Optional[str] = None,
) -> int:
    """Write the filtered client list to path. Returns the row count."""
    clients = list_clients(store, archived=archived, search=search)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="") as csvfile:
        _write_client_rows(csv.writer(csvfile, quoting=csv.QUOTE_ALL, lineterminator="\n"), clients)
    logger.info(f"exported {len(clients)} clients to {path}")
    return len(clients)
