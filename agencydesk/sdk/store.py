"""
Document store for clients, paystubs, buy orders, insurance policies and settings.

Each document is one JSON file at <data_dir>/store/<collection>/<id>.json:

    {"meta": {"id": "...", "created_at": "...", "updated_at": "..."},
     "data": {...fields...}}

Callers see flattened documents: the data fields plus id, created_at and
updated_at. Timestamps are assigned here ("server" timestamps), never by
the caller.

Design notes
------------

Last write wins:
    There is no locking. Two processes writing the same document race and
    the later write is kept. Paystubs are never updated in place, so the
    only contended documents are clients (YTD baseline edits), buy orders
    and the settings/taxRates document.

Subscriptions replace, they don't merge:
    subscribe() registers a callback that receives the complete ordered
    result of its query (created_at descending) immediately and again
    after every write to that collection made through this store instance.
    Callers replace their in-memory list with each snapshot. There is no
    cross-process notification.
"""

import json
import logging
import os
import secrets
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .config import get_data_path

# Configure logging based on LOG_LEVEL environment variable
_log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, _log_level, logging.INFO),
    format="%(asctime)s.%(msecs)03d %(levelname)s: %(message)s",
    datefmt="%H:%M:%S"
)
logger = logging.getLogger(__name__)

COLLECTIONS = ("clients", "paystubs", "buyOrders", "insurances", "settings")

Filter = Tuple[str, str, Any]

_OPERATORS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
}


class RecordNotFoundError(Exception):
    """Raised when a document id does not exist in a collection."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"{collection}/{doc_id} not found")


class StoreError(Exception):
    """Raised when the store cannot read or write a document."""
    pass


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp; None when missing or unreadable."""
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _comparable(doc_value: Any, target: Any) -> Tuple[Any, Any]:
    """Line up stored strings with datetime/date filter values."""
    if isinstance(target, datetime):
        return parse_timestamp(doc_value), target
    if isinstance(target, date) and isinstance(doc_value, str):
        try:
            return date.fromisoformat(doc_value[:10]), target
        except ValueError:
            return None, target
    return doc_value, target


def matches_filters(doc: Dict[str, Any], where: Optional[Sequence[Filter]]) -> bool:
    """True if the document satisfies every (field, op, value) filter.

    Documents missing a filtered field never match a range filter.
    """
    for field, op, target in where or ():
        if op not in _OPERATORS:
            raise ValueError(f"Unsupported operator '{op}'. Use one of: {', '.join(_OPERATORS)}")
        doc_value, target = _comparable(doc.get(field), target)
        if op in ("==", "!="):
            if not _OPERATORS[op](doc_value, target):
                return False
            continue
        if doc_value is None:
            return False
        try:
            if not _OPERATORS[op](doc_value, target):
                return False
        except TypeError:
            return False
    return True


def _sort_key(doc: Dict[str, Any]):
    ts = parse_timestamp(doc.get("created_at"))
    return (ts is not None, ts or datetime.min)


class DocumentStore:
    """JSON-file backed document collections with change subscriptions."""

    def __init__(self, root: Optional[Path] = None, clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            root: Store directory (default: <data_dir>/store)
            clock: Timestamp source for created_at/updated_at (default: datetime.now)
        """
        self.root = Path(root) if root else get_data_path() / "store"
        self._clock = clock or datetime.now
        self._listeners: Dict[str, List[dict]] = {}

    # ------------------------------------------------------------------
    # Paths and raw IO
    # ------------------------------------------------------------------

    def _collection_dir(self, collection: str) -> Path:
        if not collection or "/" in collection or collection.startswith("."):
            raise ValueError(f"Invalid collection name: {collection!r}")
        return self.root / collection

    def _doc_path(self, collection: str, doc_id: str) -> Path:
        if not doc_id or "/" in doc_id or doc_id.startswith("."):
            raise ValueError(f"Invalid document id: {doc_id!r}")
        return self._collection_dir(collection) / f"{doc_id}.json"

    def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            with open(path) as f:
                record = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"skipping unreadable document {path}: {e}")
            return None

        meta = record.get("meta", {})
        doc = dict(record.get("data") or {})
        doc["id"] = meta.get("id") or path.stem
        doc["created_at"] = meta.get("created_at")
        doc["updated_at"] = meta.get("updated_at")
        return doc

    def _write(self, collection: str, doc_id: str, meta: dict, data: dict) -> Dict[str, Any]:
        path = self._doc_path(collection, doc_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {k: v for k, v in data.items() if k not in ("id", "created_at", "updated_at")}
        record = {"meta": meta, "data": data}

        try:
            with open(path, "w") as f:
                json.dump(record, f, indent=2, default=_json_default)
        except (IOError, TypeError) as e:
            raise StoreError(f"Failed to write {collection}/{doc_id}: {e}")

        logger.debug(f"wrote {collection}/{doc_id}")
        self._notify(collection)
        return self._read(path)

    def _now(self) -> str:
        return self._clock().isoformat()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a document with a new id and server timestamps."""
        doc_id = secrets.token_hex(6)
        now = self._now()
        meta = {"id": doc_id, "created_at": now, "updated_at": now}
        return self._write(collection, doc_id, meta, data)

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create or overwrite a document at a known id."""
        existing = self.get(collection, doc_id)
        now = self._now()
        meta = {
            "id": doc_id,
            "created_at": existing["created_at"] if existing else now,
            "updated_at": now,
        }
        return self._write(collection, doc_id, meta, data)

    def update(self, collection: str, doc_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Merge top-level fields into an existing document.

        Raises:
            RecordNotFoundError: If the document does not exist
        """
        existing = self.get(collection, doc_id)
        if existing is None:
            raise RecordNotFoundError(collection, doc_id)

        meta = {
            "id": doc_id,
            "created_at": existing["created_at"],
            "updated_at": self._now(),
        }
        merged = {**existing, **changes}
        return self._write(collection, doc_id, meta, merged)

    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""
        path = self._doc_path(collection, doc_id)
        if not path.exists():
            return False
        path.unlink()
        logger.debug(f"deleted {collection}/{doc_id}")
        self._notify(collection)
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Point read; None when the document does not exist."""
        path = self._doc_path(collection, doc_id)
        if not path.exists():
            return None
        return self._read(path)

    def query(
        self,
        collection: str,
        where: Optional[Sequence[Filter]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Filtered read ordered by created_at descending.

        Args:
            collection: Collection name
            where: (field, op, value) filters, op in ==, !=, <, <=, >, >=.
                   datetime values compare against stored timestamps.
            limit: Maximum documents returned

        Example:
            store.query("paystubs", where=[("client_id", "==", cid)])
        """
        coll_dir = self._collection_dir(collection)
        if not coll_dir.exists():
            return []

        results = []
        for json_file in coll_dir.glob("*.json"):
            doc = self._read(json_file)
            if doc is None:
                continue
            if matches_filters(doc, where):
                results.append(doc)

        results.sort(key=_sort_key, reverse=True)
        if limit is not None:
            results = results[:limit]
        return results

    def count(self, collection: str, where: Optional[Sequence[Filter]] = None) -> int:
        return len(self.query(collection, where=where))

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        collection: str,
        callback: Callable[[List[Dict[str, Any]]], None],
        where: Optional[Sequence[Filter]] = None,
    ) -> Callable[[], None]:
        """Receive a fresh ordered snapshot now and after every write.

        Returns:
            Unsubscribe function (safe to call more than once)
        """
        listener = {"callback": callback, "where": list(where or [])}
        self._listeners.setdefault(collection, []).append(listener)
        self._deliver(collection, listener)

        def unsubscribe():
            listeners = self._listeners.get(collection, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def _deliver(self, collection: str, listener: dict) -> None:
        snapshot = self.query(collection, where=listener["where"])
        try:
            listener["callback"](snapshot)
        except Exception as e:
            logger.error(f"subscriber on {collection} failed: {e}")

    def _notify(self, collection: str) -> None:
        for listener in list(self._listeners.get(collection, [])):
            self._deliver(collection, listener)


def open_store() -> DocumentStore:
    """Store rooted in the configured data directory."""
    return DocumentStore()
