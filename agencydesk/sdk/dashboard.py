"""Activity counts for the last 30 days against the 30 before."""

import math
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .insurance import count_active
from .store import DocumentStore

WINDOW_DAYS = 30


class DashboardStats(BaseModel):
    model_config = ConfigDict(extra="forbid")

    clients_total: int
    clients_30d: int
    clients_30d_prev: int
    paystubs_30d: int
    paystubs_30d_prev: int
    active_policies: int

    @property
    def clients_growth(self) -> float:
        return pct_change(self.clients_30d, self.clients_30d_prev)

    @property
    def paystubs_growth(self) -> float:
        return pct_change(self.paystubs_30d, self.paystubs_30d_prev)


def pct_change(current: float, previous: float) -> float:
    """Percent change; 100 when there was nothing before and something now."""
    if previous is None or not math.isfinite(previous) or previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def format_pct(value: float) -> str:
    return f"{'+' if value >= 0 else ''}{value:.1f}%"


def _window_counts(store: DocumentStore, collection: str, since: datetime, prev_since: datetime):
    current = store.count(collection, where=[("created_at", ">", since)])
    previous = store.count(
        collection, where=[("created_at", ">=", prev_since), ("created_at", "<", since)]
    )
    return current, previous


def get_stats(store: DocumentStore, now: Optional[datetime] = None) -> DashboardStats:
    now = now or datetime.now()
    since = now - timedelta(days=WINDOW_DAYS)
    prev_since = since - timedelta(days=WINDOW_DAYS)

    clients_30d, clients_prev = _window_counts(store, "clients", since, prev_since)
    paystubs_30d, paystubs_prev = _window_counts(store, "paystubs", since, prev_since)

    return DashboardStats(
        clients_total=store.count("clients"),
        clients_30d=clients_30d,
        clients_30d_prev=clients_prev,
        paystubs_30d=paystubs_30d,
        paystubs_30d_prev=paystubs_prev,
        active_policies=count_active(store),
    )
