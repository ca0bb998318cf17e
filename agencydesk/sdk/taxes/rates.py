"""Rate tables: vehicle sales tax by city and payroll withholding by state.

Built-in defaults are overlaid, in order, by:
1. The persisted rate document (store collection "settings", id "taxRates")
2. Profile overrides (payroll_state_rates, default_jurisdiction)

The result is a RateConfig that is passed explicitly into every calculation.
A RateConfig never changes after it is built; call reload() to pick up edits.
"""

import copy
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from .schemas import PayrollRates, VehicleRateTable

logger = logging.getLogger(__name__)

SETTINGS_COLLECTION = "settings"
RATES_DOC_ID = "taxRates"

DEFAULT_JURISDICTION = "Denver"

# Colorado city sales tax components, in percent (2.90 means 2.90%)
CITY_TAX_RATES: Dict[str, Dict[str, float]] = {
    "Arvada": {"state": 2.90, "county": 0.50, "city": 3.46, "cd": 0.10, "rtd": 1.00},
    "Denver": {"state": 2.90, "county": 0.00, "city": 5.15, "cd": 0.10, "rtd": 1.00},
    "Aurora": {"state": 2.90, "county": 0.25, "city": 3.75, "cd": 0.10, "rtd": 1.00},
    "Colorado_Springs": {"state": 2.90, "county": 1.23, "city": 3.07, "cd": 0.00, "rtd": 1.00},
    "Lakewood": {"state": 2.90, "county": 0.50, "city": 3.00, "cd": 0.10, "rtd": 1.00},
    "Westminster": {"state": 2.90, "county": 0.75, "city": 3.85, "cd": 0.10, "rtd": 1.00},
    "Thornton": {"state": 2.90, "county": 0.75, "city": 3.75, "cd": 0.10, "rtd": 1.00},
    "Littleton": {"state": 2.90, "county": 0.25, "city": 3.75, "cd": 0.10, "rtd": 1.00},
    "Englewood": {"state": 2.90, "county": 0.25, "city": 3.80, "cd": 0.10, "rtd": 1.00},
    "Wheat_Ridge": {"state": 2.90, "county": 0.50, "city": 3.50, "cd": 0.10, "rtd": 1.00},
    "Broomfield": {"state": 2.90, "county": 0.00, "city": 4.15, "cd": 0.10, "rtd": 1.00},
    "Centennial": {"state": 2.90, "county": 0.25, "city": 2.50, "cd": 0.10, "rtd": 1.00},
    "Parker": {"state": 2.90, "county": 1.00, "city": 3.00, "cd": 0.10, "rtd": 1.00},
    "Brighton": {"state": 2.90, "county": 0.75, "city": 3.75, "cd": 0.10, "rtd": 1.00},
    "Golden": {"state": 2.90, "county": 0.50, "city": 3.00, "cd": 0.10, "rtd": 1.00},
    "Longmont": {"state": 2.90, "county": 1.19, "city": 3.53, "cd": 0.10, "rtd": 1.00},
    "Boulder": {"state": 2.90, "county": 1.19, "city": 3.86, "cd": 0.10, "rtd": 1.00},
    "Fort_Collins": {"state": 2.90, "county": 0.80, "city": 4.35, "cd": 0.00, "rtd": 0.00},
    "Pueblo": {"state": 2.90, "county": 1.00, "city": 3.70, "cd": 0.00, "rtd": 0.00},
    "Greeley": {"state": 2.90, "county": 0.00, "city": 4.11, "cd": 0.00, "rtd": 0.00},
}

RATE_COMPONENTS = ("state", "county", "city", "cd", "rtd")

# Flat state withholding as a fraction of gross
STATE_TAX: Dict[str, float] = {
    "TX": 0.0,     # no state income tax
    "FL": 0.0,     # no state income tax
    "CO": 0.044,
    "UT": 0.0485,
    "CA": 0.06,
    "NY": 0.058,
    "NJ": 0.055,
}

SS_PCT = 0.062
MEDICARE_PCT = 0.0145


class RateTableError(Exception):
    """Raised when a rate table fails validation."""
    pass


def validate_vehicle_rates(rates: dict) -> Dict[str, Dict[str, float]]:
    """Validate a city -> components mapping, preserving key order.

    Raises:
        RateTableError: If any city is malformed or the component keys differ
    """
    if not isinstance(rates, dict) or not rates:
        raise RateTableError("Rate table must be a non-empty mapping of city -> components")
    try:
        return VehicleRateTable.model_validate(rates).as_dict()
    except PydanticValidationError as e:
        raise RateTableError(f"Invalid rate table: {e}")


def load_rates_yaml(path: Path) -> Dict[str, Dict[str, float]]:
    """Load a vehicle rate table from a YAML file.

    The file is either a bare city mapping or {"rates": {city: {...}}}.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rate file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise RateTableError(f"Invalid YAML in {path}: {e}")

    if isinstance(data, dict) and "rates" in data:
        data = data["rates"]

    return validate_vehicle_rates(data)


class RateConfig:
    """Immutable snapshot of the rate tables used for a computation."""

    def __init__(
        self,
        vehicle: Optional[Dict[str, Dict[str, float]]] = None,
        payroll: Optional[PayrollRates] = None,
        default_jurisdiction: str = DEFAULT_JURISDICTION,
        source: str = "defaults",
        store=None,
    ):
        self._vehicle = copy.deepcopy(vehicle if vehicle is not None else CITY_TAX_RATES)
        self._payroll = payroll or PayrollRates(
            ss_pct=SS_PCT, medicare_pct=MEDICARE_PCT, state_pct=dict(STATE_TAX)
        )
        self.default_jurisdiction = default_jurisdiction
        self.source = source
        self._store = store

    def __repr__(self) -> str:
        return f"RateConfig(cities={len(self._vehicle)}, source={self.source!r})"

    @property
    def cities(self) -> list:
        return list(self._vehicle.keys())

    @property
    def ss_pct(self) -> float:
        return self._payroll.ss_pct

    @property
    def medicare_pct(self) -> float:
        return self._payroll.medicare_pct

    def vehicle_rates(self) -> Dict[str, Dict[str, float]]:
        """Deep copy of the city table (safe to edit)."""
        return copy.deepcopy(self._vehicle)

    def payroll_rates(self) -> PayrollRates:
        return self._payroll.model_copy(deep=True)

    def jurisdiction(self, city: Optional[str]) -> Tuple[str, Dict[str, float]]:
        """Resolve a city's components.

        Falls back to the default jurisdiction, then to the built-in Denver
        record when the table lacks both.

        Returns:
            (resolved_key, components) with components in table order
        """
        city_key = city or self.default_jurisdiction
        if city_key in self._vehicle:
            return city_key, dict(self._vehicle[city_key])
        if self.default_jurisdiction in self._vehicle:
            logger.debug(f"unknown city '{city_key}', using {self.default_jurisdiction}")
            return self.default_jurisdiction, dict(self._vehicle[self.default_jurisdiction])
        logger.debug(f"unknown city '{city_key}' and no default in table, using built-in")
        return DEFAULT_JURISDICTION, dict(CITY_TAX_RATES[DEFAULT_JURISDICTION])

    def state_pct(self, state: Optional[str]) -> float:
        """Flat withholding fraction for a state (0 when unknown)."""
        return self._payroll.state_pct.get(str(state or "").strip().upper(), 0.0)

    def with_component(self, city: str, key: str, value: float) -> "RateConfig":
        """Return a new config with one city component changed."""
        vehicle = self.vehicle_rates()
        if city not in vehicle:
            raise RateTableError(f"Unknown city '{city}'. Known: {', '.join(vehicle)}")
        if key not in vehicle[city]:
            raise RateTableError(f"Unknown component '{key}'. Known: {', '.join(vehicle[city])}")
        vehicle[city][key] = float(value)
        return RateConfig(
            vehicle=validate_vehicle_rates(vehicle),
            payroll=self.payroll_rates(),
            default_jurisdiction=self.default_jurisdiction,
            source="edited",
            store=self._store,
        )

    def with_vehicle_rates(self, vehicle: dict, source: str = "edited") -> "RateConfig":
        """Return a new config with the whole city table replaced."""
        return RateConfig(
            vehicle=validate_vehicle_rates(vehicle),
            payroll=self.payroll_rates(),
            default_jurisdiction=self.default_jurisdiction,
            source=source,
            store=self._store,
        )

    def reload(self) -> "RateConfig":
        """Build a fresh config from the same sources."""
        return load_rate_config(self._store)


def load_rate_config(store=None, profile: Optional[dict] = None) -> RateConfig:
    """Build the session's RateConfig.

    Args:
        store: DocumentStore holding the persisted rate document (optional)
        profile: Profile dict (loaded from profile.yaml when None)

    Raises:
        RateTableError: If the persisted rate document is invalid
    """
    if profile is None:
        from ..config import load_profile
        profile = load_profile(require_exists=False)

    vehicle = CITY_TAX_RATES
    source = "defaults"

    if store is not None:
        doc = store.get(SETTINGS_COLLECTION, RATES_DOC_ID)
        if doc and doc.get("rates"):
            vehicle = validate_vehicle_rates(doc["rates"])
            source = "settings"
            logger.debug(f"loaded {len(vehicle)} cities from settings/{RATES_DOC_ID}")

    state_pct = dict(STATE_TAX)
    for code, pct in (profile.get("payroll_state_rates") or {}).items():
        state_pct[str(code).upper()] = float(pct)

    try:
        payroll = PayrollRates(ss_pct=SS_PCT, medicare_pct=MEDICARE_PCT, state_pct=state_pct)
    except PydanticValidationError as e:
        raise RateTableError(f"Invalid payroll_state_rates in profile: {e}")

    return RateConfig(
        vehicle=vehicle,
        payroll=payroll,
        default_jurisdiction=profile.get("default_jurisdiction") or DEFAULT_JURISDICTION,
        source=source,
        store=store,
    )


def save_rate_config(store, config: RateConfig) -> dict:
    """Persist the city table to the settings document (overwrites)."""
    return store.set(SETTINGS_COLLECTION, RATES_DOC_ID, {"rates": config.vehicle_rates()})
