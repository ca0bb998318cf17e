"""Pydantic schemas for rate table validation.

These schemas validate rate tables loaded from the settings document or
from a YAML file, and give typed access to the vehicle sales tax
components and the payroll withholding rates.
"""

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator, model_validator


class JurisdictionRates(RootModel[Dict[str, float]]):
    """Percentage components for one city, e.g. {"state": 2.90, "county": 0.50}.

    Values are percentages (2.90 means 2.90%), never fractions.
    """

    @field_validator("root")
    @classmethod
    def check_non_negative(cls, value: Dict[str, float]) -> Dict[str, float]:
        for key, pct in value.items():
            if pct < 0:
                raise ValueError(f"component '{key}' is negative ({pct})")
        return value


class VehicleRateTable(RootModel[Dict[str, JurisdictionRates]]):
    """City -> JurisdictionRates. Every city must carry the same component keys."""

    @model_validator(mode="after")
    def check_uniform_keys(self) -> "VehicleRateTable":
        expected = None
        for city, rates in self.root.items():
            keys = list(rates.root.keys())
            if expected is None:
                expected = keys
            elif set(keys) != set(expected):
                raise ValueError(
                    f"city '{city}' has components {sorted(keys)}, expected {sorted(expected)}"
                )
        return self

    def as_dict(self) -> Dict[str, Dict[str, float]]:
        return {city: dict(rates.root) for city, rates in self.root.items()}


class PayrollRates(BaseModel):
    """Flat state withholding plus the FICA constants."""

    model_config = ConfigDict(extra="forbid")

    ss_pct: float = Field(default=0.062, ge=0, le=1, description="Social Security (employee)")
    medicare_pct: float = Field(default=0.0145, ge=0, le=1, description="Medicare (employee)")
    state_pct: Dict[str, float] = Field(
        default_factory=dict, description="2-letter state code -> withholding fraction"
    )

    @field_validator("state_pct")
    @classmethod
    def check_state_codes(cls, value: Dict[str, float]) -> Dict[str, float]:
        normalized = {}
        for code, pct in value.items():
            code = str(code).strip().upper()
            if len(code) != 2 or not code.isalpha():
                raise ValueError(f"invalid state code '{code}'")
            if not 0 <= pct <= 1:
                raise ValueError(f"state '{code}' rate {pct} must be a fraction between 0 and 1")
            normalized[code] = pct
        return normalized
