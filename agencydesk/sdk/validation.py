"""Form-level validation shared by the record services.

Services validate before anything reaches the calculators or the store;
the calculators themselves never raise on bad input.
"""

import re
from typing import Any, Dict, Iterable, List

ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
LAST4_RE = re.compile(r"^\d{4}$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ValidationError(Exception):
    """Raised when a record fails validation."""
    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Validation failed: {'; '.join(errors)}")


def require(data: Dict[str, Any], fields: Iterable[str]) -> List[str]:
    """Errors for required fields that are missing or blank."""
    errors = []
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(f"missing required field: {field}")
    return errors


def check_zip(value: str, field: str = "zip") -> List[str]:
    if value and not ZIP_RE.match(value):
        return [f"{field} must be 5 digits or ZIP+4, got '{value}'"]
    return []


def check_last4(value: str, field: str) -> List[str]:
    if value and not LAST4_RE.match(value):
        return [f"{field} must be exactly 4 digits"]
    return []


def check_state(value: str, field: str = "state") -> List[str]:
    if value and not (len(value) == 2 and value.isalpha()):
        return [f"{field} must be a 2-letter code, got '{value}'"]
    return []


def check_date(value: Any, field: str) -> List[str]:
    if value and not DATE_RE.match(str(value)):
        return [f"{field} must be YYYY-MM-DD, got '{value}'"]
    return []


def check_non_negative(data: Dict[str, Any], fields: Iterable[str]) -> List[str]:
    """Errors for numeric fields that are present and negative."""
    errors = []
    for field in fields:
        value = data.get(field)
        if value in (None, ""):
            continue
        try:
            if float(value) < 0:
                errors.append(f"{field} cannot be negative")
        except (TypeError, ValueError):
            errors.append(f"{field} must be a number, got '{value}'")
    return errors


def check_choice(value: Any, choices: Iterable[str], field: str) -> List[str]:
    choices = tuple(choices)
    if value not in choices:
        return [f"{field} must be one of {', '.join(choices)}, got '{value}'"]
    return []
