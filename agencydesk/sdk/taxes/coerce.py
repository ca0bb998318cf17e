"""Numeric coercion for form input.

Calculators accept whatever the form layer hands them. Anything that is
not a finite number becomes 0 rather than raising.
"""

import math
from typing import Any


def num(value: Any) -> float:
    """Coerce a form value to float, 0 for None/blank/invalid/NaN/inf.

    Example: num("12.5") -> 12.5, num("") -> 0.0, num("abc") -> 0.0
    """
    if value is None or isinstance(value, bool):
        return float(bool(value))
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(result) or math.isinf(result):
        return 0.0
    return result
