"""
Line balancing errors.

InvalidParameter means "fix this input"; EmptyInput means "no data yet".
"""

import math
from typing import Any, Dict, Optional


class LineBalancingError(Exception):
    """Base class for engine errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class InvalidParameter(LineBalancingError, ValueError):
    """Raised when an input parameter is out of range or degenerate."""

    def __init__(self, field: str, value: Any, message: str):
        self.field = field
        self.value = value
        super().__init__(
            f"Invalid value for '{field}': {message}",
            {"field": field, "value": None if value is None else str(value)},
        )


class EmptyInput(LineBalancingError):
    """Raised when a component needs at least one style and got none."""

    def __init__(self, message: str = "No styles loaded yet"):
        super().__init__(message)


def require_positive(field: str, value: Optional[float]) -> float:
    """Return ``value`` if it is a finite number > 0, else raise InvalidParameter."""
    if value is None:
        raise InvalidParameter(field, value, "a value is required")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidParameter(field, value, "must be a number")
    if not math.isfinite(number):
        raise InvalidParameter(field, value, "must be finite")
    if number <= 0:
        raise InvalidParameter(field, value, "must be greater than zero")
    return number


def require_non_negative(field: str, value: float) -> float:
    """Return ``value`` if it is a finite number >= 0, else raise InvalidParameter."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidParameter(field, value, "must be a number")
    if not math.isfinite(number):
        raise InvalidParameter(field, value, "must be finite")
    if number < 0:
        raise InvalidParameter(field, value, "must not be negative")
    return number
