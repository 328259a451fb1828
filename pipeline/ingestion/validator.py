"""
Validator for Reading data.

Validates:
- Required fields are present
- Concentrations are non-negative integers within physical bounds
- Timestamp is not in the future
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List

from ledger.models import POLLUTANT_FIELDS

logger = logging.getLogger(__name__)

# Physical bounds for each pollutant (min, max)
POLLUTANT_BOUNDS = {
    "co2":  (0, 100000),   # ppm
    "no2":  (0, 2000),     # μg/m³
    "pm25": (0, 1000),     # μg/m³
    "pm10": (0, 2000),     # μg/m³
}

FUTURE_TOLERANCE_SECONDS = 300


@dataclass
class ValidationResult:
    """Result of validating a single Reading."""
    is_valid: bool
    reasons: List[str] = field(default_factory=list)

    def add_error(self, msg: str):
        self.reasons.append(msg)
        self.is_valid = False

    def __str__(self) -> str:
        if self.is_valid:
            return "Valid"
        return "Invalid: " + "; ".join(self.reasons)


def validate_reading(reading) -> ValidationResult:
    """
    Validate a Reading (or any object with the same attributes) before it is
    submitted to the ledger.
    """
    result = ValidationResult(is_valid=True)

    ts = getattr(reading, "timestamp", None)
    if ts is None:
        result.add_error("Missing required field: timestamp")
    else:
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        ahead = (ts - datetime.now(timezone.utc)).total_seconds()
        if ahead > FUTURE_TOLERANCE_SECONDS:
            result.add_error(f"Timestamp is in the future: {ts}")

    for field_name in POLLUTANT_FIELDS:
        value = getattr(reading, field_name, None)
        if value is None:
            result.add_error(f"Missing required field: {field_name}")
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            result.add_error(f"{field_name} must be an integer, got {type(value).__name__}")
            continue
        min_val, max_val = POLLUTANT_BOUNDS[field_name]
        if value < min_val:
            result.add_error(f"{field_name}={value} below physical minimum {min_val}")
        if value > max_val:
            result.add_error(f"{field_name}={value} exceeds physical maximum {max_val}")

    if not result.is_valid:
        logger.warning("Reading validation failed: %s", result.reasons)
    return result
