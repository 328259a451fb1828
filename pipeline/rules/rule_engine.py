"""
Health Threshold Rule Engine.

Evaluates a single pollutant concentration against the fixed, inclusive
healthy range for that pollutant. Stateless — no side effects.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

logger = logging.getLogger(__name__)

# Inclusive (lower, upper) healthy range per pollutant
HEALTH_THRESHOLDS: Dict[str, Tuple[int, int]] = {
    "co2":  (350, 450),
    "no2":  (0, 50),
    "pm25": (0, 12),
    "pm10": (0, 20),
}

POLLUTANT_UNITS = {
    "co2":  "ppm",
    "no2":  "μg/m³",
    "pm25": "μg/m³",
    "pm10": "μg/m³",
}


@dataclass
class RuleResult:
    """Result of evaluating one concentration against its healthy range."""
    pollutant: str
    observed_value: int
    lower_limit: int
    upper_limit: int
    within_limit: bool

    def __str__(self) -> str:
        status = "OK" if self.within_limit else "OUT OF RANGE"
        return (
            f"[{status}] {self.pollutant}: {self.observed_value} "
            f"in [{self.lower_limit}, {self.upper_limit}] "
            f"{POLLUTANT_UNITS.get(self.pollutant, '')}"
        )


def evaluate(pollutant: str, observed_value: int) -> RuleResult:
    """
    Evaluate a concentration against the healthy range.

    Raises:
        ValueError: If no threshold is defined for the pollutant.
    """
    key = pollutant.lower()
    if key not in HEALTH_THRESHOLDS:
        raise ValueError(f"No health threshold defined for pollutant={pollutant}")

    lower, upper = HEALTH_THRESHOLDS[key]
    result = RuleResult(
        pollutant=key,
        observed_value=observed_value,
        lower_limit=lower,
        upper_limit=upper,
        within_limit=lower <= observed_value <= upper,
    )
    logger.debug("Rule evaluated: %s", result)
    return result
