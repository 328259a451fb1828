"""
Health Classifier — AirLedger

Classifies the most recent reading as healthy when every pollutant sits inside
its inclusive range from pipeline/rules/rule_engine.py.

  HEALTHY   (True):  all four concentrations within range
  UNHEALTHY (False): at least one concentration out of range
  UNKNOWN   (None):  no reading, or a reading with a missing field

A missing field is never coerced to a default value.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ledger.models import POLLUTANT_FIELDS
from pipeline.rules.rule_engine import RuleResult, evaluate

logger = logging.getLogger(__name__)

HEALTHY = "HEALTHY"
UNHEALTHY = "UNHEALTHY"
UNKNOWN = "UNKNOWN"


@dataclass
class HealthClassification:
    healthy: Optional[bool]
    results: List[RuleResult] = field(default_factory=list)
    missing_fields: List[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        if self.healthy is None:
            return UNKNOWN
        return HEALTHY if self.healthy else UNHEALTHY

    @property
    def breaches(self) -> List[RuleResult]:
        return [r for r in self.results if not r.within_limit]


def status_label(healthy: Optional[bool]) -> str:
    return HealthClassification(healthy=healthy).status


def classify_health(reading) -> HealthClassification:
    """
    Classify a single reading.

    Args:
        reading: A Reading, any object with co2/no2/pm25/pm10 attributes, or None.

    Returns:
        HealthClassification; healthy is None when the reading is absent or
        incomplete.
    """
    if reading is None:
        return HealthClassification(healthy=None)

    missing = [name for name in POLLUTANT_FIELDS if getattr(reading, name, None) is None]
    if missing:
        logger.warning("Cannot classify reading %s: missing %s",
                       getattr(reading, "index", None), missing)
        return HealthClassification(healthy=None, missing_fields=missing)

    results = [evaluate(name, getattr(reading, name)) for name in POLLUTANT_FIELDS]
    classification = HealthClassification(
        healthy=all(r.within_limit for r in results),
        results=results,
    )

    if classification.breaches:
        logger.info(
            "Reading %s UNHEALTHY: %s",
            getattr(reading, "index", None),
            ", ".join(str(r) for r in classification.breaches),
        )
    return classification
