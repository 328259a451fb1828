"""
Synthetic Reading Generator.

Produces plausible concentrations uniformly at random inside the healthy
band of each pollutant. The reading is unpersisted (index=None); the ledger
assigns the index on append.
"""

import logging
import random
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from ledger.models import Reading, to_utc_seconds

logger = logging.getLogger(__name__)

# Inclusive (min, max) per pollutant
GENERATION_RANGES: Dict[str, Tuple[int, int]] = {
    "co2":  (350, 450),   # ppm
    "no2":  (0, 50),      # μg/m³
    "pm25": (0, 12),      # μg/m³
    "pm10": (0, 20),      # μg/m³
}


def generate(rng: Optional[random.Random] = None, now: Optional[datetime] = None) -> Reading:
    """
    Generate one synthetic reading.

    Args:
        rng: Random source; the module-level generator when omitted.
        now: Timestamp override (tests); current UTC time otherwise.
    """
    rng = rng or random
    values = {
        name: rng.randint(low, high)
        for name, (low, high) in GENERATION_RANGES.items()
    }
    reading = Reading(
        timestamp=to_utc_seconds(now or datetime.now(timezone.utc)),
        **values,
    )
    logger.debug("Generated reading: %s", values)
    return reading
