"""
Retrieval & Aggregation Service — AirLedger

Derives request-time views from ledger state:
  last_n(n)        — the most recent n readings, newest first
  all_readings()   — every reading, oldest first
  current_status() — the newest reading plus its health classification

Views are recomputed on every call and never cached. A batch is either
complete and index-contiguous or the call fails with PartialReadFailure.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ledger.client import LedgerClient
from ledger.errors import LedgerError, PartialReadFailure
from ledger.models import Reading
from pipeline.classification.classifier import classify_health, status_label

logger = logging.getLogger(__name__)

DEFAULT_LAST_N = 10


@dataclass(frozen=True)
class StatusView:
    """Newest reading and its health. healthy=None means unknown."""
    reading: Optional[Reading]
    healthy: Optional[bool]

    @property
    def status(self) -> str:
        return status_label(self.healthy)


class RetrievalService:

    def __init__(self, client: LedgerClient, default_n: int = DEFAULT_LAST_N):
        self._client = client
        self.default_n = default_n

    def last_n(self, n: Optional[int] = None) -> List[Reading]:
        """
        Return min(n, count) readings, strictly decreasing by index.

        Raises:
            ValueError: n is negative.
            ReadUnavailable: The count could not be read.
            PartialReadFailure: Any single read in the batch failed.
        """
        if n is None:
            n = self.default_n
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")
        if n == 0:
            return []

        count = self._client.count()
        if count == 0:
            return []
        return self._read_batch(range(count - 1, max(0, count - n) - 1, -1), count)

    def all_readings(self) -> List[Reading]:
        """
        Every reading up to a single observed count, oldest first.

        Raises:
            ReadUnavailable: The count could not be read.
            PartialReadFailure: Any single read in the batch failed.
        """
        count = self._client.count()
        return self._read_batch(range(count), count)

    def _read_batch(self, indices: range, count: int) -> List[Reading]:
        readings: List[Reading] = []
        for index in indices:
            try:
                readings.append(self._client.get(index, count=count))
            except LedgerError as e:
                logger.error("Batch read of %d readings aborted at index %d: %s",
                             len(indices), index, e)
                raise PartialReadFailure(index, e) from e
        return readings

    def current_status(self) -> StatusView:
        """
        Newest reading and its health.

        Empty ledger → StatusView(reading=None, healthy=None). Read failures
        propagate; they are never reported as unknown.
        """
        count = self._client.count()
        if count == 0:
            return StatusView(reading=None, healthy=None)

        reading = self._client.get(count - 1, count=count)
        return StatusView(reading=reading, healthy=classify_health(reading).healthy)
