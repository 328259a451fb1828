"""
Ledger Client — AirLedger

Wraps a LedgerStore with the client-side contract:
  - every store call is bounded by an explicit timeout
  - get() range-checks against the observed count
  - NotFound (stale count) is retried with exponential backoff + jitter
  - the count reported to this caller never goes backwards
"""

import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime
from typing import Optional

from ledger.errors import IndexOutOfRange, NotFound, ReadUnavailable, WriteTimeout
from ledger.models import POLLUTANT_FIELDS, Reading
from ledger.store import LedgerStore

logger = logging.getLogger(__name__)

DEFAULT_GAS = 1000000


def _check_concentrations(**values) -> None:
    for name, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
        if value < 0:
            raise ValueError(f"{name} must be non-negative, got {value}")


class LedgerClient:
    """Append/count/get against the ledger, with bounded waits."""

    def __init__(
        self,
        store: LedgerStore,
        writer: Optional[str] = None,
        gas: int = DEFAULT_GAS,
        write_timeout: float = 30.0,
        read_timeout: float = 10.0,
        not_found_retries: int = 2,
        retry_delay: float = 0.2,
        max_workers: int = 8,
    ):
        self._store = store
        self.writer = writer
        self.gas = gas
        self.write_timeout = write_timeout
        self.read_timeout = read_timeout
        self.not_found_retries = not_found_retries
        self.retry_delay = retry_delay
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ledger-call")
        self._count_lock = threading.Lock()
        self._high_water = 0

    @property
    def store(self) -> LedgerStore:
        return self._store

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self._store.close()

    def _bounded(self, timeout: float, fn, *args, **kwargs):
        future = self._executor.submit(fn, *args, **kwargs)
        return future.result(timeout=timeout)

    def _observe(self, count: int) -> int:
        with self._count_lock:
            if count > self._high_water:
                self._high_water = count
            return self._high_water

    # ── Operations ────────────────────────────────────────────────────────────

    def append(
        self,
        co2: int,
        no2: int,
        pm25: int,
        pm10: int,
        timestamp: Optional[datetime] = None,
    ) -> int:
        """
        Submit a new reading.

        Returns:
            The ledger-assigned index.

        Raises:
            ValueError: A concentration is not a non-negative integer.
            WriteRejected: The store refused the append.
            WriteTimeout: No confirmation within write_timeout seconds.
        """
        _check_concentrations(co2=co2, no2=no2, pm25=pm25, pm10=pm10)
        try:
            index = self._bounded(
                self.write_timeout,
                self._store.add_reading,
                co2, no2, pm25, pm10,
                timestamp=timestamp,
                sender=self.writer,
                gas=self.gas,
            )
        except FutureTimeout as e:
            raise WriteTimeout(
                f"Append not confirmed within {self.write_timeout}s"
            ) from e

        self._observe(index + 1)
        return index

    def append_reading(self, reading: Reading) -> int:
        return self.append(
            *(getattr(reading, name) for name in POLLUTANT_FIELDS),
            timestamp=reading.timestamp,
        )

    def count(self) -> int:
        """Number of readings visible to this caller. Never decreases."""
        try:
            count = self._bounded(self.read_timeout, self._store.get_reading_count)
        except FutureTimeout as e:
            raise ReadUnavailable(f"Ledger count timed out after {self.read_timeout}s") from e
        if count < 0:
            raise ReadUnavailable(f"Store reported a negative count ({count})")
        return self._observe(count)

    def get(self, index: int, count: Optional[int] = None) -> Reading:
        """
        Fetch the reading at `index`.

        Args:
            index: Ledger index.
            count: A count the caller already observed; saves one round trip.

        Raises:
            IndexOutOfRange: index < 0 or index >= count.
            NotFound: Still missing after the bounded retries.
            ReadUnavailable: Store unreachable or the read timed out.
        """
        if count is None:
            count = self.count()
        if index < 0 or index >= count:
            raise IndexOutOfRange(index, count)

        attempts = self.not_found_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return self._bounded(self.read_timeout, self._store.get_reading, index)
            except FutureTimeout as e:
                raise ReadUnavailable(
                    f"Read of index {index} timed out after {self.read_timeout}s"
                ) from e
            except NotFound:
                if attempt >= attempts:
                    raise
                delay = self.retry_delay * (2 ** (attempt - 1))
                delay += random.uniform(0, delay * 0.1)
                logger.warning(
                    "Index %d not yet visible (attempt %d/%d), retrying in %.2fs",
                    index, attempt, attempts, delay,
                )
                time.sleep(delay)
        raise NotFound(index)
