"""
LedgerStore capability — the only contract the rest of AirLedger has with the
append-only store. Implementations: ledger/sql_store.py (hash-chained table)
and ledger/contract_store.py (EVM contract over JSON-RPC).
"""

from datetime import datetime
from typing import Optional, Protocol

from ledger.models import Reading


class LedgerStore(Protocol):
    """
    Append-only store with exactly three operations.

    Implementations raise the ledger.errors taxonomy:
      add_reading       -> WriteRejected / WriteTimeout
      get_reading_count -> ReadUnavailable
      get_reading       -> NotFound / ReadUnavailable
    """

    def add_reading(
        self,
        co2: int,
        no2: int,
        pm25: int,
        pm10: int,
        *,
        timestamp: Optional[datetime],
        sender: Optional[str],
        gas: int,
    ) -> int:
        ...

    def get_reading_count(self) -> int:
        ...

    def get_reading(self, index: int) -> Reading:
        ...

    def close(self) -> None:
        ...
