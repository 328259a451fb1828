"""
Ledger data models for AirLedger.
Provides the Reading record plus the hash-chain helpers used by
ledger/sql_store.py and ledger/verifier.py.
"""

import hashlib
import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

GENESIS_HASH = "0" * 64

POLLUTANT_FIELDS = ("co2", "no2", "pm25", "pm10")


def to_utc_seconds(ts: datetime) -> datetime:
    """Normalise a timestamp to UTC with the sub-second part dropped."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).replace(microsecond=0)


@dataclass(frozen=True)
class Reading:
    """One air-quality sample. `index` is None until the ledger assigns it."""
    timestamp: datetime
    co2: int
    no2: int
    pm25: int
    pm10: int
    index: Optional[int] = None

    def with_index(self, index: int) -> "Reading":
        return replace(self, index=index)

    def concentrations(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in POLLUTANT_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        """JSON form used by the archive mirror and the HTTP surface."""
        data: Dict[str, Any] = {
            "timestamp": to_utc_seconds(self.timestamp).isoformat().replace("+00:00", "Z"),
            **self.concentrations(),
        }
        if self.index is not None:
            data["index"] = self.index
        return data


def serialize_entry(reading: Reading, writer: str) -> str:
    """Canonical JSON (sorted keys, no extra spaces) of the hashed fields."""
    payload = {
        "index": reading.index,
        "timestamp": int(to_utc_seconds(reading.timestamp).timestamp()),
        "writer": writer,
        **reading.concentrations(),
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def compute_entry_hash(reading: Reading, writer: str, prev_hash: str) -> str:
    """SHA256(canonical_JSON(entry) + prev_hash)."""
    raw = serialize_entry(reading, writer) + prev_hash
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass
class LedgerEntry:
    """A stored reading together with its position in the hash chain."""
    reading: Reading
    writer: str
    prev_hash: str
    entry_hash: str = field(default="")

    def compute_hash(self) -> str:
        return compute_entry_hash(self.reading, self.writer, self.prev_hash)

    def __post_init__(self):
        if not self.entry_hash:
            self.entry_hash = self.compute_hash()


@dataclass
class ChainVerificationResult:
    """Result of running the full ledger chain verification."""
    is_valid: bool
    total_entries: int
    broken_at_index: Optional[int] = None
    error_message: Optional[str] = None

    def __str__(self) -> str:
        if self.is_valid:
            return f"Chain OK — {self.total_entries} entries verified"
        return (
            f"Chain BROKEN at index {self.broken_at_index}: "
            f"{self.error_message}"
        )
