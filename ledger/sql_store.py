"""
SQL Ledger Store — AirLedger

INSERT-only. Every row is chained to its predecessor with SHA256:
  entry_hash = SHA256(canonical_JSON(entry) + prev_hash)
Genesis entry uses prev_hash = "0" * 64 and index 0.

Rows are partitioned by ledger_address so several deployments can share one
database. Appends are serialized inside the store; the unique
(ledger_address, idx) constraint rejects anything that slips past.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import (
    BigInteger, Column, Integer, MetaData, String, Table, UniqueConstraint,
    create_engine, text,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ledger.errors import NotFound, ReadUnavailable, WriteRejected
from ledger.models import GENESIS_HASH, LedgerEntry, Reading, to_utc_seconds

logger = logging.getLogger(__name__)

metadata = MetaData()

ledger_readings = Table(
    "ledger_readings",
    metadata,
    Column("ledger_address", String(128), nullable=False),
    Column("idx", Integer, nullable=False),
    Column("writer", String(128), nullable=False),
    Column("reading_ts", BigInteger, nullable=False),
    Column("co2", Integer, nullable=False),
    Column("no2", Integer, nullable=False),
    Column("pm25", Integer, nullable=False),
    Column("pm10", Integer, nullable=False),
    Column("prev_hash", String(64), nullable=False),
    Column("entry_hash", String(64), nullable=False),
    UniqueConstraint("ledger_address", "idx", name="uq_ledger_readings_address_idx"),
)


def _connect_args(url: str, timeout: float) -> dict:
    backend = make_url(url).get_backend_name()
    if backend == "postgresql":
        return {"connect_timeout": max(1, int(timeout))}
    if backend == "sqlite":
        return {"timeout": timeout, "check_same_thread": False}
    return {}


def _row_to_reading(row) -> Reading:
    return Reading(
        index=row.idx,
        timestamp=datetime.fromtimestamp(row.reading_ts, tz=timezone.utc),
        co2=row.co2,
        no2=row.no2,
        pm25=row.pm25,
        pm10=row.pm10,
    )


class SqlLedgerStore:
    """Hash-chained append-only ledger table."""

    def __init__(self, engine: Engine, ledger_address: str, default_writer: str):
        self._engine = engine
        self.ledger_address = ledger_address
        self.default_writer = default_writer
        self._write_lock = threading.Lock()
        try:
            metadata.create_all(engine)
        except SQLAlchemyError as e:
            engine.dispose()
            raise ReadUnavailable(f"Ledger database unreachable: {e}") from e

    @classmethod
    def from_url(
        cls,
        url: str,
        ledger_address: str,
        default_writer: str,
        timeout: float = 10.0,
    ) -> "SqlLedgerStore":
        engine = create_engine(
            url,
            pool_pre_ping=True,
            pool_timeout=timeout,
            connect_args=_connect_args(url, timeout),
        )
        logger.info("SQL ledger store opened: %s (ledger=%s)",
                    make_url(url).render_as_string(hide_password=True), ledger_address)
        return cls(engine, ledger_address, default_writer)

    def close(self) -> None:
        self._engine.dispose()

    # ── Writes ────────────────────────────────────────────────────────────────

    def add_reading(
        self,
        co2: int,
        no2: int,
        pm25: int,
        pm10: int,
        *,
        timestamp: Optional[datetime] = None,
        sender: Optional[str] = None,
        gas: int = 1,
    ) -> int:
        """
        Append a new immutable reading.

        Computes prev_hash from the last entry (or genesis if first entry),
        then inserts the new row. Never updates or deletes.

        Returns:
            The index assigned to the reading.

        Raises:
            WriteRejected: budget exhausted, constraint violation or the
                database could not be reached.
        """
        if gas <= 0:
            raise WriteRejected(f"Insufficient resource budget (gas={gas})")

        writer = sender or self.default_writer
        ts = to_utc_seconds(timestamp or datetime.now(timezone.utc))

        with self._write_lock:
            try:
                with self._engine.begin() as conn:
                    last = conn.execute(text(
                        "SELECT idx, entry_hash FROM ledger_readings "
                        "WHERE ledger_address = :addr "
                        "ORDER BY idx DESC LIMIT 1"
                    ), {"addr": self.ledger_address}).fetchone()

                    if last is None:
                        index, prev_hash = 0, GENESIS_HASH
                    else:
                        index, prev_hash = last[0] + 1, last[1]

                    entry = LedgerEntry(
                        reading=Reading(timestamp=ts, co2=co2, no2=no2,
                                        pm25=pm25, pm10=pm10, index=index),
                        writer=writer,
                        prev_hash=prev_hash,
                    )
                    conn.execute(text("""
                        INSERT INTO ledger_readings
                            (ledger_address, idx, writer, reading_ts,
                             co2, no2, pm25, pm10, prev_hash, entry_hash)
                        VALUES
                            (:addr, :idx, :writer, :ts,
                             :co2, :no2, :pm25, :pm10, :prev, :ehash)
                    """), {
                        "addr": self.ledger_address,
                        "idx": index,
                        "writer": writer,
                        "ts": int(ts.timestamp()),
                        "co2": co2,
                        "no2": no2,
                        "pm25": pm25,
                        "pm10": pm10,
                        "prev": prev_hash,
                        "ehash": entry.entry_hash,
                    })
            except IntegrityError as e:
                logger.error("Ledger append rejected by constraint: %s", e)
                raise WriteRejected(f"Ledger constraint violation: {e.orig}") from e
            except SQLAlchemyError as e:
                logger.error("Ledger append failed: %s", e)
                raise WriteRejected(f"Ledger write failed: {e}") from e

        logger.info(
            "Ledger entry appended: index=%d writer=%s hash=%s...",
            index, writer, entry.entry_hash[:16],
        )
        return index

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get_reading_count(self) -> int:
        try:
            with self._engine.connect() as conn:
                count = conn.execute(text(
                    "SELECT COUNT(*) FROM ledger_readings WHERE ledger_address = :addr"
                ), {"addr": self.ledger_address}).scalar()
        except SQLAlchemyError as e:
            raise ReadUnavailable(f"Ledger count unavailable: {e}") from e
        return int(count or 0)

    def get_reading(self, index: int) -> Reading:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(text(
                    "SELECT idx, reading_ts, co2, no2, pm25, pm10 FROM ledger_readings "
                    "WHERE ledger_address = :addr AND idx = :idx"
                ), {"addr": self.ledger_address, "idx": index}).fetchone()
        except SQLAlchemyError as e:
            raise ReadUnavailable(f"Ledger read unavailable: {e}") from e
        if row is None:
            raise NotFound(index)
        return _row_to_reading(row)

    def iter_entries(self) -> Iterator[LedgerEntry]:
        """
        Yield every stored entry in index order with its stored hashes.
        Used by ledger/verifier.py; not part of the LedgerStore capability.
        """
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(text(
                    "SELECT idx, writer, reading_ts, co2, no2, pm25, pm10, "
                    "prev_hash, entry_hash FROM ledger_readings "
                    "WHERE ledger_address = :addr ORDER BY idx ASC"
                ), {"addr": self.ledger_address}).fetchall()
        except SQLAlchemyError as e:
            raise ReadUnavailable(f"Ledger scan unavailable: {e}") from e

        for row in rows:
            yield LedgerEntry(
                reading=_row_to_reading(row),
                writer=row.writer,
                prev_hash=row.prev_hash,
                entry_hash=row.entry_hash,
            )
