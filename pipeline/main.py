"""
AirLedger — Pipeline Main Entry Point

Architecture:
  APScheduler (BackgroundScheduler thread pool):
      Every GENERATION_INTERVAL_SECONDS:
        1. Generate a synthetic reading
        2. Validate it
        3. Append it to the ledger (bounded wait)
        4. Read the stored entry back and hand it to the archive mirror
           (fire-and-forget, own pool)

  A cycle that is still waiting on its append when the next tick fires does
  not hold the next one back: up to MAX_CONCURRENT_CYCLES run side by side and
  the ledger orders the appends.

  Main thread:
      Waits on a stop event set by SIGINT/SIGTERM, then shuts the scheduler
      down waiting for in-flight appends. Mirror writes are not awaited.
"""

import logging
import signal
import sys
import threading
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from common.config import Settings, get_settings
from common.context import AppContext
from ledger.errors import (
    DeploymentError, LedgerError, ReadUnavailable, WriteRejected, WriteTimeout,
)
from pipeline.ingestion.generator import generate
from pipeline.ingestion.validator import validate_reading

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [PIPELINE] %(levelname)s %(name)s — %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("pipeline.main")

MAX_CONCURRENT_CYCLES = 4


def run_cycle(ctx: AppContext, reading=None) -> Optional[int]:
    """
    One generation cycle. Returns the assigned index, or None when the cycle
    was skipped. Ledger write failures end the cycle; they never stop the loop.
    """
    reading = reading or generate()

    validation = validate_reading(reading)
    if not validation.is_valid:
        logger.warning("Skipping invalid reading: %s", validation)
        return None

    logger.info(
        "Submitting reading: CO2=%d NO2=%d PM2.5=%d PM10=%d",
        reading.co2, reading.no2, reading.pm25, reading.pm10,
    )
    try:
        index = ctx.client.append_reading(reading)
    except WriteTimeout as exc:
        logger.error("Ledger append timed out — cycle skipped: %s", exc)
        return None
    except WriteRejected as exc:
        logger.error("Ledger append rejected — cycle skipped: %s", exc)
        return None

    logger.info("Reading appended to ledger at index %d", index)

    # The archive copy is the stored entry; the contract backend stamps its own time.
    try:
        stored = ctx.client.get(index)
    except LedgerError as exc:
        logger.error("Reading %d not read back — archive copy skipped: %s", index, exc)
        return index
    ctx.mirror.submit(stored)
    return index


class GenerationLoop:
    """Fixed-interval generation job with a deterministic stop."""

    def __init__(self, ctx: AppContext, interval: float, max_concurrent: int = MAX_CONCURRENT_CYCLES):
        self._ctx = ctx
        self.interval = interval
        self._scheduler = BackgroundScheduler(timezone=timezone.utc)
        self._scheduler.add_job(
            func=run_cycle,
            args=[ctx],
            trigger="interval",
            seconds=interval,
            next_run_time=datetime.now(timezone.utc),  # run immediately on start
            id="reading_generation",
            name="Reading Generation",
            max_instances=max_concurrent,
            coalesce=False,
        )
        self._stop_event = threading.Event()

    def start(self) -> None:
        self._scheduler.start()
        logger.info("Scheduler started — generating every %gs", self.interval)

    def request_stop(self) -> None:
        self._stop_event.set()

    def wait(self) -> None:
        while not self._stop_event.wait(1.0):
            pass

    def stop(self) -> None:
        """Stop scheduling new cycles and let in-flight appends finish or fail."""
        logger.info("Stopping scheduler — waiting for in-flight appends…")
        if self._scheduler.running:
            self._scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped.")


def main(settings: Optional[Settings] = None) -> int:
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level)

    try:
        ctx = AppContext.open(settings)
    except DeploymentError as exc:
        logger.critical("Ledger identifier unresolved — refusing to start: %s", exc)
        return 1
    except ReadUnavailable as exc:
        logger.critical("Ledger store unreachable — refusing to start: %s", exc)
        return 1

    loop = GenerationLoop(ctx, settings.generation_interval)

    def _shutdown(sig, frame):
        logger.info("Shutdown signal (%s) — stopping generation loop.", sig)
        loop.request_stop()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    loop.start()
    logger.info("AirLedger pipeline running. Press Ctrl+C or send SIGTERM to stop.")
    try:
        loop.wait()
    finally:
        loop.stop()
        ctx.close()
        logger.info("Pipeline stopped cleanly.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
