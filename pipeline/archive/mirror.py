"""
Archive Mirror — pins a JSON copy of each appended reading to a
content-addressed pinning service (Pinata pinJSONToIPFS API).

Best-effort only: failures are logged and swallowed, never propagated to the
ledger writer or to readers. The mirror only writes; it never reads back.
Mirror writes run on their own worker pool and may complete out of ledger
order — the ledger stays the only source of ordering.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

import httpx

from ledger.models import Reading

logger = logging.getLogger(__name__)

PINATA_PIN_JSON_URL = "https://api.pinata.cloud/pinning/pinJSONToIPFS"
REQUEST_TIMEOUT = 10  # seconds
RETRY_PAUSE = 1.0  # seconds


class ArchiveWriteFailure(Exception):
    """The archive did not return a content hash for a reading."""


def build_pin_body(reading: Reading) -> dict:
    keyvalues = {"source": "airledger"}
    if reading.index is not None:
        keyvalues["index"] = str(reading.index)
    return {
        "pinataContent": reading.to_dict(),
        "pinataMetadata": {
            "name": "Air Quality Reading",
            "keyvalues": keyvalues,
        },
    }


class ArchiveMirror:

    def __init__(
        self,
        token: Optional[str],
        url: str = PINATA_PIN_JSON_URL,
        timeout: float = REQUEST_TIMEOUT,
        attempts: int = 2,
        retry_pause: float = RETRY_PAUSE,
        client: Optional[httpx.Client] = None,
        max_workers: int = 4,
    ):
        self.token = token
        self.url = url
        self.attempts = max(1, attempts)
        self.retry_pause = retry_pause
        self._client = client or httpx.Client(timeout=timeout)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="archive-mirror")
        self._closed = False
        if not token:
            logger.warning("PINATA_JWT not set — archive mirroring disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    @property
    def closed(self) -> bool:
        return self._closed

    def _pin_once(self, reading: Reading) -> str:
        if self.closed:
            raise ArchiveWriteFailure("Archive client is closed")
        try:
            resp = self._client.post(
                self.url,
                json=build_pin_body(reading),
                headers={"Authorization": f"Bearer {self.token}"},
            )
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            raise ArchiveWriteFailure(f"Archive request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise ArchiveWriteFailure(f"Archive HTTP error {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise ArchiveWriteFailure(f"Archive network error: {e}") from e
        except RuntimeError as e:
            # httpx refuses requests on a client closed mid-flight.
            if not self.closed:
                raise
            raise ArchiveWriteFailure("Archive client closed during request") from e

        try:
            content_hash = resp.json().get("IpfsHash")
        except ValueError as e:
            raise ArchiveWriteFailure("Archive returned malformed JSON") from e
        if not content_hash:
            raise ArchiveWriteFailure("Archive response carried no content hash")
        return content_hash

    def pin(self, reading: Reading) -> str:
        """
        Pin one reading, retrying up to `attempts` times.

        Raises:
            ArchiveWriteFailure: Every attempt failed, or mirroring is disabled.
        """
        if not self.enabled:
            raise ArchiveWriteFailure("No archive API token configured")

        last_error: Optional[ArchiveWriteFailure] = None
        for attempt in range(1, self.attempts + 1):
            try:
                return self._pin_once(reading)
            except ArchiveWriteFailure as e:
                last_error = e
                if self.closed:
                    break
                if attempt < self.attempts:
                    logger.warning(
                        "Archive pin failed for reading %s (attempt %d/%d): %s",
                        reading.index, attempt, self.attempts, e,
                    )
                    time.sleep(self.retry_pause)
        raise ArchiveWriteFailure(
            f"Gave up after {attempt} attempt(s): {last_error}"
        ) from last_error

    def mirror(self, reading: Reading) -> Optional[str]:
        """Pin a reading; log and swallow any failure. Returns the hash or None."""
        if not self.enabled:
            logger.debug("Archive mirroring disabled — reading %s not pinned", reading.index)
            return None
        try:
            content_hash = self.pin(reading)
        except ArchiveWriteFailure as e:
            logger.error("Archive mirror failed for reading %s: %s", reading.index, e)
            return None
        logger.info("Reading %s pinned to archive with hash %s", reading.index, content_hash)
        return content_hash

    def submit(self, reading: Reading) -> Future:
        """Fire-and-forget mirror on the mirror's own worker pool."""
        return self._executor.submit(self.mirror, reading)

    def close(self) -> None:
        # In-flight mirror writes are not awaited.
        self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._client.close()
