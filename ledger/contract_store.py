"""
Contract Ledger Store — AirLedger

Talks to the AirQualityData contract over EVM JSON-RPC (web3.py):
  addReading(co2, no2, pm25, pm10)  — transaction, block-assigned timestamp
  getReadingCount()                 — call
  getReading(index)                 — call → (timestamp, co2, no2, pm25, pm10)

The contract does not return the new index from a transaction, so it is read
back as getReadingCount() at the receipt's block minus one. Appends through
one store are serialized from submission to read-back, so no two of them land
in the same block; the index is exact while this store is the only writer.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, List, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from ledger.errors import NotFound, ReadUnavailable, WriteRejected, WriteTimeout
from ledger.models import Reading

logger = logging.getLogger(__name__)


class ContractLedgerStore:

    def __init__(
        self,
        web3: Web3,
        address: str,
        abi: List[Any],
        default_writer: Optional[str] = None,
        confirm_timeout: float = 30.0,
    ):
        self._w3 = web3
        self._contract = web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        self._default_writer = default_writer
        self.confirm_timeout = confirm_timeout
        self._write_lock = threading.Lock()

    @classmethod
    def from_endpoint(
        cls,
        endpoint: str,
        address: str,
        abi: List[Any],
        default_writer: Optional[str] = None,
        request_timeout: float = 10.0,
        confirm_timeout: float = 30.0,
    ) -> "ContractLedgerStore":
        provider = Web3.HTTPProvider(endpoint, request_kwargs={"timeout": request_timeout})
        logger.info("Contract ledger store: endpoint=%s address=%s", endpoint, address)
        return cls(Web3(provider), address, abi, default_writer, confirm_timeout)

    def close(self) -> None:
        # HTTPProvider keeps no connection that needs an explicit close.
        pass

    def _writer(self, sender: Optional[str]) -> str:
        """Explicit sender, configured writer, or the node's first account."""
        if sender:
            return sender
        if self._default_writer:
            return self._default_writer
        try:
            accounts = self._w3.eth.accounts
        except Exception as e:
            raise WriteRejected(f"Could not list node accounts: {e}") from e
        if not accounts:
            raise WriteRejected("No writer identity configured and node exposes no accounts")
        self._default_writer = accounts[0]
        logger.info("Using first node account as writer identity: %s", self._default_writer)
        return self._default_writer

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
        gas: int = 1000000,
    ) -> int:
        # Timestamp is assigned by the chain (block.timestamp); a caller value is ignored.
        writer = self._writer(sender)
        with self._write_lock:
            return self._append(co2, no2, pm25, pm10, writer, gas)

    def _append(self, co2: int, no2: int, pm25: int, pm10: int, writer: str, gas: int) -> int:
        try:
            tx_hash = self._contract.functions.addReading(co2, no2, pm25, pm10).transact(
                {"from": writer, "gas": gas}
            )
        except ContractLogicError as e:
            raise WriteRejected(f"addReading reverted: {e}") from e
        except Exception as e:
            raise WriteRejected(f"addReading submission failed: {e}") from e

        try:
            receipt = self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.confirm_timeout)
        except TimeExhausted as e:
            raise WriteTimeout(
                f"No receipt for {tx_hash.hex()} within {self.confirm_timeout}s"
            ) from e
        except Exception as e:
            raise WriteTimeout(f"Lost track of transaction {tx_hash.hex()}: {e}") from e

        if receipt["status"] != 1:
            raise WriteRejected(
                f"addReading transaction {tx_hash.hex()} failed "
                f"(gasUsed={receipt.get('gasUsed')}, gas={gas})"
            )

        try:
            count = self._contract.functions.getReadingCount().call(
                block_identifier=receipt["blockNumber"]
            )
        except Exception as e:
            raise WriteTimeout(f"Appended but could not read back the index: {e}") from e

        index = int(count) - 1
        logger.info("Contract reading appended: index=%d block=%s tx=%s",
                    index, receipt["blockNumber"], tx_hash.hex())
        return index

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get_reading_count(self) -> int:
        try:
            return int(self._contract.functions.getReadingCount().call())
        except Exception as e:
            raise ReadUnavailable(f"getReadingCount failed: {e}") from e

    def get_reading(self, index: int) -> Reading:
        try:
            raw = self._contract.functions.getReading(index).call()
        except ContractLogicError as e:
            raise NotFound(index, str(e)) from e
        except Exception as e:
            raise ReadUnavailable(f"getReading({index}) failed: {e}") from e

        ts, co2, no2, pm25, pm10 = raw[:5]
        return Reading(
            index=index,
            timestamp=datetime.fromtimestamp(int(ts), tz=timezone.utc),
            co2=int(co2),
            no2=int(no2),
            pm25=int(pm25),
            pm10=int(pm10),
        )
