"""
Tests for Module 11 — Contract Ledger Store.
web3 is replaced by a MagicMock; only the store's mapping of contract calls
and failures is under test.
"""
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from web3.exceptions import ContractLogicError, TimeExhausted

from ledger.contract_store import ContractLedgerStore
from ledger.errors import NotFound, ReadUnavailable, WriteRejected, WriteTimeout

ADDRESS = "0x" + "ab" * 20
WRITER = "0x" + "11" * 20
TX_HASH = b"\x01" * 32


def _store(writer=WRITER):
    w3 = MagicMock()
    store = ContractLedgerStore(w3, ADDRESS, abi=[], default_writer=writer, confirm_timeout=1)
    contract = w3.eth.contract.return_value
    return store, w3, contract


def _confirm(w3, contract, status=1, count=3, block=7):
    contract.functions.addReading.return_value.transact.return_value = TX_HASH
    w3.eth.wait_for_transaction_receipt.return_value = {
        "status": status, "blockNumber": block, "gasUsed": 21000,
    }
    contract.functions.getReadingCount.return_value.call.return_value = count


class TestAddReading:
    def test_index_from_count_at_receipt_block(self):
        store, w3, contract = _store()
        _confirm(w3, contract, count=3, block=7)
        assert store.add_reading(400, 25, 6, 10, gas=500000) == 2
        contract.functions.getReadingCount.return_value.call.assert_called_with(block_identifier=7)

    def test_sender_and_gas_passed(self):
        store, w3, contract = _store()
        _confirm(w3, contract)
        store.add_reading(400, 25, 6, 10, gas=500000)
        contract.functions.addReading.assert_called_with(400, 25, 6, 10)
        contract.functions.addReading.return_value.transact.assert_called_with(
            {"from": WRITER, "gas": 500000}
        )

    def test_explicit_sender_wins(self):
        store, w3, contract = _store()
        _confirm(w3, contract)
        store.add_reading(400, 25, 6, 10, sender="0xother", gas=1)
        sent = contract.functions.addReading.return_value.transact.call_args.args[0]
        assert sent["from"] == "0xother"

    def test_first_node_account_used_without_writer(self):
        store, w3, contract = _store(writer=None)
        w3.eth.accounts = ["0xfirst", "0xsecond"]
        _confirm(w3, contract)
        store.add_reading(400, 25, 6, 10)
        sent = contract.functions.addReading.return_value.transact.call_args.args[0]
        assert sent["from"] == "0xfirst"

    def test_no_accounts_rejected(self):
        store, w3, contract = _store(writer=None)
        w3.eth.accounts = []
        with pytest.raises(WriteRejected):
            store.add_reading(400, 25, 6, 10)

    def test_reverted_receipt_rejected(self):
        store, w3, contract = _store()
        _confirm(w3, contract, status=0)
        with pytest.raises(WriteRejected):
            store.add_reading(400, 25, 6, 10)

    def test_submission_error_rejected(self):
        store, w3, contract = _store()
        contract.functions.addReading.return_value.transact.side_effect = ConnectionError("refused")
        with pytest.raises(WriteRejected):
            store.add_reading(400, 25, 6, 10)

    def test_receipt_wait_timeout(self):
        store, w3, contract = _store()
        _confirm(w3, contract)
        w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("no receipt")
        with pytest.raises(WriteTimeout):
            store.add_reading(400, 25, 6, 10)


class TestReads:
    def test_count(self):
        store, w3, contract = _store()
        contract.functions.getReadingCount.return_value.call.return_value = 12
        assert store.get_reading_count() == 12

    def test_count_unreachable(self):
        store, w3, contract = _store()
        contract.functions.getReadingCount.return_value.call.side_effect = ConnectionError("down")
        with pytest.raises(ReadUnavailable):
            store.get_reading_count()

    def test_get_reading_decodes_tuple(self):
        store, w3, contract = _store()
        contract.functions.getReading.return_value.call.return_value = [1705312800, 400, 25, 6, 10]
        reading = store.get_reading(4)
        assert reading.index == 4
        assert reading.timestamp == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
        assert (reading.co2, reading.no2, reading.pm25, reading.pm10) == (400, 25, 6, 10)
        contract.functions.getReading.assert_called_with(4)

    def test_reverted_read_is_not_found(self):
        store, w3, contract = _store()
        contract.functions.getReading.return_value.call.side_effect = ContractLogicError("execution reverted")
        with pytest.raises(NotFound):
            store.get_reading(9)

    def test_transport_error_is_unavailable(self):
        store, w3, contract = _store()
        contract.functions.getReading.return_value.call.side_effect = TimeoutError("slow")
        with pytest.raises(ReadUnavailable):
            store.get_reading(0)


class TestConcurrentAppends:
    def test_same_block_appends_get_distinct_indices(self):
        store, w3, contract = _store()
        chain = {"sent": 0, "mined": 0, "waiting": 0, "max_waiting": 0}
        guard = threading.Lock()

        def transact(tx):
            with guard:
                chain["sent"] += 1
            return TX_HASH

        def wait_for_receipt(tx_hash, timeout):
            with guard:
                chain["waiting"] += 1
                chain["max_waiting"] = max(chain["max_waiting"], chain["waiting"])
            time.sleep(0.05)
            with guard:
                # Everything submitted so far is mined into block 7.
                chain["mined"] = chain["sent"]
                chain["waiting"] -= 1
            return {"status": 1, "blockNumber": 7, "gasUsed": 21000}

        contract.functions.addReading.return_value.transact.side_effect = transact
        w3.eth.wait_for_transaction_receipt.side_effect = wait_for_receipt
        contract.functions.getReadingCount.return_value.call.side_effect = (
            lambda block_identifier=None: chain["mined"]
        )

        barrier = threading.Barrier(2)

        def append(co2):
            barrier.wait()
            return store.add_reading(co2, 25, 6, 10)

        with ThreadPoolExecutor(max_workers=2) as pool:
            indices = list(pool.map(append, [400, 410]))

        assert sorted(indices) == [0, 1]
        assert chain["max_waiting"] == 1
