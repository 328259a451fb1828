"""
Ledger Verifier — AirLedger

Traverses the whole reading chain of a SqlLedgerStore and verifies:
1. indices are contiguous from 0
2. Each entry's prev_hash matches the previous entry's entry_hash
3. Each entry's entry_hash = SHA256(entry + prev_hash)

Runs automatically on API startup.
"""

import logging

from ledger.models import GENESIS_HASH, ChainVerificationResult
from ledger.sql_store import SqlLedgerStore

logger = logging.getLogger(__name__)


def verify_chain(store: SqlLedgerStore) -> ChainVerificationResult:
    """
    Walk the ledger and verify hash chain integrity.

    Args:
        store: The SQL ledger store to scan.

    Returns:
        ChainVerificationResult with is_valid flag and the first broken index.
    """
    expected_prev_hash = GENESIS_HASH
    expected_index = 0

    for entry in store.iter_entries():
        idx = entry.reading.index

        if idx != expected_index:
            msg = f"Index gap: expected {expected_index}, got {idx}"
            logger.error("Chain integrity violation: %s", msg)
            return ChainVerificationResult(
                is_valid=False,
                total_entries=expected_index,
                broken_at_index=expected_index,
                error_message=msg,
            )

        if entry.prev_hash != expected_prev_hash:
            msg = (
                f"prev_hash mismatch at index {idx}: "
                f"expected {expected_prev_hash[:16]}..., "
                f"got {entry.prev_hash[:16]}..."
            )
            logger.error("Chain integrity violation: %s", msg)
            return ChainVerificationResult(
                is_valid=False,
                total_entries=idx,
                broken_at_index=idx,
                error_message=msg,
            )

        computed_hash = entry.compute_hash()
        if computed_hash != entry.entry_hash:
            msg = (
                f"entry_hash mismatch at index {idx}: "
                f"computed {computed_hash[:16]}..., "
                f"stored {entry.entry_hash[:16]}..."
            )
            logger.error("Chain integrity violation (TAMPERED ENTRY): %s", msg)
            return ChainVerificationResult(
                is_valid=False,
                total_entries=idx,
                broken_at_index=idx,
                error_message=msg,
            )

        expected_prev_hash = entry.entry_hash
        expected_index += 1

    if expected_index == 0:
        logger.info("Ledger is empty — chain trivially valid")
    else:
        logger.info("Ledger chain verified: %d entries all valid", expected_index)
    return ChainVerificationResult(is_valid=True, total_entries=expected_index)
