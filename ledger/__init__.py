"""
AirLedger — Append-only Reading Ledger.

Components:
    - store: the three-operation LedgerStore capability
    - sql_store: hash-chained SQL implementation
    - contract_store: EVM contract implementation (web3.py)
    - client: bounded-timeout client used by the pipeline and the API
    - verifier: hash chain integrity check
"""
