"""
AirLedger — Reading Pipeline Package.

Components:
    - ingestion: synthetic reading generator and reading validator
    - archive: best-effort content-addressed mirror (Pinata)
    - retrieval: last-N and current-status views over the ledger
    - classification: health classification of the newest reading
    - rules: fixed per-pollutant health thresholds
"""
