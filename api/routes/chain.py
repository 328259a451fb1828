"""
Ledger chain routes — reading count and hash chain verification.
"""
from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_context
from common.context import AppContext
from ledger.sql_store import SqlLedgerStore
from ledger.verifier import verify_chain

router = APIRouter()


@router.get("/count")
def reading_count(ctx: AppContext = Depends(get_context)):
    return {"count": ctx.client.count()}


@router.get("/verify")
def verify(ctx: AppContext = Depends(get_context)):
    """Walk the hash chain (SQL backend only)."""
    store = ctx.store
    if not isinstance(store, SqlLedgerStore):
        raise HTTPException(status_code=501, detail="Chain verification is only available for the SQL ledger")
    result = verify_chain(store)
    return {
        "is_valid": result.is_valid,
        "total_entries": result.total_entries,
        "broken_at_index": result.broken_at_index,
        "error_message": result.error_message,
    }
