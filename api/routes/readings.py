"""
Readings routes — newest reading, last-N view, health status, single reading.
All views are computed per request from ledger state.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.deps import get_context
from common.context import AppContext
from ledger.models import Reading

router = APIRouter()

NO_READINGS_MESSAGE = "No readings found on the ledger."


def _serialize_reading(r: Reading, with_index: bool = False) -> dict:
    data = r.to_dict()
    if not with_index:
        data.pop("index", None)
    return data


@router.get("/data")
def latest_reading(ctx: AppContext = Depends(get_context)):
    """Newest reading's concentrations, or a message when the ledger is empty."""
    view = ctx.retrieval.current_status()
    if view.reading is None:
        return {"message": NO_READINGS_MESSAGE}
    return view.reading.concentrations()


@router.get("/last10")
def last_readings(ctx: AppContext = Depends(get_context)):
    """Most recent readings, newest first; empty list when the ledger is empty."""
    return [_serialize_reading(r) for r in ctx.retrieval.last_n()]


@router.get("/status")
def current_status(ctx: AppContext = Depends(get_context)):
    view = ctx.retrieval.current_status()
    return {
        "reading": _serialize_reading(view.reading, with_index=True) if view.reading else None,
        "healthy": view.healthy,
        "status": view.status,
    }


@router.get("/readings")
def list_readings(
    n: Optional[int] = Query(None, ge=0, description="How many of the newest readings"),
    ctx: AppContext = Depends(get_context),
):
    readings = ctx.retrieval.last_n(n)
    return {
        "count": len(readings),
        "items": [_serialize_reading(r, with_index=True) for r in readings],
    }


@router.get("/readings/{index}")
def get_reading(index: int, ctx: AppContext = Depends(get_context)):
    return _serialize_reading(ctx.client.get(index), with_index=True)
