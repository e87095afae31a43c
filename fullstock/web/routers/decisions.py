"""Replenishment decision API endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from fullstock.services.decisions import (
    compute_decisions,
    compute_diagnostics,
    debug_item,
    default_params,
)
from fullstock.web.deps import AppSettings, Authenticated, Store
from fullstock.web.schemas import DecisionsResponse, DiagnosticsResponse, ErrorResponse

router = APIRouter(prefix="/full", tags=["decisions"])

_ERRORS = {
    400: {"model": ErrorResponse, "description": "Rejected parameters"},
    502: {"model": ErrorResponse, "description": "Backing store unavailable"},
}


@router.get("/decisions", response_model=DecisionsResponse | DiagnosticsResponse, responses=_ERRORS)
async def get_decisions(
    _token: Authenticated,
    store: Store,
    settings: AppSettings,
    window: int | None = Query(None, ge=1, le=3650, description="Trailing window in days"),
    lead_time: int | None = Query(None, ge=1, le=3650, description="Lead time in days"),
    storage_days: int | None = Query(
        None, ge=1, le=3650, description="Days without sales before storage risk"
    ),
    near_margin: int | None = Query(
        None, ge=0, le=3650, description="Days before storage_days flagged as near"
    ),
    debug: bool = Query(False, description="Return the ingestion-health view instead"),
):
    """Ranked replenishment decisions, most urgent first.

    Omitted parameters take the configured defaults. With debug=1 the
    response describes the ingested datasets and carries a sample of the
    decisions instead of the full list.
    """
    params = default_params(
        settings,
        window_days=window,
        lead_time_days=lead_time,
        storage_days=storage_days,
        near_margin=near_margin,
    )

    if debug:
        diagnostics = await compute_diagnostics(store, params, settings=settings)
        return DiagnosticsResponse.model_validate(diagnostics)

    report = await compute_decisions(store, params, settings=settings)
    return DecisionsResponse.model_validate(report.as_dict())


@router.get("/decisions/debug_item", responses=_ERRORS)
async def get_debug_item(
    _token: Authenticated,
    store: Store,
    settings: AppSettings,
    item_id: str = Query("", description="Item identifier (any case, surrounding blanks ok)"),
    window: int | None = Query(None, ge=1, le=3650, description="Trailing window in days"),
    raw: bool = Query(
        False, description="Read every row of the item, ignoring the window and sales history"
    ),
) -> dict[str, Any]:
    """Raw rows, totals and resulting decision for a single item."""
    params = default_params(settings, window_days=window)
    return await debug_item(store, item_id, params, raw=raw, settings=settings)
