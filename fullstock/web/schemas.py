"""Pydantic schemas for API responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WindowOut(BaseModel):
    """Half-open date window, boundaries as YYYY-MM-DD."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(..., alias="from")
    to: str


class ItemDecisionOut(BaseModel):
    """Replenishment decision row."""

    model_config = ConfigDict(populate_by_name=True)

    item_id: str
    title: str = ""
    inventory_id: str = ""
    # Numbers come back as None when a window sum overflowed
    stock: int | float | None
    visits: int | float | None
    sales: int | float | None
    demand_per_day: float | None
    coverage_days: float | None = Field(None, description="None when there is no demand")
    conversion_rate: float | None
    break_date: str | None = None
    days_since_last_sale: int | None = None
    stock_flag: str
    storage_flag: str
    overall_flag: str
    target_stock: float | None
    suggested_send: int
    window_days: int
    lead_time_days: int
    from_: str = Field(..., alias="from")
    to: str


class DecisionsResponse(BaseModel):
    """Ranked decision list."""

    ok: bool = True
    count: int
    window: WindowOut
    items: list[ItemDecisionOut]


class DiagnosticsResponse(BaseModel):
    """Ingestion-health view returned with debug=1."""

    ok: bool = True
    window: WindowOut
    counts: dict[str, int]
    datasets: dict[str, dict[str, Any]]
    intersections: dict[str, int]
    skipped: dict[str, dict[str, int]]
    sample_out: list[ItemDecisionOut]


class ErrorResponse(BaseModel):
    """Error body for store failures and rejected parameters."""

    ok: bool = False
    error: str
