"""Replenishment decision service facade.

Validates parameters, fixes `now` and the window once per call, reads the
three record sets concurrently and runs aggregation and scoring on them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

from fullstock.core.config import Settings, get_settings
from fullstock.core.metrics import (
    decision_items_total,
    decisions_computed_total,
    store_fetch_errors_total,
)
from fullstock.db.records import StoreFetchError
from fullstock.domain.decisions.aggregate import Aggregates, aggregate
from fullstock.domain.decisions.dates import Window, window_range
from fullstock.domain.decisions.diagnostics import dataset_summary, item_xray
from fullstock.domain.decisions.explain import generate_explanation, generate_hash
from fullstock.domain.decisions.scoring import (
    DecisionParams,
    InvalidParametersError,
    ItemDecision,
    score_all,
)

logger = logging.getLogger(__name__)

SAMPLE_OUT = 5


class RecordSource(Protocol):
    """What the service needs from a record store."""

    def fetch_stock(self) -> list[dict[str, Any]]: ...

    def fetch_visits(self, window: Window | None) -> list[dict[str, Any]]: ...

    def fetch_sales(self, window: Window | None) -> list[dict[str, Any]]: ...


@dataclass
class Snapshot:
    """The three record sets read for one computation."""

    stock: list[dict[str, Any]]
    visits: list[dict[str, Any]]
    sales: list[dict[str, Any]]


@dataclass
class DecisionReport:
    """Result of one decision computation."""

    window: Window
    params: DecisionParams
    items: list[ItemDecision]
    aggregates: Aggregates
    snapshot: Snapshot

    def as_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "count": len(self.items),
            "window": self.window.as_dict(),
            "items": [d.as_dict() for d in self.items],
        }


def default_params(settings: Settings, **overrides: Any) -> DecisionParams:
    """Decision parameters with unspecified values taken from settings.

    Raises:
        InvalidParametersError: If a supplied value is invalid.

    """
    values = {
        "window_days": settings.default_window_days,
        "lead_time_days": settings.default_lead_time_days,
        "storage_days": settings.default_storage_days,
        "near_margin": settings.default_near_margin,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return DecisionParams.build(**values)


def sales_window(window: Window, settings: Settings) -> Window:
    """Sales lookback: the decision window, widened to the sales history."""
    history = max(window.days, settings.sales_history_days)
    return Window(from_date=window.to_date - timedelta(days=history), to_date=window.to_date)


async def fetch_snapshot(
    store: RecordSource, window: Window | None, settings: Settings
) -> Snapshot:
    """Read stock, visits and sales concurrently.

    Sales are read over the widened history window. With window=None every
    row of each table is read.

    Raises:
        StoreFetchError: If any read fails or the reads time out.

    """
    lookback = sales_window(window, settings) if window is not None else None
    try:
        stock, visits, sales = await asyncio.wait_for(
            asyncio.gather(
                asyncio.to_thread(store.fetch_stock),
                asyncio.to_thread(store.fetch_visits, window),
                asyncio.to_thread(store.fetch_sales, lookback),
            ),
            timeout=settings.fetch_timeout_seconds,
        )
    except TimeoutError as e:
        store_fetch_errors_total.labels(dataset="records").inc()
        logger.error(
            "store_fetch_timeout", extra={"timeout_seconds": settings.fetch_timeout_seconds}
        )
        raise StoreFetchError(
            "records", f"timed out after {settings.fetch_timeout_seconds}s"
        ) from e

    return Snapshot(stock=stock, visits=visits, sales=sales)


def _now(settings: Settings, now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(settings.tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=settings.tz)
    return now.astimezone(settings.tz)


async def _run(
    store: RecordSource,
    params: DecisionParams | None,
    settings: Settings,
    now: datetime | None,
) -> DecisionReport:
    params = params or default_params(settings)
    now = _now(settings, now)
    tz = settings.tz
    aliases = settings.field_aliases

    window = window_range(params.window_days, now)
    snapshot = await fetch_snapshot(store, window, settings)

    aggregates = aggregate(
        snapshot.stock, snapshot.visits, snapshot.sales, window, aliases=aliases, tz=tz
    )
    items = score_all(aggregates, params, window, now)

    logger.info(
        "decisions_computed",
        extra={
            "window_from": window.from_str,
            "window_to": window.to_str,
            "items": len(items),
            "stock_rows": len(snapshot.stock),
            "visits_rows": len(snapshot.visits),
            "sales_rows": len(snapshot.sales),
        },
    )

    return DecisionReport(
        window=window, params=params, items=items, aggregates=aggregates, snapshot=snapshot
    )


async def compute_decisions(
    store: RecordSource,
    params: DecisionParams | None = None,
    *,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> DecisionReport:
    """Compute the ranked replenishment decision list.

    Args:
        store: Record source for stock, visits and sales
        params: Decision parameters (defaults from settings)
        settings: Explicit configuration (defaults to get_settings())
        now: Current instant; frozen for the whole computation

    Returns:
        DecisionReport with ranked items

    Raises:
        StoreFetchError: If the backing store cannot be read
        InvalidParametersError: If params are invalid

    """
    report = await _run(store, params, settings or get_settings(), now)

    decisions_computed_total.labels(mode="decisions").inc()
    decision_items_total.set(len(report.items))
    return report


async def compute_diagnostics(
    store: RecordSource,
    params: DecisionParams | None = None,
    *,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Ingestion-health view alongside a sample of the decisions.

    Returns:
        Dict with window, row counts, per-set stats, intersections,
        skip counters and the first ranked items

    """
    settings = settings or get_settings()
    report = await _run(store, params, settings, now)
    snapshot = report.snapshot

    summary = dataset_summary(
        snapshot.stock,
        snapshot.visits,
        snapshot.sales,
        aliases=settings.field_aliases,
        tz=settings.tz,
    )
    decisions_computed_total.labels(mode="debug").inc()

    return {
        "ok": True,
        "window": report.window.as_dict(),
        "counts": {
            "stock_rows": len(snapshot.stock),
            "visits_rows": len(snapshot.visits),
            "sales_rows": len(snapshot.sales),
            "items_out": len(report.items),
        },
        "datasets": summary["datasets"],
        "intersections": summary["intersections"],
        "skipped": {k: dict(v) for k, v in report.aggregates.skipped.items()},
        "sample_out": [d.as_dict() for d in report.items[:SAMPLE_OUT]],
    }


async def debug_item(
    store: RecordSource,
    item_id: str,
    params: DecisionParams | None = None,
    *,
    raw: bool = False,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """X-ray of one item: its raw rows, totals and resulting decision.

    The decision always uses the window. With raw=True the rows and totals
    come from an unfiltered read of all three tables instead.

    Raises:
        InvalidParametersError: If item_id is blank
        StoreFetchError: If the backing store cannot be read

    """
    if not item_id or not item_id.strip():
        raise InvalidParametersError("item_id is required")

    settings = settings or get_settings()
    report = await _run(store, params, settings, now)
    # Windowed reads leave out rows the raw view must show
    snapshot = await fetch_snapshot(store, None, settings) if raw else report.snapshot

    xray = item_xray(
        item_id,
        snapshot.stock,
        snapshot.visits,
        snapshot.sales,
        report.window,
        raw=raw,
        aliases=settings.field_aliases,
        tz=settings.tz,
    )

    decision = next((d for d in report.items if d.item_id == xray["probe_item_id"]), None)
    xray["ok"] = True
    xray["decision"] = decision.as_dict() if decision else None
    xray["explanation"] = generate_explanation(decision) if decision else None
    xray["rationale_hash"] = generate_hash(decision) if decision else None

    decisions_computed_total.labels(mode="debug_item").inc()
    return xray
