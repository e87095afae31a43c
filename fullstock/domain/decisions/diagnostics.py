"""Ingestion-health diagnostics and single-item X-ray.

Both views read the raw record sets directly so they can explain a decision
without re-deriving it.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, tzinfo
from typing import Any

from fullstock.domain.decisions.dates import Window, to_day, to_ymd
from fullstock.domain.decisions.fields import (
    DEFAULT_ALIASES,
    FieldAliases,
    Record,
    coerce_number,
    first_present,
    normalize_id,
    resolve_id,
    resolve_quantity,
)

SAMPLE_ROWS = 10


def _dataset_stats(
    rows: Sequence[Record],
    id_fields: tuple[str, ...],
    date_fields: tuple[str, ...],
    tz: tzinfo,
) -> tuple[dict[str, Any], set[str]]:
    ids: set[str] = set()
    days: list[date] = []
    for row in rows:
        item_id = resolve_id(row, id_fields)
        if item_id:
            ids.add(item_id)
        day = to_day(first_present(row, date_fields), tz)
        if day is not None:
            days.append(day)

    stats = {
        "rows": len(rows),
        "distinct_items": len(ids),
        "min_date": min(days).isoformat() if days else None,
        "max_date": max(days).isoformat() if days else None,
    }
    return stats, ids


def dataset_summary(
    stock_rows: Sequence[Record],
    visit_rows: Sequence[Record],
    sale_rows: Sequence[Record],
    *,
    aliases: FieldAliases = DEFAULT_ALIASES,
    tz: tzinfo,
) -> dict[str, Any]:
    """Row counts, distinct ids, id-set intersections and date range per set.

    Returns:
        Dict with "datasets" (per-set stats) and "intersections" (sizes)

    """
    stock_stats, stock_ids = _dataset_stats(
        stock_rows, aliases.stock_id, aliases.stock_updated, tz
    )
    visit_stats, visit_ids = _dataset_stats(
        visit_rows, aliases.event_id, aliases.event_date, tz
    )
    sale_stats, sale_ids = _dataset_stats(sale_rows, aliases.event_id, aliases.event_date, tz)

    return {
        "datasets": {"stock": stock_stats, "visits": visit_stats, "sales": sale_stats},
        "intersections": {
            "stock_visits": len(stock_ids & visit_ids),
            "stock_sales": len(stock_ids & sale_ids),
            "visits_sales": len(visit_ids & sale_ids),
            "all": len(stock_ids & visit_ids & sale_ids),
        },
    }


def _number_or_zero(value: Any) -> int | float:
    number = coerce_number(value)
    return 0 if number is None else number


def item_xray(
    item_id: str,
    stock_rows: Sequence[Record],
    visit_rows: Sequence[Record],
    sale_rows: Sequence[Record],
    window: Window,
    *,
    raw: bool = False,
    aliases: FieldAliases = DEFAULT_ALIASES,
    tz: tzinfo,
) -> dict[str, Any]:
    """Raw records of one item and the aggregates computed from them.

    Args:
        item_id: Item identifier (any casing/whitespace)
        stock_rows: Stock records
        visit_rows: Visit events
        sale_rows: Sale events
        window: Decision window
        raw: Ignore the window and show every matching event
        aliases: Field alias table
        tz: Timezone of the local calendar

    Returns:
        Dict with the probe id, matching rows, counts and totals

    """
    probe = normalize_id(item_id)

    def keep(row: Record) -> bool:
        if resolve_id(row, aliases.event_id) != probe:
            return False
        if raw:
            return True
        day = to_day(first_present(row, aliases.event_date), tz)
        return day is not None and window.contains(day)

    visits = [
        {
            "date": to_ymd(first_present(row, aliases.event_date), tz),
            "visits": resolve_quantity(row, aliases.visit_count),
        }
        for row in visit_rows
        if keep(row)
    ]

    sales = []
    for row in sale_rows:
        if not keep(row):
            continue
        entry: dict[str, Any] = {"date": to_ymd(first_present(row, aliases.event_date), tz)}
        for name in aliases.sale_quantity:
            entry[name] = _number_or_zero(row.get(name))
        entry["used_qty"] = resolve_quantity(row, aliases.sale_quantity)
        sales.append(entry)

    stock_row = None
    for row in stock_rows:
        if resolve_id(row, aliases.stock_id) == probe:
            stock_row = row  # later duplicates overwrite, as in aggregation
    stock = resolve_quantity(stock_row, aliases.stock_quantity) if stock_row else 0

    return {
        "probe_item_id": probe,
        "window": "raw" if raw else window.as_dict(),
        "counts": {"visits_rows": len(visits), "sales_rows": len(sales)},
        "totals": {
            "sales_total": sum(s["used_qty"] for s in sales),
            "visits_total": sum(v["visits"] for v in visits),
            "stock": stock,
        },
        "stock_row_sample": dict(stock_row) if stock_row else None,
        "visits_rows_sample": visits[:SAMPLE_ROWS],
        "sales_rows_sample": sales[:SAMPLE_ROWS],
    }
