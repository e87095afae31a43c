"""Fold raw stock, visit and sale record sets into per-item aggregates.

The three passes are independent reduces over their own record set. A record
that cannot be used (no identifier, date outside the window or unparseable,
no positive quantity) is excluded from its pass and counted, never fatal.

Sales policy: a sale row without a usable positive quantity contributes
nothing. It is NOT assumed to be one unit.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, tzinfo

from fullstock.core.metrics import records_skipped_total
from fullstock.domain.decisions.dates import Window, parse_to_instant
from fullstock.domain.decisions.fields import (
    DEFAULT_ALIASES,
    FieldAliases,
    Record,
    first_present,
    resolve_id,
    resolve_quantity,
)

logger = logging.getLogger(__name__)

SKIP_MISSING_ID = "missing_id"
SKIP_OUT_OF_WINDOW = "out_of_window"
SKIP_NO_QUANTITY = "no_quantity"


@dataclass
class ListingInfo:
    """Descriptive extras carried by a stock record."""

    title: str = ""
    inventory_id: str = ""
    updated_at: datetime | None = None


@dataclass
class Aggregates:
    """Per-item aggregates of the three record sets."""

    stock_by_item: dict[str, int | float] = field(default_factory=dict)
    visits_by_item: dict[str, int | float] = field(default_factory=dict)
    sales_by_item: dict[str, int | float] = field(default_factory=dict)
    last_sale_by_item: dict[str, datetime] = field(default_factory=dict)
    listing_by_item: dict[str, ListingInfo] = field(default_factory=dict)
    skipped: dict[str, Counter] = field(default_factory=dict)

    def item_ids(self) -> list[str]:
        """Union of identifiers: stock order first, then visits, then sales."""
        ids = dict.fromkeys(self.stock_by_item)
        ids.update(dict.fromkeys(self.visits_by_item))
        ids.update(dict.fromkeys(self.sales_by_item))
        return list(ids)


def _skip(skipped: Counter, dataset: str, reason: str) -> None:
    skipped[reason] += 1
    records_skipped_total.labels(dataset=dataset, reason=reason).inc()


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def aggregate_stock(
    rows: Iterable[Record],
    *,
    aliases: FieldAliases = DEFAULT_ALIASES,
    tz: tzinfo,
) -> tuple[dict[str, int | float], dict[str, ListingInfo], Counter]:
    """Current stock per item.

    One stock row per item is expected. On duplicates the later row
    overwrites the earlier one.
    """
    stock: dict[str, int | float] = {}
    listings: dict[str, ListingInfo] = {}
    skipped: Counter = Counter()

    for row in rows:
        item_id = resolve_id(row, aliases.stock_id)
        if not item_id:
            _skip(skipped, "stock", SKIP_MISSING_ID)
            continue

        if item_id in stock:
            logger.debug("stock_duplicate_overwritten", extra={"item_id": item_id})

        stock[item_id] = resolve_quantity(row, aliases.stock_quantity)
        listings[item_id] = ListingInfo(
            title=_text(first_present(row, aliases.title)),
            inventory_id=_text(first_present(row, aliases.inventory_id)),
            updated_at=parse_to_instant(first_present(row, aliases.stock_updated), tz),
        )

    return stock, listings, skipped


def aggregate_visits(
    rows: Iterable[Record],
    window: Window,
    *,
    aliases: FieldAliases = DEFAULT_ALIASES,
    tz: tzinfo,
) -> tuple[dict[str, int | float], Counter]:
    """Sum of in-window visit counts per item."""
    visits: dict[str, int | float] = {}
    skipped: Counter = Counter()

    for row in rows:
        item_id = resolve_id(row, aliases.event_id)
        if not item_id:
            _skip(skipped, "visits", SKIP_MISSING_ID)
            continue

        instant = parse_to_instant(first_present(row, aliases.event_date), tz)
        if instant is None or not window.contains(instant.date()):
            _skip(skipped, "visits", SKIP_OUT_OF_WINDOW)
            continue

        count = resolve_quantity(row, aliases.visit_count)
        if count <= 0:
            _skip(skipped, "visits", SKIP_NO_QUANTITY)
            continue

        visits[item_id] = visits.get(item_id, 0) + count

    return visits, skipped


def aggregate_sales(
    rows: Iterable[Record],
    window: Window,
    *,
    aliases: FieldAliases = DEFAULT_ALIASES,
    tz: tzinfo,
) -> tuple[dict[str, int | float], dict[str, datetime], Counter]:
    """Sum of in-window sold units per item, plus the last sale instant.

    The last sale instant looks at every row with a positive quantity and a
    parseable date, inside the window or not.
    """
    sales: dict[str, int | float] = {}
    last_sale: dict[str, datetime] = {}
    skipped: Counter = Counter()

    for row in rows:
        item_id = resolve_id(row, aliases.event_id)
        if not item_id:
            _skip(skipped, "sales", SKIP_MISSING_ID)
            continue

        qty = resolve_quantity(row, aliases.sale_quantity)
        instant = parse_to_instant(first_present(row, aliases.event_date), tz)

        if qty > 0 and instant is not None:
            previous = last_sale.get(item_id)
            if previous is None or instant > previous:
                last_sale[item_id] = instant

        if instant is None or not window.contains(instant.date()):
            _skip(skipped, "sales", SKIP_OUT_OF_WINDOW)
            continue

        if qty <= 0:
            # No inferred sales
            _skip(skipped, "sales", SKIP_NO_QUANTITY)
            continue

        sales[item_id] = sales.get(item_id, 0) + qty

    return sales, last_sale, skipped


def aggregate(
    stock_rows: Iterable[Record],
    visit_rows: Iterable[Record],
    sale_rows: Iterable[Record],
    window: Window,
    *,
    aliases: FieldAliases = DEFAULT_ALIASES,
    tz: tzinfo,
) -> Aggregates:
    """Run the three aggregation passes.

    Args:
        stock_rows: Current stock records (one per item expected)
        visit_rows: Raw visit events
        sale_rows: Raw sale events
        window: Half-open [from, to) window for visits and sales
        aliases: Field alias table
        tz: Timezone of the local calendar

    Returns:
        Aggregates with stock, visits, sales, last sale and skip counters

    """
    stock, listings, stock_skipped = aggregate_stock(stock_rows, aliases=aliases, tz=tz)
    visits, visit_skipped = aggregate_visits(visit_rows, window, aliases=aliases, tz=tz)
    sales, last_sale, sale_skipped = aggregate_sales(sale_rows, window, aliases=aliases, tz=tz)

    return Aggregates(
        stock_by_item=stock,
        visits_by_item=visits,
        sales_by_item=sales,
        last_sale_by_item=last_sale,
        listing_by_item=listings,
        skipped={"stock": stock_skipped, "visits": visit_skipped, "sales": sale_skipped},
    )
