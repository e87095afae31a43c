"""Decision scoring: demand, coverage, risk flags and suggested send.

Business logic for turning per-item aggregates into a ranked decision list:
- Demand per day = sales in window / window days (visits are NOT demand)
- Coverage days = stock / demand per day (inf when there is no demand)
- Stock flag from coverage vs lead time, storage flag from days since last sale
- Suggested send = units needed to cover two lead-time cycles

NO DATA ACCESS - pure functions only. Data access happens in services layer.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from fullstock.domain.decisions.aggregate import Aggregates, ListingInfo
from fullstock.domain.decisions.dates import Window

FLAG_OK = "ok"
FLAG_WARN = "warn"
FLAG_NEAR = "near"
FLAG_RISK = "risk"

_DAY_SECONDS = 86400


class InvalidParametersError(ValueError):
    """Scoring parameters are missing, non-numeric or out of range."""


class DecisionParams(BaseModel):
    """Window and scoring parameters for one computation."""

    window_days: int = Field(30, gt=0, le=3650)
    lead_time_days: int = Field(7, gt=0, le=3650)
    storage_days: int = Field(60, gt=0, le=3650)
    near_margin: int = Field(15, ge=0, le=3650)

    model_config = {"frozen": True}

    @classmethod
    def build(cls, **values: Any) -> DecisionParams:
        """Validate parameters; None values fall back to defaults.

        Raises:
            InvalidParametersError: If any supplied value is invalid.

        """
        try:
            return cls(**{k: v for k, v in values.items() if v is not None})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise InvalidParametersError(f"Invalid decision parameters: {problems}") from e


@dataclass
class ItemDecision:
    """Replenishment decision for one item."""

    item_id: str
    title: str
    inventory_id: str
    stock: int | float
    visits: int | float
    sales: int | float
    demand_per_day: float
    coverage_days: float
    conversion_rate: float
    break_date: date | None
    days_since_last_sale: int | None
    stock_flag: str
    storage_flag: str
    overall_flag: str
    target_stock: float
    suggested_send: int
    window_days: int
    lead_time_days: int
    from_date: date
    to_date: date

    def as_dict(self) -> dict[str, Any]:
        """Plain dict with dates as 'YYYY-MM-DD' and non-finite numbers as None.

        Coverage is infinite whenever there is no demand; the other numbers
        only leave the finite range when window sums overflow.
        """
        data = {
            k: None if isinstance(v, float) and not math.isfinite(v) else v
            for k, v in asdict(self).items()
        }
        data["break_date"] = self.break_date.isoformat() if self.break_date else None
        data["from"] = data.pop("from_date").isoformat()
        data["to"] = data.pop("to_date").isoformat()
        return data


def stock_flag(coverage_days: float, lead_time_days: int) -> str:
    """Risk level of the projected stockout vs lead time.

    Examples:
        >>> stock_flag(5, 7), stock_flag(10, 7), stock_flag(100, 7)
        ('risk', 'warn', 'ok')
        >>> stock_flag(float("inf"), 7)
        'ok'
    """
    if not math.isfinite(coverage_days):
        return FLAG_OK
    if coverage_days <= lead_time_days:
        return FLAG_RISK
    if coverage_days <= 2 * lead_time_days:
        return FLAG_WARN
    return FLAG_OK


def days_since(last: datetime | None, now: datetime) -> int | None:
    """Whole days elapsed since `last` (never negative); None without history."""
    if last is None:
        return None
    elapsed = (now - last).total_seconds()
    return max(0, math.floor(elapsed / _DAY_SECONDS))


def storage_flag(days_since_last_sale: int | None, storage_days: int, near_margin: int) -> str:
    """Staleness level; no sale history means it cannot be assessed (ok)."""
    if days_since_last_sale is None:
        return FLAG_OK
    if days_since_last_sale >= storage_days:
        return FLAG_RISK
    if days_since_last_sale >= max(0, storage_days - near_margin):
        return FLAG_NEAR
    return FLAG_OK


def overall_flag(stock: str, storage: str) -> str:
    """Worst of the stock and storage flags."""
    if FLAG_RISK in (stock, storage):
        return FLAG_RISK
    if stock == FLAG_WARN or storage == FLAG_NEAR:
        return FLAG_WARN
    return FLAG_OK


def break_date(today: date, coverage_days: float) -> date | None:
    """Projected stockout date, None when coverage is unbounded."""
    if not math.isfinite(coverage_days):
        return None
    try:
        return today + timedelta(days=math.floor(coverage_days))
    except OverflowError:
        return None


def suggested_send(target_stock: float, stock: int | float) -> int:
    """Units to send so stock reaches target (>= 0).

    Examples:
        >>> suggested_send(14.0, 5)
        9
        >>> suggested_send(14.0, 100)
        0
        >>> suggested_send(float("inf"), 5)
        0
    """
    # Round away float noise like 14.000000000000002 before the ceiling
    gap = round(target_stock - stock, 9)
    if not math.isfinite(gap):
        # Overflowed demand gives no usable target
        return 0
    return max(0, math.ceil(gap))


def score(
    item_id: str,
    stock: int | float,
    visits: int | float,
    sales: int | float,
    last_sale: datetime | None,
    params: DecisionParams,
    window: Window,
    now: datetime,
    listing: ListingInfo | None = None,
) -> ItemDecision:
    """Score one item.

    Args:
        item_id: Canonical item identifier
        stock: Stock on hand
        visits: Visits in window
        sales: Units sold in window
        last_sale: Instant of the last known sale (None = no history)
        params: Scoring parameters
        window: Window the aggregates were computed over
        now: Current instant (held fixed for a whole computation)
        listing: Optional title / inventory id

    Returns:
        ItemDecision

    """
    conversion_rate = sales / visits if visits > 0 else 0.0
    demand_per_day = sales / params.window_days if params.window_days > 0 else 0.0
    coverage_days = stock / demand_per_day if demand_per_day > 0 else math.inf

    s_flag = stock_flag(coverage_days, params.lead_time_days)
    since = days_since(last_sale, now)
    st_flag = storage_flag(since, params.storage_days, params.near_margin)

    target_stock = demand_per_day * 2 * params.lead_time_days
    listing = listing or ListingInfo()

    return ItemDecision(
        item_id=item_id,
        title=listing.title,
        inventory_id=listing.inventory_id,
        stock=stock,
        visits=visits,
        sales=sales,
        demand_per_day=demand_per_day,
        coverage_days=coverage_days,
        conversion_rate=conversion_rate,
        break_date=break_date(now.date(), coverage_days),
        days_since_last_sale=since,
        stock_flag=s_flag,
        storage_flag=st_flag,
        overall_flag=overall_flag(s_flag, st_flag),
        target_stock=target_stock,
        suggested_send=suggested_send(target_stock, stock),
        window_days=params.window_days,
        lead_time_days=params.lead_time_days,
        from_date=window.from_date,
        to_date=window.to_date,
    )


def rank(decisions: list[ItemDecision]) -> list[ItemDecision]:
    """Most urgent first: ascending coverage, non-finite last, stable on ties."""

    def coverage_key(d: ItemDecision) -> float:
        return d.coverage_days if math.isfinite(d.coverage_days) else math.inf

    return sorted(decisions, key=coverage_key)


def score_all(
    aggregates: Aggregates,
    params: DecisionParams,
    window: Window,
    now: datetime,
) -> list[ItemDecision]:
    """Score every item of the identifier union and rank the result."""
    decisions = [
        score(
            item_id,
            stock=aggregates.stock_by_item.get(item_id, 0),
            visits=aggregates.visits_by_item.get(item_id, 0),
            sales=aggregates.sales_by_item.get(item_id, 0),
            last_sale=aggregates.last_sale_by_item.get(item_id),
            params=params,
            window=window,
            now=now,
            listing=aggregates.listing_by_item.get(item_id),
        )
        for item_id in aggregates.item_ids()
    ]
    return rank(decisions)
