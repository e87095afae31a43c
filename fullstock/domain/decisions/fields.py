"""Field resolution for heterogeneously shaped input records.

Upstream tables stored the same logical field under different names across
schema migrations. Each logical field has an ordered alias table; resolution
walks the aliases in order.

NO DATA ACCESS - pure functions only.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Any

Record = Mapping[str, Any]


@dataclass(frozen=True)
class FieldAliases:
    """Ordered candidate column names per logical field."""

    stock_id: tuple[str, ...] = ("item_id", "ml_item_id", "ml_id", "itemId")
    event_id: tuple[str, ...] = ("item_id", "ml_item_id", "ml_id", "itemId", "id")
    stock_quantity: tuple[str, ...] = (
        "total",
        "qty",
        "available_quantity",
        "available",
        "stock",
        "available_stock",
        "quantity",
    )
    visit_count: tuple[str, ...] = ("visits", "count")
    sale_quantity: tuple[str, ...] = (
        "orders",
        "orders_count",
        "quantity",
        "qty",
        "units",
        "count",
        "sold",
        "sold_qty",
        "sold_quantity",
        "sold_units",
    )
    event_date: tuple[str, ...] = ("date", "created_at")
    stock_updated: tuple[str, ...] = ("updated_at", "last_updated", "last_update")
    title: tuple[str, ...] = ("title", "name")
    inventory_id: tuple[str, ...] = ("inventory_id", "inventoryId")

    def with_overrides(self, overrides: Mapping[str, Iterable[str]]) -> FieldAliases:
        """Return a copy with some alias lists replaced.

        Raises:
            ValueError: If a key is not a known logical field or a list is empty.

        """
        known = {f.name for f in fields(self)}
        changes: dict[str, tuple[str, ...]] = {}
        for name, aliases in overrides.items():
            if name not in known:
                raise ValueError(f"Unknown alias field: {name!r}")
            if isinstance(aliases, str):
                raise ValueError(f"Aliases for {name!r} must be a list of column names")
            values = tuple(str(a) for a in aliases)
            if not values:
                raise ValueError(f"Aliases for {name!r} must not be empty")
            changes[name] = values
        return replace(self, **changes)


DEFAULT_ALIASES = FieldAliases()


def normalize_id(value: Any) -> str:
    """Canonical item identifier: trimmed, upper-cased.

    Examples:
        >>> normalize_id(" mla123 ")
        'MLA123'
        >>> normalize_id(None)
        ''
    """
    if value is None:
        return ""
    return str(value).strip().upper()


def resolve_id(record: Record, candidates: Iterable[str]) -> str | None:
    """First non-empty identifier among candidates, normalized; None if absent."""
    for name in candidates:
        item_id = normalize_id(record.get(name))
        if item_id:
            return item_id
    return None


def coerce_number(value: Any) -> int | float | None:
    """Coerce a raw field value to a finite number.

    Integral values come back as int. Booleans, blanks, non-numeric strings,
    NaN and infinities return None.

    Examples:
        >>> coerce_number(" 12 ")
        12
        >>> coerce_number("2.5")
        2.5
        >>> coerce_number("abc") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number):
        return None
    if number.is_integer():
        return int(number)
    return number


def resolve_quantity(record: Record, candidates: Iterable[str]) -> int | float:
    """First candidate value that is a finite number > 0; 0 if none.

    A zero, negative or non-numeric value means "field not populated" and
    does not mask a later candidate.

    Examples:
        >>> resolve_quantity({"orders": 0, "quantity": "3"}, ("orders", "quantity"))
        3
        >>> resolve_quantity({"orders": None}, ("orders", "quantity"))
        0
    """
    for name in candidates:
        number = coerce_number(record.get(name))
        if number is not None and number > 0:
            return number
    return 0


def first_present(record: Record, candidates: Iterable[str]) -> Any:
    """First candidate value that is not None or blank."""
    for name in candidates:
        value = record.get(name)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None
