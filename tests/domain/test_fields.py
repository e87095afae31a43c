"""Tests for field alias resolution."""

from __future__ import annotations

import math
from decimal import Decimal

import pytest

from fullstock.domain.decisions.fields import (
    DEFAULT_ALIASES,
    FieldAliases,
    coerce_number,
    first_present,
    normalize_id,
    resolve_id,
    resolve_quantity,
)


def test_normalize_id_trims_and_uppercases():
    """Identifiers differing only in case/whitespace collapse to one."""
    assert normalize_id("mla123") == normalize_id("MLA123 ") == "MLA123"
    assert normalize_id(123) == "123"
    assert normalize_id(None) == ""


def test_resolve_id_skips_blank_candidates():
    record = {"item_id": "  ", "ml_item_id": None, "ml_id": "mla9"}
    assert resolve_id(record, DEFAULT_ALIASES.event_id) == "MLA9"


def test_resolve_id_missing_returns_none():
    assert resolve_id({"sku": "X"}, DEFAULT_ALIASES.stock_id) is None


def test_stock_id_does_not_use_generic_id():
    """Only event records fall back to a bare 'id' column."""
    record = {"id": "mla5"}
    assert resolve_id(record, DEFAULT_ALIASES.stock_id) is None
    assert resolve_id(record, DEFAULT_ALIASES.event_id) == "MLA5"


@pytest.mark.parametrize(
    "value,expected",
    [
        (3, 3),
        (2.5, 2.5),
        (4.0, 4),
        (" 12 ", 12),
        ("1.5", 1.5),
        (Decimal("7"), 7),
        ("abc", None),
        ("", None),
        (None, None),
        (True, None),
        (float("nan"), None),
        ("inf", None),
        ([1], None),
    ],
)
def test_coerce_number(value, expected):
    assert coerce_number(value) == expected


def test_resolve_quantity_first_positive_wins():
    """Zero or negative values do not mask a later alias."""
    record = {"orders": 0, "orders_count": -2, "quantity": "3", "qty": 9}
    assert resolve_quantity(record, DEFAULT_ALIASES.sale_quantity) == 3


def test_resolve_quantity_no_positive_value_is_zero():
    record = {"orders": 0, "quantity": None, "units": "n/a"}
    assert resolve_quantity(record, DEFAULT_ALIASES.sale_quantity) == 0


def test_resolve_quantity_result_is_finite():
    record = {"orders": float("inf"), "qty": 2}
    qty = resolve_quantity(record, DEFAULT_ALIASES.sale_quantity)
    assert qty == 2
    assert math.isfinite(qty)


def test_first_present_skips_none_and_blank():
    assert first_present({"date": "", "created_at": "2024-05-01"}, ("date", "created_at")) == (
        "2024-05-01"
    )
    assert first_present({}, ("date",)) is None


def test_with_overrides_replaces_only_named_fields():
    aliases = FieldAliases().with_overrides({"sale_quantity": ["units", "qty"]})

    assert aliases.sale_quantity == ("units", "qty")
    assert aliases.stock_quantity == DEFAULT_ALIASES.stock_quantity


@pytest.mark.parametrize(
    "overrides",
    [
        {"not_a_field": ["x"]},
        {"sale_quantity": "units"},
        {"sale_quantity": []},
    ],
)
def test_with_overrides_rejects_bad_input(overrides):
    with pytest.raises(ValueError):
        FieldAliases().with_overrides(overrides)
