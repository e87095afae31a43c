"""Replenishment decisions: normalization, windowing, aggregation, scoring."""

from fullstock.domain.decisions.aggregate import Aggregates, ListingInfo, aggregate
from fullstock.domain.decisions.dates import Window, in_window, parse_to_instant, window_range
from fullstock.domain.decisions.diagnostics import dataset_summary, item_xray
from fullstock.domain.decisions.fields import (
    DEFAULT_ALIASES,
    FieldAliases,
    normalize_id,
    resolve_id,
    resolve_quantity,
)
from fullstock.domain.decisions.scoring import (
    DecisionParams,
    InvalidParametersError,
    ItemDecision,
    rank,
    score,
    score_all,
)

__all__ = [
    "Aggregates",
    "ListingInfo",
    "aggregate",
    "Window",
    "in_window",
    "parse_to_instant",
    "window_range",
    "dataset_summary",
    "item_xray",
    "DEFAULT_ALIASES",
    "FieldAliases",
    "normalize_id",
    "resolve_id",
    "resolve_quantity",
    "DecisionParams",
    "InvalidParametersError",
    "ItemDecision",
    "rank",
    "score",
    "score_all",
]
