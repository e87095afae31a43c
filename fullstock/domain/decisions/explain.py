"""Explainability for replenishment decisions."""

from __future__ import annotations

import hashlib
import math

from fullstock.domain.decisions.scoring import ItemDecision


def _fmt_coverage(coverage_days: float) -> str:
    return f"{coverage_days:.1f}d" if math.isfinite(coverage_days) else "unbounded"


def generate_explanation(decision: ItemDecision) -> str:
    """Generate human-readable explanation for a decision.

    Args:
        decision: Scored item decision

    Returns:
        Explanation string

    """
    demand_display = f"demand{decision.window_days}={decision.demand_per_day:.2f}/day"
    stock_display = f"stock={decision.stock}"
    coverage_display = f"coverage={_fmt_coverage(decision.coverage_days)}"
    flags_display = (
        f"stock_flag={decision.stock_flag}, storage_flag={decision.storage_flag}"
    )
    send_display = f"send {decision.suggested_send}"

    return (
        f"{decision.item_id}: {demand_display}, {stock_display}, {coverage_display}, "
        f"lead_time={decision.lead_time_days}d, {flags_display} -> {send_display}"
    )


def generate_hash(decision: ItemDecision) -> str:
    """Generate deterministic hash for the decision rationale.

    Hash based on: item_id, window, lead time, stock, sales, visits,
    flags and suggested send.

    Args:
        decision: Scored item decision

    Returns:
        SHA256 hex digest

    """
    rationale_str = (
        f"{decision.item_id}|{decision.from_date}|{decision.to_date}|"
        f"{decision.lead_time_days}|{decision.stock}|{decision.sales}|{decision.visits}|"
        f"{decision.overall_flag}|{decision.suggested_send}"
    )

    return hashlib.sha256(rationale_str.encode()).hexdigest()
