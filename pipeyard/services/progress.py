from __future__ import annotations

from typing import Iterable, Optional, Sequence

from pipeyard.schemas.logistics import LoadProgressSummary, QuantityTotals
from pipeyard.schemas.trucking import LoadSummary, ManifestItem


def _as_number(value) -> float:
    return float(value) if value is not None else 0.0


def summarize_load_totals(
    loads: Iterable,
    fallback_total: Optional[int] = None,
) -> LoadProgressSummary:
    """Planned/completed/remaining joints across a set of loads.

    Missing quantity fields count as zero. When no load carries a planned
    figure the planned total falls back to ``fallback_total`` (the request
    estimate), and remaining never goes below zero.
    """
    planned = 0
    completed = 0
    for load in loads:
        planned += int(load.total_joints_planned or 0)
        completed += int(load.total_joints_completed or 0)

    total_target = planned or int(fallback_total or 0)
    return LoadProgressSummary(
        planned_joints=total_target,
        completed_joints=completed,
        remaining_joints=max(total_target - completed, 0),
    )


def summarize_quantities(loads: Iterable) -> QuantityTotals:
    totals = QuantityTotals()
    for load in loads:
        totals.planned_joints += int(load.total_joints_planned or 0)
        totals.completed_joints += int(load.total_joints_completed or 0)
        totals.planned_length_ft += _as_number(load.total_length_ft_planned)
        totals.completed_length_ft += _as_number(load.total_length_ft_completed)
        totals.planned_weight_lbs += _as_number(load.total_weight_lbs_planned)
        totals.completed_weight_lbs += _as_number(load.total_weight_lbs_completed)
    return totals


def calculate_load_summary(items: Sequence[ManifestItem]) -> LoadSummary:
    """Totals for a parsed manifest; weight is tally length x quantity x lbs/ft."""
    total_joints = 0
    total_length_ft = 0.0
    total_weight_lbs = 0.0

    for item in items:
        qty = item.quantity or 1
        length_ft = item.tally_length_ft or 0
        weight_per_foot = item.weight_lbs_ft or 0

        total_joints += qty
        total_length_ft += length_ft * qty
        total_weight_lbs += length_ft * qty * weight_per_foot

    return LoadSummary(
        total_joints=total_joints,
        total_length_ft=round(total_length_ft, 2),
        total_weight_lbs=round(total_weight_lbs),
    )
