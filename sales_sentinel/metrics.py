"""Aggregate measures the alert rules are built on.

Every ratio goes through ``safe_ratio``: a zero denominator yields the
default (0.0) instead of raising, so zero-revenue branches read as zero
margin and zero ad-cost share.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from .models import SalesRecord

# Composite score weights, in tenths: 0.4 ROI, 0.3 margin, 0.3 revenue ratio
ROI_WEIGHT = 4
MARGIN_WEIGHT = 3
REVENUE_RATIO_WEIGHT = 3


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    if denominator == 0:
        return default
    return numerator / denominator


def gap_percentage(target: float, actual: float) -> float:
    """Shortfall of ``actual`` below ``target`` as a percent of target, 1 dp."""
    return round(safe_ratio(target - actual, target) * 100, 1)


@dataclass(frozen=True)
class PortfolioTotals:
    total_revenue: float
    total_profit: float
    avg_roi: float
    record_count: int

    @property
    def profit_margin_pct(self) -> float:
        return safe_ratio(self.total_profit, self.total_revenue) * 100


def summarize(records: Sequence[SalesRecord]) -> PortfolioTotals:
    """Totals and mean ROI across all records. Empty input gives zeros."""
    return PortfolioTotals(
        total_revenue=sum(r.revenue for r in records),
        total_profit=sum(r.profit for r in records),
        avg_roi=safe_ratio(sum(r.roi for r in records), len(records)),
        record_count=len(records),
    )


def range_variation_pct(revenues: Sequence[float]) -> float:
    """(max - min) / max as a percentage."""
    if not revenues:
        return 0.0
    highest = max(revenues)
    lowest = min(revenues)
    return safe_ratio(highest - lowest, highest) * 100


def revenue_dispersion(revenues: Sequence[float]) -> tuple[float, float, float]:
    """Return (mean, population stddev, coefficient of variation %)."""
    if not revenues:
        return 0.0, 0.0, 0.0
    values = np.asarray(revenues, dtype=float)
    mean = float(values.mean())
    std = float(values.std(ddof=0))
    return mean, std, safe_ratio(std, mean) * 100


def composite_score(
    avg_roi: float,
    profit_margin_pct: float,
    revenue_ratio_pct: float,
) -> float:
    """Weighted overall performance score on a 0-100-ish scale."""
    weighted = (
        ROI_WEIGHT * avg_roi
        + MARGIN_WEIGHT * profit_margin_pct
        + REVENUE_RATIO_WEIGHT * revenue_ratio_pct
    )
    return weighted / 10
