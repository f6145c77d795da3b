"""Side-by-side comparison of two slices of weekly sales rows.

A comparison takes two filtered frames (two periods, two branches in one
quarter, or two channels in one quarter), summarizes each, and derives the
change in revenue, ROI and ad cost plus a short list of insight sentences.

Usage:
    rows = load_sales_rows("data/sales_2025.csv")
    result = compare_rows(rows, ComparisonKind.PERIOD, "Q1", "Q2")
    for line in result.insights:
        print(line)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

import pandas as pd

from .aggregation import (
    breakdown,
    breakdown_to_dict,
    filter_branch,
    filter_channel,
    filter_period,
    summarize_frame,
    weekly_revenue,
)
from .messages import FALLBACK_LANGUAGE
from .metrics import safe_ratio

logger = logging.getLogger("sentinel.comparison")

# ROI moves by more than this many points are called out separately
ROI_GAP_POINTS = 1.0


class ComparisonKind(str, Enum):
    PERIOD = "period"
    BRANCH = "branch"
    CHANNEL = "channel"


# ---------------------------------------------------------------------------
# Per-side snapshot
# ---------------------------------------------------------------------------


@dataclass
class SliceSummary:
    """Totals and breakdowns for one side of a comparison."""

    total_revenue: float = 0.0
    total_ad_cost: float = 0.0
    avg_roi: float = 0.0
    branches: dict[str, dict[str, float]] = field(default_factory=dict)
    channels: dict[str, dict[str, float]] = field(default_factory=dict)
    weekly: dict[int, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total_revenue": self.total_revenue,
            "total_ad_cost": self.total_ad_cost,
            "avg_roi": round(self.avg_roi, 2),
            "branches": self.branches,
            "channels": self.channels,
            "weekly": self.weekly,
        }


def summarize_slice(df: pd.DataFrame) -> SliceSummary:
    totals = summarize_frame(df)
    channels = (
        breakdown_to_dict(breakdown(df, "channel")) if "channel" in df.columns else {}
    )
    return SliceSummary(
        total_revenue=totals["total_revenue"],
        total_ad_cost=totals["total_ad_cost"],
        avg_roi=totals["avg_roi"],
        branches=breakdown_to_dict(breakdown(df, "branch")),
        channels=channels,
        weekly=weekly_revenue(df) if "week" in df.columns else {},
    )


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------


@dataclass
class Comparison:
    kind: ComparisonKind
    first: SliceSummary
    second: SliceSummary
    revenue_growth: float
    roi_change: float
    ad_cost_change: float
    top_performer: str
    insights: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "first": self.first.to_dict(),
            "second": self.second.to_dict(),
            "revenue_growth": round(self.revenue_growth, 1),
            "roi_change": round(self.roi_change, 2),
            "ad_cost_change": round(self.ad_cost_change, 1),
            "top_performer": self.top_performer,
            "insights": self.insights,
        }


_SIDE_LABELS = {
    "vi": {
        ComparisonKind.PERIOD: "Thời kỳ",
        ComparisonKind.BRANCH: "Chi nhánh",
        ComparisonKind.CHANNEL: "Kênh",
    },
    "en": {
        ComparisonKind.PERIOD: "Period",
        ComparisonKind.BRANCH: "Branch",
        ComparisonKind.CHANNEL: "Channel",
    },
}

_TEXT = {
    "vi": {
        "top": "{label} {side} có hiệu suất tốt hơn với doanh thu cao hơn {growth:.1f}%",
        "revenue_up": "Tăng trưởng doanh thu tích cực: +{value:.1f}%",
        "revenue_down": "Doanh thu giảm: {value:.1f}% - cần phân tích nguyên nhân",
        "roi_up": "Hiệu quả quảng cáo cải thiện: ROI tăng {value:.2f} điểm",
        "roi_down": "Hiệu quả quảng cáo giảm: ROI giảm {value:.2f} điểm",
        "ad_cost_up": "Chi phí quảng cáo tăng: +{value:.1f}%",
        "ad_cost_down": "Chi phí quảng cáo giảm: {value:.1f}% - tiết kiệm chi phí",
        "roi_gap": "Chênh lệch ROI đáng kể: {value:.2f} điểm",
        "weekly_up": "Doanh thu trung bình/tuần tăng: +{value:.1f}%",
        "weekly_down": "Doanh thu trung bình/tuần giảm: {value:.1f}%",
    },
    "en": {
        "top": "{label} {side} performs better with {growth:.1f}% higher revenue",
        "revenue_up": "Positive revenue growth: +{value:.1f}%",
        "revenue_down": "Revenue declined: {value:.1f}% - investigate the cause",
        "roi_up": "Ad efficiency improved: ROI up {value:.2f} points",
        "roi_down": "Ad efficiency worsened: ROI down {value:.2f} points",
        "ad_cost_up": "Ad cost increased: +{value:.1f}%",
        "ad_cost_down": "Ad cost decreased: {value:.1f}% - cost savings",
        "roi_gap": "Significant ROI gap: {value:.2f} points",
        "weekly_up": "Average weekly revenue up: +{value:.1f}%",
        "weekly_down": "Average weekly revenue down: {value:.1f}%",
    },
}


def _signed(text: dict[str, str], key: str, value: float) -> list[str]:
    if value > 0:
        return [text[f"{key}_up"].format(value=value)]
    if value < 0:
        return [text[f"{key}_down"].format(value=value)]
    return []


def compare(
    df_a: pd.DataFrame,
    df_b: pd.DataFrame,
    kind: ComparisonKind | str = ComparisonKind.PERIOD,
    language: str = "vi",
) -> Comparison:
    """Compare two row slices. ``df_a`` is side 1, ``df_b`` side 2.

    Changes are expressed from side 1 to side 2. A zero base (no revenue or
    no ad cost on side 1) yields a 0% change rather than an error.

    Raises:
        ValueError: If ``kind`` is not a known comparison kind.
    """
    kind = ComparisonKind(kind)
    lang = language if language in _TEXT else FALLBACK_LANGUAGE
    text = _TEXT[lang]

    first = summarize_slice(df_a)
    second = summarize_slice(df_b)

    revenue_growth = (
        safe_ratio(second.total_revenue - first.total_revenue, first.total_revenue)
        * 100
    )
    roi_change = second.avg_roi - first.avg_roi
    ad_cost_change = (
        safe_ratio(second.total_ad_cost - first.total_ad_cost, first.total_ad_cost)
        * 100
    )

    top_performer = text["top"].format(
        label=_SIDE_LABELS[lang][kind],
        side=2 if second.total_revenue > first.total_revenue else 1,
        growth=abs(revenue_growth),
    )

    insights: list[str] = []
    insights += _signed(text, "revenue", revenue_growth)
    if roi_change > 0:
        insights.append(text["roi_up"].format(value=roi_change))
    elif roi_change < 0:
        insights.append(text["roi_down"].format(value=abs(roi_change)))
    insights += _signed(text, "ad_cost", ad_cost_change)

    if abs(roi_change) > ROI_GAP_POINTS:
        insights.append(text["roi_gap"].format(value=abs(roi_change)))

    if first.weekly and second.weekly:
        avg_first = first.total_revenue / len(first.weekly)
        avg_second = second.total_revenue / len(second.weekly)
        weekly_growth = safe_ratio(avg_second - avg_first, avg_first) * 100
        insights += _signed(text, "weekly", weekly_growth)

    logger.debug(
        "Compared %s slices: revenue %+.1f%%, roi %+.2f",
        kind.value,
        revenue_growth,
        roi_change,
    )
    return Comparison(
        kind=kind,
        first=first,
        second=second,
        revenue_growth=revenue_growth,
        roi_change=roi_change,
        ad_cost_change=ad_cost_change,
        top_performer=top_performer,
        insights=insights,
    )


def compare_rows(
    df: pd.DataFrame,
    kind: ComparisonKind | str,
    first: str,
    second: str,
    first_time_type: str = "quarter",
    second_time_type: str = "quarter",
    quarter: str | None = None,
    year: int | str = 2025,
    language: str = "vi",
) -> Comparison:
    """Select both sides from one frame and compare them.

    For ``period`` comparisons ``first``/``second`` are period values read
    with their own time types. For ``branch`` and ``channel`` they are
    names, and both sides are restricted to ``quarter`` of ``year``.
    """
    kind = ComparisonKind(kind)
    if kind == ComparisonKind.PERIOD:
        df_a = filter_period(df, first_time_type, first, year)
        df_b = filter_period(df, second_time_type, second, year)
    else:
        in_quarter = filter_period(df, "quarter", quarter, year)
        pick = filter_branch if kind == ComparisonKind.BRANCH else filter_channel
        df_a = pick(in_quarter, first)
        df_b = pick(in_quarter, second)
    return compare(df_a, df_b, kind, language)
