"""Rule-based narrative for detailed period reports.

Given a slice of weekly sales rows, builds an overview sentence, the top
branch, recommendations, risks and a first-week vs last-week trend. The
thresholds depend on the report type: ``financial`` looks at ROI, ad cost
share and revenue size; ``operational`` at weak branches and channels;
``comprehensive`` mixes both.

Usage:
    rows = filter_period(load_sales_rows(path), "quarter", "Q1", 2025)
    report = build_detailed_report(rows, ReportType.FINANCIAL, "quarter", "Q1")
    print(report.insights.overview)
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
    filter_period,
    summarize_frame,
    weekly_revenue,
)
from .messages import FALLBACK_LANGUAGE, format_currency
from .metrics import safe_ratio

logger = logging.getLogger("sentinel.insights")

# ----- Financial thresholds -----
ROI_TARGET = 5.0
ROI_STRONG = 8.0
ROI_RISK = 3.0
AD_COST_SHARE_WARN = 0.2
AD_COST_SHARE_RISK = 0.3
REVENUE_TARGET = 1_000_000_000
REVENUE_RISK = 500_000_000

# ----- Operational thresholds -----
BRANCH_ROI_RATIO = 0.8
CHANNEL_SHARE_MIN_PCT = 15.0
BRANCH_SHARE_MIN_PCT = 20.0
MIN_BRANCHES = 2

# Score at which ROI counts as fully efficient
EFFICIENCY_ROI = 10.0


class ReportType(str, Enum):
    FINANCIAL = "financial"
    OPERATIONAL = "operational"
    COMPREHENSIVE = "comprehensive"


def days_in_period(time_type: str | None) -> int:
    if time_type == "week":
        return 7
    if time_type == "month":
        return 30
    return 90


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class DetailedMetrics:
    revenue_per_day: float = 0.0
    ad_cost_per_day: float = 0.0
    roi_trend: float = 0.0
    growth_rate: float = 0.0
    efficiency_score: float = 0.0
    profit_margin: float = 0.0

    def to_dict(self) -> dict:
        return {
            "revenue_per_day": round(self.revenue_per_day, 2),
            "ad_cost_per_day": round(self.ad_cost_per_day, 2),
            "roi_trend": round(self.roi_trend, 2),
            "growth_rate": round(self.growth_rate, 1),
            "efficiency_score": round(self.efficiency_score, 1),
            "profit_margin": round(self.profit_margin, 1),
        }


@dataclass
class DetailedInsights:
    overview: str = ""
    top_performer: str = ""
    recommendations: list[str] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)
    trends: str = ""

    def to_dict(self) -> dict:
        return {
            "overview": self.overview,
            "top_performer": self.top_performer,
            "recommendations": self.recommendations,
            "risks": self.risks,
            "trends": self.trends,
        }


@dataclass
class DetailedReport:
    report_type: ReportType
    summary: dict[str, float]
    metrics: DetailedMetrics
    insights: DetailedInsights
    branches: dict[str, dict[str, float]] = field(default_factory=dict)
    channels: dict[str, dict[str, float]] = field(default_factory=dict)
    weekly: dict[int, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "report_type": self.report_type.value,
            "summary": self.summary,
            "metrics": self.metrics.to_dict(),
            "insights": self.insights.to_dict(),
            "branches": self.branches,
            "channels": self.channels,
            "weekly": self.weekly,
        }


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

_TEXT = {
    "vi": {
        "week": "tuần {value}",
        "month": "tháng {value}",
        "quarter": "quý {value}",
        "rating_good": "tốt",
        "rating_fair": "khá",
        "rating_poor": "cần cải thiện",
        "overview_financial": (
            "Báo cáo tài chính cho {period} năm {year}: Tổng doanh thu {revenue}, "
            "chi phí quảng cáo {ad_cost}, ROI trung bình {roi:.2f}. "
            "Hiệu quả tài chính {rating}."
        ),
        "overview_operational": (
            "Báo cáo vận hành cho {period} năm {year}: Hoạt động tại {branches} "
            "chi nhánh qua {channels} kênh. Doanh thu trung bình {per_day}/ngày."
        ),
        "overview_comprehensive": (
            "Báo cáo toàn diện cho {period} năm {year}: Tổng doanh thu {revenue} "
            "với ROI {roi:.2f}. Hoạt động tại {branches} chi nhánh qua "
            "{channels} kênh bán hàng."
        ),
        "top": (
            "{name} là chi nhánh dẫn đầu với doanh thu {revenue} "
            "({share:.1f}% tổng doanh thu) và ROI {roi:.2f}."
        ),
        "rec_roi": "Cần cải thiện hiệu quả quảng cáo - ROI hiện tại thấp hơn mục tiêu.",
        "rec_ad_cost": "Chi phí quảng cáo chiếm tỷ lệ cao - cần tối ưu ngân sách marketing.",
        "rec_revenue": "Doanh thu thấp - cần đẩy mạnh chiến lược tăng trưởng.",
        "rec_branches": "Cần tối ưu chiến lược tại {names} - ROI thấp hơn trung bình.",
        "rec_channels": "Cần cải thiện hiệu suất tại kênh {names}.",
        "rec_training": "Tăng cường đào tạo nhân viên để cải thiện tỷ lệ chuyển đổi.",
        "rec_diversify": "Đa dạng hóa kênh marketing để giảm rủi ro phụ thuộc.",
        "rec_data": "Tăng cường phân tích dữ liệu để ra quyết định chính xác hơn.",
        "risk_roi": "ROI quá thấp - có thể ảnh hưởng đến lợi nhuận.",
        "risk_ad_cost": "Chi phí quảng cáo quá cao - rủi ro lỗ vốn.",
        "risk_revenue": "Doanh thu thấp - rủi ro không đủ vốn hoạt động.",
        "risk_channels": "Chi phí quảng cáo cao tại {names} - cần xem xét lại.",
        "risk_branches": "Hiệu suất thấp tại {names} - rủi ro đóng cửa.",
        "risk_competition": "Rủi ro mất khách hàng do cạnh tranh tăng cao.",
        "risk_concentration": "Phụ thuộc vào ít chi nhánh - rủi ro tập trung.",
        "risk_algorithm": "Rủi ro thay đổi thuật toán quảng cáo ảnh hưởng đến hiệu suất.",
        "trend_up": "tăng",
        "trend_down": "giảm",
        "trend": "Xu hướng doanh thu {direction} {change:.1f}% trong {period}.",
        "trend_unknown": "Dữ liệu cho {period} - cần theo dõi thêm để đánh giá xu hướng.",
    },
    "en": {
        "week": "week {value}",
        "month": "month {value}",
        "quarter": "quarter {value}",
        "rating_good": "good",
        "rating_fair": "fair",
        "rating_poor": "needs improvement",
        "overview_financial": (
            "Financial report for {period} {year}: total revenue {revenue}, "
            "ad cost {ad_cost}, average ROI {roi:.2f}. "
            "Financial efficiency is {rating}."
        ),
        "overview_operational": (
            "Operational report for {period} {year}: {branches} branches across "
            "{channels} channels. Average revenue {per_day}/day."
        ),
        "overview_comprehensive": (
            "Comprehensive report for {period} {year}: total revenue {revenue} "
            "with ROI {roi:.2f}, across {branches} branches and {channels} "
            "sales channels."
        ),
        "top": (
            "{name} leads with revenue {revenue} ({share:.1f}% of total) "
            "and ROI {roi:.2f}."
        ),
        "rec_roi": "Improve ad efficiency - ROI is below target.",
        "rec_ad_cost": "Ad cost share is high - optimize the marketing budget.",
        "rec_revenue": "Revenue is low - push the growth strategy.",
        "rec_branches": "Optimize strategy at {names} - ROI below average.",
        "rec_channels": "Improve performance of channel {names}.",
        "rec_training": "Invest in staff training to lift conversion.",
        "rec_diversify": "Diversify marketing channels to reduce dependency.",
        "rec_data": "Strengthen data analysis for better decisions.",
        "risk_roi": "ROI is too low - profit at risk.",
        "risk_ad_cost": "Ad cost is too high - risk of losses.",
        "risk_revenue": "Revenue is low - working capital at risk.",
        "risk_channels": "High ad cost at {names} - review spend.",
        "risk_branches": "Low performance at {names} - closure risk.",
        "risk_competition": "Customer churn risk from rising competition.",
        "risk_concentration": "Few branches - concentration risk.",
        "risk_algorithm": "Ad platform algorithm changes may hurt performance.",
        "trend_up": "up",
        "trend_down": "down",
        "trend": "Revenue trend {direction} {change:.1f}% over {period}.",
        "trend_unknown": "Data for {period} - more history needed to judge the trend.",
    },
}


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def _weekly_roi(df: pd.DataFrame) -> list[float]:
    if df.empty or "week" not in df.columns:
        return []
    grouped = df.groupby("week", sort=True)[["total_revenue", "ad_cost"]].sum()
    return [
        safe_ratio(rev, cost)
        for rev, cost in zip(grouped["total_revenue"], grouped["ad_cost"])
    ]


def detailed_metrics(df: pd.DataFrame, time_type: str | None = None) -> DetailedMetrics:
    """Per-day rates, ROI and revenue trend across the slice's weeks."""
    totals = summarize_frame(df)
    days = days_in_period(time_type)
    weekly = list(weekly_revenue(df).values()) if "week" in df.columns else []
    rois = _weekly_roi(df)

    growth_rate = 0.0
    if len(weekly) > 1:
        growth_rate = safe_ratio(weekly[-1] - weekly[0], weekly[0]) * 100

    return DetailedMetrics(
        revenue_per_day=totals["total_revenue"] / days,
        ad_cost_per_day=totals["total_ad_cost"] / days,
        roi_trend=rois[-1] - rois[0] if len(rois) > 1 else 0.0,
        growth_rate=growth_rate,
        efficiency_score=min(100.0, totals["avg_roi"] / EFFICIENCY_ROI * 100),
        profit_margin=safe_ratio(
            totals["total_revenue"] - totals["total_ad_cost"], totals["total_revenue"]
        )
        * 100,
    )


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------


def generate_detailed_insights(
    summary: dict[str, float],
    branches: dict[str, dict[str, float]],
    channels: dict[str, dict[str, float]],
    weekly: dict[int, float],
    report_type: ReportType | str = ReportType.COMPREHENSIVE,
    time_type: str | None = None,
    time_value: str | None = None,
    year: int | str = 2025,
    language: str = "vi",
    currency: str = "VND",
) -> DetailedInsights:
    """Overview, top branch, recommendations, risks and trend for one slice."""
    report_type = ReportType(report_type)
    lang = language if language in _TEXT else FALLBACK_LANGUAGE
    text = _TEXT[lang]

    def money(amount: float) -> str:
        return format_currency(amount, currency, lang)

    revenue = summary["total_revenue"]
    ad_cost = summary["total_ad_cost"]
    avg_roi = summary["avg_roi"]

    period_key = time_type if time_type in ("week", "month") else "quarter"
    period = text[period_key].format(value=time_value or "")
    insights = DetailedInsights()

    # ----- Overview -----
    if report_type == ReportType.FINANCIAL:
        if avg_roi > ROI_STRONG:
            rating = text["rating_good"]
        elif avg_roi > ROI_TARGET:
            rating = text["rating_fair"]
        else:
            rating = text["rating_poor"]
        insights.overview = text["overview_financial"].format(
            period=period,
            year=year,
            revenue=money(revenue),
            ad_cost=money(ad_cost),
            roi=avg_roi,
            rating=rating,
        )
    elif report_type == ReportType.OPERATIONAL:
        insights.overview = text["overview_operational"].format(
            period=period,
            year=year,
            branches=len(branches),
            channels=len(channels),
            per_day=money(revenue / days_in_period(time_type)),
        )
    else:
        insights.overview = text["overview_comprehensive"].format(
            period=period,
            year=year,
            revenue=money(revenue),
            roi=avg_roi,
            branches=len(branches),
            channels=len(channels),
        )

    # ----- Top branch -----
    if branches:
        name, top = max(branches.items(), key=lambda item: item[1]["revenue"])
        insights.top_performer = text["top"].format(
            name=name,
            revenue=money(top["revenue"]),
            share=top["percentage"],
            roi=top["roi"],
        )

    low_roi_branches = [
        name for name, b in branches.items() if b["roi"] < avg_roi * BRANCH_ROI_RATIO
    ]
    costly_channels = [
        name
        for name, c in channels.items()
        if safe_ratio(c["ad_cost"], c["revenue"]) > AD_COST_SHARE_RISK
    ]

    # ----- Recommendations and risks -----
    recs, risks = insights.recommendations, insights.risks
    if report_type == ReportType.FINANCIAL:
        if avg_roi < ROI_TARGET:
            recs.append(text["rec_roi"])
        if ad_cost > revenue * AD_COST_SHARE_WARN:
            recs.append(text["rec_ad_cost"])
        if revenue < REVENUE_TARGET:
            recs.append(text["rec_revenue"])

        if avg_roi < ROI_RISK:
            risks.append(text["risk_roi"])
        if ad_cost > revenue * AD_COST_SHARE_RISK:
            risks.append(text["risk_ad_cost"])
        if revenue < REVENUE_RISK:
            risks.append(text["risk_revenue"])

    elif report_type == ReportType.OPERATIONAL:
        if low_roi_branches:
            recs.append(text["rec_branches"].format(names=", ".join(low_roi_branches)))
        small_channels = [
            name
            for name, c in channels.items()
            if c["percentage"] < CHANNEL_SHARE_MIN_PCT
        ]
        if small_channels:
            recs.append(text["rec_channels"].format(names=", ".join(small_channels)))
        recs.append(text["rec_training"])

        if costly_channels:
            risks.append(text["risk_channels"].format(names=", ".join(costly_channels)))
        small_branches = [
            name
            for name, b in branches.items()
            if b["percentage"] < BRANCH_SHARE_MIN_PCT
        ]
        if small_branches:
            risks.append(text["risk_branches"].format(names=", ".join(small_branches)))
        risks.append(text["risk_competition"])

    else:
        if avg_roi < ROI_TARGET:
            recs.append(text["rec_roi"])
        if low_roi_branches:
            recs.append(text["rec_branches"].format(names=", ".join(low_roi_branches)))
        recs.append(text["rec_diversify"])
        recs.append(text["rec_data"])

        if avg_roi < ROI_RISK:
            risks.append(text["risk_roi"])
        if costly_channels:
            risks.append(text["risk_channels"].format(names=", ".join(costly_channels)))
        if len(branches) < MIN_BRANCHES:
            risks.append(text["risk_concentration"])
        risks.append(text["risk_algorithm"])

    # ----- Trend -----
    values = list(weekly.values())
    if len(values) > 1:
        first, last = values[0], values[-1]
        insights.trends = text["trend"].format(
            direction=text["trend_up"] if last > first else text["trend_down"],
            change=abs(safe_ratio(last - first, first) * 100),
            period=period,
        )
    else:
        insights.trends = text["trend_unknown"].format(period=period)

    return insights


def build_detailed_report(
    df: pd.DataFrame,
    report_type: ReportType | str = ReportType.COMPREHENSIVE,
    time_type: str | None = None,
    time_value: str | None = None,
    branch: str | None = None,
    year: int | str = 2025,
    language: str = "vi",
    currency: str = "VND",
) -> DetailedReport:
    """Filter rows to a period and branch, then build the full report."""
    report_type = ReportType(report_type)
    rows = filter_branch(filter_period(df, time_type, time_value, year), branch)

    summary = summarize_frame(rows)
    branches = breakdown_to_dict(breakdown(rows, "branch"))
    channels = (
        breakdown_to_dict(breakdown(rows, "channel")) if "channel" in rows.columns else {}
    )
    weekly = weekly_revenue(rows) if "week" in rows.columns else {}

    insights = generate_detailed_insights(
        summary,
        branches,
        channels,
        weekly,
        report_type=report_type,
        time_type=time_type,
        time_value=time_value,
        year=year,
        language=language,
        currency=currency,
    )
    logger.info(
        "Built %s report over %d rows: %d recommendations, %d risks",
        report_type.value,
        len(rows),
        len(insights.recommendations),
        len(insights.risks),
    )
    return DetailedReport(
        report_type=report_type,
        summary=summary,
        metrics=detailed_metrics(rows, time_type),
        insights=insights,
        branches=branches,
        channels=channels,
        weekly=weekly,
    )
