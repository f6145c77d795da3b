"""Localized alert message rendering.

Rules return structured findings; this module turns a finding into the
sentence shown on the dashboard. Numbers are formatted here and nowhere
else, so rule tests never have to match prose.
"""

from __future__ import annotations

from typing import Any

from .models import Finding, RuleId, Severity
from .settings import UserPreferences

FALLBACK_LANGUAGE = "en"

_CURRENCY_SYMBOLS = {
    "VND": "₫",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


def format_currency(amount: float, currency: str = "VND", language: str = "vi") -> str:
    """Format an amount with no fractional digits.

    Examples:
        format_currency(600000, "VND", "vi") -> "600.000 ₫"
        format_currency(1200, "USD", "en") -> "$1,200"
    """
    symbol = _CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())
    sign = "-" if amount < 0 else ""
    digits = f"{abs(amount):,.0f}"
    if language == "vi":
        return f"{sign}{digits.replace(',', '.')} {symbol}"
    if symbol == currency.upper():
        return f"{sign}{digits} {symbol}"
    return f"{sign}{symbol}{digits}"


def severity_icon(severity: Severity | str) -> str:
    try:
        return Severity(severity).icon
    except ValueError:
        return "\U0001f514"


# ---------------------------------------------------------------------------
# Field formatting per rule
# ---------------------------------------------------------------------------

_MONEY = "money"
_ONE_DP = "1dp"
_TWO_DP = "2dp"
_PLAIN = "plain"

_FIELD_FORMATS: dict[RuleId, dict[str, str]] = {
    RuleId.REVENUE_THRESHOLD: {
        "total_revenue": _MONEY,
        "threshold": _MONEY,
        "shortfall": _MONEY,
        "shortfall_percentage": _ONE_DP,
    },
    RuleId.ROI_THRESHOLD: {
        "avg_roi": _TWO_DP,
        "threshold": _PLAIN,
        "roi_gap": _TWO_DP,
        "roi_gap_percentage": _ONE_DP,
    },
    RuleId.BRANCH_PERFORMANCE: {
        "revenue": _MONEY,
        "revenue_gap": _MONEY,
        "roi": _TWO_DP,
        "roi_gap": _TWO_DP,
    },
    RuleId.NEGATIVE_GROWTH: {
        "avg_negative_growth": _TWO_DP,
        "worst_growth": _TWO_DP,
    },
    RuleId.LOW_PROFIT_MARGIN: {
        "total_profit": _MONEY,
        "total_revenue": _MONEY,
        "profit_margin": _ONE_DP,
    },
    RuleId.HIGH_AD_COST: {
        "estimated_ad_cost": _MONEY,
        "ad_cost_percentage": _ONE_DP,
        "threshold": _PLAIN,
    },
    RuleId.HIGH_REVENUE_VARIATION: {
        "max_revenue": _MONEY,
        "min_revenue": _MONEY,
        "revenue_variation": _ONE_DP,
    },
    RuleId.HIGH_VARIATION: {
        "coefficient_of_variation": _ONE_DP,
    },
    RuleId.OVERALL_PERFORMANCE: {
        "overall_performance": _ONE_DP,
    },
}


_TEMPLATES: dict[str, dict[RuleId, str]] = {
    "vi": {
        RuleId.REVENUE_THRESHOLD: (
            "\U0001f6a8 CẢNH BÁO DOANH THU: Doanh thu hiện tại {total_revenue} "
            "thấp hơn {shortfall_percentage}% so với mục tiêu {threshold}. "
            "Thiếu hụt {shortfall}. Cần kiểm tra chiến lược bán hàng và tối ưu "
            "hóa các kênh marketing."
        ),
        RuleId.ROI_THRESHOLD: (
            "\U0001f4c9 CẢNH BÁO ROI: ROI trung bình {avg_roi}% thấp hơn "
            "{roi_gap_percentage}% so với mục tiêu {threshold}%. Khoảng cách "
            "{roi_gap}%. Cần xem xét lại chi phí quảng cáo, tối ưu hóa chiến "
            "lược marketing và cải thiện hiệu quả chuyển đổi khách hàng."
        ),
        RuleId.BRANCH_PERFORMANCE: (
            "\U0001f3e2 CẢNH BÁO CHI NHÁNH {branch}: Hiệu suất kém nghiêm trọng! "
            "Doanh thu {revenue} (thiếu {revenue_gap}), ROI {roi}% (thấp hơn "
            "{roi_gap}%). Cần can thiệp ngay lập tức: kiểm tra quản lý, đào tạo "
            "nhân viên, và xem xét lại chiến lược kinh doanh tại chi nhánh này."
        ),
        RuleId.NEGATIVE_GROWTH: (
            "\U0001f4c9 CẢNH BÁO TĂNG TRƯỞNG ÂM: {declining_count} chi nhánh đang "
            "suy giảm với mức tăng trưởng trung bình {avg_negative_growth}%. "
            "Chi nhánh {worst_branch} có mức giảm nghiêm trọng nhất "
            "({worst_growth}%). Cần phân tích nguyên nhân, đánh giá thị trường "
            "và triển khai biện pháp khắc phục ngay lập tức."
        ),
        RuleId.LOW_PROFIT_MARGIN: (
            "\U0001f4b0 CẢNH BÁO LỢI NHUẬN: Tỷ suất lợi nhuận chỉ {profit_margin}% "
            "(thấp hơn mức chuẩn 10%). Lợi nhuận {total_profit} trên doanh thu "
            "{total_revenue}. Cần kiểm soát chi phí, tối ưu hóa giá bán và cải "
            "thiện hiệu quả vận hành."
        ),
        RuleId.HIGH_AD_COST: (
            "\U0001f4fa CẢNH BÁO CHI PHÍ QUẢNG CÁO: Chi phí quảng cáo ước tính "
            "{estimated_ad_cost} chiếm {ad_cost_percentage}% doanh thu (cao hơn "
            "mức chuẩn {threshold}%). Cần đánh giá hiệu quả ROI của các kênh "
            "quảng cáo, tối ưu hóa ngân sách và tìm kiếm các kênh marketing "
            "hiệu quả hơn."
        ),
        RuleId.HIGH_REVENUE_VARIATION: (
            "\U0001f4ca CẢNH BÁO BIẾN ĐỘNG DOANH THU: Chênh lệch giữa chi nhánh "
            "cao nhất và thấp nhất lên tới {revenue_variation}% ({max_revenue} "
            "vs {min_revenue}). Cần phân tích nguyên nhân, chia sẻ best "
            "practices và hỗ trợ các chi nhánh yếu kém."
        ),
        RuleId.HIGH_VARIATION: (
            "\U0001f4ca CẢNH BÁO BIẾN ĐỘNG: Hệ số biến động doanh thu "
            "{coefficient_of_variation}% (cao hơn mức chuẩn 50%). Điều này cho "
            "thấy doanh thu không ổn định, có thể do thị trường biến động hoặc "
            "chiến lược kinh doanh chưa hiệu quả. Cần phân tích nguyên nhân và "
            "ổn định hoạt động."
        ),
        RuleId.OVERALL_PERFORMANCE: (
            "\U0001f3af CẢNH BÁO HIỆU SUẤT TỔNG THỂ: Chỉ số hiệu suất đạt "
            "{overall_performance}/100 (thấp hơn mức chuẩn 60%). Cần xem xét "
            "toàn diện: tối ưu hóa ROI, cải thiện tỷ suất lợi nhuận và tăng "
            "doanh thu để đạt mục tiêu kinh doanh."
        ),
    },
    "en": {
        RuleId.REVENUE_THRESHOLD: (
            "\U0001f6a8 REVENUE ALERT: Current revenue {total_revenue} is "
            "{shortfall_percentage}% below the {threshold} target. Shortfall: "
            "{shortfall}. Review the sales strategy and marketing channels."
        ),
        RuleId.ROI_THRESHOLD: (
            "\U0001f4c9 ROI ALERT: Average ROI {avg_roi}% is "
            "{roi_gap_percentage}% below the {threshold}% target (gap "
            "{roi_gap}%). Review ad spend and conversion efficiency."
        ),
        RuleId.BRANCH_PERFORMANCE: (
            "\U0001f3e2 BRANCH ALERT {branch}: Severe underperformance. Revenue "
            "{revenue} ({revenue_gap} short), ROI {roi}% ({roi_gap}% short). "
            "Immediate review of management, staffing and local strategy needed."
        ),
        RuleId.NEGATIVE_GROWTH: (
            "\U0001f4c9 NEGATIVE GROWTH ALERT: {declining_count} branches are "
            "declining, averaging {avg_negative_growth}%. {worst_branch} has the "
            "steepest decline ({worst_growth}%). Investigate causes and act now."
        ),
        RuleId.LOW_PROFIT_MARGIN: (
            "\U0001f4b0 PROFIT ALERT: Profit margin is only {profit_margin}% "
            "(below the 10% benchmark). Profit {total_profit} on revenue "
            "{total_revenue}. Control costs and review pricing."
        ),
        RuleId.HIGH_AD_COST: (
            "\U0001f4fa AD COST ALERT: Estimated ad spend {estimated_ad_cost} is "
            "{ad_cost_percentage}% of revenue (above the {threshold}% "
            "benchmark). Re-evaluate channel ROI and budget allocation."
        ),
        RuleId.HIGH_REVENUE_VARIATION: (
            "\U0001f4ca REVENUE SPREAD ALERT: The gap between the highest and "
            "lowest branch reaches {revenue_variation}% ({max_revenue} vs "
            "{min_revenue}). Share best practices and support weaker branches."
        ),
        RuleId.HIGH_VARIATION: (
            "\U0001f4ca VARIATION ALERT: Revenue coefficient of variation is "
            "{coefficient_of_variation}% (above the 50% benchmark). Revenue is "
            "unstable across branches."
        ),
        RuleId.OVERALL_PERFORMANCE: (
            "\U0001f3af OVERALL PERFORMANCE ALERT: Performance index is "
            "{overall_performance}/100 (below the 60 benchmark). Improve ROI, "
            "profit margin and revenue to reach targets."
        ),
    },
}


def _format_value(kind: str | None, value: Any, prefs: UserPreferences) -> Any:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return value
    if kind == _MONEY:
        return format_currency(value, prefs.currency, prefs.language)
    if kind == _ONE_DP:
        return f"{value:.1f}"
    if kind == _TWO_DP:
        return f"{value:.2f}"
    if kind == _PLAIN:
        return f"{value:g}"
    return value


def render_message(finding: Finding, preferences: UserPreferences) -> str:
    """Render a finding into a localized sentence."""
    templates = _TEMPLATES.get(preferences.language, _TEMPLATES[FALLBACK_LANGUAGE])
    formats = _FIELD_FORMATS.get(finding.rule_id, {})
    context = {
        key: _format_value(formats.get(key), value, preferences)
        for key, value in finding.data.items()
    }
    return templates[finding.rule_id].format(**context)
