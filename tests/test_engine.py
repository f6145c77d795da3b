"""Tests for the alert evaluation engine.

Covers:
    - Global switch and empty input
    - Each rule's trigger and severity bands
    - Severity visibility and the range-variation gating option
    - Rule order, alert ids, and idempotence
"""

from datetime import datetime, timedelta, timezone

import pytest

from sales_sentinel.engine import AlertEngine, evaluate
from sales_sentinel.models import AlertType, RuleId, SalesRecord, Severity
from sales_sentinel.settings import AlertSettings, SettingsSnapshot, SeverityLevels

NOW = datetime(2026, 2, 6, 10, 0, tzinfo=timezone.utc)
STAMP = int(NOW.timestamp() * 1000)

_RULE_FLAGS = (
    "enable_revenue_alerts",
    "enable_roi_alerts",
    "enable_profit_alerts",
    "enable_growth_alerts",
    "enable_ad_cost_alerts",
    "enable_branch_alerts",
    "enable_variation_alerts",
    "enable_performance_alerts",
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _record(
    branch: str = "Hà Nội",
    revenue: float = 2_000_000,
    profit: float = 400_000,
    roi: float = 10.0,
    growth: float = 5.0,
    period: str = "Q1",
) -> SalesRecord:
    return SalesRecord(
        branch=branch,
        revenue=revenue,
        profit=profit,
        roi=roi,
        growth=growth,
        period=period,
    )


def _snapshot(**overrides) -> SettingsSnapshot:
    return SettingsSnapshot(alert_settings=AlertSettings(**overrides))


def _quiet(**overrides) -> SettingsSnapshot:
    """Every rule flag off, then ``overrides`` applied."""
    flags = {flag: False for flag in _RULE_FLAGS}
    flags.update(overrides)
    return _snapshot(**flags)


def _of_rule(alerts, rule_id: RuleId):
    return [a for a in alerts if a.rule_id == rule_id]


# ---------------------------------------------------------------------------
# Global switch
# ---------------------------------------------------------------------------


class TestGlobalSwitch:
    def test_disabled_returns_nothing(self):
        records = [_record(revenue=0, profit=-50_000, roi=0, growth=-80)]
        assert evaluate(records, _snapshot(alerts_enabled=False)) == []

    def test_disabled_suppresses_range_variation(self):
        records = [_record(revenue=1_000_000), _record(branch="Huế", revenue=1_000)]
        assert evaluate(records, _snapshot(alerts_enabled=False)) == []

    def test_empty_records(self):
        assert evaluate([], _snapshot()) == []

    def test_findings_disabled(self):
        engine = AlertEngine()
        settings = AlertSettings(alerts_enabled=False)
        assert engine.evaluate_findings([_record(revenue=0)], settings) == []


# ---------------------------------------------------------------------------
# Revenue shortfall
# ---------------------------------------------------------------------------


class TestRevenueRule:
    def test_shortfall_example(self):
        """600k against a 1M target: one revenue alert, 40% short."""
        records = [
            _record(branch="Hà Nội", revenue=300_000),
            _record(branch="Đà Nẵng", revenue=300_000),
        ]
        alerts = evaluate(records, _quiet(enable_revenue_alerts=True), now=NOW)

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.type == AlertType.REVENUE
        assert alert.rule_id == RuleId.REVENUE_THRESHOLD
        assert alert.severity == Severity.HIGH
        assert alert.data["shortfall_percentage"] == 40.0
        assert alert.data["shortfall"] == 400_000
        assert "600.000" in alert.message
        assert "1.000.000" in alert.message
        assert alert.acknowledged is False
        assert alert.dismissed is False

    def test_at_threshold_no_alert(self):
        records = [_record(revenue=1_000_000)]
        alerts = evaluate(records, _snapshot(), now=NOW)
        assert _of_rule(alerts, RuleId.REVENUE_THRESHOLD) == []

    def test_above_threshold_no_alert(self):
        records = [_record(revenue=3_000_000)]
        alerts = evaluate(records, _quiet(enable_revenue_alerts=True))
        assert alerts == []

    def test_flag_off(self):
        records = [_record(revenue=100_000)]
        alerts = evaluate(records, _quiet())
        assert _of_rule(alerts, RuleId.REVENUE_THRESHOLD) == []

    @pytest.mark.parametrize(
        "revenue,expected",
        [
            (490_000, Severity.CRITICAL),  # 51% short
            (500_000, Severity.HIGH),  # exactly 50%
            (740_000, Severity.HIGH),  # 26%
            (750_000, Severity.MEDIUM),  # exactly 25%
            (900_000, Severity.MEDIUM),
        ],
    )
    def test_severity_bands(self, revenue, expected):
        alerts = evaluate(
            [_record(revenue=revenue)], _quiet(enable_revenue_alerts=True)
        )
        assert alerts[0].severity == expected

    def test_severity_monotone_in_shortfall(self):
        settings = _quiet(enable_revenue_alerts=True)
        ranks = []
        for revenue in range(990_000, -1, -30_000):
            alerts = evaluate([_record(revenue=revenue)], settings)
            ranks.append(alerts[0].severity.rank)
        assert ranks == sorted(ranks)


# ---------------------------------------------------------------------------
# ROI gap
# ---------------------------------------------------------------------------


class TestRoiRule:
    def test_critical_gap(self):
        records = [_record(roi=1.0), _record(branch="Huế", roi=3.0)]
        alerts = evaluate(records, _quiet(enable_roi_alerts=True))

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.type == AlertType.ROI
        assert alert.severity == Severity.CRITICAL
        assert alert.data["avg_roi"] == pytest.approx(2.0)
        assert alert.data["roi_gap"] == pytest.approx(3.0)
        assert alert.data["roi_gap_percentage"] == 60.0
        assert "2.00%" in alert.message

    def test_medium_gap(self):
        alerts = evaluate([_record(roi=4.0)], _quiet(enable_roi_alerts=True))
        assert alerts[0].severity == Severity.MEDIUM
        assert alerts[0].data["roi_gap_percentage"] == 20.0

    def test_at_threshold_no_alert(self):
        assert evaluate([_record(roi=5.0)], _quiet(enable_roi_alerts=True)) == []

    def test_severity_monotone_in_gap(self):
        settings = _quiet(enable_roi_alerts=True)
        ranks = [
            evaluate([_record(roi=roi)], settings)[0].severity.rank
            for roi in (4.9, 4.0, 3.5, 3.0, 2.5, 2.0, 1.0, 0.0)
        ]
        assert ranks == sorted(ranks)


# ---------------------------------------------------------------------------
# Branch underperformance
# ---------------------------------------------------------------------------


class TestBranchRule:
    def test_critical_branch_example(self):
        records = [_record(branch="Hà Nội", revenue=100_000, roi=1.0)]
        alerts = evaluate(records, _quiet(enable_branch_alerts=True), now=NOW)

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.type == AlertType.BRANCH
        assert alert.severity == Severity.CRITICAL
        assert alert.id == f"branch-Hà Nội-{STAMP}"
        assert alert.data["branch"] == "Hà Nội"
        assert alert.data["revenue_gap"] == pytest.approx(400_000)
        assert alert.data["roi_gap"] == pytest.approx(1.5)
        assert "Hà Nội" in alert.message

    def test_high_when_gap_is_small(self):
        # 100k under the 500k floor, ROI fine
        records = [_record(revenue=400_000, roi=10.0)]
        alerts = evaluate(records, _quiet(enable_branch_alerts=True))
        assert alerts[0].severity == Severity.HIGH

    def test_roi_only_trigger(self):
        # ROI gap 1.5 is not above 0.3 x 5.0
        records = [_record(revenue=2_000_000, roi=1.0)]
        alerts = evaluate(records, _quiet(enable_branch_alerts=True))
        assert len(alerts) == 1
        assert alerts[0].severity == Severity.HIGH

    def test_healthy_branch_skipped(self):
        records = [_record(revenue=600_000, roi=3.0)]
        assert evaluate(records, _quiet(enable_branch_alerts=True)) == []

    def test_one_alert_per_branch(self):
        records = [
            _record(branch="A", revenue=450_000),
            _record(branch="B", revenue=480_000),
            _record(branch="C", revenue=2_000_000),
        ]
        alerts = evaluate(records, _quiet(enable_branch_alerts=True), now=NOW)
        branch_alerts = _of_rule(alerts, RuleId.BRANCH_PERFORMANCE)
        assert [a.data["branch"] for a in branch_alerts] == ["A", "B"]
        assert len({a.id for a in branch_alerts}) == 2


# ---------------------------------------------------------------------------
# Negative growth
# ---------------------------------------------------------------------------


class TestGrowthRule:
    def test_critical_decline(self):
        records = [
            _record(branch="A", growth=-25),
            _record(branch="B", growth=-30),
            _record(branch="C", growth=5),
        ]
        alerts = evaluate(records, _quiet(enable_growth_alerts=True))

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.type == AlertType.GROWTH
        assert alert.severity == Severity.CRITICAL
        assert alert.data["declining_count"] == 2
        assert alert.data["declining_branches"] == ["A", "B"]
        assert alert.data["avg_negative_growth"] == pytest.approx(-27.5)
        assert alert.data["worst_branch"] == "B"
        assert alert.data["worst_growth"] == -30

    def test_high_decline(self):
        records = [_record(branch="A", growth=-12), _record(branch="B", growth=-15)]
        alerts = evaluate(records, _quiet(enable_growth_alerts=True))
        assert alerts[0].severity == Severity.HIGH

    def test_medium_with_stricter_floor(self):
        records = [_record(branch="A", growth=-2), _record(branch="B", growth=-4)]
        alerts = evaluate(
            records, _quiet(enable_growth_alerts=True, growth_threshold=0)
        )
        assert alerts[0].severity == Severity.MEDIUM

    def test_no_branch_below_floor(self):
        records = [_record(growth=-10), _record(branch="B", growth=3)]
        assert evaluate(records, _quiet(enable_growth_alerts=True)) == []


# ---------------------------------------------------------------------------
# Low profit
# ---------------------------------------------------------------------------


class TestProfitRule:
    @pytest.mark.parametrize(
        "profit,expected",
        [
            (40_000, Severity.CRITICAL),
            (70_000, Severity.HIGH),
            (90_000, Severity.MEDIUM),
        ],
    )
    def test_severity_bands(self, profit, expected):
        alerts = evaluate([_record(profit=profit)], _quiet(enable_profit_alerts=True))
        assert len(alerts) == 1
        assert alerts[0].type == AlertType.PROFIT
        assert alerts[0].severity == expected
        assert alerts[0].data["profit_gap"] == pytest.approx(100_000 - profit)

    def test_margin_reported(self):
        records = [_record(revenue=1_000_000, profit=50_000)]
        alerts = evaluate(records, _quiet(enable_profit_alerts=True))
        assert alerts[0].data["profit_margin"] == 5.0
        assert "5.0%" in alerts[0].message

    def test_zero_revenue_margin_is_zero(self):
        records = [_record(revenue=0, profit=0)]
        alerts = evaluate(records, _quiet(enable_profit_alerts=True))
        assert alerts[0].data["profit_margin"] == 0.0

    def test_at_threshold_no_alert(self):
        records = [_record(profit=100_000)]
        assert evaluate(records, _quiet(enable_profit_alerts=True)) == []


# ---------------------------------------------------------------------------
# Ad cost ratio
# ---------------------------------------------------------------------------


class TestAdCostRule:
    @pytest.mark.parametrize(
        "roi,expected",
        [
            (50.0, Severity.CRITICAL),
            (40.0, Severity.HIGH),
            (33.0, Severity.MEDIUM),
        ],
    )
    def test_severity_bands(self, roi, expected):
        records = [_record(revenue=1_000_000, roi=roi)]
        alerts = evaluate(records, _quiet(enable_ad_cost_alerts=True))
        assert len(alerts) == 1
        assert alerts[0].type == AlertType.AD_COST
        assert alerts[0].severity == expected
        assert alerts[0].data["ad_cost_percentage"] == pytest.approx(roi)
        assert alerts[0].data["estimated_ad_cost"] == pytest.approx(
            1_000_000 * roi / 100
        )

    def test_below_threshold(self):
        records = [_record(revenue=1_000_000, roi=25.0)]
        assert evaluate(records, _quiet(enable_ad_cost_alerts=True)) == []

    def test_zero_revenue_is_zero_ratio(self):
        records = [_record(revenue=0, roi=80.0)]
        assert evaluate(records, _quiet(enable_ad_cost_alerts=True)) == []


# ---------------------------------------------------------------------------
# Revenue variation
# ---------------------------------------------------------------------------


class TestRangeVariation:
    def test_fires_with_every_flag_off(self):
        records = [_record(branch="A", revenue=1_000_000), _record(branch="B", revenue=100_000)]
        settings = _quiet(severity_levels=SeverityLevels(medium=False))
        alerts = evaluate(records, settings, now=NOW)

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.rule_id == RuleId.HIGH_REVENUE_VARIATION
        assert alert.type == AlertType.VARIATION
        assert alert.severity == Severity.MEDIUM
        assert alert.id == f"variation-range-{STAMP}"
        assert alert.data["revenue_variation"] == pytest.approx(90.0)
        assert alert.data["max_revenue"] == 1_000_000
        assert alert.data["min_revenue"] == 100_000

    def test_gated_by_variation_flag(self):
        records = [_record(branch="A", revenue=1_000_000), _record(branch="B", revenue=100_000)]
        alerts = evaluate(records, _quiet(gate_range_variation=True))
        assert alerts == []

    def test_gated_by_severity_visibility(self):
        records = [_record(branch="A", revenue=1_000_000), _record(branch="B", revenue=100_000)]
        settings = _quiet(
            gate_range_variation=True,
            enable_variation_alerts=True,
            severity_levels=SeverityLevels(medium=False, high=False, critical=False),
        )
        assert evaluate(records, settings) == []

    def test_gated_and_enabled(self):
        records = [_record(branch="A", revenue=1_000_000), _record(branch="B", revenue=100_000)]
        settings = _quiet(gate_range_variation=True, enable_variation_alerts=True)
        alerts = evaluate(records, settings)
        assert len(_of_rule(alerts, RuleId.HIGH_REVENUE_VARIATION)) == 1

    def test_spread_below_limit(self):
        records = [_record(branch="A", revenue=1_000_000), _record(branch="B", revenue=250_000)]
        assert evaluate(records, _quiet()) == []

    def test_all_zero_revenue(self):
        records = [_record(branch="A", revenue=0), _record(branch="B", revenue=0)]
        assert evaluate(records, _quiet()) == []


class TestCoefficientOfVariation:
    def test_medium(self):
        # mean 250, std 150 -> 60%; range spread 75% stays quiet
        records = [_record(branch="A", revenue=100), _record(branch="B", revenue=400)]
        alerts = evaluate(records, _quiet(enable_variation_alerts=True), now=NOW)

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.rule_id == RuleId.HIGH_VARIATION
        assert alert.severity == Severity.MEDIUM
        assert alert.id == f"variation-{STAMP}"
        assert alert.data["coefficient_of_variation"] == pytest.approx(60.0)
        assert alert.data["mean_revenue"] == pytest.approx(250.0)
        assert alert.data["standard_deviation"] == pytest.approx(150.0)

    def test_high(self):
        # mean 500, std 400 -> 80%
        records = [_record(branch="A", revenue=100), _record(branch="B", revenue=900)]
        alerts = evaluate(records, _quiet(enable_variation_alerts=True))
        cov = _of_rule(alerts, RuleId.HIGH_VARIATION)
        assert cov[0].severity == Severity.HIGH

    def test_critical(self):
        records = [
            _record(branch="A", revenue=0),
            _record(branch="B", revenue=0),
            _record(branch="C", revenue=0),
            _record(branch="D", revenue=100),
        ]
        alerts = evaluate(records, _quiet(enable_variation_alerts=True))
        cov = _of_rule(alerts, RuleId.HIGH_VARIATION)
        assert cov[0].severity == Severity.CRITICAL

    def test_at_limit_no_alert(self):
        # mean 200, std 100 -> exactly 50%
        records = [_record(branch="A", revenue=100), _record(branch="B", revenue=300)]
        assert evaluate(records, _quiet(enable_variation_alerts=True)) == []

    def test_needs_two_records(self):
        alerts = evaluate([_record(revenue=100)], _quiet(enable_variation_alerts=True))
        assert alerts == []

    def test_range_and_cov_ids_differ(self):
        records = [_record(branch="A", revenue=100), _record(branch="B", revenue=900)]
        alerts = evaluate(records, _quiet(enable_variation_alerts=True), now=NOW)
        assert len(alerts) == 2
        assert len({a.id for a in alerts}) == 2


# ---------------------------------------------------------------------------
# Composite performance
# ---------------------------------------------------------------------------


class TestPerformanceRule:
    def test_exactly_sixty_does_not_fire(self):
        # 0.4 x 112.5 + 0.3 x 0 + 0.3 x 50 = 60
        records = [_record(revenue=1_000_000, profit=0, roi=112.5)]
        settings = _quiet(enable_performance_alerts=True, revenue_threshold=2_000_000)
        assert evaluate(records, settings) == []

    def test_just_below_sixty(self):
        records = [_record(revenue=1_000_000, profit=0, roi=112.0)]
        settings = _quiet(enable_performance_alerts=True, revenue_threshold=2_000_000)
        alerts = evaluate(records, settings)

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.type == AlertType.PERFORMANCE
        assert alert.severity == Severity.MEDIUM
        assert alert.data["overall_performance"] == pytest.approx(59.8)
        assert alert.data["revenue_ratio"] == pytest.approx(50.0)

    def test_high(self):
        # 0.4 x 50 + 0.3 x 50 = 35
        records = [_record(revenue=500_000, profit=0, roi=50.0)]
        alerts = evaluate(records, _quiet(enable_performance_alerts=True))
        assert alerts[0].severity == Severity.HIGH

    def test_critical(self):
        # 0.4 x 10 + 0.3 x 10 = 7
        records = [_record(revenue=100_000, profit=0, roi=10.0)]
        alerts = evaluate(records, _quiet(enable_performance_alerts=True))
        assert alerts[0].severity == Severity.CRITICAL
        assert alerts[0].data["overall_performance"] == pytest.approx(7.0)

    def test_zero_revenue_threshold(self):
        records = [_record(revenue=0, profit=0, roi=10.0)]
        settings = _quiet(enable_performance_alerts=True, revenue_threshold=0)
        alerts = evaluate(records, settings)
        assert alerts[0].data["revenue_ratio"] == 0.0
        assert alerts[0].data["overall_performance"] == pytest.approx(4.0)


# ---------------------------------------------------------------------------
# Cross-cutting behavior
# ---------------------------------------------------------------------------


class TestSeverityVisibility:
    def test_hidden_tier_suppresses_alert(self):
        records = [_record(revenue=100_000)]
        settings = _quiet(
            enable_revenue_alerts=True,
            severity_levels=SeverityLevels(critical=False),
        )
        assert evaluate(records, settings) == []

    def test_other_tiers_still_shown(self):
        records = [_record(revenue=100_000), _record(branch="B", revenue=800_000)]
        settings = _quiet(
            enable_revenue_alerts=True,
            enable_branch_alerts=True,
            gate_range_variation=True,
            severity_levels=SeverityLevels(critical=False),
        )
        alerts = evaluate(records, settings)
        # total 900k -> 10% short, medium; branch A critical is hidden
        assert [a.rule_id for a in alerts] == [RuleId.REVENUE_THRESHOLD]
        assert alerts[0].severity == Severity.MEDIUM


class TestHealthyPortfolio:
    def test_no_alerts_with_defaults(self):
        records = [
            _record(branch="A", revenue=2_000_000, profit=500_000, roi=10, growth=5),
            _record(branch="B", revenue=1_800_000, profit=450_000, roi=12, growth=3),
        ]
        assert evaluate(records, _snapshot()) == []


class TestRuleOrder:
    def test_catalog_order(self):
        records = [
            _record(branch="A", revenue=100_000, profit=1_000, roi=40, growth=-30),
            _record(branch="B", revenue=10_000, profit=500, roi=40, growth=-25),
        ]
        alerts = evaluate(records, _snapshot(), now=NOW)
        assert [a.rule_id for a in alerts] == [
            RuleId.REVENUE_THRESHOLD,
            RuleId.BRANCH_PERFORMANCE,
            RuleId.BRANCH_PERFORMANCE,
            RuleId.NEGATIVE_GROWTH,
            RuleId.LOW_PROFIT_MARGIN,
            RuleId.HIGH_AD_COST,
            RuleId.HIGH_REVENUE_VARIATION,
            RuleId.HIGH_VARIATION,
            RuleId.OVERALL_PERFORMANCE,
        ]
        assert all(a.timestamp == NOW for a in alerts)
        assert alerts[0].id == f"revenue-{STAMP}"


class TestIdempotence:
    def test_same_inputs_same_content(self):
        records = [
            _record(branch="A", revenue=100_000, roi=2.0, growth=-15),
            _record(branch="B", revenue=900_000, roi=3.0, growth=2),
        ]
        snapshot = _snapshot()
        first = evaluate(records, snapshot, now=NOW)
        second = evaluate(records, snapshot, now=NOW + timedelta(seconds=5))

        assert len(first) == len(second) > 0
        for a, b in zip(first, second):
            assert a.message == b.message
            assert a.severity == b.severity
            assert a.data == b.data
            assert a.id != b.id

    def test_findings_have_no_clock(self):
        engine = AlertEngine()
        records = [_record(revenue=100_000)]
        settings = AlertSettings()
        assert engine.evaluate_findings(records, settings) == engine.evaluate_findings(
            records, settings
        )
