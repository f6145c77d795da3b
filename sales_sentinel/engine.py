"""Alert evaluation engine.

Runs a fixed catalog of rules over per-branch sales records and returns
alerts. The engine is pure: the same (records, settings) pair always yields
the same findings, and only ``id`` and ``timestamp`` depend on the clock.

Rules, in evaluation order:
    revenue-threshold       total revenue below target
    roi-threshold           mean ROI below target
    branch-performance      a branch under half the revenue or ROI target
    negative-growth         branches growing slower than the growth floor
    low-profit-margin       total profit below target
    high-ad-cost            estimated ad spend share above target
    high-revenue-variation  max/min revenue spread above 80%
    high-variation          revenue coefficient of variation above 50%
    overall-performance     weighted composite score below 60

Usage:
    alerts = evaluate(records, snapshot)
    for alert in alerts:
        print(alert.severity.value, alert.message)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from .messages import render_message
from .metrics import (
    PortfolioTotals,
    composite_score,
    gap_percentage,
    range_variation_pct,
    revenue_dispersion,
    safe_ratio,
    summarize,
)
from .models import Alert, AlertType, Finding, RuleId, SalesRecord, Severity
from .settings import AlertSettings, SettingsSnapshot

logger = logging.getLogger("sentinel.alerts")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Branch is flagged below this share of the portfolio revenue/ROI target
BRANCH_FLOOR_RATIO = 0.5
# Shortfall past the floor, as a share of target, that makes it critical
BRANCH_CRITICAL_GAP_RATIO = 0.3

RANGE_VARIATION_LIMIT_PCT = 80.0
COV_LIMIT_PCT = 50.0
PERFORMANCE_TARGET = 60.0


def _gap_severity(gap_pct: float) -> Severity:
    """Shared bands for the revenue and ROI gap rules."""
    if gap_pct > 50:
        return Severity.CRITICAL
    if gap_pct > 25:
        return Severity.HIGH
    return Severity.MEDIUM


class AlertEngine:
    """Evaluate the rule catalog against a settings snapshot."""

    def evaluate(
        self,
        records: Sequence[SalesRecord],
        snapshot: SettingsSnapshot,
        now: datetime | None = None,
    ) -> list[Alert]:
        """Run every rule and render the resulting findings into alerts.

        Args:
            records: Per-branch records for the period under review.
            snapshot: Settings in force for this evaluation.
            now: Clock override for ids and timestamps.

        Returns:
            Alerts in rule order. Empty when alerts are disabled or there
            are no records.
        """
        findings = self.evaluate_findings(records, snapshot.alert_settings)
        if not findings:
            return []

        now = now or datetime.now(timezone.utc)
        stamp = int(now.timestamp() * 1000)
        alerts = [
            Alert(
                id=f"{finding.id_prefix}-{stamp}",
                rule_id=finding.rule_id,
                type=finding.type,
                message=render_message(finding, snapshot.user_preferences),
                severity=finding.severity,
                timestamp=now,
                data=finding.data,
            )
            for finding in findings
        ]
        logger.info(
            "Evaluated %d records: %d alerts (%s)",
            len(records),
            len(alerts),
            ", ".join(f"{a.rule_id.value}={a.severity.value}" for a in alerts),
        )
        return alerts

    def evaluate_findings(
        self,
        records: Sequence[SalesRecord],
        settings: AlertSettings,
    ) -> list[Finding]:
        """Run every rule and return structured findings without messages."""
        if not settings.alerts_enabled:
            logger.debug("Alerts disabled, skipping evaluation")
            return []
        if not records:
            return []

        totals = summarize(records)
        findings: list[Finding] = []

        candidates: list[Finding | None] = [
            self._check_revenue(totals, settings),
            self._check_roi(totals, settings),
        ]
        candidates.extend(self._check_branches(records, settings))
        candidates.extend(
            [
                self._check_growth(records, settings),
                self._check_profit(totals, settings),
                self._check_ad_cost(totals, settings),
            ]
        )

        for finding in candidates:
            if finding is not None and settings.severity_levels.is_visible(
                finding.severity
            ):
                findings.append(finding)

        # The range rule ignores the enable and visibility flags unless gated
        range_finding = self._check_range_variation(records)
        if range_finding is not None:
            if not settings.gate_range_variation or (
                settings.enable_variation_alerts
                and settings.severity_levels.is_visible(range_finding.severity)
            ):
                findings.append(range_finding)

        for finding in (
            self._check_coefficient_of_variation(records, settings),
            self._check_performance(totals, settings),
        ):
            if finding is not None and settings.severity_levels.is_visible(
                finding.severity
            ):
                findings.append(finding)

        return findings

    # -----------------------------------------------------------------
    # Individual rules
    # -----------------------------------------------------------------

    def _check_revenue(
        self, totals: PortfolioTotals, settings: AlertSettings
    ) -> Finding | None:
        threshold = settings.revenue_threshold
        if not settings.enable_revenue_alerts or totals.total_revenue >= threshold:
            return None

        shortfall = threshold - totals.total_revenue
        shortfall_pct = gap_percentage(threshold, totals.total_revenue)
        return Finding(
            rule_id=RuleId.REVENUE_THRESHOLD,
            type=AlertType.REVENUE,
            severity=_gap_severity(shortfall_pct),
            id_prefix="revenue",
            data={
                "total_revenue": totals.total_revenue,
                "threshold": threshold,
                "shortfall": shortfall,
                "shortfall_percentage": shortfall_pct,
            },
        )

    def _check_roi(
        self, totals: PortfolioTotals, settings: AlertSettings
    ) -> Finding | None:
        threshold = settings.roi_threshold
        if not settings.enable_roi_alerts or totals.avg_roi >= threshold:
            return None

        roi_gap = threshold - totals.avg_roi
        roi_gap_pct = gap_percentage(threshold, totals.avg_roi)
        return Finding(
            rule_id=RuleId.ROI_THRESHOLD,
            type=AlertType.ROI,
            severity=_gap_severity(roi_gap_pct),
            id_prefix="roi",
            data={
                "avg_roi": totals.avg_roi,
                "threshold": threshold,
                "roi_gap": roi_gap,
                "roi_gap_percentage": roi_gap_pct,
            },
        )

    def _check_branches(
        self, records: Sequence[SalesRecord], settings: AlertSettings
    ) -> list[Finding]:
        if not settings.enable_branch_alerts:
            return []

        revenue_floor = settings.revenue_threshold * BRANCH_FLOOR_RATIO
        roi_floor = settings.roi_threshold * BRANCH_FLOOR_RATIO
        findings: list[Finding] = []

        for record in records:
            if record.revenue >= revenue_floor and record.roi >= roi_floor:
                continue

            revenue_gap = revenue_floor - record.revenue
            roi_gap = roi_floor - record.roi
            critical = (
                revenue_gap > settings.revenue_threshold * BRANCH_CRITICAL_GAP_RATIO
                or roi_gap > settings.roi_threshold * BRANCH_CRITICAL_GAP_RATIO
            )
            findings.append(
                Finding(
                    rule_id=RuleId.BRANCH_PERFORMANCE,
                    type=AlertType.BRANCH,
                    severity=Severity.CRITICAL if critical else Severity.HIGH,
                    id_prefix=f"branch-{record.branch}",
                    data={
                        **record.model_dump(),
                        "revenue_gap": revenue_gap,
                        "roi_gap": roi_gap,
                    },
                )
            )
        return findings

    def _check_growth(
        self, records: Sequence[SalesRecord], settings: AlertSettings
    ) -> Finding | None:
        if not settings.enable_growth_alerts:
            return None

        declining = [r for r in records if r.growth < settings.growth_threshold]
        if not declining:
            return None

        avg_growth = sum(r.growth for r in declining) / len(declining)
        worst = min(declining, key=lambda r: r.growth)

        if avg_growth < -20:
            severity = Severity.CRITICAL
        elif avg_growth < -10:
            severity = Severity.HIGH
        else:
            severity = Severity.MEDIUM

        return Finding(
            rule_id=RuleId.NEGATIVE_GROWTH,
            type=AlertType.GROWTH,
            severity=severity,
            id_prefix="growth",
            data={
                "declining_count": len(declining),
                "declining_branches": [r.branch for r in declining],
                "avg_negative_growth": avg_growth,
                "worst_branch": worst.branch,
                "worst_growth": worst.growth,
            },
        )

    def _check_profit(
        self, totals: PortfolioTotals, settings: AlertSettings
    ) -> Finding | None:
        threshold = settings.profit_threshold
        if not settings.enable_profit_alerts or totals.total_profit >= threshold:
            return None

        profit_gap = threshold - totals.total_profit
        if profit_gap > threshold * 0.5:
            severity = Severity.CRITICAL
        elif profit_gap > threshold * 0.25:
            severity = Severity.HIGH
        else:
            severity = Severity.MEDIUM

        return Finding(
            rule_id=RuleId.LOW_PROFIT_MARGIN,
            type=AlertType.PROFIT,
            severity=severity,
            id_prefix="profit",
            data={
                "total_profit": totals.total_profit,
                "total_revenue": totals.total_revenue,
                "profit_margin": round(totals.profit_margin_pct, 1),
                "profit_gap": profit_gap,
                "threshold": threshold,
            },
        )

    def _check_ad_cost(
        self, totals: PortfolioTotals, settings: AlertSettings
    ) -> Finding | None:
        if not settings.enable_ad_cost_alerts:
            return None

        # Ad spend is not in the records; it is estimated from mean ROI
        estimated_ad_cost = totals.total_revenue * (totals.avg_roi / 100)
        ad_cost_ratio = safe_ratio(estimated_ad_cost, totals.total_revenue)
        ad_cost_pct = ad_cost_ratio * 100

        threshold = settings.ad_cost_threshold
        if ad_cost_pct <= threshold:
            return None

        if ad_cost_pct > threshold * 1.5:
            severity = Severity.CRITICAL
        elif ad_cost_pct > threshold * 1.2:
            severity = Severity.HIGH
        else:
            severity = Severity.MEDIUM

        return Finding(
            rule_id=RuleId.HIGH_AD_COST,
            type=AlertType.AD_COST,
            severity=severity,
            id_prefix="adcost",
            data={
                "estimated_ad_cost": estimated_ad_cost,
                "total_revenue": totals.total_revenue,
                "ad_cost_ratio": ad_cost_ratio,
                "ad_cost_percentage": ad_cost_pct,
                "threshold": threshold,
            },
        )

    def _check_range_variation(
        self, records: Sequence[SalesRecord]
    ) -> Finding | None:
        revenues = [r.revenue for r in records]
        variation = range_variation_pct(revenues)
        if variation <= RANGE_VARIATION_LIMIT_PCT:
            return None

        return Finding(
            rule_id=RuleId.HIGH_REVENUE_VARIATION,
            type=AlertType.VARIATION,
            severity=Severity.MEDIUM,
            id_prefix="variation-range",
            data={
                "max_revenue": max(revenues),
                "min_revenue": min(revenues),
                "revenue_variation": variation,
            },
        )

    def _check_coefficient_of_variation(
        self, records: Sequence[SalesRecord], settings: AlertSettings
    ) -> Finding | None:
        if not settings.enable_variation_alerts or len(records) < 2:
            return None

        mean, std, cov = revenue_dispersion([r.revenue for r in records])
        if cov <= COV_LIMIT_PCT:
            return None

        if cov > 100:
            severity = Severity.CRITICAL
        elif cov > 75:
            severity = Severity.HIGH
        else:
            severity = Severity.MEDIUM

        return Finding(
            rule_id=RuleId.HIGH_VARIATION,
            type=AlertType.VARIATION,
            severity=severity,
            id_prefix="variation",
            data={
                "coefficient_of_variation": cov,
                "mean_revenue": mean,
                "standard_deviation": std,
            },
        )

    def _check_performance(
        self, totals: PortfolioTotals, settings: AlertSettings
    ) -> Finding | None:
        if not settings.enable_performance_alerts:
            return None

        margin_pct = totals.profit_margin_pct
        revenue_ratio_pct = (
            safe_ratio(totals.total_revenue, settings.revenue_threshold) * 100
        )
        score = composite_score(totals.avg_roi, margin_pct, revenue_ratio_pct)
        if score >= PERFORMANCE_TARGET:
            return None

        if score < 30:
            severity = Severity.CRITICAL
        elif score < 45:
            severity = Severity.HIGH
        else:
            severity = Severity.MEDIUM

        return Finding(
            rule_id=RuleId.OVERALL_PERFORMANCE,
            type=AlertType.PERFORMANCE,
            severity=severity,
            id_prefix="performance",
            data={
                "overall_performance": score,
                "avg_roi": totals.avg_roi,
                "profit_margin": margin_pct,
                "revenue_ratio": revenue_ratio_pct,
            },
        )


# ---------------------------------------------------------------------------
# Convenience function
# ---------------------------------------------------------------------------

_engine = AlertEngine()


def evaluate(
    records: Sequence[SalesRecord],
    snapshot: SettingsSnapshot,
    now: datetime | None = None,
) -> list[Alert]:
    """Evaluate alerts for a set of records. Convenience wrapper."""
    return _engine.evaluate(records, snapshot, now=now)
