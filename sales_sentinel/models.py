"""Domain models for branch sales alerting.

SalesRecord is the engine's input, Finding is what a single rule produces,
and Alert is the rendered, user-facing result. All three are frozen: the
engine never mutates them, and lifecycle changes (acknowledge, dismiss)
produce copies.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Alert severity tiers, lowest to highest."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return {
            Severity.LOW: 0,
            Severity.MEDIUM: 1,
            Severity.HIGH: 2,
            Severity.CRITICAL: 3,
        }[self]

    @property
    def icon(self) -> str:
        return {
            Severity.CRITICAL: "\U0001f6a8",
            Severity.HIGH: "\u26a0\ufe0f",
            Severity.MEDIUM: "\U0001f4ca",
            Severity.LOW: "\u2139\ufe0f",
        }[self]


class AlertType(str, Enum):
    REVENUE = "revenue"
    ROI = "roi"
    BRANCH = "branch"
    GROWTH = "growth"
    PROFIT = "profit"
    AD_COST = "adcost"
    VARIATION = "variation"
    PERFORMANCE = "performance"


class RuleId(str, Enum):
    """Stable identifiers for each rule in the catalog."""

    REVENUE_THRESHOLD = "revenue-threshold"
    ROI_THRESHOLD = "roi-threshold"
    BRANCH_PERFORMANCE = "branch-performance"
    NEGATIVE_GROWTH = "negative-growth"
    LOW_PROFIT_MARGIN = "low-profit-margin"
    HIGH_AD_COST = "high-ad-cost"
    HIGH_REVENUE_VARIATION = "high-revenue-variation"
    HIGH_VARIATION = "high-variation"
    OVERALL_PERFORMANCE = "overall-performance"


class SalesRecord(BaseModel):
    """Aggregated sales figures for one branch over one period."""

    model_config = ConfigDict(frozen=True)

    branch: str
    revenue: float = 0.0
    profit: float = 0.0
    roi: float = 0.0
    growth: float = 0.0
    period: str = ""


class Finding(BaseModel):
    """Structured result of one rule firing, before message rendering."""

    model_config = ConfigDict(frozen=True)

    rule_id: RuleId
    type: AlertType
    severity: Severity
    data: dict[str, Any] = Field(default_factory=dict)
    id_prefix: str


class Alert(BaseModel):
    """A rendered alert as delivered to the dashboard and notification sinks."""

    model_config = ConfigDict(frozen=True)

    id: str
    rule_id: RuleId
    type: AlertType
    message: str
    severity: Severity
    timestamp: datetime
    data: dict[str, Any] = Field(default_factory=dict)
    acknowledged: bool = False
    dismissed: bool = False

    @property
    def is_active(self) -> bool:
        return not self.dismissed
