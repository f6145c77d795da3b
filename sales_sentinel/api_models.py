"""API request/response models.

These wrap the domain models (SalesRecord, Alert, SettingsSnapshot) with
HTTP-specific fields such as the rendered report and dispatch counts.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .comparison import ComparisonKind
from .insights import ReportType
from .models import Alert, SalesRecord
from .settings import SettingsSnapshot


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    code: str
    message: str
    detail: str | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    dev_mode: bool


class EvaluateRequest(BaseModel):
    """Request body for POST /api/v1/alerts/evaluate."""

    records: list[SalesRecord]
    settings: SettingsSnapshot | None = Field(
        default=None,
        description="Settings snapshot. Falls back to the server's configured settings.",
    )
    notify: bool = Field(
        default=False,
        description="Deliver the resulting alerts over enabled channels.",
    )


class DispatchSummary(BaseModel):
    emails_sent: int
    pushes_sent: int
    failures: int


class EvaluateResponse(BaseModel):
    """Response for POST /api/v1/alerts/evaluate."""

    alerts: list[Alert]
    alert_count: int
    counts: dict[str, int]
    report: str
    dispatch: DispatchSummary | None = None


class ReportRequest(BaseModel):
    """Request body for POST /api/v1/alerts/report."""

    alerts: list[Alert]
    language: str = "vi"


class ReportResponse(BaseModel):
    report: str
    counts: dict[str, int]
    active_count: int


class SalesRow(BaseModel):
    """One weekly sales row as stored by the dashboard."""

    quarter: str = ""
    year: int = 2025
    week: int = 0
    channel: str = ""
    branch: str
    total_revenue: float = 0.0
    ad_cost: float = 0.0


class CompareRequest(BaseModel):
    """Request body for POST /api/v1/reports/compare."""

    rows: list[SalesRow]
    kind: ComparisonKind = ComparisonKind.PERIOD
    first: str = Field(description="Period value, branch name or channel name.")
    second: str
    first_time_type: str = "quarter"
    second_time_type: str = "quarter"
    quarter: str | None = Field(
        default=None,
        description="Quarter both sides are restricted to for branch/channel kinds.",
    )
    year: int = 2025
    language: str = "vi"


class SliceResponse(BaseModel):
    total_revenue: float
    total_ad_cost: float
    avg_roi: float
    branches: dict[str, dict[str, float]]
    channels: dict[str, dict[str, float]]
    weekly: dict[int, float]


class CompareResponse(BaseModel):
    kind: ComparisonKind
    first: SliceResponse
    second: SliceResponse
    revenue_growth: float
    roi_change: float
    ad_cost_change: float
    top_performer: str
    insights: list[str]


class DetailedReportRequest(BaseModel):
    """Request body for POST /api/v1/reports/detailed."""

    rows: list[SalesRow]
    report_type: ReportType = ReportType.COMPREHENSIVE
    time_type: str | None = None
    time_value: str | None = None
    branch: str | None = None
    year: int = 2025
    language: str = "vi"
    currency: str = "VND"


class DetailedReportResponse(BaseModel):
    report_type: ReportType
    summary: dict[str, float]
    metrics: dict[str, float]
    insights: dict[str, Any]
    branches: dict[str, dict[str, float]]
    channels: dict[str, dict[str, float]]
    weekly: dict[int, float]
