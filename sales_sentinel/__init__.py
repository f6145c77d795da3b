"""Sales Sentinel: threshold and variation alerts for branch sales.

Usage:
    from sales_sentinel import SalesRecord, SettingsSnapshot, evaluate

    records = [SalesRecord(branch="Hà Nội", revenue=600_000, roi=8.0)]
    for alert in evaluate(records, SettingsSnapshot()):
        print(alert.severity.value, alert.message)
"""

__version__ = "0.4.0"

from .comparison import Comparison, ComparisonKind, compare, compare_rows
from .engine import AlertEngine, evaluate
from .insights import DetailedReport, ReportType, build_detailed_report
from .models import Alert, AlertType, Finding, RuleId, SalesRecord, Severity
from .report import (
    acknowledge,
    active_alerts,
    count_by_severity,
    dismiss,
    generate_alert_report,
)
from .settings import (
    AlertSettings,
    SettingsSnapshot,
    SeverityLevels,
    UserPreferences,
    load_settings,
)

__all__ = [
    "Alert",
    "AlertEngine",
    "AlertSettings",
    "AlertType",
    "Comparison",
    "ComparisonKind",
    "DetailedReport",
    "Finding",
    "ReportType",
    "RuleId",
    "SalesRecord",
    "SettingsSnapshot",
    "Severity",
    "SeverityLevels",
    "UserPreferences",
    "acknowledge",
    "active_alerts",
    "build_detailed_report",
    "compare",
    "compare_rows",
    "count_by_severity",
    "dismiss",
    "evaluate",
    "generate_alert_report",
    "load_settings",
]
