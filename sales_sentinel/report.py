"""Alert lifecycle helpers and the plain-text alert report.

Alerts are frozen, so acknowledging or dismissing one returns a new list
with an updated copy. Nothing here persists state; callers store the
returned list wherever they keep alert history.
"""

from __future__ import annotations

from collections.abc import Sequence

from .models import Alert, Severity


def _set_flag(alerts: Sequence[Alert], alert_id: str, field: str) -> list[Alert]:
    return [
        alert.model_copy(update={field: True}) if alert.id == alert_id else alert
        for alert in alerts
    ]


def acknowledge(alerts: Sequence[Alert], alert_id: str) -> list[Alert]:
    """Mark the alert with ``alert_id`` as seen."""
    return _set_flag(alerts, alert_id, "acknowledged")


def dismiss(alerts: Sequence[Alert], alert_id: str) -> list[Alert]:
    """Mark the alert with ``alert_id`` as handled."""
    return _set_flag(alerts, alert_id, "dismissed")


def active_alerts(alerts: Sequence[Alert]) -> list[Alert]:
    return [a for a in alerts if a.is_active]


def count_by_severity(alerts: Sequence[Alert]) -> dict[str, int]:
    """Counts per tier, highest first. Every tier is present."""
    counts = {s.value: 0 for s in sorted(Severity, key=lambda s: -s.rank)}
    for alert in alerts:
        counts[alert.severity.value] += 1
    return counts


_REPORT_TEXT = {
    "vi": {
        "empty": "\u2705 Không có cảnh báo nào",
        "header": "\U0001f4ca Báo cáo cảnh báo ({count} cảnh báo):",
    },
    "en": {
        "empty": "\u2705 No alerts",
        "header": "\U0001f4ca Alert report ({count} alerts):",
    },
}


def generate_alert_report(alerts: Sequence[Alert], language: str = "vi") -> str:
    """Render a short text report: per-tier counts then one line per alert."""
    text = _REPORT_TEXT.get(language, _REPORT_TEXT["en"])
    if not alerts:
        return text["empty"]

    counts = count_by_severity(alerts)
    lines = [text["header"].format(count=len(alerts))]
    for severity in sorted(Severity, key=lambda s: -s.rank):
        lines.append(
            f"{severity.icon} {severity.value.capitalize()}: {counts[severity.value]}"
        )
    lines.append("")
    lines.extend(f"• {alert.message}" for alert in alerts)
    return "\n".join(lines)
