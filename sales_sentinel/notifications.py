"""Alert delivery over email (Resend) and push webhooks.

These are sinks the caller invokes after evaluation; the engine never
sends anything itself. Each sender returns True on delivery and False when
the channel is disabled, unconfigured, or the request failed. Failures are
logged, not raised, so one bad channel never blocks the others.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Sequence
from dataclasses import dataclass

import httpx

from .models import Alert, Severity
from .service_config import ServiceSettings
from .settings import AlertSettings

logger = logging.getLogger("sentinel.notify")

RESEND_API_URL = "https://api.resend.com/emails"

_SEVERITY_COLORS = {
    Severity.CRITICAL: ("#fef2f2", "#dc2626"),
    Severity.HIGH: ("#fff7ed", "#ea580c"),
    Severity.MEDIUM: ("#fefce8", "#ca8a04"),
    Severity.LOW: ("#eff6ff", "#2563eb"),
}


def render_alert_email_html(alert: Alert) -> str:
    """Single-alert HTML body with a severity-colored banner."""
    bg, fg = _SEVERITY_COLORS[alert.severity]
    return (
        '<div style="font-family:Arial,sans-serif;max-width:600px">'
        f'<div style="background:{bg};color:{fg};padding:12px 16px;'
        'border-radius:8px;font-weight:bold">'
        f"{alert.severity.icon} {alert.severity.value.upper()} · {alert.type.value}"
        "</div>"
        f'<p style="font-size:14px;line-height:1.5">{html.escape(alert.message)}</p>'
        f'<p style="font-size:12px;color:#6b7280">'
        f"{alert.timestamp.strftime('%d/%m/%Y %H:%M')}</p>"
        "</div>"
    )


async def send_email_alert(
    alert: Alert,
    settings: AlertSettings,
    service: ServiceSettings,
) -> bool:
    """Send one alert by email via the Resend API."""
    if not settings.email_notifications:
        return False
    if not service.resend_api_key or not service.email_to:
        logger.debug("Email not configured, skipping alert %s", alert.id)
        return False

    payload = {
        "from": service.email_from,
        "to": service.email_to,
        "subject": f"[{alert.severity.value.upper()}] Alert: {alert.type.value}",
        "html": render_alert_email_html(alert),
        "text": alert.message,
    }

    try:
        async with httpx.AsyncClient(timeout=service.http_timeout_seconds) as client:
            resp = await client.post(
                RESEND_API_URL,
                json=payload,
                headers={
                    "Authorization": f"Bearer {service.resend_api_key}",
                    "Content-Type": "application/json",
                },
            )
            resp.raise_for_status()
            result = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Failed to email alert %s: %s", alert.id, e)
        return False

    logger.info("Alert %s emailed, id=%s", alert.id, result.get("id"))
    return True


async def send_push_notification(
    alert: Alert,
    settings: AlertSettings,
    service: ServiceSettings,
) -> bool:
    """POST one alert to the configured push webhook."""
    if not settings.push_notifications:
        return False
    if not service.push_webhook_url:
        logger.debug("Push webhook not configured, skipping alert %s", alert.id)
        return False

    payload = {
        "title": f"Alert {alert.severity.value.upper()}",
        "body": alert.message,
        "icon": alert.severity.icon,
        "severity": alert.severity.value,
        "timestamp": alert.timestamp.isoformat(),
    }

    try:
        async with httpx.AsyncClient(timeout=service.http_timeout_seconds) as client:
            resp = await client.post(service.push_webhook_url, json=payload)
            resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("Failed to push alert %s: %s", alert.id, e)
        return False

    logger.info("Alert %s pushed", alert.id)
    return True


@dataclass
class DispatchResult:
    emails_sent: int = 0
    pushes_sent: int = 0
    failures: int = 0

    def to_dict(self) -> dict:
        return {
            "emails_sent": self.emails_sent,
            "pushes_sent": self.pushes_sent,
            "failures": self.failures,
        }


async def dispatch_alerts(
    alerts: Sequence[Alert],
    settings: AlertSettings,
    service: ServiceSettings,
) -> DispatchResult:
    """Deliver every active alert over each enabled channel."""
    result = DispatchResult()
    email_ready = settings.email_notifications and bool(
        service.resend_api_key and service.email_to
    )
    push_ready = settings.push_notifications and bool(service.push_webhook_url)

    for alert in alerts:
        if not alert.is_active:
            continue
        if email_ready:
            if await send_email_alert(alert, settings, service):
                result.emails_sent += 1
            else:
                result.failures += 1
        if push_ready:
            if await send_push_notification(alert, settings, service):
                result.pushes_sent += 1
            else:
                result.failures += 1

    logger.info(
        "Dispatched %d alerts: %d emails, %d pushes, %d failures",
        len(alerts),
        result.emails_sent,
        result.pushes_sent,
        result.failures,
    )
    return result
