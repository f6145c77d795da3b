"""Alert settings snapshot and its YAML loader.

The dashboard stores settings as camelCase JSON (``alertSettings``,
``enableROIAlerts``, ``severityLevels``...). These models accept either that
shape or snake_case, fill every missing key with a documented default, and
are frozen so a snapshot can be handed to the engine without copying.

Usage:
    from sales_sentinel.settings import load_settings
    snapshot = load_settings("config/alerts.yaml")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .models import Severity

logger = logging.getLogger("sentinel.settings")

_MODEL_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)


class SeverityLevels(BaseModel):
    """Which severity tiers are shown. Every tier defaults to visible."""

    model_config = _MODEL_CONFIG

    low: bool = True
    medium: bool = True
    high: bool = True
    critical: bool = True

    def is_visible(self, severity: Severity) -> bool:
        return getattr(self, severity.value)


class AlertSettings(BaseModel):
    """Thresholds and enable flags read by the alert engine."""

    model_config = _MODEL_CONFIG

    alerts_enabled: bool = True

    # ----- Thresholds -----
    revenue_threshold: float = Field(default=1_000_000, ge=0)
    roi_threshold: float = Field(default=5.0, ge=0)
    profit_threshold: float = Field(default=100_000, ge=0)
    growth_threshold: float = -10.0
    ad_cost_threshold: float = Field(
        default=30.0,
        ge=0,
        description="Ad cost as a percentage of revenue.",
    )

    # ----- Rule flags -----
    enable_revenue_alerts: bool = True
    enable_roi_alerts: bool = Field(default=True, alias="enableROIAlerts")
    enable_profit_alerts: bool = True
    enable_growth_alerts: bool = True
    enable_ad_cost_alerts: bool = True
    enable_branch_alerts: bool = True
    enable_variation_alerts: bool = True
    enable_performance_alerts: bool = True
    gate_range_variation: bool = Field(
        default=False,
        description=(
            "Apply enable_variation_alerts and severity visibility to the "
            "max/min revenue variation rule. Off keeps the dashboard's "
            "historical behavior of always reporting it."
        ),
    )

    # ----- Delivery -----
    email_notifications: bool = True
    push_notifications: bool = False
    in_app_notifications: bool = True

    severity_levels: SeverityLevels = Field(default_factory=SeverityLevels)

    @model_validator(mode="before")
    @classmethod
    def _none_severity_levels(cls, data: Any) -> Any:
        # Older saved settings carry "severityLevels": null
        if isinstance(data, dict):
            for key in ("severityLevels", "severity_levels"):
                if key in data and data[key] is None:
                    data = {k: v for k, v in data.items() if k != key}
        return data


class UserPreferences(BaseModel):
    """Display preferences used when rendering alert messages."""

    model_config = _MODEL_CONFIG

    currency: str = "VND"
    language: str = "vi"


class SettingsSnapshot(BaseModel):
    """Immutable settings passed to each evaluation call."""

    model_config = _MODEL_CONFIG

    alert_settings: AlertSettings = Field(default_factory=AlertSettings)
    user_preferences: UserPreferences = Field(default_factory=UserPreferences)


DEFAULT_SETTINGS = SettingsSnapshot()


def load_settings(path: str | Path | None) -> SettingsSnapshot:
    """Load a settings snapshot from a YAML file.

    Args:
        path: YAML file path. ``None`` or a missing file yields defaults.

    Raises:
        pydantic.ValidationError: If the file contents have the wrong shape.
    """
    if path is None:
        return DEFAULT_SETTINGS

    path = Path(path)
    if not path.exists():
        logger.warning("Settings file not found at %s, using defaults", path)
        return DEFAULT_SETTINGS

    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    snapshot = SettingsSnapshot.model_validate(raw)
    logger.info(
        "Loaded alert settings from %s (alerts_enabled=%s)",
        path,
        snapshot.alert_settings.alerts_enabled,
    )
    return snapshot


def dump_settings(snapshot: SettingsSnapshot) -> str:
    """Serialize a snapshot to YAML using snake_case keys."""
    return yaml.safe_dump(snapshot.model_dump(mode="json"), sort_keys=False)
