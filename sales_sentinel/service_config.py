"""Service configuration.

Loads from environment variables (prefix ``SALES_SENTINEL_``) and an
optional .env file.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class ServiceSettings(BaseSettings):
    """Configuration for the API server and notification sinks."""

    # ----- Server -----
    host: str = Field(default="0.0.0.0", description="Bind host.")
    port: int = Field(default=8002, description="Bind port.")
    dev_mode: bool = Field(
        default=False,
        description="Dev mode: CORS wildcard and error details in responses.",
    )

    # ----- Alert settings -----
    settings_path: str | None = Field(
        default=None,
        description="YAML settings snapshot used when a request omits settings.",
    )

    # ----- Email (Resend) -----
    resend_api_key: str = Field(default="", description="Resend API key.")
    email_from: str = Field(
        default="Sales Sentinel <alerts@example.com>",
        description="Sender address for alert emails.",
    )
    email_to: list[str] = Field(
        default_factory=list,
        description="Recipients for alert emails.",
    )

    # ----- Push -----
    push_webhook_url: str = Field(
        default="",
        description="Webhook that receives push notification payloads.",
    )

    http_timeout_seconds: float = Field(default=30.0, gt=0)

    model_config = {
        "env_prefix": "SALES_SENTINEL_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> ServiceSettings:
    """Get cached settings singleton."""
    return ServiceSettings()
