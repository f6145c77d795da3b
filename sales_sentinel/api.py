"""Sales Sentinel HTTP API.

Endpoints:
    GET  /health                     health check
    GET  /api/v1/settings/defaults   default settings snapshot
    POST /api/v1/alerts/evaluate     evaluate records, optionally notify
    POST /api/v1/alerts/report       text report for a list of alerts
    POST /api/v1/reports/compare     compare two periods, branches or channels
    POST /api/v1/reports/detailed    detailed report with recommendations and risks
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .aggregation import frame_from_rows
from .api_models import (
    CompareRequest,
    CompareResponse,
    DetailedReportRequest,
    DetailedReportResponse,
    DispatchSummary,
    ErrorResponse,
    EvaluateRequest,
    EvaluateResponse,
    HealthResponse,
    ReportRequest,
    ReportResponse,
)
from .comparison import compare_rows
from .engine import AlertEngine
from .insights import build_detailed_report
from .notifications import dispatch_alerts
from .report import active_alerts, count_by_severity, generate_alert_report
from .service_config import ServiceSettings, get_settings
from .settings import SettingsSnapshot, load_settings

logger = logging.getLogger("sentinel.api")


def create_app(service: ServiceSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if service is None:
        service = get_settings()

    app = FastAPI(
        title="Sales Sentinel",
        version=__version__,
        description="Threshold and variation alerts for branch sales.",
    )

    origins = ["*"] if service.dev_mode else ["http://localhost:3000"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    default_snapshot = load_settings(service.settings_path)
    engine = AlertEngine()

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
                detail=str(exc) if service.dev_mode else None,
            ).model_dump(),
        )

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        return HealthResponse(version=__version__, dev_mode=service.dev_mode)

    @app.get("/api/v1/settings/defaults", response_model=SettingsSnapshot)
    async def get_default_settings() -> SettingsSnapshot:
        """Settings used when an evaluate request carries none."""
        return default_snapshot

    @app.post("/api/v1/alerts/evaluate", response_model=EvaluateResponse)
    async def evaluate_alerts(body: EvaluateRequest) -> EvaluateResponse:
        snapshot = body.settings or default_snapshot
        alerts = engine.evaluate(body.records, snapshot)

        dispatch = None
        if body.notify and alerts:
            result = await dispatch_alerts(alerts, snapshot.alert_settings, service)
            dispatch = DispatchSummary(**result.to_dict())

        return EvaluateResponse(
            alerts=alerts,
            alert_count=len(alerts),
            counts=count_by_severity(alerts),
            report=generate_alert_report(
                alerts, snapshot.user_preferences.language
            ),
            dispatch=dispatch,
        )

    @app.post("/api/v1/alerts/report", response_model=ReportResponse)
    async def alert_report(body: ReportRequest) -> ReportResponse:
        active = active_alerts(body.alerts)
        return ReportResponse(
            report=generate_alert_report(active, body.language),
            counts=count_by_severity(active),
            active_count=len(active),
        )

    @app.post("/api/v1/reports/compare", response_model=CompareResponse)
    async def compare_slices(body: CompareRequest) -> dict:
        frame = frame_from_rows(row.model_dump() for row in body.rows)
        result = compare_rows(
            frame,
            body.kind,
            body.first,
            body.second,
            first_time_type=body.first_time_type,
            second_time_type=body.second_time_type,
            quarter=body.quarter,
            year=body.year,
            language=body.language,
        )
        return result.to_dict()

    @app.post("/api/v1/reports/detailed", response_model=DetailedReportResponse)
    async def detailed_report(body: DetailedReportRequest) -> dict:
        frame = frame_from_rows(row.model_dump() for row in body.rows)
        report = build_detailed_report(
            frame,
            body.report_type,
            time_type=body.time_type,
            time_value=body.time_value,
            branch=body.branch,
            year=body.year,
            language=body.language,
            currency=body.currency,
        )
        return report.to_dict()

    return app
