from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
def get_health(request: Request) -> dict[str, Any]:
    settings = request.app.state.settings
    started_at = request.app.state.started_at
    orchestrator = request.app.state.translation_orchestrator
    cascade = request.app.state.cascade
    pipeline = request.app.state.pipeline
    now = datetime.now(timezone.utc)
    uptime_seconds = max(0.0, (now - started_at).total_seconds())

    return {
        "status": "ok",
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment,
        "started_at": started_at.isoformat(),
        "uptime_seconds": round(uptime_seconds, 3),
        "checks": {
            "state_store_mode": settings.state_store_mode,
            "free_apis_enabled": settings.free_apis_enabled,
            "cascade_supported": cascade.is_supported(),
            "cascade_methods": cascade.supported_methods(),
            "microsoft_key_configured": settings.microsoft_key_configured,
            "google_key_configured": settings.google_key_configured,
            "papago_key_configured": settings.papago_key_configured,
            "pexels_key_configured": settings.pexels_key_configured,
            "available_providers": orchestrator.available_providers(),
            "pipeline_processing": pipeline.is_processing,
        },
    }
