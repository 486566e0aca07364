"""Webhook API Routes - Retell call events and health checks."""

import logging
import time
from datetime import datetime, timezone
from typing import Dict, Any
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PayloadValidationError

from receptionist.core.config import get_settings
from receptionist.core.database import call_store
from receptionist.models import RetellWebhookPayload, EventResult
from receptionist.services.call_processor import call_processor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhooks"])
health_router = APIRouter(tags=["health"])

STARTED_AT = time.monotonic()

# Failure category -> HTTP status for POST /webhook/retell
ERROR_STATUS_CODES: Dict[str, int] = {
    "validation_error": 400,
    "not_found": 404,
    "store_error": 500,
}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ===========================================
# Retell Webhook
# ===========================================

@router.post(
    "/retell",
    response_model=EventResult,
    summary="Process Retell Call Event"
)
async def retell_webhook(request: Request):
    """
    Handle a Retell call lifecycle event (call_started, call_ended,
    call_analyzed, or a legacy status-only payload).

    Processing is synchronous so the sender learns whether to redeliver.
    """
    try:
        raw_data = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be JSON")

    if not isinstance(raw_data, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    # Handle nested body structure
    if "body" in raw_data and isinstance(raw_data["body"], dict):
        raw_data = raw_data["body"]

    try:
        payload = RetellWebhookPayload.from_webhook(raw_data)
    except PayloadValidationError as e:
        logger.warning(f"Invalid Retell webhook payload: {e.error_count()} error(s)")
        raise HTTPException(
            status_code=400,
            detail=[
                {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                for error in e.errors()
            ]
        )

    logger.info(
        f"Received Retell webhook: call={payload.call_id}, "
        f"event={payload.event_type.value if payload.event_type else None}, "
        f"status={payload.call_status.value if payload.call_status else None}"
    )

    result = await call_processor.process_webhook(payload)

    if not result.success:
        status_code = ERROR_STATUS_CODES.get(result.error_type, 500)
        return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))

    return result


@router.get("/health", summary="Webhook Health Check")
async def webhook_health() -> Dict[str, Any]:
    """Webhook endpoint health check."""
    return {
        "success": True,
        "message": "Webhook endpoints are healthy",
        "timestamp": _timestamp()
    }


# ===========================================
# Service Health
# ===========================================

@health_router.get("/health", summary="Health Check")
async def health_check() -> Dict[str, Any]:
    """Basic liveness check."""
    settings = get_settings()
    return {
        "success": True,
        "service": settings.SERVICE_NAME,
        "message": "AI Receptionist service is healthy",
        "timestamp": _timestamp(),
        "uptime": round(time.monotonic() - STARTED_AT, 2)
    }


@health_router.get("/health/detailed", summary="Detailed Health Check")
async def detailed_health_check():
    """Health check including record store connectivity."""
    settings = get_settings()
    configured = bool(settings.SUPABASE_URL and settings.SUPABASE_SERVICE_KEY)

    try:
        database_healthy = configured and await call_store.health_check()
    except ValueError as e:
        logger.error(f"Health check failed: {e}")
        database_healthy = False

    body = {
        "success": database_healthy,
        "message": "All health checks passed" if database_healthy else "Some health checks failed",
        "service": settings.SERVICE_NAME,
        "timestamp": _timestamp(),
        "uptime": round(time.monotonic() - STARTED_AT, 2),
        "checks": {
            "database": "healthy" if database_healthy else "unhealthy"
        },
        "database": {"configured": configured}
    }

    return JSONResponse(status_code=200 if database_healthy else 503, content=body)
