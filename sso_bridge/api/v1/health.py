"""
Health and metrics endpoints.
No authentication required.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse

from sso_bridge.core.exceptions import KeyUnavailableError
from sso_bridge.dependencies import KeyStore
from sso_bridge.services.metrics import get_metrics_collector

router = APIRouter()


@router.get("/health")
async def health_check(key_store: KeyStore):
    """
    Liveness check. Never contacts the issuer.

    Returns:
        {"status": "ok", "key_source": "static"|"remote", "key_cached": bool}
    """
    return {
        "status": "ok",
        "key_source": "static" if key_store.is_static else "remote",
        "key_cached": key_store.is_ready,
    }


@router.get("/health/ready")
async def readiness_check(key_store: KeyStore):
    """
    Readiness check: the service can only authenticate once it has a key.

    Returns:
        200 {"status": "ready"} or 503 {"status": "not_ready", "issues": [...]}
    """
    try:
        await key_store.get()
    except KeyUnavailableError as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "issues": [f"Public key: {e.reason}"],
            },
        )
    return {"status": "ready"}


@router.get("/metrics")
async def metrics():
    """Request and authentication metrics as JSON."""
    return get_metrics_collector().get_metrics()


@router.get("/metrics/prometheus", response_class=PlainTextResponse)
async def metrics_prometheus():
    """
    Prometheus text exposition format endpoint.
    Compatible with Prometheus scraping.
    """
    return PlainTextResponse(
        content=get_metrics_collector().to_prometheus(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
