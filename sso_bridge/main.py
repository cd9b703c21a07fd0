"""
SSO Bridge - Main Application Entry Point.

FastAPI application authenticating service tokens issued by the main
server and brokering its SSO code exchange.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sso_bridge import __version__
from sso_bridge.api.v1.router import api_router
from sso_bridge.config import get_settings
from sso_bridge.core.exceptions import AuthenticationError, BridgeAPIException
from sso_bridge.core.responses import create_error_response
from sso_bridge.dependencies import get_issuer_client, get_public_key_store
from sso_bridge.services.metrics import MetricsMiddleware

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME}")
    logger.info(f"Issuer: {settings.ISSUER_BASE_URL}")
    logger.info(f"Expected service name: {settings.SERVICE_NAME or 'not enforced'}")

    key_store = get_public_key_store()
    if key_store.is_static:
        logger.info("Using pre-provisioned public key")
    else:
        await key_store.preload()

    yield

    # Shutdown
    await get_issuer_client().aclose()
    logger.info(f"Shutting down {settings.PROJECT_NAME}")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
## SSO Bridge

Backend-to-backend authentication for services integrated with the main server.

### Features
- **Service tokens**: RS256 JWT validation against the issuer's public key
- **SSO**: one-time code exchange for service tokens
- **Identity**: stable user login resolution for downstream webhooks
    """,
    version=__version__,
    openapi_tags=[
        {"name": "auth", "description": "SSO handshake and authentication"},
        {"name": "health", "description": "Service health checks"},
    ],
    lifespan=lifespan,
)

# CORS middleware for cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(MetricsMiddleware)


@app.exception_handler(BridgeAPIException)
async def bridge_exception_handler(request: Request, exc: BridgeAPIException) -> JSONResponse:
    """
    Global exception handler for SSO bridge exceptions.
    Authentication failures always render the same generic body.
    """
    if not isinstance(exc, AuthenticationError):
        logger.warning(f"{request.method} {request.url.path} failed: {exc.kind} ({exc.status_code})")
    response = create_error_response(
        error=exc.error,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
    )
    if isinstance(exc, AuthenticationError):
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all exception handler for unexpected errors.
    Logs the full error but returns a sanitized response.
    """
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {type(exc).__name__}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
        },
    )


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/", include_in_schema=False)
async def root():
    """Service information."""
    return {
        "name": settings.PROJECT_NAME,
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
        "api": settings.API_V1_PREFIX,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sso_bridge.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
