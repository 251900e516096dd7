"""
============================================================================
Gift Card Relay v1.0.0
FastAPI Application Entry Point
============================================================================

Input Constraints: Internal callers over HTTP, JSON bodies
Side Effects: One outbound Tillo call per valid issuance request

ENDPOINTS:
- POST /api/issue-gift-card: signed relay to Tillo
- GET  /health: process status, uptime, memory
- GET  /metrics: Prometheus exposition

STARTUP:
- Missing TILLO_API_KEY / TILLO_SECRET_KEY / TILLO_API_URL aborts startup
  (RELAY-CFG-001); it is never a per-request failure.

============================================================================
"""

import logging
import math
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import httpx
import psutil
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from relay import __version__
from relay.api.issuance import router as issuance_router
from relay.api.rate_limiter import ClientRateLimiter, extract_client_ip
from relay.config import RelayConfig
from relay.logic.issuance_pipeline import IssuancePipeline
from relay.observability.metrics import record_rate_limited
from relay.provider.error_normalizer import generate_request_id
from relay.provider.hmac_signer import TilloSigner
from relay.provider.tillo_client import TilloClient

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Load balancer probes and scrapes are never rate limited
RATE_LIMIT_EXEMPT_PATHS = ("/health", "/metrics")


# ============================================================================
# LOGGING
# ============================================================================

def configure_logging(config: RelayConfig) -> None:
    """
    Configure root logging.

    When LOG_DIR is set, logs go to error.log (ERROR and above) and
    combined.log (everything). Console output is on except in production
    with LOG_DIR set, so there is always at least one handler.
    """
    handlers: List[logging.Handler] = []
    if not (config.is_production and config.log_dir):
        handlers.append(logging.StreamHandler())

    if config.log_dir:
        os.makedirs(config.log_dir, exist_ok=True)
        error_handler = logging.FileHandler(os.path.join(config.log_dir, "error.log"))
        error_handler.setLevel(logging.ERROR)
        handlers.append(error_handler)
        handlers.append(logging.FileHandler(os.path.join(config.log_dir, "combined.log")))

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )


# ============================================================================
# APPLICATION FACTORY
# ============================================================================

def create_app(
    config: Optional[RelayConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Build the relay application.

    Args:
        config: Validated configuration; loaded from the environment at
            startup when omitted
        transport: Optional httpx transport for the provider client (tests)

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup:
            - Load and validate configuration (fatal on missing credentials)
            - Build signer, provider client, pipeline and rate limiter
        """
        if config is None:
            relay_config = RelayConfig.from_environment(validate=True)
        else:
            relay_config = config
            relay_config.validate()

        signer = TilloSigner(api_key=relay_config.api_key, secret=relay_config.secret_key)
        client = TilloClient.from_config(relay_config, transport=transport)

        app.state.config = relay_config
        app.state.pipeline = IssuancePipeline(signer, client)
        app.state.rate_limiter = (
            ClientRateLimiter(
                max_requests=relay_config.rate_limit_max_requests,
                window_seconds=relay_config.rate_limit_window_seconds,
            )
            if relay_config.rate_limit_enabled else None
        )

        logger.info(
            f"[RELAY] Gift card relay ready | version={__version__} | "
            f"environment={relay_config.environment} | "
            f"api_key={signer.get_redacted_key()} | "
            f"rate_limit={'on' if relay_config.rate_limit_enabled else 'off'}"
        )

        yield

        logger.info("[RELAY] Gift card relay shutting down")

    app = FastAPI(
        title="Gift Card Relay",
        description=(
            "Signs and relays digital gift card issue requests to Tillo, "
            "normalizing provider errors into a stable local taxonomy."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # ========================================================================
    # MIDDLEWARE
    # ========================================================================

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        limiter = getattr(request.app.state, "rate_limiter", None)
        if limiter is not None and request.url.path not in RATE_LIMIT_EXEMPT_PATHS:
            client_ip = extract_client_ip(request)
            request_id = generate_request_id()
            if not limiter.allow(client_ip, correlation_id=request_id):
                record_rate_limited()
                return JSONResponse(
                    status_code=429,
                    content={"error": "Too many requests", "requestId": request_id},
                    headers={"Retry-After": str(math.ceil(limiter.retry_after(client_ip)))},
                )
        return await call_next(request)

    # ========================================================================
    # EXCEPTION HANDLERS
    # ========================================================================

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Unhandled errors become an opaque 500 with a correlation id."""
        request_id = generate_request_id()
        logger.error(
            f"[RELAY-SYS-500] Unhandled exception | "
            f"path={request.url.path} | error={exc} | request_id={request_id}",
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "requestId": request_id,
            }
        )

    # ========================================================================
    # ROUTERS
    # ========================================================================

    app.include_router(issuance_router, prefix="/api", tags=["Issuance"])

    # ========================================================================
    # SYSTEM ENDPOINTS
    # ========================================================================

    @app.get(
        "/health",
        summary="Health Check",
        description="Process status, uptime and memory usage.",
        tags=["System"]
    )
    async def health_check():
        process = psutil.Process()
        memory_info = process.memory_info()

        health = {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.time() - process.create_time(), 3),
            "memory": {
                "rss": memory_info.rss,
                "vms": memory_info.vms,
            },
        }
        logger.debug(f"[RELAY] Health check performed | uptime={health['uptime']}s")
        return health

    @app.get(
        "/metrics",
        summary="Prometheus Metrics",
        tags=["Observability"]
    )
    async def metrics():
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    return app


# Served by `uvicorn relay.main:app`; configuration is read at startup
app = create_app()


# ============================================================================
# MAIN
# ============================================================================

def main() -> None:
    """Load configuration, configure logging and serve."""
    config = RelayConfig.from_environment(validate=False)
    configure_logging(config)
    config.validate()

    logger.info(f"[RELAY] Server starting | port={config.port}")
    uvicorn.run(create_app(config), host="0.0.0.0", port=config.port, log_level="info")


if __name__ == "__main__":
    main()
