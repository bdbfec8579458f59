"""
Belto AI Gateway
FastAPI backend that routes chat requests to a pool of AI inference endpoints
"""

from contextlib import asynccontextmanager
from typing import Optional
import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from routers import admin, ai_proxy, diagnostics
from logging_config import setup_logging
from config import RuntimeConfig, runtime_config
from services.context_enricher import ContextEnricher
from services.dispatch_orchestrator import DispatchOrchestrator
from services.endpoint_registry import EndpointRegistry
from services.endpoint_selector import EndpointSelector
from services.health_monitor import HealthMonitor
from services.llm_client import UpstreamClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events"""
    # Startup
    config: RuntimeConfig = app.state.config
    if not config.ai_api_key:
        logger.warning("AI_API_KEY is not set - chat requests will be rejected until it is configured")

    if config.health_monitor_enabled:
        app.state.monitor.start()
    else:
        logger.info("Health monitor disabled (HEALTH_MONITOR_ENABLED=false)")

    logger.info(f"Belto AI gateway ready ({len(app.state.registry)} endpoint(s))")
    yield

    # Shutdown
    await app.state.monitor.stop()

    try:
        await app.state.upstream.aclose()
    except Exception as e:
        logger.debug(f"Upstream client close error: {e}")

    logger.info("Belto AI gateway signing off")


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Referrer policy for privacy
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# Request body size limit middleware
MAX_BODY_SIZE_API = 5 * 1024 * 1024  # 5MB, attachments travel inline in the prompt


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests with bodies exceeding size limits."""

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            size = int(content_length)
            if size > MAX_BODY_SIZE_API:
                return JSONResponse(
                    status_code=413,
                    content={"error": f"Request body too large ({size} bytes, limit {MAX_BODY_SIZE_API} bytes)"},
                )
        return await call_next(request)


def create_app(
    config: Optional[RuntimeConfig] = None,
    upstream: Optional[UpstreamClient] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        config: Runtime config (defaults to the process-wide singleton)
        upstream: AI backend client (defaults to an OpenAI SDK client)
        transport: httpx transport for the context fetch and health probes
    """
    config = config or runtime_config
    setup_logging(config.log_level)

    registry = EndpointRegistry(config.ai_endpoints, max_consecutive_failures=config.max_consecutive_failures)
    upstream = upstream or UpstreamClient(config.ai_api_key)
    enricher = ContextEnricher.from_config(config, transport=transport)
    monitor = HealthMonitor.from_config(registry, config, transport=transport)
    orchestrator = DispatchOrchestrator(
        registry,
        upstream,
        enricher,
        config=config,
        selector=EndpointSelector(config.endpoint_retry_interval_s),
    )

    app = FastAPI(
        title="Belto AI Gateway",
        description="Routes chat requests to AI inference endpoints with failover",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.registry = registry
    app.state.upstream = upstream
    app.state.enricher = enricher
    app.state.monitor = monitor
    app.state.orchestrator = orchestrator

    app.add_middleware(SecurityHeadersMiddleware)

    # Request body size limit
    app.add_middleware(RequestSizeLimitMiddleware)

    # CORS - the chat UI calls the proxy from the browser
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )

    # API Routers (each already carries its /api prefix)
    app.include_router(ai_proxy.router)
    app.include_router(diagnostics.router)
    app.include_router(admin.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
