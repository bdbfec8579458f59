"""
AI Proxy Router - chat dispatch and endpoint status.

POST hands the chat request to the DispatchOrchestrator and maps its result
onto HTTP: Ok and Degraded are both 200 (a degraded reply still renders as
an assistant message), Rejected carries its own status. GET reports the
endpoint registry, optionally after probing every endpoint.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from errors import error_response, ValidationError
from services.chat_request import ChatRequest
from services.dispatch_orchestrator import DispatchOrchestrator, DispatchRejected
from services.endpoint_registry import EndpointRegistry
from services.health_monitor import HealthMonitor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ai-proxy"])


def get_orchestrator(request: Request) -> DispatchOrchestrator:
    return request.app.state.orchestrator


def get_registry(request: Request) -> EndpointRegistry:
    return request.app.state.registry


def get_monitor(request: Request) -> HealthMonitor:
    return request.app.state.monitor


def proxy_status(registry: EndpointRegistry) -> Dict[str, Any]:
    """Status query payload shared by the proxy GET and /api/health."""
    summary = registry.status()
    return {
        "status": "healthy" if summary["availableEndpoints"] > 0 else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **summary,
    }


@router.post("/ai-proxy")
async def dispatch_chat(
    request: Request,
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator),
):
    """Dispatch one chat request to an AI backend."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        error = ValidationError("Request body is not valid JSON", parameter="body", expected="JSON object")
        return JSONResponse(status_code=400, content=error_response(error))

    if not isinstance(body, dict):
        error = ValidationError(
            "Request body must be a JSON object",
            parameter="body",
            expected="object",
            received=type(body).__name__,
        )
        return JSONResponse(status_code=400, content=error_response(error))

    try:
        chat_request = ChatRequest.model_validate(body)
    except PydanticValidationError as e:
        logger.warning(f"Rejected malformed chat request: {e.error_count()} error(s)")
        error = ValidationError("Invalid chat request", details=str(e)[:300], parameter="body")
        return JSONResponse(status_code=400, content=error_response(error))

    result = await orchestrator.handle(chat_request)

    if isinstance(result, DispatchRejected):
        return JSONResponse(status_code=result.status_code, content=result.to_payload())
    return JSONResponse(status_code=200, content=result.to_payload())


@router.get("/ai-proxy")
async def ai_proxy_status(
    probe: bool = Query(False, description="Probe every endpoint before reporting"),
    registry: EndpointRegistry = Depends(get_registry),
    monitor: HealthMonitor = Depends(get_monitor),
) -> Dict[str, Any]:
    """Report endpoint availability and latency."""
    if probe:
        await monitor.check_all()
    return proxy_status(registry)


@router.options("/ai-proxy")
async def ai_proxy_options() -> Dict[str, Any]:
    return {}
