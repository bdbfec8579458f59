"""
Diagnostics Router - service health and an end-to-end AI smoke test.
"""

import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from services.chat_request import DispatchRequest, GenerationSettings, Message
from services.dispatch_orchestrator import DispatchOk, DispatchOrchestrator, DispatchRejected
from services.endpoint_registry import EndpointRegistry

from .ai_proxy import get_orchestrator, get_registry, proxy_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["diagnostics"])

SMOKE_TEST_PROMPT = "Say hello"


@router.get("/health")
async def health(request: Request, registry: EndpointRegistry = Depends(get_registry)) -> Dict[str, Any]:
    """Aggregate health: AI proxy endpoint availability plus environment summary."""
    started = time.perf_counter()
    proxy = proxy_status(registry)
    monitor = request.app.state.monitor

    return {
        "status": proxy["status"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "responseTime": round((time.perf_counter() - started) * 1000, 2),
        "services": {
            "aiProxy": {
                "status": proxy["status"],
                "availableEndpoints": proxy["availableEndpoints"],
                "totalEndpoints": proxy["totalEndpoints"],
                "healthMonitor": "running" if monitor.running else "stopped",
                "details": proxy,
            },
        },
        "environment": {
            "environment": os.environ.get("ENVIRONMENT", "development"),
            "region": os.environ.get("REGION", "unknown"),
        },
    }


@router.get("/test-ai")
async def test_ai(orchestrator: DispatchOrchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    """Send a fixed prompt through the full dispatch path and report the outcome."""
    request = DispatchRequest(
        messages=[
            Message(role="system", content="You are a helpful assistant."),
            Message(role="user", content=SMOKE_TEST_PROMPT),
        ],
        settings=GenerationSettings(max_tokens=50),
    )

    result = await orchestrator.handle(request)

    if isinstance(result, DispatchRejected):
        status = result.status_code
    else:
        status = 200
    logger.info(f"AI smoke test finished: {type(result).__name__}")

    return {
        "success": isinstance(result, DispatchOk),
        "aiProxyStatus": status,
        "aiProxyResponse": result.to_payload(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
