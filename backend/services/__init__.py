"""
Belto Services - AI request dispatch.

- endpoint_registry: Live health/latency state of the AI backends
- endpoint_selector: Picks the endpoint for each dispatch attempt
- health_monitor: Background probing and probation re-admission
- request_classifier: Category and timeout budget per request
- chat_request: Inbound request models and normalization
- context_enricher: Lecture material folded into the system prompt
- llm_client: OpenAI SDK wrapper for the backends
- fallback: Terminal failure -> user-safe reply
- dispatch_orchestrator: Top-level control flow
"""

from .dispatch_orchestrator import (
    DispatchDegraded,
    DispatchOk,
    DispatchOrchestrator,
    DispatchRejected,
)
from .endpoint_registry import Endpoint, EndpointRegistry

__all__ = [
    "DispatchDegraded",
    "DispatchOk",
    "DispatchOrchestrator",
    "DispatchRejected",
    "Endpoint",
    "EndpointRegistry",
]
