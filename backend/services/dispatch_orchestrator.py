"""
Dispatch Orchestrator - top-level control flow of one chat request.

    classify -> build messages -> enrich (optional) -> dispatch with retries
             -> Ok | Degraded (fallback text) | Rejected (malformed request)

handle() never raises. Backend and network failures become a Degraded
result carrying a user-safe message; only a request with no usable messages
(400) or a missing upstream credential (500) is Rejected. The HTTP layer
decides the status code from the result type.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Union

from config import RuntimeConfig, get_config
from errors import (
    ErrorCode,
    RetryExhaustedError,
    chat_response,
    error_details,
    fallback_response,
    log_error,
)
from logging_config import log_dispatch, log_fallback, log_request_in
from services.chat_request import ChatRequest, DispatchRequest, Message
from services.context_enricher import ContextEnricher, context_timeout
from services.endpoint_registry import EndpointRegistry
from services.endpoint_selector import EndpointSelector
from services.fallback import UNAVAILABLE_TEXT, FallbackDecision, classify_failure
from services.llm_client import CompletionResult, UpstreamClient
from services.request_classifier import RequestClassification, classify
from utils.retry import retry_async

logger = logging.getLogger(__name__)

NO_VALID_MESSAGES = "No valid messages with content provided"
MISSING_API_KEY = "AI API key is not configured on the server"


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass
class DispatchOk:
    response: str
    token_usage: Dict[str, int]
    endpoint: str
    attempts: int

    def to_payload(self) -> dict:
        return chat_response(self.response, self.token_usage)


@dataclass
class DispatchDegraded:
    decision: FallbackDecision
    attempts: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def fallback_text(self) -> str:
        return self.decision.fallback_text

    def to_payload(self) -> dict:
        details = error_details(
            self.decision.message,
            self.decision.code,
            status=self.decision.upstream_status,
            timestamp=self.timestamp,
        )
        return fallback_response(self.decision.fallback_text, details)


@dataclass
class DispatchRejected:
    status_code: int
    error: str
    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED

    def to_payload(self) -> dict:
        return {"error": self.error}


DispatchResult = Union[DispatchOk, DispatchDegraded, DispatchRejected]


# =============================================================================
# MESSAGE ASSEMBLY
# =============================================================================


def merge_messages(request: DispatchRequest) -> List[Message]:
    """Merge history, bulk messages and the new user turn without duplicates.

    Bulk messages are only de-duplicated against history when history is
    present; the new user turn is skipped if an identical user message is
    already in the list.
    """
    messages = list(request.history)

    if request.messages:
        if not messages:
            messages = list(request.messages)
        else:
            for message in request.messages:
                if message not in messages:
                    messages.append(message)

    text = request.user_text
    if text:
        turn = Message(role="user", content=text)
        if turn not in messages:
            messages.append(turn)

    return messages


class DispatchOrchestrator:
    """Routes chat requests to the AI backends and always produces a result."""

    def __init__(
        self,
        registry: EndpointRegistry,
        client: UpstreamClient,
        enricher: ContextEnricher,
        config: Optional[RuntimeConfig] = None,
        selector: Optional[EndpointSelector] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.registry = registry
        self.client = client
        self.enricher = enricher
        self.config = config or get_config()
        self.selector = selector or EndpointSelector(self.config.endpoint_retry_interval_s)
        self._sleep = sleep

    async def handle(
        self,
        request: Union[ChatRequest, DispatchRequest],
        deadline_s: Optional[float] = None,
    ) -> DispatchResult:
        """Handle one chat request within an outer deadline. Never raises."""
        deadline = self.config.derived_deadline_s() if deadline_s is None else deadline_s
        progress = {"attempts": 0}

        try:
            return await asyncio.wait_for(self._handle(request, progress), timeout=deadline)
        except asyncio.TimeoutError:
            decision = FallbackDecision(
                code=ErrorCode.DISPATCH_DEADLINE_EXCEEDED,
                message=f"Request deadline of {deadline:.1f}s exceeded.",
                status=504,
                fallback_text=UNAVAILABLE_TEXT,
            )
            log_fallback(logger, decision.code.value, decision.message, progress["attempts"])
            return DispatchDegraded(decision=decision, attempts=progress["attempts"])
        except Exception as e:
            log_error(logger, e, context="Dispatch")
            decision = classify_failure(e)
            return DispatchDegraded(decision=decision, attempts=progress["attempts"])

    async def _handle(self, request: Union[ChatRequest, DispatchRequest], progress: dict) -> DispatchResult:
        normalized = request.normalize() if isinstance(request, ChatRequest) else request

        classification = classify(normalized, self.config)
        log_request_in(
            logger,
            classification.category.value,
            classification.timeout_s,
            history=len(normalized.history),
            messages=len(normalized.messages),
            lecture=normalized.lecture.lecture_id if normalized.lecture else None,
            reason=classification.reason,
        )

        if not self.config.ai_api_key:
            logger.error("AI API key is not configured")
            return DispatchRejected(status_code=500, error=MISSING_API_KEY, code=ErrorCode.INTERNAL_CONFIG_ERROR)

        conversation = [m for m in merge_messages(normalized) if m.content]
        if not any(m.role != "system" for m in conversation):
            logger.warning(f"[{ErrorCode.VALIDATION_NO_MESSAGES.value}] {NO_VALID_MESSAGES}")
            return DispatchRejected(status_code=400, error=NO_VALID_MESSAGES, code=ErrorCode.VALIDATION_NO_MESSAGES)

        system_prompt = normalized.settings.system_prompt or self.config.default_system_prompt
        if normalized.lecture is not None:
            context = await self.enricher.fetch_context(
                normalized.lecture.lecture_id,
                normalized.lecture.auth_token,
                timeout_s=context_timeout(classification.category, self.config),
            )
            system_prompt = self.enricher.build_system_prompt(system_prompt, context)

        messages = [Message(role="system", content=system_prompt)] + conversation
        logger.info(f"Final message count being sent to AI: {len(messages)}")

        return await self._dispatch(normalized, messages, classification, progress)

    async def _dispatch(
        self,
        request: DispatchRequest,
        messages: List[Message],
        classification: RequestClassification,
        progress: dict,
    ) -> DispatchResult:
        settings = request.settings
        model = settings.model or self.config.default_model
        temperature = settings.temperature if settings.temperature is not None else self.config.default_temperature
        max_tokens = settings.max_tokens or self.config.default_max_tokens
        wire_messages = [m.to_dict() for m in messages]

        max_attempts = max(1, min(self.config.dispatch_max_attempts, len(self.registry)))
        used: Dict[int, str] = {}

        async def attempt(number: int) -> CompletionResult:
            progress["attempts"] = number
            endpoint = self.selector.select(self.registry)
            used[number] = endpoint.url
            log_dispatch(logger, "start", endpoint=endpoint.url, attempt=number)

            started = time.perf_counter()
            try:
                result = await self.client.chat(
                    endpoint.url,
                    wire_messages,
                    model=model,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=classification.timeout_s,
                )
            except BaseException as e:
                # Cancellation by the per-attempt timeout lands here too
                elapsed_ms = (time.perf_counter() - started) * 1000
                self.registry.record_outcome(endpoint.url, False, 0)
                log_dispatch(
                    logger, "fail", endpoint=endpoint.url, attempt=number,
                    duration_ms=elapsed_ms, error=str(e) or type(e).__name__,
                )
                raise

            elapsed_ms = (time.perf_counter() - started) * 1000
            self.registry.record_outcome(endpoint.url, True, elapsed_ms)
            log_dispatch(logger, "end", endpoint=endpoint.url, attempt=number, duration_ms=elapsed_ms)
            return result

        try:
            result = await retry_async(
                attempt,
                max_attempts=max_attempts,
                attempt_timeout=classification.timeout_s,
                backoff=self.config.dispatch_backoff_s,
                sleep=self._sleep,
            )
        except RetryExhaustedError as e:
            decision = classify_failure(e)
            log_fallback(logger, decision.code.value, decision.message, e.attempts)
            return DispatchDegraded(decision=decision, attempts=e.attempts)

        number = progress["attempts"]
        return DispatchOk(
            response=result.content,
            token_usage=result.usage,
            endpoint=used.get(number, ""),
            attempts=number,
        )
