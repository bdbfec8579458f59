"""
Upstream Client - wraps the OpenAI SDK to talk to the AI backends.

Each configured endpoint is a full OpenAI-compatible chat completions URL
(e.g. "http://host:9999/v1/chat/completions"). The SDK wants the base URL,
so the trailing "/chat/completions" is stripped and one AsyncOpenAI client
is cached per endpoint.

SDK retries are disabled: retries, endpoint choice and timeouts belong to
the dispatch orchestrator. SDK exceptions are translated into UpstreamError
so the fallback taxonomy never has to know about the SDK.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import openai
from openai import AsyncOpenAI

from errors import UpstreamError

logger = logging.getLogger(__name__)

COMPLETIONS_SUFFIX = "/chat/completions"
EMPTY_RESPONSE_TEXT = "No response content"


def base_url_for(endpoint_url: str) -> str:
    """Strip the chat completions path from an endpoint URL."""
    url = endpoint_url.rstrip("/")
    if url.endswith(COMPLETIONS_SUFFIX):
        url = url[: -len(COMPLETIONS_SUFFIX)]
    return url


def _upstream_message(body: Any) -> Optional[str]:
    """Pull the backend-provided error message out of an error body."""
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict):
            message = error.get("message")
            return str(message) if message else None
        if isinstance(error, str):
            return error
    return None


@dataclass
class CompletionResult:
    """Normalized upstream response."""

    content: str
    usage: Dict[str, int] = field(default_factory=dict)


class UpstreamClient:
    """Issues chat completion calls against any configured endpoint."""

    def __init__(self, api_key: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            api_key: Bearer credential sent to every backend
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._api_key = api_key
        self._transport = transport
        self._clients: Dict[str, AsyncOpenAI] = {}

    def _client_for(self, endpoint_url: str) -> AsyncOpenAI:
        client = self._clients.get(endpoint_url)
        if client is None:
            http_client = httpx.AsyncClient(transport=self._transport) if self._transport else None
            client = AsyncOpenAI(
                base_url=base_url_for(endpoint_url),
                api_key=self._api_key or "not-configured",
                max_retries=0,
                http_client=http_client,
            )
            self._clients[endpoint_url] = client
        return client

    async def chat(
        self,
        endpoint_url: str,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> CompletionResult:
        """Call one endpoint's chat completions API.

        Raises:
            UpstreamError: connection, timeout, HTTP status or invalid response
        """
        client = self._client_for(endpoint_url)
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except openai.APITimeoutError as e:
            raise UpstreamError(
                f"Request timeout after {timeout:.0f}s",
                error_type="timeout",
                endpoint=endpoint_url,
            ) from e
        except openai.APIConnectionError as e:
            raise UpstreamError(
                f"Connection failed: {e}",
                error_type="connection",
                endpoint=endpoint_url,
            ) from e
        except openai.APIStatusError as e:
            raise UpstreamError(
                f"Upstream returned HTTP {e.status_code}",
                error_type="status",
                status_code=e.status_code,
                upstream_message=_upstream_message(e.body),
                endpoint=endpoint_url,
            ) from e
        except openai.APIError as e:
            raise UpstreamError(
                f"Invalid upstream response: {e}",
                error_type="invalid",
                endpoint=endpoint_url,
            ) from e

        choices = getattr(response, "choices", None)
        if not isinstance(choices, list):
            raise UpstreamError(
                "Invalid upstream response: missing choices",
                error_type="invalid",
                endpoint=endpoint_url,
            )

        content = ""
        if choices and choices[0].message:
            content = choices[0].message.content or ""

        usage: Dict[str, int] = {}
        if getattr(response, "usage", None) is not None:
            usage = {
                "total_tokens": response.usage.total_tokens or 0,
                "prompt_tokens": response.usage.prompt_tokens or 0,
                "completion_tokens": response.usage.completion_tokens or 0,
            }

        return CompletionResult(content=content or EMPTY_RESPONSE_TEXT, usage=usage)

    async def aclose(self) -> None:
        """Close every cached SDK client."""
        for url, client in list(self._clients.items()):
            try:
                await client.close()
            except Exception as e:
                logger.debug(f"Upstream client close error for {url}: {e}")
        self._clients.clear()
