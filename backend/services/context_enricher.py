"""
Context Enricher - folds lecture material excerpts into the system prompt.

Fetches previously uploaded material for a lecture from the application's
chat-context endpoint, within its own sub-budget that is shorter than the
dispatch timeout. Missing context is never an error: any failure (non-2xx,
timeout, malformed body, no success flag) yields None and the request goes
ahead without it.
"""

import asyncio
import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from config import RuntimeConfig, get_config
from errors import ContextFetchError, handle_async_errors
from services.request_classifier import RequestCategory

logger = logging.getLogger(__name__)

CONTEXT_PATH = "/api/chat-context"
TRUNCATION_MARKER = "...[truncated]"


class LectureDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    content: str = ""


class LectureContext(BaseModel):
    """Body returned by the chat-context endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    success: bool = False
    lecture_id: str = Field(default="", alias="lectureId")
    lecture_title: str = Field(default="", alias="lectureTitle")
    attachments: List[LectureDocument] = Field(default_factory=list)


class ContextEnricher:
    """Fetches lecture context and builds the enriched system prompt."""

    def __init__(
        self,
        base_url: str,
        max_documents: int = 3,
        max_chars: int = 2000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Base URL of the application serving /api/chat-context
            max_documents: Documents folded into the prompt at most
            max_chars: Characters kept per document before truncation
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.max_documents = max_documents
        self.max_chars = max_chars
        self._transport = transport

    @classmethod
    def from_config(cls, config: RuntimeConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> "ContextEnricher":
        return cls(
            base_url=config.internal_base_url,
            max_documents=config.context_max_documents,
            max_chars=config.context_max_chars,
            transport=transport,
        )

    @handle_async_errors("context_fetch")
    async def fetch_context(self, lecture_id: str, auth_token: str, timeout_s: float = 5.0) -> Optional[LectureContext]:
        """Fetch lecture context, or None when it is unavailable for any reason."""
        if not lecture_id or not auth_token:
            return None

        logger.info(f"Fetching RAG context with {timeout_s:.1f}s timeout for lecture: {lecture_id}")

        async with httpx.AsyncClient(timeout=timeout_s, transport=self._transport) as client:
            try:
                response = await asyncio.wait_for(
                    client.get(
                        f"{self.base_url}{CONTEXT_PATH}",
                        params={"lectureId": lecture_id},
                        headers={
                            "Authorization": f"Bearer {auth_token}",
                            "Content-Type": "application/json",
                        },
                    ),
                    timeout=timeout_s,
                )
            except (asyncio.TimeoutError, httpx.TimeoutException) as e:
                raise ContextFetchError(
                    f"Context fetch timed out after {timeout_s:.1f}s - continuing without context",
                    lecture_id=lecture_id,
                ) from e
            except httpx.HTTPError as e:
                raise ContextFetchError(f"Context fetch failed: {e}", lecture_id=lecture_id) from e

        if not response.is_success:
            raise ContextFetchError(
                f"Context endpoint returned {response.status_code}",
                lecture_id=lecture_id,
                status_code=response.status_code,
            )

        try:
            context = LectureContext.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ContextFetchError(
                "Context endpoint returned a malformed body",
                details=str(e)[:200],
                lecture_id=lecture_id,
                invalid_payload=True,
            ) from e

        if not context.success:
            raise ContextFetchError(
                "Context payload missing success flag",
                lecture_id=lecture_id,
                invalid_payload=True,
            )

        logger.info(f"RAG context fetched: {context.lecture_title}, {len(context.attachments)} attachments")
        return context

    def build_system_prompt(self, base_prompt: str, context: Optional[LectureContext]) -> str:
        """Append the course-materials block to the base system prompt.

        At most max_documents documents, each cut to max_chars characters
        with an explicit truncation marker.
        """
        if context is None or not context.attachments or self.max_documents <= 0:
            return base_prompt

        blocks = []
        for document in context.attachments[: self.max_documents]:
            content = document.content
            if len(content) > self.max_chars:
                content = content[: self.max_chars] + TRUNCATION_MARKER
            blocks.append(f"Document: {document.name}\nContent: {content}")

        documents = "\n\n".join(blocks)
        return (
            f"{base_prompt}\n\n"
            f'You have access to the following course materials from "{context.lecture_title}" '
            f"(Lecture ID: {context.lecture_id}):\n\n"
            f"{documents}\n\n"
            "When answering questions, prioritize information from these course materials when relevant. "
            "If your response includes information from these materials, briefly mention which document "
            "you're referencing."
        )


def context_timeout(category: RequestCategory, config: Optional[RuntimeConfig] = None) -> float:
    """Sub-budget for the context fetch, scaled by request category."""
    config = config or get_config()
    if category == RequestCategory.FILE_SUMMARIZATION:
        return config.context_timeout_file_s
    if category == RequestCategory.LARGE_CONTENT:
        return config.context_timeout_large_s
    return config.context_timeout_s
