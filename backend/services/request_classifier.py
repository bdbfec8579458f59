"""
Request Classifier - assigns a timeout budget to each chat request.

Upstream generation latency grows with context size and with the extra
round-trip needed to fetch lecture context, so each request shape gets its
own per-attempt timeout. First match wins:

1. Attachments (explicit list or legacy marker text) -> file_summarization
2. Lecture reference (lecture id + auth token)       -> rag_enhanced
3. More than the large-content threshold in text     -> large_content
4. Anything else                                     -> regular

Pure function: no I/O, never fails.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config import RuntimeConfig, get_config
from services.chat_request import DispatchRequest

logger = logging.getLogger(__name__)

# Legacy clients inline attachment text into the prompt behind these markers
ATTACHMENT_MARKERS = (
    "Attached document content:",
    "document content to analyze:",
)


class RequestCategory(str, Enum):
    REGULAR = "regular"
    FILE_SUMMARIZATION = "file_summarization"
    RAG_ENHANCED = "rag_enhanced"
    LARGE_CONTENT = "large_content"


@dataclass(frozen=True)
class RequestClassification:
    category: RequestCategory
    timeout_s: float
    reason: str

    @property
    def timeout_ms(self) -> int:
        return int(self.timeout_s * 1000)


def has_attachments(request: DispatchRequest) -> bool:
    if request.attachments:
        return True
    for text in (request.prompt, request.message):
        if text and any(marker in text for marker in ATTACHMENT_MARKERS):
            return True
    return False


def classify(request: DispatchRequest, config: Optional[RuntimeConfig] = None) -> RequestClassification:
    """Classify a request and pick its per-attempt timeout."""
    config = config or get_config()

    if has_attachments(request):
        return RequestClassification(
            category=RequestCategory.FILE_SUMMARIZATION,
            timeout_s=config.timeout_file_summarization_s,
            reason="Request contains file attachments for summarization",
        )

    if request.lecture is not None:
        return RequestClassification(
            category=RequestCategory.RAG_ENHANCED,
            timeout_s=config.timeout_large_content_s,
            reason="Request includes RAG context from lecture materials",
        )

    total = request.total_chars()
    if total > config.large_content_threshold:
        return RequestClassification(
            category=RequestCategory.LARGE_CONTENT,
            timeout_s=config.timeout_large_content_s,
            reason=f"Request has large content ({total} chars)",
        )

    return RequestClassification(
        category=RequestCategory.REGULAR,
        timeout_s=config.timeout_base_s,
        reason="Standard AI request",
    )
