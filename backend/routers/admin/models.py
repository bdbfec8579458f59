"""
Pydantic models for admin API requests.
"""

from typing import List, Optional

from pydantic import BaseModel


class ConfigUpdate(BaseModel):
    """Configuration update request. Unset fields are left unchanged."""

    # Endpoints (take effect on restart)
    ai_endpoints: Optional[List[str]] = None
    internal_base_url: Optional[str] = None
    # Per-category timeouts
    timeout_base_s: Optional[float] = None
    timeout_file_summarization_s: Optional[float] = None
    timeout_large_content_s: Optional[float] = None
    large_content_threshold: Optional[int] = None
    # Endpoint health
    max_consecutive_failures: Optional[int] = None
    endpoint_retry_interval_s: Optional[float] = None
    health_readmit_interval_s: Optional[float] = None
    health_check_threshold_s: Optional[float] = None
    health_probe_timeout_s: Optional[float] = None
    # Dispatch loop
    dispatch_max_attempts: Optional[int] = None
    dispatch_backoff_s: Optional[float] = None
    request_deadline_s: Optional[float] = None
    # Context enrichment
    context_timeout_s: Optional[float] = None
    context_timeout_large_s: Optional[float] = None
    context_timeout_file_s: Optional[float] = None
    context_max_documents: Optional[int] = None
    context_max_chars: Optional[int] = None
    # Generation defaults
    default_model: Optional[str] = None
    default_temperature: Optional[float] = None
    default_max_tokens: Optional[int] = None
    default_system_prompt: Optional[str] = None
