"""
Chat request models and normalization.

The proxy accepts several legacy request shapes for the same concepts:
``preferences`` or ``aiConfig``, ``prompt`` or ``message``, messages with
``content`` or with a legacy ``message`` field, and list fields that older
clients sometimes send as something else. ChatRequest accepts all of them;
``normalize()`` maps them onto one canonical DispatchRequest before any
classification runs.
"""

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _text_or_none(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _number_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return value
    return None


class _LenientModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ChatMessage(_LenientModel):
    """One conversation turn. ``message`` is the legacy name for ``content``."""

    role: str = "user"
    content: Optional[str] = None
    message: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def _role_or_user(cls, value: Any) -> str:
        return _text_or_none(value) or "user"

    @field_validator("content", "message", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Optional[str]:
        return _text_or_none(value)

    def text(self) -> str:
        """Content, backfilled from the legacy message field."""
        return self.content or self.message or ""


class Attachment(_LenientModel):
    name: str = ""
    content: str = ""

    @field_validator("name", "content", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return _text_or_none(value) or ""


class SystemPrompt(_LenientModel):
    content: str = ""

    @field_validator("content", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return _text_or_none(value) or ""


class AIPreferences(_LenientModel):
    """Per-lecture AI preferences as stored by the application."""

    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = Field(default=None, alias="maxTokens")
    system_prompts: List[SystemPrompt] = Field(default_factory=list, alias="systemPrompts")

    @field_validator("model", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Optional[str]:
        return _text_or_none(value)

    @field_validator("temperature", mode="before")
    @classmethod
    def _float_or_none(cls, value: Any) -> Optional[float]:
        # Unusable values fall back to the configured defaults
        return _number_or_none(value)

    @field_validator("max_tokens", mode="before")
    @classmethod
    def _int_or_none(cls, value: Any) -> Optional[int]:
        number = _number_or_none(value)
        return None if number is None else int(number)

    @field_validator("system_prompts", mode="before")
    @classmethod
    def _list_or_empty(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    def system_prompt(self) -> Optional[str]:
        if self.system_prompts and self.system_prompts[0].content:
            return self.system_prompts[0].content
        return None


class ChatRequest(_LenientModel):
    """Inbound dispatch request body. Every field is optional."""

    prompt: Optional[str] = None
    message: Optional[str] = None
    messages: List[ChatMessage] = Field(default_factory=list)
    history: List[ChatMessage] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)
    lecture_id: Optional[str] = Field(default=None, alias="lectureId")
    auth_token: Optional[str] = Field(default=None, alias="authToken")
    preferences: Optional[AIPreferences] = None
    ai_config: Optional[AIPreferences] = Field(default=None, alias="aiConfig")

    @field_validator("messages", "history", "attachments", mode="before")
    @classmethod
    def _list_or_empty(cls, value: Any) -> list:
        # Older clients send null or a bare object here; treat as absent
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @field_validator("preferences", "ai_config", mode="before")
    @classmethod
    def _object_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, AIPreferences)) else None

    @field_validator("prompt", "message", "lecture_id", "auth_token", mode="before")
    @classmethod
    def _optional_str(cls, value: Any) -> Optional[str]:
        return _text_or_none(value)

    def normalize(self) -> "DispatchRequest":
        """Map every legacy shape onto the canonical request."""
        lecture = None
        if self.lecture_id and self.auth_token:
            lecture = LectureRef(lecture_id=self.lecture_id, auth_token=self.auth_token)

        return DispatchRequest(
            prompt=self.prompt or None,
            message=self.message or None,
            history=[_canonical(m) for m in self.history],
            messages=[_canonical(m) for m in self.messages],
            attachments=list(self.attachments),
            lecture=lecture,
            settings=_merge_settings(self.preferences, self.ai_config),
        )


@dataclass(frozen=True)
class Message:
    """Canonical wire-level chat message."""

    role: str
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class LectureRef:
    lecture_id: str
    auth_token: str


@dataclass
class GenerationSettings:
    """Generation parameters; None means "use the configured default"."""

    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    system_prompt: Optional[str] = None


@dataclass
class DispatchRequest:
    """Canonical internal request, produced by ChatRequest.normalize()."""

    prompt: Optional[str] = None
    message: Optional[str] = None
    history: List[Message] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)
    lecture: Optional[LectureRef] = None
    settings: GenerationSettings = field(default_factory=GenerationSettings)

    @property
    def user_text(self) -> Optional[str]:
        """The new user turn; ``prompt`` wins over ``message``."""
        return self.prompt or self.message

    def total_chars(self) -> int:
        """Characters across prompt, message, messages and history."""
        total = len(self.prompt or "") + len(self.message or "")
        total += sum(len(m.content) for m in self.messages)
        total += sum(len(m.content) for m in self.history)
        return total


def _canonical(msg: ChatMessage) -> Message:
    return Message(role=msg.role, content=msg.text())


def _merge_settings(preferences: Optional[AIPreferences], ai_config: Optional[AIPreferences]) -> GenerationSettings:
    """Field-wise merge of the two settings sources.

    ``aiConfig`` wins for model, temperature and max tokens; ``preferences``
    wins for the system prompt. The other source fills any gap.
    """
    config_first = [p for p in (ai_config, preferences) if p is not None]
    preferences_first = list(reversed(config_first))

    def pick(sources, getter):
        for source in sources:
            value = getter(source)
            if value is not None:
                return value
        return None

    return GenerationSettings(
        model=pick(config_first, lambda p: p.model or None),
        temperature=pick(config_first, lambda p: p.temperature),
        max_tokens=pick(config_first, lambda p: p.max_tokens or None),
        system_prompt=pick(preferences_first, lambda p: p.system_prompt()),
    )
