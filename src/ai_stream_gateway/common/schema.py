"""Pydantic models and dataclasses for request/response types."""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AiAction(str, Enum):
    IMPROVE_WRITING = "improve_writing"
    FIX_SPELLING_GRAMMAR = "fix_spelling_grammar"
    MAKE_SHORTER = "make_shorter"
    MAKE_LONGER = "make_longer"
    SIMPLIFY = "simplify"
    CHANGE_TONE = "change_tone"
    SUMMARIZE = "summarize"
    CONTINUE_WRITING = "continue_writing"
    TRANSLATE = "translate"
    TO_CHECKLIST = "to_checklist"
    CUSTOM = "custom"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerationRequest(_CamelModel):
    """Inbound "generate text" request; modifiers only apply to their own action."""
    action: AiAction = AiAction.CUSTOM
    content: str = Field(..., min_length=1)
    prompt: str | None = None
    target_language: str | None = None
    tone: str | None = None


class Usage(_CamelModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class GenerationResult(_CamelModel):
    content: str
    usage: Usage | None = None


class AiConfigResponse(_CamelModel):
    configured: bool
    available_actions: list[AiAction]
    driver: str | None = None
    has_api_key: bool | None = None


@dataclass(frozen=True)
class ContentDelta:
    """Incremental fragment of generated text."""
    text: str

    def to_payload(self) -> dict[str, Any]:
        return {"content": self.text}


@dataclass(frozen=True)
class ErrorEvent:
    """Terminal in-band failure of a stream."""
    message: str

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


StreamEvent = Union[ContentDelta, ErrorEvent]
