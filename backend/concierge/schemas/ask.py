"""Schemas for the Ask Dr. Lazuk chat endpoint."""
from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import Field, field_validator

from concierge.schemas.common import CamelModel


class ChatMessage(CamelModel):
    role: Literal["user", "assistant"] = "user"
    content: str = ""

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_role(cls, value: Any) -> str:
        return "assistant" if value == "assistant" else "user"

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, value: Any) -> str:
        return "" if value is None else str(value)


class AskRequest(CamelModel):
    messages: List[ChatMessage] = Field(..., min_length=1)
    is_first_reply: bool = False
    photo_data_url: Optional[str] = None

    @property
    def last_user_question(self) -> str:
        for message in reversed(self.messages):
            if message.role == "user":
                return message.content
        return ""


class VisionSummary(CamelModel):
    fitzpatrick_type: Optional[Any] = None
    skin_type: Optional[str] = None
    raw: Optional[dict[str, Any]] = None


class AskResponse(CamelModel):
    ok: bool = True
    reply: str
    vision_used: bool = False
    vision: Optional[VisionSummary] = None
