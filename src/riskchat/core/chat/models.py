"""Chat domain types shared by the session store, post-processor and service."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Role = Literal["user", "assistant"]

ROLE_USER: Role = "user"
ROLE_ASSISTANT: Role = "assistant"

ANONYMOUS_USER = "anonymous"


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str


@dataclass
class ChatSession:
    """One conversation held in the session store.

    ``message_count`` is derived from ``messages`` so the two can never
    disagree.
    """

    session_id: uuid.UUID
    created_at: datetime
    last_activity_at: datetime
    user_id: str = ANONYMOUS_USER
    messages: list[ChatMessage] = field(default_factory=list)

    @property
    def message_count(self) -> int:
        return len(self.messages)


class SuggestedQuestion(BaseModel):
    """A follow-up question the UI can offer as a one-click prompt."""

    text: str = Field(description="Question text")
    icon: str = Field(description="UI icon identifier")
    category: str = Field(description="Grouping label")


class StructuredReplyParts(BaseModel):
    cleaned_text: str
    suggestions: list[SuggestedQuestion] = Field(default_factory=list)


class ChatTurnResult(BaseModel):
    """Outcome of ``ChatService.handle_message``."""

    session_id: uuid.UUID
    reply_text: str | None = None
    message_id: int = 0
    success: bool
    error: str | None = None
    suggestions: list[SuggestedQuestion] | None = None


class Feedback(BaseModel):
    message_id: int
    session_id: uuid.UUID | None = None
    user_id: str | None = None
    rating: int
    category: str | None = None
    feedback_text: str | None = None
