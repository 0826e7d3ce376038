"""Pydantic models for the chat API.

JSON bodies use camelCase field names; Python code uses snake_case.
"""

import uuid
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from riskchat.core.chat import ChatTurnResult, Feedback

# Upper bound on an inbound chat message (characters).
CHAT_MESSAGE_MAX_LENGTH = 4000


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(_CamelModel):
    """Request model for the chat endpoint."""

    message: str = Field(
        description="User message",
        min_length=1,
        max_length=CHAT_MESSAGE_MAX_LENGTH,
    )
    session_id: uuid.UUID | None = Field(
        default=None, description="Session to continue; omitted for a new one"
    )
    user_id: str | None = Field(default=None, description="Caller identity")
    site_id: int | None = Field(
        default=None, description="Restrict the risk data to one site"
    )
    service_id: int | None = Field(
        default=None, description="Restrict the risk data to one service"
    )


class SuggestedQuestionModel(_CamelModel):
    text: str
    icon: str
    category: str


class ChatResponse(_CamelModel):
    """Outcome of one chat turn.  Failed turns still carry a session id."""

    session_id: uuid.UUID
    reply_text: str | None = None
    message_id: int = 0
    success: bool
    error: str | None = None
    suggestions: list[SuggestedQuestionModel] | None = None


class FeedbackRequest(_CamelModel):
    message_id: int
    session_id: uuid.UUID | None = None
    user_id: str | None = None
    rating: int
    category: str | None = None
    feedback_text: str | None = Field(default=None, max_length=CHAT_MESSAGE_MAX_LENGTH)


class FeedbackAck(_CamelModel):
    acknowledged: bool = True


def convert_turn_result_to_response(result: "ChatTurnResult") -> ChatResponse:
    return ChatResponse.model_validate(result.model_dump())


def convert_feedback_request(request: FeedbackRequest) -> "Feedback":
    from riskchat.core.chat import Feedback

    return Feedback(**request.model_dump())
