"""Chat API endpoints."""

from fastapi import APIRouter

from .deps import ChatServiceDep
from .models import (
    ChatRequest,
    ChatResponse,
    FeedbackAck,
    FeedbackRequest,
    convert_feedback_request,
    convert_turn_result_to_response,
)

router = APIRouter(prefix="/api/v1", tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    chat_request: ChatRequest,
    chat_service: ChatServiceDep,
) -> ChatResponse:
    """
    Run one chat turn and return the assistant's reply.

    Processing failures are reported in the body (``success: false``
    plus a short ``error``) with HTTP 200, so the client can keep the
    returned ``sessionId`` and retry.
    """
    result = await chat_service.handle_message(
        chat_request.message,
        session_id=chat_request.session_id,
        user_id=chat_request.user_id,
        site_id=chat_request.site_id,
        service_id=chat_request.service_id,
    )
    return convert_turn_result_to_response(result)


@router.post("/chat/feedback", response_model=FeedbackAck)
async def chat_feedback(
    feedback: FeedbackRequest,
    chat_service: ChatServiceDep,
) -> FeedbackAck:
    """Accept a rating for a reply.  Feedback is logged, not stored."""
    chat_service.submit_feedback(convert_feedback_request(feedback))
    return FeedbackAck()
