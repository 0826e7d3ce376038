"""Risk chat assistant: sessions, context, post-processing, orchestration."""

from .context import ContextAssembler, ContextSnapshot
from .deps import get_chat_service, get_context_assembler
from .models import (
    ChatMessage,
    ChatSession,
    ChatTurnResult,
    Feedback,
    StructuredReplyParts,
    SuggestedQuestion,
)
from .postprocess import default_suggestions, extract, map_icon
from .render import build_system_prompt, render_context
from .service import ChatService
from .session_store import SessionStore, build_session_store, get_session_store

__all__ = [
    "build_session_store",
    "build_system_prompt",
    "ChatMessage",
    "ChatService",
    "ChatSession",
    "ChatTurnResult",
    "ContextAssembler",
    "ContextSnapshot",
    "default_suggestions",
    "extract",
    "Feedback",
    "get_chat_service",
    "get_context_assembler",
    "get_session_store",
    "map_icon",
    "render_context",
    "SessionStore",
    "StructuredReplyParts",
    "SuggestedQuestion",
]
