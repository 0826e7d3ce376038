"""Chat turn orchestration.

One inbound message becomes exactly one completion call:

1. resolve (or open) the session and record the message;
2. assemble a fresh risk data snapshot;
3. build the prompt: system message, then the bounded history which
   already ends with the new message;
4. call the model;
5. record the reply, strip its suggestions block and fall back to
   keyword suggestions when the model gave none.

Every failure ends the turn with ``success=False`` and a short,
user-safe error string; details only reach the logs.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import date
from typing import Any

import openai
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from riskchat.configs.config import AppConfig
from riskchat.infra.id_utils import generate_message_id, generate_session_id
from riskchat.infra.telemetry import (
    ATTR_CHAT_ERROR,
    ATTR_CHAT_HISTORY_LEN,
    ATTR_CHAT_SESSION_ID,
    ATTR_CHAT_SESSION_NEW,
    ATTR_CHAT_SUGGESTION_SOURCE,
    ATTR_CONTEXT_PROMPT_LEN,
    ATTR_LLM_MODEL,
    ATTR_LLM_STATUS_CODE,
    SPAN_CHAT_TURN,
    SPAN_LLM_COMPLETION,
    tracer,
)

from .context import ContextAssembler
from .metrics import (
    CHAT_TURN_DURATION_SECONDS,
    CHAT_TURNS_TOTAL,
    FEEDBACK_TOTAL,
    LLM_COMPLETION_LATENCY_SECONDS,
    SUGGESTIONS_TOTAL,
)
from .models import (
    ROLE_USER,
    ChatMessage,
    ChatTurnResult,
    Feedback,
    SuggestedQuestion,
)
from .postprocess import default_suggestions, extract
from .render import build_system_prompt
from .session_store import SessionStore

logger = logging.getLogger(__name__)

EMPTY_REPLY_TEXT = "I couldn't generate a response."
AI_SERVICE_ERROR = "The AI service is currently unavailable. Please try again."
GENERIC_ERROR = "Failed to process your request. Please try again."


class CompletionFailed(Exception):
    """The completion service rejected or could not serve the request."""

    def __init__(self, status_code: int | None = None) -> None:
        self.status_code = status_code
        detail = f"status {status_code}" if status_code is not None else "no response"
        super().__init__(f"Completion service failed ({detail})")


def _to_langchain(message: ChatMessage) -> BaseMessage:
    if message.role == ROLE_USER:
        return HumanMessage(content=message.content)
    return AIMessage(content=message.content)


def _content_text(content: Any) -> str:
    """Flatten a message ``content`` (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class ChatService:
    """Handles chat turns and feedback for the risk assistant."""

    def __init__(
        self,
        llm: BaseChatModel,
        session_store: SessionStore,
        assembler: ContextAssembler,
        config: AppConfig,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.llm = llm
        self.session_store = session_store
        self.assembler = assembler
        self.config = config
        self._today = today

    async def handle_message(
        self,
        message: str,
        session_id: uuid.UUID | None = None,
        user_id: str | None = None,
        site_id: int | None = None,
        service_id: int | None = None,
    ) -> ChatTurnResult:
        start = time.monotonic()
        resolved_id: uuid.UUID | None = None
        status = "ok"

        with tracer.start_as_current_span(SPAN_CHAT_TURN) as span:
            try:
                resolved_id, is_new = self.session_store.resolve_or_create(
                    session_id, user_id
                )
                span.set_attribute(ATTR_CHAT_SESSION_ID, str(resolved_id))
                span.set_attribute(ATTR_CHAT_SESSION_NEW, is_new)
                self.session_store.record_inbound(resolved_id, message)
                # Read before the first await; a concurrent turn may evict it.
                history = self.session_store.recent_history(
                    resolved_id, self.config.chat.max_history_messages
                )

                snapshot = await self.assembler.assemble(site_id, service_id)
                system_prompt = build_system_prompt(
                    self.config.prompt.system_prompt,
                    snapshot,
                    self._today(),
                    top_risks_count=self.assembler.top_risks_count,
                    trend_months=self.assembler.trend_months,
                )
                span.set_attribute(ATTR_CHAT_HISTORY_LEN, len(history))
                span.set_attribute(ATTR_CONTEXT_PROMPT_LEN, len(system_prompt))

                prompt: list[BaseMessage] = [
                    SystemMessage(content=system_prompt),
                    *(_to_langchain(m) for m in history),
                ]
                reply = await self._complete(prompt)
                self.session_store.record_outbound(resolved_id, reply)

                parts = extract(reply)
                suggestions: list[SuggestedQuestion] = parts.suggestions
                source = "extracted"
                if not suggestions:
                    suggestions = default_suggestions(message)
                    source = "fallback"
                SUGGESTIONS_TOTAL.labels(source=source).inc()
                span.set_attribute(ATTR_CHAT_SUGGESTION_SOURCE, source)

                return ChatTurnResult(
                    session_id=resolved_id,
                    reply_text=parts.cleaned_text,
                    message_id=generate_message_id(),
                    success=True,
                    suggestions=suggestions,
                )
            except CompletionFailed as exc:
                status = "llm_error"
                span.set_attribute(ATTR_CHAT_ERROR, str(exc))
                logger.warning("AI service error: %s", exc)
                return self._failure(resolved_id, AI_SERVICE_ERROR)
            except Exception as exc:
                status = "error"
                span.set_attribute(ATTR_CHAT_ERROR, type(exc).__name__)
                logger.exception("Chat turn failed for session %s", resolved_id)
                return self._failure(resolved_id, GENERIC_ERROR)
            finally:
                CHAT_TURNS_TOTAL.labels(status=status).inc()
                CHAT_TURN_DURATION_SECONDS.observe(time.monotonic() - start)

    async def _complete(self, prompt: list[BaseMessage]) -> str:
        """Single completion call; provider failures become ``CompletionFailed``."""
        start = time.monotonic()
        with tracer.start_as_current_span(SPAN_LLM_COMPLETION) as span:
            span.set_attribute(ATTR_LLM_MODEL, self.config.llm.model_name)
            try:
                response = await self.llm.ainvoke(prompt)
            except openai.APIStatusError as exc:
                span.set_attribute(ATTR_LLM_STATUS_CODE, exc.status_code)
                raise CompletionFailed(exc.status_code) from exc
            except openai.APIConnectionError as exc:
                raise CompletionFailed() from exc
            finally:
                LLM_COMPLETION_LATENCY_SECONDS.observe(time.monotonic() - start)

        text = _content_text(response.content).strip()
        return text or EMPTY_REPLY_TEXT

    @staticmethod
    def _failure(session_id: uuid.UUID | None, error: str) -> ChatTurnResult:
        return ChatTurnResult(
            session_id=session_id or generate_session_id(),
            success=False,
            error=error,
        )

    def submit_feedback(self, feedback: Feedback) -> None:
        """Record feedback in the logs; nothing is persisted."""
        FEEDBACK_TOTAL.labels(rating=str(feedback.rating)).inc()
        logger.info(
            "Feedback received - MessageId: %s, Session: %s, Rating: %s, "
            "Category: %s, Text: %s",
            feedback.message_id,
            feedback.session_id,
            feedback.rating,
            feedback.category,
            feedback.feedback_text,
        )
