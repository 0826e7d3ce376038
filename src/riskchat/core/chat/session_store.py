"""In-memory chat session store.

Sessions live for the process lifetime at most: a session idle for
longer than ``idle_ttl`` is purged, and when the store is full the
least recently active session is evicted before a new one is admitted.

The mapping is guarded by a ``threading.Lock``: every method is
synchronous and never holds it across an ``await``. Two requests
racing on the *same* session id both land in its history; whichever
appends last is last.

``build_session_store`` is a lifespan dependency that attaches the
store to ``app.state``; ``get_session_store`` reads it per request.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from riskchat.configs.config import AppConfig, get_app_config
from riskchat.infra.id_utils import generate_session_id
from riskchat.infra.lifespan import get_app

from .metrics import CHAT_SESSIONS_ACTIVE, CHAT_SESSIONS_EVICTED_TOTAL
from .models import (
    ANONYMOUS_USER,
    ROLE_ASSISTANT,
    ROLE_USER,
    ChatMessage,
    ChatSession,
    Role,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_MESSAGES = 10
DEFAULT_IDLE_TTL = timedelta(hours=2)
DEFAULT_MAX_SESSIONS = 1000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Bounded mapping of session id to ``ChatSession``.

    Iteration order of the underlying ``OrderedDict`` is least recently
    active first; every touch moves a session to the end.
    """

    def __init__(
        self,
        idle_ttl: timedelta = DEFAULT_IDLE_TTL,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._idle_ttl = idle_ttl
        self._max_sessions = max_sessions
        self._clock = clock
        self._sessions: OrderedDict[uuid.UUID, ChatSession] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def get(self, session_id: uuid.UUID) -> ChatSession | None:
        return self._sessions.get(session_id)

    def resolve_or_create(
        self,
        session_id: uuid.UUID | None = None,
        user_id: str | None = None,
    ) -> tuple[uuid.UUID, bool]:
        """Return ``(session_id, is_new)``.

        A known id is returned unchanged with its history intact.  An
        absent or unknown id yields a freshly generated one.
        """
        with self._lock:
            now = self._clock()
            self._purge_expired_locked(now)

            if session_id is not None and session_id in self._sessions:
                self._sessions.move_to_end(session_id)
                return session_id, False

            while len(self._sessions) >= self._max_sessions:
                evicted_id, _ = self._sessions.popitem(last=False)
                CHAT_SESSIONS_EVICTED_TOTAL.labels(reason="capacity").inc()
                logger.info("Evicted session %s (store at capacity)", evicted_id)

            new_id = generate_session_id()
            self._sessions[new_id] = ChatSession(
                session_id=new_id,
                created_at=now,
                last_activity_at=now,
                user_id=user_id or ANONYMOUS_USER,
            )
            CHAT_SESSIONS_ACTIVE.set(len(self._sessions))
            return new_id, True

    def record_inbound(self, session_id: uuid.UUID, text: str) -> None:
        self._append(session_id, ROLE_USER, text)

    def record_outbound(self, session_id: uuid.UUID, text: str) -> None:
        self._append(session_id, ROLE_ASSISTANT, text)

    def recent_history(
        self,
        session_id: uuid.UUID,
        max_messages: int = DEFAULT_HISTORY_MESSAGES,
    ) -> list[ChatMessage]:
        """Latest *max_messages* messages, oldest first.

        The cap counts messages, not user/assistant pairs.
        """
        session = self._sessions.get(session_id)
        if session is None or max_messages <= 0:
            return []
        return list(session.messages[-max_messages:])

    def purge_expired(self) -> int:
        """Drop sessions idle for longer than the TTL; return how many."""
        with self._lock:
            return self._purge_expired_locked(self._clock())

    def _append(self, session_id: uuid.UUID, role: Role, text: str) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                # Evicted while the turn was in flight.
                logger.warning(
                    "Dropping %s message for evicted session %s", role, session_id
                )
                return
            session.messages.append(ChatMessage(role=role, content=text))
            session.last_activity_at = self._clock()
            self._sessions.move_to_end(session_id)

    def _purge_expired_locked(self, now: datetime) -> int:
        cutoff = now - self._idle_ttl
        expired = [
            sid
            for sid, session in self._sessions.items()
            if session.last_activity_at < cutoff
        ]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            CHAT_SESSIONS_EVICTED_TOTAL.labels(reason="idle").inc(len(expired))
            CHAT_SESSIONS_ACTIVE.set(len(self._sessions))
            logger.info("Purged %d idle session(s)", len(expired))
        return len(expired)


# ---------------------------------------------------------------------------
# Lifespan dependency
# ---------------------------------------------------------------------------


async def build_session_store(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[None, None]:
    """Create the process-wide session store and attach it to ``app.state``."""
    app.state.session_store = SessionStore(
        idle_ttl=config.session.idle_ttl,
        max_sessions=config.session.max_sessions,
    )
    yield
    CHAT_SESSIONS_ACTIVE.set(0)


def get_session_store(request: Request) -> SessionStore:
    """FastAPI dependency — reads from ``app.state``."""
    return request.app.state.session_store
