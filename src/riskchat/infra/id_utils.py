"""Identifier generation for chat sessions and replies.

- Session ids are opaque UUID4s handed back to the client.
- Message ids are numeric and derived from the wall clock in 100ns
  ticks, bumped when two replies land on the same tick so they stay
  strictly increasing within a process.
"""

import threading
import time
import uuid

_NS_PER_TICK = 100


def generate_session_id() -> uuid.UUID:
    return uuid.uuid4()


class MessageIdGenerator:
    """Thread-safe source of strictly increasing numeric message ids."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def next_id(self) -> int:
        with self._lock:
            candidate = time.time_ns() // _NS_PER_TICK
            self._last = max(candidate, self._last + 1)
            return self._last


_message_ids = MessageIdGenerator()


def generate_message_id() -> int:
    """Next process-wide message id."""
    return _message_ids.next_id()
