"""Reply post-processing: pull the follow-up suggestions out of a reply.

The model is instructed to end every answer with::

    ---SUGGESTIONS---
    [icon:warning] What are the top high-risk items?
    [icon:chart] Show me the risk trend over time
    ---END_SUGGESTIONS---

Parsing happens in two stages.  ``find_suggestions_block`` locates the
delimited region; ``parse_suggestion_line`` turns each line of it into a
``SuggestedQuestion``.  Malformed lines degrade to a generic suggestion
instead of failing the reply.

Chart blocks (``---CHART:<type>--- ... ---END_CHART---``) are left in
the cleaned text for the front end to render.
"""

import re
from dataclasses import dataclass

from .models import StructuredReplyParts, SuggestedQuestion

SUGGESTIONS_START = "---SUGGESTIONS---"
SUGGESTIONS_END = "---END_SUGGESTIONS---"

_START_RE = re.compile(re.escape(SUGGESTIONS_START), re.IGNORECASE)
_END_RE = re.compile(re.escape(SUGGESTIONS_END), re.IGNORECASE)
_LINE_RE = re.compile(r"\[icon:(\w+)\]\s*(.+)", re.IGNORECASE)

DEFAULT_ICON = "help_outline"
DEFAULT_CATEGORY = "general"
_BULLET_CHARS = "-* "

ICON_MAP: dict[str, str] = {
    "warning": "warning",
    "chart": "trending_up",
    "building": "location_city",
    "person": "person",
    "category": "category",
    "search": "search",
    "calendar": "event",
    "alert": "notification_important",
    "users": "groups",
    "dollar": "attach_money",
    "clipboard": "assignment",
}


@dataclass(frozen=True)
class SuggestionsBlock:
    """Location of the suggestions region within a reply.

    ``start``/``end`` span the sentinels themselves; ``body`` is the text
    between them.
    """

    start: int
    end: int
    body: str


def map_icon(key: str) -> str:
    return ICON_MAP.get(key.lower(), DEFAULT_ICON)


def find_suggestions_block(text: str) -> SuggestionsBlock | None:
    start = _START_RE.search(text)
    if start is None:
        return None
    end = _END_RE.search(text, start.end())
    if end is None:
        return None
    return SuggestionsBlock(
        start=start.start(), end=end.end(), body=text[start.end() : end.start()]
    )


def parse_suggestion_line(line: str) -> SuggestedQuestion | None:
    """Parse one line of the block; ``None`` when nothing usable is left."""
    line = line.strip()
    match = _LINE_RE.search(line)
    if match:
        key, question = match.group(1), match.group(2).strip()
        if question:
            return SuggestedQuestion(text=question, icon=map_icon(key), category=key)

    question = line.lstrip(_BULLET_CHARS).strip()
    if not question:
        return None
    return SuggestedQuestion(
        text=question, icon=DEFAULT_ICON, category=DEFAULT_CATEGORY
    )


def extract(raw: str) -> StructuredReplyParts:
    """Split *raw* into cleaned prose and its suggestions.

    Without a complete block the reply is returned untouched with no
    suggestions.
    """
    block = find_suggestions_block(raw)
    if block is None:
        return StructuredReplyParts(cleaned_text=raw)

    cleaned = (raw[: block.start] + raw[block.end :]).strip()
    suggestions = []
    for line in block.body.splitlines():
        if not line.strip():
            continue
        parsed = parse_suggestion_line(line)
        if parsed is not None:
            suggestions.append(parsed)
    return StructuredReplyParts(cleaned_text=cleaned, suggestions=suggestions)


# ---------------------------------------------------------------------------
# Keyword fallback
# ---------------------------------------------------------------------------


def _q(text: str, icon: str, category: str) -> SuggestedQuestion:
    return SuggestedQuestion(text=text, icon=icon, category=category)


_SITE_SUGGESTIONS = (
    _q("What are the highest risks at this site?", "warning", "Priority"),
    _q("Who owns the most risks here?", "person", "Ownership"),
    _q("Compare this site to others", "compare_arrows", "Analysis"),
)

_TREND_SUGGESTIONS = (
    _q("Which risks have worsened the most?", "trending_down", "Trends"),
    _q("Show me the risk breakdown by category", "category", "Analysis"),
    _q("What needs immediate attention?", "warning", "Priority"),
)

_OWNER_SUGGESTIONS = (
    _q("Show all risks for this owner", "person", "Ownership"),
    _q("Which owners have the most high risks?", "warning", "Priority"),
    _q("Break down by site", "location_city", "Analysis"),
)

_GENERIC_SUGGESTIONS = (
    _q("What risks need immediate attention?", "warning", "Priority"),
    _q("Show me the risk breakdown by site", "location_city", "Analysis"),
    _q("What's the trend over the last 6 months?", "trending_up", "Trends"),
    _q("Who owns the most high-risk items?", "person", "Ownership"),
)

# Checked in order; the first keyword hit wins.
_KEYWORD_SUGGESTIONS: tuple[tuple[tuple[str, ...], tuple[SuggestedQuestion, ...]], ...] = (
    (("site", "location"), _SITE_SUGGESTIONS),
    (("trend", "history", "change"), _TREND_SUGGESTIONS),
    (("owner", "who"), _OWNER_SUGGESTIONS),
)


def default_suggestions(user_message: str) -> list[SuggestedQuestion]:
    """Canned follow-ups chosen by keywords in the user's message."""
    lowered = user_message.lower()
    for keywords, suggestions in _KEYWORD_SUGGESTIONS:
        if any(keyword in lowered for keyword in keywords):
            return [s.model_copy() for s in suggestions]
    return [s.model_copy() for s in _GENERIC_SUGGESTIONS]
