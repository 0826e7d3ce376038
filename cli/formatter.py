"""Response formatter for chat replies and their suggestions."""

from typing import TextIO

_ICON_GLYPHS = {
    "warning": "⚠️ ",
    "trending_up": "📈",
    "trending_down": "📉",
    "location_city": "🏢",
    "person": "👤",
    "category": "🗂️ ",
    "search": "🔍",
    "compare_arrows": "↔️ ",
}
_DEFAULT_GLYPH = "❓"


class ResponseFormatter:
    """Writes a chat response: reply text, then numbered suggestions."""

    def __init__(self, output: TextIO):
        self.output = output

    def show_response(self, response: dict) -> list[str]:
        """Display *response*; return suggestion texts in display order."""
        if not response.get("success"):
            message = response.get("error") or "Unknown error"
            self._print(f"\n❌ Error: {message}\n")
            return []

        self._print(f"\nResponse:\n{response.get('replyText') or ''}\n")

        suggestions = response.get("suggestions") or []
        if suggestions:
            self._print("\nSuggested follow-ups:\n")
        for number, suggestion in enumerate(suggestions, start=1):
            glyph = _ICON_GLYPHS.get(suggestion.get("icon", ""), _DEFAULT_GLYPH)
            self._print(f"  [{number}] {glyph} {suggestion.get('text', '')}\n")
        return [s.get("text", "") for s in suggestions]

    def _print(self, text: str) -> None:
        self.output.write(text)
        self.output.flush()
