"""Severity bands and the single table of RAG label synonyms.

The risk register stores free-text RAG labels (``Red``, ``High``,
``Extreme``, ``Amber`` ...).  Every aggregate query, the trend bucketing
and the prompt renderer go through this module so that a label counts
toward exactly one band everywhere.
"""

from enum import Enum

GREEN_MAX_SCORE = 3.9
AMBER_MAX_SCORE = 6.9


class SeverityBand(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def display(self) -> str:
        return self.value.capitalize()

    @property
    def rag_colour(self) -> str:
        return _RAG_COLOURS[self]


_RAG_COLOURS = {
    SeverityBand.HIGH: "Red",
    SeverityBand.MEDIUM: "Amber",
    SeverityBand.LOW: "Green",
}

# Lower-cased label -> band.
BAND_SYNONYMS: dict[SeverityBand, tuple[str, ...]] = {
    SeverityBand.HIGH: ("red", "high", "extreme"),
    SeverityBand.MEDIUM: ("amber", "moderate", "medium"),
    SeverityBand.LOW: ("green", "low"),
}

_LABEL_TO_BAND = {
    label: band for band, labels in BAND_SYNONYMS.items() for label in labels
}


def normalize_band(label: str | None) -> SeverityBand | None:
    """Map a stored RAG label to its band, or ``None`` when unrecognised."""
    if not label:
        return None
    return _LABEL_TO_BAND.get(label.strip().lower())


def band_for_score(
    score: float,
    green_max: float = GREEN_MAX_SCORE,
    amber_max: float = AMBER_MAX_SCORE,
) -> SeverityBand:
    if score <= green_max:
        return SeverityBand.LOW
    if score <= amber_max:
        return SeverityBand.MEDIUM
    return SeverityBand.HIGH


def display_label(label: str | None) -> str:
    """Human-facing label used in the prompt (``High``/``Medium``/``Low``)."""
    band = normalize_band(label)
    if band is not None:
        return band.display
    return label or "Unrated"


def band_count_sql(column: str, band: SeverityBand) -> str:
    """``SUM(CASE ...)`` fragment counting rows of *column* in *band*.

    Labels are module constants, never user input, so inlining them is
    safe.
    """
    labels = ", ".join(f"'{label}'" for label in BAND_SYNONYMS[band])
    return f"SUM(CASE WHEN LOWER({column}) IN ({labels}) THEN 1 ELSE 0 END)"
