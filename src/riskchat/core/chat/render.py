"""Prompt rendering.

Pure functions: the same ``ContextSnapshot`` and date always produce
the same text.  Sections appear in a fixed order and an empty section
is left out entirely, heading included.
"""

from datetime import date

from riskchat.core.bands import display_label
from riskchat.infra.db import GroupSummary

from .context import ContextSnapshot

DATA_HEADER = "=== CURRENT RISK DATA ==="
DATA_FOOTER = "=== END OF DATA ==="

TODAY_FORMAT = "%d %B %Y"
MONTH_FORMAT = "%b %Y"


def _score(value: float | None) -> str:
    return f"{value or 0.0:.1f}"


def _or_unknown(value: str | None) -> str:
    return value or "Unknown"


def _render_groups(heading: str, groups: list[GroupSummary]) -> list[str]:
    lines = [heading]
    for g in groups:
        lines.append(
            f"- {g.name}: {g.total_risks} risks (High: {g.high_risk_count}, "
            f"Medium: {g.medium_risk_count}, Low: {g.low_risk_count}, "
            f"Avg: {_score(g.average_score)})"
        )
    return lines


def _render_names(heading: str, names: list[str]) -> list[str]:
    return [f"{heading} {', '.join(names)}"]


def render_context(
    snapshot: ContextSnapshot,
    top_risks_count: int = 10,
    trend_months: int = 6,
) -> str:
    """Render the data block: header, non-empty sections, footer."""
    sections: list[list[str]] = []

    s = snapshot.summary
    if s is not None:
        sections.append(
            [
                "## Overall Summary:",
                f"- Total Risks: {s.total_risks}",
                f"- High Risk (Red): {s.high_risk_count}",
                f"- Medium Risk (Amber): {s.medium_risk_count}",
                f"- Low Risk (Green): {s.low_risk_count}",
                f"- Average Score: {_score(s.average_score)}",
                f"- Aggregate Score: {_score(s.aggregate_score)}",
            ]
        )

    if snapshot.top_risks:
        lines = [f"## Top {top_risks_count} Highest Risks:"]
        for r in snapshot.top_risks:
            lines.append(
                f"- {r.name} (Site: {_or_unknown(r.site_name)}, "
                f"Category: {_or_unknown(r.category_name)}, "
                f"Owner: {_or_unknown(r.owner_name)}, "
                f"Score: {_score(r.score)}, RAG: {display_label(r.rag_rating)})"
            )
        sections.append(lines)

    if snapshot.site_summary:
        sections.append(_render_groups("## Risk by Site:", snapshot.site_summary))
    if snapshot.category_summary:
        sections.append(
            _render_groups("## Risk by Category:", snapshot.category_summary)
        )
    if snapshot.owner_summary:
        sections.append(_render_groups("## Risk by Owner:", snapshot.owner_summary))

    if snapshot.watchlist:
        lines = ["## Watchlist Items:"]
        for w in snapshot.watchlist:
            lines.append(
                f"- {w.name} (Site: {_or_unknown(w.site_name)}, "
                f"Score: {_score(w.score)}, RAG: {display_label(w.rag_rating)})"
            )
        sections.append(lines)

    if snapshot.sites:
        sections.append(
            _render_names("## Available Sites:", [x.name for x in snapshot.sites])
        )
    if snapshot.services:
        sections.append(
            _render_names(
                "## Available Services:", [x.name for x in snapshot.services]
            )
        )
    if snapshot.categories:
        sections.append(
            _render_names(
                "## Risk Categories:", [x.name for x in snapshot.categories]
            )
        )

    if snapshot.trend:
        lines = [f"## Risk Trend (Last {trend_months} Months):"]
        for t in sorted(snapshot.trend, key=lambda p: p.period):
            lines.append(
                f"- {t.period.strftime(MONTH_FORMAT)}: High={t.high_count}, "
                f"Medium={t.medium_count}, Low={t.low_count}, "
                f"Total={t.total_count}, Avg={_score(t.average_score)}"
            )
        sections.append(lines)

    body = "\n\n".join("\n".join(lines) for lines in sections)
    if body:
        return f"{DATA_HEADER}\n\n{body}\n\n{DATA_FOOTER}"
    return f"{DATA_HEADER}\n\n{DATA_FOOTER}"


def build_system_prompt(
    template: str,
    snapshot: ContextSnapshot,
    today: date,
    top_risks_count: int = 10,
    trend_months: int = 6,
) -> str:
    """Instruction template + current-date block + rendered risk data."""
    current = (
        "## CURRENT CONTEXT\n"
        f"- Today's Date: {today.strftime(TODAY_FORMAT)}\n"
        "- Data Source: Real-time risk database"
    )
    data = render_context(snapshot, top_risks_count, trend_months)
    return f"{template.rstrip()}\n\n{current}\n\n{data}\n"
