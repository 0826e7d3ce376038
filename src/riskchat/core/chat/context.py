"""Context assembly: the risk data snapshot behind every system prompt.

``ContextAssembler.assemble`` fans out one repository read per section
and waits for all of them.  A section whose read raises is logged,
counted and left empty; the snapshot is still returned.  Nothing here
is cached: each chat turn sees the register as it is now.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any

from riskchat.infra.db import (
    DashboardSummary,
    GroupSummary,
    NamedRef,
    RiskRepository,
    TopRisk,
    TrendPoint,
    WatchlistEntry,
)
from riskchat.infra.telemetry import (
    ATTR_CONTEXT_FAILED_SECTIONS,
    ATTR_CONTEXT_SECTION,
    SPAN_CONTEXT_ASSEMBLE,
    SPAN_CONTEXT_SECTION,
    tracer,
)

from .metrics import CONTEXT_ASSEMBLY_SECONDS, CONTEXT_SECTION_FAILURES_TOTAL

logger = logging.getLogger(__name__)

SECTION_SUMMARY = "summary"
SECTION_TOP_RISKS = "top_risks"
SECTION_SITES_SUMMARY = "site_summary"
SECTION_CATEGORY_SUMMARY = "category_summary"
SECTION_OWNER_SUMMARY = "owner_summary"
SECTION_TREND = "trend"
SECTION_WATCHLIST = "watchlist"
SECTION_SITES = "sites"
SECTION_SERVICES = "services"
SECTION_CATEGORIES = "categories"
SECTION_USERS = "users"


@dataclass
class ContextSnapshot:
    """Read-only view of the register used to render one prompt."""

    summary: DashboardSummary | None = None
    top_risks: list[TopRisk] = field(default_factory=list)
    site_summary: list[GroupSummary] = field(default_factory=list)
    category_summary: list[GroupSummary] = field(default_factory=list)
    owner_summary: list[GroupSummary] = field(default_factory=list)
    trend: list[TrendPoint] = field(default_factory=list)
    watchlist: list[WatchlistEntry] = field(default_factory=list)
    sites: list[NamedRef] = field(default_factory=list)
    services: list[NamedRef] = field(default_factory=list)
    categories: list[NamedRef] = field(default_factory=list)
    users: list[NamedRef] = field(default_factory=list)
    failed_sections: list[str] = field(default_factory=list)


class ContextAssembler:
    def __init__(
        self,
        repository: RiskRepository,
        top_risks_count: int = 10,
        trend_months: int = 6,
    ) -> None:
        self._repository = repository
        self.top_risks_count = top_risks_count
        self.trend_months = trend_months

    async def assemble(
        self,
        site_id: int | None = None,
        service_id: int | None = None,
    ) -> ContextSnapshot:
        repo = self._repository
        scope: dict[str, Any] = {"site_id": site_id, "service_id": service_id}
        fetches: dict[str, Awaitable[Any]] = {
            SECTION_SUMMARY: repo.get_dashboard_summary(**scope),
            SECTION_TOP_RISKS: repo.get_top_risks(self.top_risks_count, **scope),
            SECTION_SITES_SUMMARY: repo.get_site_summary(service_id=service_id),
            SECTION_CATEGORY_SUMMARY: repo.get_category_summary(**scope),
            SECTION_OWNER_SUMMARY: repo.get_owner_summary(**scope),
            SECTION_TREND: repo.get_risk_trend(self.trend_months, **scope),
            SECTION_WATCHLIST: repo.get_watchlist(**scope),
            SECTION_SITES: repo.get_sites(),
            SECTION_SERVICES: repo.get_services(),
            SECTION_CATEGORIES: repo.get_categories(service_id=service_id),
            SECTION_USERS: repo.get_users(),
        }

        start = time.monotonic()
        with tracer.start_as_current_span(SPAN_CONTEXT_ASSEMBLE) as span:
            results = await asyncio.gather(
                *(self._fetch_section(name, aw) for name, aw in fetches.items())
            )
            snapshot = ContextSnapshot()
            for name, (ok, value) in zip(fetches, results):
                if not ok:
                    snapshot.failed_sections.append(name)
                elif value is not None:
                    setattr(snapshot, name, value)
            span.set_attribute(
                ATTR_CONTEXT_FAILED_SECTIONS, snapshot.failed_sections
            )
        CONTEXT_ASSEMBLY_SECONDS.observe(time.monotonic() - start)
        return snapshot

    @staticmethod
    async def _fetch_section(name: str, aw: Awaitable[Any]) -> tuple[bool, Any]:
        with tracer.start_as_current_span(SPAN_CONTEXT_SECTION) as span:
            span.set_attribute(ATTR_CONTEXT_SECTION, name)
            try:
                return True, await aw
            except Exception:
                CONTEXT_SECTION_FAILURES_TOTAL.labels(section=name).inc()
                logger.warning(
                    "Context section %r failed to load; omitting it",
                    name,
                    exc_info=True,
                )
                return False, None
