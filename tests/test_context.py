"""Tests for context assembly and per-section failure isolation."""

import pytest

from riskchat.core.chat.context import (
    SECTION_SUMMARY,
    SECTION_TOP_RISKS,
    SECTION_TREND,
    ContextAssembler,
)
from riskchat.infra.db import DashboardSummary, NamedRef, TopRisk


class TestContextAssembler:
    @pytest.mark.asyncio
    async def test_collects_every_section(self, make_repository):
        repo = make_repository(
            get_dashboard_summary=DashboardSummary(total_risks=3),
            get_top_risks=[TopRisk(risk_id=1, name="Flood", score=8.0)],
            get_sites=[NamedRef(id=1, name="Leeds")],
        )

        snapshot = await ContextAssembler(repo).assemble()

        assert snapshot.summary.total_risks == 3
        assert [r.name for r in snapshot.top_risks] == ["Flood"]
        assert [s.name for s in snapshot.sites] == ["Leeds"]
        assert snapshot.failed_sections == []
        assert {name for name, _ in repo.calls} == {
            "get_dashboard_summary",
            "get_top_risks",
            "get_site_summary",
            "get_category_summary",
            "get_owner_summary",
            "get_risk_trend",
            "get_watchlist",
            "get_sites",
            "get_services",
            "get_categories",
            "get_users",
        }

    @pytest.mark.asyncio
    async def test_failed_section_is_omitted_not_fatal(self, make_repository, caplog):
        repo = make_repository(
            failing=("get_dashboard_summary", "get_risk_trend"),
            get_top_risks=[TopRisk(risk_id=1, name="Flood", score=8.0)],
        )

        snapshot = await ContextAssembler(repo).assemble()

        assert snapshot.summary is None
        assert snapshot.trend == []
        assert len(snapshot.top_risks) == 1
        assert sorted(snapshot.failed_sections) == sorted(
            [SECTION_SUMMARY, SECTION_TREND]
        )
        assert "failed to load" in caplog.text

    @pytest.mark.asyncio
    async def test_every_section_failing_still_returns_a_snapshot(self, make_repository):
        methods = (
            "get_dashboard_summary",
            "get_top_risks",
            "get_site_summary",
            "get_category_summary",
            "get_owner_summary",
            "get_risk_trend",
            "get_watchlist",
            "get_sites",
            "get_services",
            "get_categories",
            "get_users",
        )
        snapshot = await ContextAssembler(make_repository(failing=methods)).assemble()

        assert len(snapshot.failed_sections) == len(methods)
        assert SECTION_TOP_RISKS in snapshot.failed_sections

    @pytest.mark.asyncio
    async def test_scope_and_sizes_reach_the_repository(self, make_repository):
        repo = make_repository()

        await ContextAssembler(repo, top_risks_count=5, trend_months=12).assemble(
            site_id=2, service_id=7
        )
        calls = dict(repo.calls)

        assert calls["get_top_risks"] == {"count": 5, "site_id": 2, "service_id": 7}
        assert calls["get_risk_trend"] == {"months": 12, "site_id": 2, "service_id": 7}
        assert calls["get_site_summary"] == {"service_id": 7}
        assert calls["get_categories"] == {"service_id": 7}
