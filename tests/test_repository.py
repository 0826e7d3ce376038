"""Repository queries against a seeded SQLite register (aiosqlite)."""

from collections import namedtuple
from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from riskchat.infra.db import (
    Base,
    InvalidAuthor,
    NewRiskScore,
    Risk,
    RiskCategory,
    RiskNotFound,
    RiskRepository,
    RiskScore,
    Service,
    Site,
    User,
    WatchlistItem,
)
from riskchat.infra.db.repository import bucket_trend, months_back

TODAY = date(2025, 3, 14)
ENTERED_AT = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _score(risk_id, day, value, label):
    return RiskScore(
        risk_id=risk_id,
        rating_date=day,
        numeric_score=value,
        rating_value=label,
        entered_by=1,
        entered_at=ENTERED_AT,
    )


@pytest_asyncio.fixture
async def repository(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'risks.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        session.add_all(
            [
                Site(id=1, name="Leeds"),
                Site(id=2, name="York"),
                Service(id=1, name="Facilities"),
                Service(id=2, name="Digital"),
                RiskCategory(id=1, name="Estates", service_id=1),
                RiskCategory(id=2, name="Cyber", service_id=2),
                User(id=1, name="Sam Patel"),
                User(id=2, name="Alex Kim"),
            ]
        )
        await session.flush()
        session.add_all(
            [
                Risk(id=1, name="Data centre flood", site_id=1, service_id=1,
                     category_id=1, owner_id=1, rag_rating="Red"),
                Risk(id=2, name="Phishing campaign", site_id=2, service_id=2,
                     category_id=2, owner_id=2, rag_rating="Amber"),
                Risk(id=3, name="Roof leak", site_id=1, service_id=1,
                     category_id=1, owner_id=2, rag_rating="green"),
                Risk(id=4, name="Unscored risk", site_id=2, service_id=1,
                     category_id=1, owner_id=1, rag_rating=None),
            ]
        )
        await session.flush()
        session.add_all(
            [
                _score(1, date(2025, 1, 10), 7.0, "Red"),
                _score(1, date(2025, 3, 1), 8.5, "Red"),
                _score(2, date(2025, 2, 5), 6.0, "Amber"),
                _score(2, date(2025, 3, 2), 5.0, "Amber"),
                _score(3, date(2024, 6, 1), 2.0, "Green"),
                WatchlistItem(risk_id=1, reason="Board visibility", added_at=ENTERED_AT),
            ]
        )
        await session.commit()

    yield RiskRepository(factory)
    await engine.dispose()


class TestDashboard:
    @pytest.mark.asyncio
    async def test_summary(self, repository):
        summary = await repository.get_dashboard_summary()

        assert summary.total_risks == 4
        assert summary.high_risk_count == 1
        assert summary.medium_risk_count == 1
        assert summary.low_risk_count == 1
        assert summary.aggregate_score == pytest.approx(15.5)
        assert summary.average_score == pytest.approx(15.5 / 3)

    @pytest.mark.asyncio
    async def test_summary_scoped_to_site(self, repository):
        summary = await repository.get_dashboard_summary(site_id=1)

        assert summary.total_risks == 2
        assert summary.high_risk_count == 1
        assert summary.low_risk_count == 1
        assert summary.medium_risk_count == 0

    @pytest.mark.asyncio
    async def test_top_risks_with_variance(self, repository):
        risks = await repository.get_top_risks()

        assert [r.name for r in risks] == [
            "Data centre flood",
            "Phishing campaign",
            "Roof leak",
        ]
        flood, phishing, roof = risks
        assert flood.score == 8.5
        assert flood.site_name == "Leeds"
        assert flood.category_name == "Estates"
        assert flood.owner_name == "Sam Patel"
        assert flood.variance == 1.5
        assert flood.trend_direction == "up"
        assert phishing.variance == -1.0
        assert phishing.trend_direction == "down"
        assert roof.variance is None
        assert roof.trend_direction is None

    @pytest.mark.asyncio
    async def test_top_risks_count_and_scope(self, repository):
        assert [r.risk_id for r in await repository.get_top_risks(1)] == [1]
        assert [r.risk_id for r in await repository.get_top_risks(10, site_id=2)] == [2]

    @pytest.mark.asyncio
    async def test_watchlist(self, repository):
        entries = await repository.get_watchlist()

        assert len(entries) == 1
        assert entries[0].name == "Data centre flood"
        assert entries[0].score == 8.5
        assert entries[0].reason == "Board visibility"
        assert await repository.get_watchlist(site_id=2) == []

    @pytest.mark.asyncio
    async def test_trend(self, repository):
        points = await repository.get_risk_trend(6, today=TODAY)

        assert [p.period for p in points] == [
            date(2025, 1, 1),
            date(2025, 2, 1),
            date(2025, 3, 1),
        ]
        march = points[-1]
        assert march.high_count == 1
        assert march.medium_count == 1
        assert march.total_count == 2
        assert march.average_score == pytest.approx(6.75)

    @pytest.mark.asyncio
    async def test_trend_scoped_and_windowed(self, repository):
        points = await repository.get_risk_trend(2, site_id=2, today=TODAY)

        assert [(p.period, p.medium_count) for p in points] == [
            (date(2025, 2, 1), 1),
            (date(2025, 3, 1), 1),
        ]


class TestGroupSummaries:
    @pytest.mark.asyncio
    async def test_site_summary(self, repository):
        groups = await repository.get_site_summary()

        assert [(g.name, g.total_risks) for g in groups] == [("Leeds", 2), ("York", 2)]
        leeds = groups[0]
        assert leeds.high_risk_count == 1
        assert leeds.low_risk_count == 1
        assert leeds.average_score == pytest.approx(5.25)

    @pytest.mark.asyncio
    async def test_site_summary_by_service(self, repository):
        groups = await repository.get_site_summary(service_id=2)
        assert [(g.name, g.total_risks) for g in groups] == [("York", 1)]

    @pytest.mark.asyncio
    async def test_category_and_owner_summaries(self, repository):
        categories = await repository.get_category_summary()
        owners = await repository.get_owner_summary()

        assert [(g.name, g.total_risks) for g in categories] == [
            ("Estates", 3),
            ("Cyber", 1),
        ]
        assert [g.name for g in owners] == ["Alex Kim", "Sam Patel"]


class TestReference:
    @pytest.mark.asyncio
    async def test_lists_are_sorted_by_name(self, repository):
        assert [s.name for s in await repository.get_sites()] == ["Leeds", "York"]
        assert [s.name for s in await repository.get_services()] == [
            "Digital",
            "Facilities",
        ]
        assert [u.name for u in await repository.get_users()] == [
            "Alex Kim",
            "Sam Patel",
        ]

    @pytest.mark.asyncio
    async def test_categories_by_service(self, repository):
        assert len(await repository.get_categories()) == 2
        assert [c.name for c in await repository.get_categories(service_id=2)] == [
            "Cyber"
        ]


class TestRisks:
    @pytest.mark.asyncio
    async def test_list_risks(self, repository):
        risks = await repository.list_risks()

        assert [r.name for r in risks] == [
            "Data centre flood",
            "Phishing campaign",
            "Roof leak",
            "Unscored risk",
        ]
        assert risks[0].latest_score == 8.5
        assert risks[0].service_name == "Facilities"
        assert risks[3].latest_score is None

    @pytest.mark.asyncio
    async def test_list_risks_filters(self, repository):
        by_owner = await repository.list_risks(owner_id=2)
        by_category = await repository.list_risks(category_id=2)

        assert [r.id for r in by_owner] == [2, 3]
        assert [r.id for r in by_category] == [2]

    @pytest.mark.asyncio
    async def test_scores_newest_first(self, repository):
        scores = await repository.get_risk_scores(1)

        assert [s.rating_date for s in scores] == [date(2025, 3, 1), date(2025, 1, 10)]
        assert scores[0].entered_by == 1

    @pytest.mark.asyncio
    async def test_scores_for_unknown_risk(self, repository):
        with pytest.raises(RiskNotFound):
            await repository.get_risk_scores(999)


class TestAddRiskScore:
    @pytest.mark.asyncio
    async def test_label_derived_from_score(self, repository):
        record = await repository.add_risk_score(
            3,
            NewRiskScore(rating_date=date(2025, 3, 10), numeric_score=7.5, entered_by=2),
        )

        assert record.id is not None
        assert record.rating_value == "Red"
        assert record.entered_by == 2

        scores = await repository.get_risk_scores(3)
        assert scores[0].numeric_score == 7.5
        summary = await repository.get_dashboard_summary()
        assert summary.high_risk_count == 2
        assert summary.low_risk_count == 0

    @pytest.mark.asyncio
    async def test_explicit_label_is_kept(self, repository):
        record = await repository.add_risk_score(
            2,
            NewRiskScore(
                rating_date=date(2025, 3, 12),
                numeric_score=9.0,
                rating_value="Extreme",
                entered_by=1,
            ),
        )

        assert record.rating_value == "Extreme"
        summary = await repository.get_dashboard_summary()
        assert summary.high_risk_count == 2

    @pytest.mark.asyncio
    async def test_unknown_author_is_rejected(self, repository):
        with pytest.raises(InvalidAuthor):
            await repository.add_risk_score(
                3,
                NewRiskScore(
                    rating_date=date(2025, 3, 10), numeric_score=5.0, entered_by=99
                ),
            )

        assert len(await repository.get_risk_scores(3)) == 1

    @pytest.mark.asyncio
    async def test_unknown_risk_is_rejected(self, repository):
        with pytest.raises(RiskNotFound):
            await repository.add_risk_score(
                999,
                NewRiskScore(rating_date=date(2025, 3, 10), numeric_score=5.0, entered_by=1),
            )


_Row = namedtuple("_Row", "rating_date rating_value numeric_score")


class TestTrendHelpers:
    def test_months_back_includes_current_month(self):
        assert months_back(date(2025, 3, 14), 6) == date(2024, 10, 1)
        assert months_back(date(2025, 3, 14), 1) == date(2025, 3, 1)
        assert months_back(date(2025, 1, 31), 13) == date(2024, 1, 1)

    def test_bucket_trend_bands_unknown_labels_by_score(self):
        points = bucket_trend(
            [
                _Row(date(2025, 2, 3), "Critical", 8.0),
                _Row(date(2025, 2, 20), "moderate", 5.0),
                _Row(datetime(2025, 2, 21, 10, 0), None, 1.0),
                _Row(date(2025, 1, 9), None, None),
            ]
        )

        jan, feb = points
        assert jan.total_count == 1
        assert jan.average_score == 0.0
        assert (feb.high_count, feb.medium_count, feb.low_count) == (1, 1, 1)
        assert feb.average_score == pytest.approx(14.0 / 3)
