"""Risk register queries.

``RiskRepository`` wraps session lifecycle: every public coroutine opens
its own session from the factory, so callers may run several reads
concurrently (the context assembler does).

Queries are parameterised raw SQL run through ``sqlalchemy.text()``.
Band counts come from ``riskchat.core.bands`` and the "latest score" of
a risk is its most recent ``rating_date`` (``ROW_NUMBER`` window).
Errors propagate; the caller decides how to degrade.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import Date, DateTime, Float, String, bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from riskchat.core.bands import (
    SeverityBand,
    band_count_sql,
    band_for_score,
    normalize_band,
)

from .errors import InvalidAuthor, RiskNotFound
from .models import Risk, RiskScore, User
from .schemas import (
    DashboardSummary,
    GroupSummary,
    NamedRef,
    NewRiskScore,
    RiskRecord,
    ScoreRecord,
    TopRisk,
    TrendDirection,
    TrendPoint,
    WatchlistEntry,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants (no magic strings below)
# ---------------------------------------------------------------------------

PARAM_SITE_ID = "site_id"
PARAM_SERVICE_ID = "service_id"
PARAM_CATEGORY_ID = "category_id"
PARAM_OWNER_ID = "owner_id"
PARAM_RISK_ID = "risk_id"
PARAM_LIMIT = "lim"
PARAM_SINCE = "since"

_HIGH = band_count_sql("r.rag_rating", SeverityBand.HIGH)
_MEDIUM = band_count_sql("r.rag_rating", SeverityBand.MEDIUM)
_LOW = band_count_sql("r.rag_rating", SeverityBand.LOW)

# Dimension name -> (table, risks FK column)
GROUP_DIMENSIONS: dict[str, tuple[str, str]] = {
    "site": ("sites", "site_id"),
    "category": ("risk_categories", "category_id"),
    "owner": ("users", "owner_id"),
}

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_RANKED_SCORES = """
    WITH ranked AS (
        SELECT risk_id, numeric_score, rating_value, rating_date,
               ROW_NUMBER() OVER (
                   PARTITION BY risk_id ORDER BY rating_date DESC, id DESC
               ) AS rn
        FROM risk_scores
    )
"""

SQL_DASHBOARD_SUMMARY = (
    _RANKED_SCORES
    + f"""
    SELECT COUNT(r.id) AS total_risks,
           COALESCE({_HIGH}, 0) AS high_risk_count,
           COALESCE({_MEDIUM}, 0) AS medium_risk_count,
           COALESCE({_LOW}, 0) AS low_risk_count,
           COALESCE(AVG(ls.numeric_score), 0) AS average_score,
           COALESCE(SUM(ls.numeric_score), 0) AS aggregate_score
    FROM risks r
    LEFT JOIN ranked ls ON ls.risk_id = r.id AND ls.rn = 1
    {{where}}
"""
)

SQL_TOP_RISKS = (
    _RANKED_SCORES
    + f"""
    SELECT r.id AS risk_id, r.name AS name,
           s.name AS site_name, c.name AS category_name, u.name AS owner_name,
           ls.numeric_score AS score, r.rag_rating AS rag_rating,
           ps.numeric_score AS previous_score
    FROM risks r
    JOIN ranked ls ON ls.risk_id = r.id AND ls.rn = 1
    LEFT JOIN ranked ps ON ps.risk_id = r.id AND ps.rn = 2
    LEFT JOIN sites s ON s.id = r.site_id
    LEFT JOIN risk_categories c ON c.id = r.category_id
    LEFT JOIN users u ON u.id = r.owner_id
    {{where}}
    ORDER BY ls.numeric_score DESC, r.id
    LIMIT :{PARAM_LIMIT}
"""
)

SQL_GROUP_SUMMARY = (
    _RANKED_SCORES
    + f"""
    SELECT g.id AS id, g.name AS name,
           COUNT(r.id) AS total_risks,
           COALESCE({_HIGH}, 0) AS high_risk_count,
           COALESCE({_MEDIUM}, 0) AS medium_risk_count,
           COALESCE({_LOW}, 0) AS low_risk_count,
           COALESCE(AVG(ls.numeric_score), 0) AS average_score
    FROM risks r
    JOIN {{table}} g ON g.id = r.{{column}}
    LEFT JOIN ranked ls ON ls.risk_id = r.id AND ls.rn = 1
    {{where}}
    GROUP BY g.id, g.name
    ORDER BY total_risks DESC, g.name
"""
)

SQL_WATCHLIST = (
    _RANKED_SCORES
    + """
    SELECT r.id AS risk_id, r.name AS name, s.name AS site_name,
           ls.numeric_score AS score, r.rag_rating AS rag_rating,
           w.reason AS reason
    FROM watchlist_items w
    JOIN risks r ON r.id = w.risk_id
    LEFT JOIN sites s ON s.id = r.site_id
    LEFT JOIN ranked ls ON ls.risk_id = r.id AND ls.rn = 1
    {where}
    ORDER BY COALESCE(ls.numeric_score, 0) DESC, r.id
"""
)

SQL_TREND_SCORES = f"""
    SELECT rs.rating_date AS rating_date, rs.rating_value AS rating_value,
           rs.numeric_score AS numeric_score
    FROM risk_scores rs
    JOIN risks r ON r.id = rs.risk_id
    WHERE rs.rating_date >= :{PARAM_SINCE}
    {{scope}}
"""

SQL_LIST_RISKS = (
    _RANKED_SCORES
    + """
    SELECT r.id AS id, r.name AS name,
           s.name AS site_name, sv.name AS service_name,
           c.name AS category_name, u.name AS owner_name,
           r.rag_rating AS rag_rating, r.status AS status,
           r.last_updated AS last_updated, ls.numeric_score AS latest_score
    FROM risks r
    LEFT JOIN sites s ON s.id = r.site_id
    LEFT JOIN services sv ON sv.id = r.service_id
    LEFT JOIN risk_categories c ON c.id = r.category_id
    LEFT JOIN users u ON u.id = r.owner_id
    LEFT JOIN ranked ls ON ls.risk_id = r.id AND ls.rn = 1
    {where}
    ORDER BY r.name
"""
)

SQL_RISK_SCORES = f"""
    SELECT id, risk_id, rating_date, rating_value, numeric_score,
           notes, entered_by, entered_at
    FROM risk_scores
    WHERE risk_id = :{PARAM_RISK_ID}
    ORDER BY rating_date DESC, id DESC
"""

SQL_REFERENCE = "SELECT id, name FROM {table} {where} ORDER BY name"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _scope(
    site_id: int | None = None,
    service_id: int | None = None,
    category_id: int | None = None,
    owner_id: int | None = None,
) -> tuple[list[str], dict[str, Any]]:
    """Filter predicates on ``risks r`` for the ids that are set.

    Predicates are only emitted for present filters; ``:p IS NULL``
    style optional parameters are not portable to asyncpg.
    """
    filters = {
        PARAM_SITE_ID: site_id,
        PARAM_SERVICE_ID: service_id,
        PARAM_CATEGORY_ID: category_id,
        PARAM_OWNER_ID: owner_id,
    }
    clauses: list[str] = []
    params: dict[str, Any] = {}
    for name, value in filters.items():
        if value is not None:
            clauses.append(f"r.{name} = :{name}")
            params[name] = value
    return clauses, params


def _where(clauses: list[str]) -> str:
    return f"WHERE {' AND '.join(clauses)}" if clauses else ""


def _trend_direction(variance: float | None) -> TrendDirection | None:
    if variance is None:
        return None
    if variance > 0:
        return "up"
    if variance < 0:
        return "down"
    return "stable"


def months_back(today: date, months: int) -> date:
    """First day of the month ``months - 1`` months before *today*'s month.

    ``months_back(date(2025, 3, 14), 6)`` is ``date(2024, 10, 1)``: the
    window covers exactly *months* calendar months including the current
    one.
    """
    index = today.year * 12 + (today.month - 1) - (max(months, 1) - 1)
    return date(index // 12, index % 12 + 1, 1)


def _empty_bucket() -> dict[Any, Any]:
    bucket: dict[Any, Any] = {band: 0 for band in SeverityBand}
    bucket["scores"] = []
    bucket["total"] = 0
    return bucket


def bucket_trend(rows: list[Any]) -> list[TrendPoint]:
    """Group score rows by calendar month, oldest month first.

    A score whose label is not a known RAG synonym is banded by its
    numeric value instead.
    """
    buckets: dict[date, dict[Any, Any]] = defaultdict(_empty_bucket)
    for row in rows:
        rating_date = row.rating_date
        if isinstance(rating_date, datetime):
            rating_date = rating_date.date()
        bucket = buckets[date(rating_date.year, rating_date.month, 1)]
        bucket["total"] += 1
        band = normalize_band(row.rating_value)
        if band is None and row.numeric_score is not None:
            band = band_for_score(row.numeric_score)
        if band is not None:
            bucket[band] += 1
        if row.numeric_score is not None:
            bucket["scores"].append(row.numeric_score)

    points = []
    for period in sorted(buckets):
        bucket = buckets[period]
        scores = bucket["scores"]
        points.append(
            TrendPoint(
                period=period,
                average_score=sum(scores) / len(scores) if scores else 0.0,
                high_count=bucket[SeverityBand.HIGH],
                medium_count=bucket[SeverityBand.MEDIUM],
                low_count=bucket[SeverityBand.LOW],
                total_count=bucket["total"],
            )
        )
    return points


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class RiskRepository:
    """Read (and score-write) access to the risk register."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _fetch(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        **column_types: Any,
    ) -> list[Any]:
        """Run *sql* and return its rows as mappings.

        ``column_types`` type result columns that the driver returns as
        text (dates and timestamps on SQLite).
        """
        stmt = text(sql)
        if column_types:
            stmt = stmt.columns(**column_types)
        async with self._session_factory() as session:
            result = await session.execute(stmt, params or {})
            return list(result.mappings().all())

    # -- dashboard -------------------------------------------------------

    async def get_dashboard_summary(
        self, site_id: int | None = None, service_id: int | None = None
    ) -> DashboardSummary:
        clauses, params = _scope(site_id=site_id, service_id=service_id)
        rows = await self._fetch(
            SQL_DASHBOARD_SUMMARY.format(where=_where(clauses)), params
        )
        if not rows:
            return DashboardSummary()
        return DashboardSummary(**rows[0])

    async def get_top_risks(
        self,
        count: int = 10,
        site_id: int | None = None,
        service_id: int | None = None,
    ) -> list[TopRisk]:
        clauses, params = _scope(site_id=site_id, service_id=service_id)
        clauses.append("ls.numeric_score IS NOT NULL")
        params[PARAM_LIMIT] = count
        rows = await self._fetch(SQL_TOP_RISKS.format(where=_where(clauses)), params)

        risks = []
        for row in rows:
            data = dict(row)
            previous = data.pop("previous_score")
            variance = (
                round(data["score"] - previous, 1) if previous is not None else None
            )
            risks.append(
                TopRisk(
                    **data,
                    variance=variance,
                    trend_direction=_trend_direction(variance),
                )
            )
        return risks

    async def get_watchlist(
        self, site_id: int | None = None, service_id: int | None = None
    ) -> list[WatchlistEntry]:
        clauses, params = _scope(site_id=site_id, service_id=service_id)
        rows = await self._fetch(SQL_WATCHLIST.format(where=_where(clauses)), params)
        return [WatchlistEntry(**row) for row in rows]

    async def get_risk_trend(
        self,
        months: int = 6,
        site_id: int | None = None,
        service_id: int | None = None,
        today: date | None = None,
    ) -> list[TrendPoint]:
        since = months_back(today or date.today(), months)
        clauses, params = _scope(site_id=site_id, service_id=service_id)
        scope = "".join(f" AND {clause}" for clause in clauses)
        stmt = (
            text(SQL_TREND_SCORES.format(scope=scope))
            .bindparams(bindparam(PARAM_SINCE, type_=Date))
            .columns(rating_date=Date, rating_value=String, numeric_score=Float)
        )
        params[PARAM_SINCE] = since
        async with self._session_factory() as session:
            result = await session.execute(stmt, params)
            rows = result.all()
        return bucket_trend(rows)

    # -- grouped summaries -------------------------------------------------

    async def _group_summary(
        self,
        dimension: str,
        site_id: int | None = None,
        service_id: int | None = None,
    ) -> list[GroupSummary]:
        table, column = GROUP_DIMENSIONS[dimension]
        clauses, params = _scope(site_id=site_id, service_id=service_id)
        sql = SQL_GROUP_SUMMARY.format(
            table=table, column=column, where=_where(clauses)
        )
        rows = await self._fetch(sql, params)
        return [GroupSummary(**row) for row in rows]

    async def get_site_summary(
        self, service_id: int | None = None
    ) -> list[GroupSummary]:
        return await self._group_summary("site", service_id=service_id)

    async def get_category_summary(
        self, site_id: int | None = None, service_id: int | None = None
    ) -> list[GroupSummary]:
        return await self._group_summary(
            "category", site_id=site_id, service_id=service_id
        )

    async def get_owner_summary(
        self, site_id: int | None = None, service_id: int | None = None
    ) -> list[GroupSummary]:
        return await self._group_summary(
            "owner", site_id=site_id, service_id=service_id
        )

    # -- reference lists -------------------------------------------------

    async def _reference(
        self, table: str, where: str = "", params: dict[str, Any] | None = None
    ) -> list[NamedRef]:
        rows = await self._fetch(SQL_REFERENCE.format(table=table, where=where), params)
        return [NamedRef(**row) for row in rows]

    async def get_sites(self) -> list[NamedRef]:
        return await self._reference("sites")

    async def get_services(self) -> list[NamedRef]:
        return await self._reference("services")

    async def get_categories(self, service_id: int | None = None) -> list[NamedRef]:
        if service_id is None:
            return await self._reference("risk_categories")
        return await self._reference(
            "risk_categories",
            f"WHERE service_id = :{PARAM_SERVICE_ID}",
            {PARAM_SERVICE_ID: service_id},
        )

    async def get_users(self) -> list[NamedRef]:
        return await self._reference("users")

    # -- risks -------------------------------------------------------------

    async def list_risks(
        self,
        site_id: int | None = None,
        service_id: int | None = None,
        category_id: int | None = None,
        owner_id: int | None = None,
    ) -> list[RiskRecord]:
        clauses, params = _scope(site_id, service_id, category_id, owner_id)
        rows = await self._fetch(
            SQL_LIST_RISKS.format(where=_where(clauses)),
            params,
            last_updated=DateTime(timezone=True),
        )
        return [RiskRecord(**row) for row in rows]

    async def get_risk_scores(self, risk_id: int) -> list[ScoreRecord]:
        async with self._session_factory() as session:
            if await session.get(Risk, risk_id) is None:
                raise RiskNotFound(risk_id)
        rows = await self._fetch(
            SQL_RISK_SCORES,
            {PARAM_RISK_ID: risk_id},
            rating_date=Date,
            entered_at=DateTime(timezone=True),
        )
        return [ScoreRecord(**row) for row in rows]

    async def add_risk_score(self, risk_id: int, score: NewRiskScore) -> ScoreRecord:
        """Record *score* and make its label the risk's current RAG rating.

        Raises ``RiskNotFound`` for an unknown risk and ``InvalidAuthor``
        when ``entered_by`` does not name an existing user.
        """
        label = score.rating_value or band_for_score(score.numeric_score).rag_colour
        now = datetime.now(timezone.utc)

        async with self._session_factory() as session:
            async with session.begin():
                risk = await session.get(Risk, risk_id)
                if risk is None:
                    raise RiskNotFound(risk_id)
                if await session.get(User, score.entered_by) is None:
                    raise InvalidAuthor(score.entered_by)

                row = RiskScore(
                    risk_id=risk_id,
                    rating_date=score.rating_date,
                    rating_value=label,
                    numeric_score=score.numeric_score,
                    notes=score.notes,
                    entered_by=score.entered_by,
                    entered_at=now,
                )
                session.add(row)
                risk.rag_rating = label
                risk.last_updated = now
                await session.flush()
                record = ScoreRecord.model_validate(row)

        logger.info(
            "Recorded score %.1f (%s) for risk %d by user %d",
            score.numeric_score,
            label,
            risk_id,
            score.entered_by,
        )
        return record
