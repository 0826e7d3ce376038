"""Dashboard, report and reference endpoints over the risk register."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from riskchat.infra.db import (
    DashboardSummary,
    GroupSummary,
    NamedRef,
    NewRiskScore,
    RiskRecord,
    ScoreRecord,
    TopRisk,
    TrendPoint,
    WatchlistEntry,
)

from .deps import RiskRepositoryDep

router = APIRouter(prefix="/api/v1", tags=["risks"])

SiteFilter = Annotated[int | None, Query(description="Only risks at this site")]
ServiceFilter = Annotated[
    int | None, Query(description="Only risks under this service")
]


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@router.get("/dashboard/summary")
async def dashboard_summary(
    repository: RiskRepositoryDep,
    site_id: SiteFilter = None,
    service_id: ServiceFilter = None,
) -> DashboardSummary:
    return await repository.get_dashboard_summary(site_id, service_id)


@router.get("/dashboard/top-risks")
async def top_risks(
    repository: RiskRepositoryDep,
    count: Annotated[int, Query(ge=1, le=100)] = 10,
    site_id: SiteFilter = None,
    service_id: ServiceFilter = None,
) -> list[TopRisk]:
    return await repository.get_top_risks(count, site_id, service_id)


@router.get("/dashboard/watchlist")
async def watchlist(
    repository: RiskRepositoryDep,
    site_id: SiteFilter = None,
    service_id: ServiceFilter = None,
) -> list[WatchlistEntry]:
    return await repository.get_watchlist(site_id, service_id)


@router.get("/dashboard/trend")
async def risk_trend(
    repository: RiskRepositoryDep,
    months: Annotated[int, Query(ge=1, le=36)] = 6,
    site_id: SiteFilter = None,
    service_id: ServiceFilter = None,
) -> list[TrendPoint]:
    return await repository.get_risk_trend(months, site_id, service_id)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@router.get("/reports/sites")
async def site_report(
    repository: RiskRepositoryDep,
    service_id: ServiceFilter = None,
) -> list[GroupSummary]:
    return await repository.get_site_summary(service_id)


@router.get("/reports/categories")
async def category_report(
    repository: RiskRepositoryDep,
    site_id: SiteFilter = None,
    service_id: ServiceFilter = None,
) -> list[GroupSummary]:
    return await repository.get_category_summary(site_id, service_id)


@router.get("/reports/owners")
async def owner_report(
    repository: RiskRepositoryDep,
    site_id: SiteFilter = None,
    service_id: ServiceFilter = None,
) -> list[GroupSummary]:
    return await repository.get_owner_summary(site_id, service_id)


# ---------------------------------------------------------------------------
# Reference lists
# ---------------------------------------------------------------------------


@router.get("/reference/sites")
async def list_sites(repository: RiskRepositoryDep) -> list[NamedRef]:
    return await repository.get_sites()


@router.get("/reference/services")
async def list_services(repository: RiskRepositoryDep) -> list[NamedRef]:
    return await repository.get_services()


@router.get("/reference/categories")
async def list_categories(
    repository: RiskRepositoryDep,
    service_id: ServiceFilter = None,
) -> list[NamedRef]:
    return await repository.get_categories(service_id)


@router.get("/reference/users")
async def list_users(repository: RiskRepositoryDep) -> list[NamedRef]:
    return await repository.get_users()


# ---------------------------------------------------------------------------
# Risks
# ---------------------------------------------------------------------------


@router.get("/risks")
async def list_risks(
    repository: RiskRepositoryDep,
    site_id: SiteFilter = None,
    service_id: ServiceFilter = None,
    category_id: Annotated[int | None, Query()] = None,
    owner_id: Annotated[int | None, Query()] = None,
) -> list[RiskRecord]:
    return await repository.list_risks(site_id, service_id, category_id, owner_id)


@router.get("/risks/{risk_id}/scores")
async def risk_scores(
    risk_id: int,
    repository: RiskRepositoryDep,
) -> list[ScoreRecord]:
    return await repository.get_risk_scores(risk_id)


@router.post("/risks/{risk_id}/scores", status_code=status.HTTP_201_CREATED)
async def add_risk_score(
    risk_id: int,
    score: NewRiskScore,
    repository: RiskRepositoryDep,
) -> ScoreRecord:
    """Record a new score; the author must be an existing user."""
    return await repository.add_risk_score(risk_id, score)
