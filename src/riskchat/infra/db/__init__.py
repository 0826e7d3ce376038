"""Risk register persistence (ORM models, read models, repository)."""

from riskchat.infra.db_engine import build_db, get_session_factory

from .deps import get_risk_repository
from .errors import InvalidAuthor, RiskNotFound, RiskStoreError
from .models import (
    Base,
    Risk,
    RiskCategory,
    RiskScore,
    Service,
    Site,
    User,
    WatchlistItem,
)
from .repository import RiskRepository
from .schemas import (
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

__all__ = [
    "build_db",
    "get_risk_repository",
    "get_session_factory",
    "Base",
    "DashboardSummary",
    "GroupSummary",
    "InvalidAuthor",
    "NamedRef",
    "NewRiskScore",
    "Risk",
    "RiskCategory",
    "RiskNotFound",
    "RiskRecord",
    "RiskRepository",
    "RiskScore",
    "RiskStoreError",
    "ScoreRecord",
    "Service",
    "Site",
    "TopRisk",
    "TrendPoint",
    "User",
    "WatchlistEntry",
    "WatchlistItem",
]
