"""Read models returned by ``RiskRepository``.

These are the summary views the context assembler renders into the
system prompt and the dashboard API serialises as JSON.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TrendDirection = Literal["up", "down", "stable"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DashboardSummary(_CamelModel):
    """Overall counts and scores across the (optionally filtered) register."""

    total_risks: int = 0
    high_risk_count: int = 0
    medium_risk_count: int = 0
    low_risk_count: int = 0
    average_score: float = 0.0
    aggregate_score: float = Field(
        default=0.0, description="Sum of every risk's latest numeric score"
    )


class TopRisk(_CamelModel):
    risk_id: int
    name: str
    site_name: str | None = None
    category_name: str | None = None
    owner_name: str | None = None
    score: float | None = None
    rag_rating: str | None = None
    variance: float | None = Field(
        default=None, description="Latest minus previous score, 1 d.p."
    )
    trend_direction: TrendDirection | None = None


class GroupSummary(_CamelModel):
    """Risk counts for one site, category or owner."""

    id: int
    name: str
    total_risks: int = 0
    high_risk_count: int = 0
    medium_risk_count: int = 0
    low_risk_count: int = 0
    average_score: float = 0.0


class TrendPoint(_CamelModel):
    period: date = Field(description="First day of the month")
    average_score: float = 0.0
    high_count: int = 0
    medium_count: int = 0
    low_count: int = 0
    total_count: int = 0


class WatchlistEntry(_CamelModel):
    risk_id: int
    name: str
    site_name: str | None = None
    score: float | None = None
    rag_rating: str | None = None
    reason: str | None = None


class NamedRef(_CamelModel):
    id: int
    name: str


class RiskRecord(_CamelModel):
    id: int
    name: str
    site_name: str | None = None
    service_name: str | None = None
    category_name: str | None = None
    owner_name: str | None = None
    rag_rating: str | None = None
    status: str | None = None
    last_updated: datetime | None = None
    latest_score: float | None = None


class ScoreRecord(_CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    risk_id: int
    rating_date: date
    rating_value: str | None = None
    numeric_score: float | None = None
    notes: str | None = None
    entered_by: int | None = None
    entered_at: datetime | None = None


class NewRiskScore(_CamelModel):
    """A score to record against a risk."""

    rating_date: date
    numeric_score: float = Field(ge=0.0, le=10.0)
    rating_value: str | None = Field(
        default=None,
        description="RAG label; derived from the score's band when omitted",
    )
    notes: str | None = None
    entered_by: int = Field(description="Id of an existing user")
