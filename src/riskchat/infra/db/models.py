"""SQLAlchemy ORM models for the risk register.

All tables are managed by Alembic migrations.  The ``Base.metadata``
naming convention ensures deterministic constraint names for
auto-generated migrations.

Column types are kept dialect-neutral so the same models back
PostgreSQL in production and SQLite in tests.
"""

from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# ---------------------------------------------------------------------------
# Declarative base with naming convention
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    """Shared declarative base with explicit naming convention."""

    metadata_naming_convention = {
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }


Base.metadata.naming_convention = Base.metadata_naming_convention


# ---------------------------------------------------------------------------
# Reference tables
# ---------------------------------------------------------------------------


class Site(Base):
    __tablename__ = "sites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    domain: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<Site(id={self.id}, name={self.name!r})>"


class Service(Base):
    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name={self.name!r})>"


class RiskCategory(Base):
    __tablename__ = "risk_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    service_id: Mapped[int | None] = mapped_column(
        ForeignKey("services.id"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<RiskCategory(id={self.id}, name={self.name!r})>"


class User(Base):
    """A risk owner / score author."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name!r})>"


# ---------------------------------------------------------------------------
# Risks and their score history
# ---------------------------------------------------------------------------


class Risk(Base):
    """A tracked risk.

    ``rag_rating`` mirrors the label of the most recently entered score
    and is free text (``Red``/``High``/``Extreme`` ...); band semantics
    live in ``riskchat.core.bands``.
    """

    __tablename__ = "risks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    site_id: Mapped[int | None] = mapped_column(ForeignKey("sites.id"))
    service_id: Mapped[int | None] = mapped_column(ForeignKey("services.id"))
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("risk_categories.id")
    )
    owner_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    rag_rating: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_updated: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_risks_site_id", "site_id"),
        Index("ix_risks_service_id", "service_id"),
        Index("ix_risks_owner_id", "owner_id"),
    )

    def __repr__(self) -> str:
        return f"<Risk(id={self.id}, name={self.name!r}, rag={self.rag_rating!r})>"


class RiskScore(Base):
    """One dated assessment of a risk."""

    __tablename__ = "risk_scores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    risk_id: Mapped[int] = mapped_column(ForeignKey("risks.id"), nullable=False)
    rating_date: Mapped[date] = mapped_column(Date, nullable=False)
    rating_value: Mapped[str | None] = mapped_column(String(50), nullable=True)
    numeric_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    entered_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    entered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_risk_scores_risk_id_rating_date", "risk_id", "rating_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<RiskScore(id={self.id}, risk_id={self.risk_id}, "
            f"rating_date={self.rating_date}, score={self.numeric_score})>"
        )


class WatchlistItem(Base):
    __tablename__ = "watchlist_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    risk_id: Mapped[int] = mapped_column(ForeignKey("risks.id"), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
