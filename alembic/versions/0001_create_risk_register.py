"""create risk register tables

Revision ID: 0001
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "sites",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("domain", sa.String(length=200), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_sites"),
    )
    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_services"),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_table(
        "risk_categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("service_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["service_id"],
            ["services.id"],
            name="fk_risk_categories_service_id_services",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_risk_categories"),
    )
    op.create_table(
        "risks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=300), nullable=False),
        sa.Column("site_id", sa.Integer(), nullable=True),
        sa.Column("service_id", sa.Integer(), nullable=True),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("owner_id", sa.Integer(), nullable=True),
        sa.Column("rag_rating", sa.String(length=50), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=True),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["site_id"], ["sites.id"], name="fk_risks_site_id_sites"
        ),
        sa.ForeignKeyConstraint(
            ["service_id"], ["services.id"], name="fk_risks_service_id_services"
        ),
        sa.ForeignKeyConstraint(
            ["category_id"],
            ["risk_categories.id"],
            name="fk_risks_category_id_risk_categories",
        ),
        sa.ForeignKeyConstraint(
            ["owner_id"], ["users.id"], name="fk_risks_owner_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_risks"),
    )
    op.create_index("ix_risks_site_id", "risks", ["site_id"])
    op.create_index("ix_risks_service_id", "risks", ["service_id"])
    op.create_index("ix_risks_owner_id", "risks", ["owner_id"])

    op.create_table(
        "risk_scores",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("risk_id", sa.Integer(), nullable=False),
        sa.Column("rating_date", sa.Date(), nullable=False),
        sa.Column("rating_value", sa.String(length=50), nullable=True),
        sa.Column("numeric_score", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("entered_by", sa.Integer(), nullable=True),
        sa.Column(
            "entered_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["risk_id"], ["risks.id"], name="fk_risk_scores_risk_id_risks"
        ),
        sa.ForeignKeyConstraint(
            ["entered_by"], ["users.id"], name="fk_risk_scores_entered_by_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_risk_scores"),
    )
    op.create_index(
        "ix_risk_scores_risk_id_rating_date",
        "risk_scores",
        ["risk_id", "rating_date"],
    )

    op.create_table(
        "watchlist_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("risk_id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column(
            "added_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["risk_id"], ["risks.id"], name="fk_watchlist_items_risk_id_risks"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_watchlist_items"),
    )


def downgrade() -> None:
    op.drop_table("watchlist_items")
    op.drop_index("ix_risk_scores_risk_id_rating_date", table_name="risk_scores")
    op.drop_table("risk_scores")
    op.drop_index("ix_risks_owner_id", table_name="risks")
    op.drop_index("ix_risks_service_id", table_name="risks")
    op.drop_index("ix_risks_site_id", table_name="risks")
    op.drop_table("risks")
    op.drop_table("risk_categories")
    op.drop_table("users")
    op.drop_table("services")
    op.drop_table("sites")
