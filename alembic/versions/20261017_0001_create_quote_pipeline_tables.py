"""create quote pipeline tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "scraper_targets",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("logo_url", sa.String(length=1024), nullable=True),
        sa.Column("base_url", sa.String(length=2048), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("use_headless", sa.Boolean(), nullable=False),
        sa.Column(
            "rate_limit_ms",
            sa.Integer(),
            nullable=False,
            comment="Minimum gap between requests to this target's domain",
        ),
        sa.Column("headers_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("cookies_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "selector_json",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Explicit field -> CSS selector map",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scraper_targets_enabled", "scraper_targets", ["enabled"], unique=False)
    op.create_index("ix_scraper_targets_is_active", "scraper_targets", ["is_active"], unique=False)

    op.create_table(
        "scraper_runs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("target_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "stats_json",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="total_pages, success_pages, error_pages, data_extracted, duration_seconds",
        ),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["target_id"], ["scraper_targets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scraper_runs_target_id", "scraper_runs", ["target_id"], unique=False)
    op.create_index("ix_scraper_runs_status", "scraper_runs", ["status"], unique=False)
    op.create_index("ix_scraper_runs_created_at", "scraper_runs", ["created_at"], unique=False)

    op.create_table(
        "scraped_rows",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("target_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("hash_key", sa.String(length=64), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("row_type", sa.String(length=255), nullable=False),
        sa.Column("raw_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("normalized_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["target_id"], ["scraper_targets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("hash_key", name="uq_scraped_rows_hash_key"),
    )
    op.create_index("ix_scraped_rows_target_id", "scraped_rows", ["target_id"], unique=False)
    op.create_index("ix_scraped_rows_created_at", "scraped_rows", ["created_at"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tckn", sa.String(length=11), nullable=False, comment="Turkish national identity number"),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(length=16), nullable=True),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("district", sa.String(length=120), nullable=True),
        sa.Column("postal_code", sa.String(length=16), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customers_tckn", "customers", ["tckn"], unique=True)

    op.create_table(
        "quotes",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("agent_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("vehicle_plate", sa.String(length=32), nullable=True),
        sa.Column("vehicle_year", sa.Integer(), nullable=True),
        sa.Column("vehicle_brand", sa.String(length=120), nullable=True),
        sa.Column("vehicle_model", sa.String(length=120), nullable=True),
        sa.Column("engine_number", sa.String(length=64), nullable=True),
        sa.Column("chassis_number", sa.String(length=64), nullable=True),
        sa.Column("coverage_type", sa.String(length=32), nullable=False, comment="kasko, trafik, dask, saglik"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("additional_info", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quotes_customer_id", "quotes", ["customer_id"], unique=False)
    op.create_index("ix_quotes_status", "quotes", ["status"], unique=False)

    op.create_table(
        "scraped_quotes",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quote_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("target_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("company_logo", sa.String(length=1024), nullable=True),
        sa.Column("premium", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("coverage_amount", sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column("discount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column(
            "final_price",
            sa.Numeric(precision=12, scale=2),
            nullable=True,
            comment="premium - discount; NULL for error rows",
        ),
        sa.Column("agent_commission", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("raw_payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("scraped_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["quote_id"], ["quotes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_id"], ["scraper_targets.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("quote_id", "target_id", name="uq_scraped_quotes_quote_target"),
    )
    op.create_index(
        "ix_scraped_quotes_quote_id_final_price",
        "scraped_quotes",
        ["quote_id", "final_price"],
        unique=False,
    )

    op.create_table(
        "policies",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("agent_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quote_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("scraped_quote_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("policy_number", sa.String(length=32), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("premium", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["quote_id"], ["quotes.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["scraped_quote_id"], ["scraped_quotes.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("policy_number", name="uq_policies_policy_number"),
    )
    op.create_index("ix_policies_quote_id", "policies", ["quote_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_policies_quote_id", table_name="policies")
    op.drop_table("policies")
    op.drop_index("ix_scraped_quotes_quote_id_final_price", table_name="scraped_quotes")
    op.drop_table("scraped_quotes")
    op.drop_index("ix_quotes_status", table_name="quotes")
    op.drop_index("ix_quotes_customer_id", table_name="quotes")
    op.drop_table("quotes")
    op.drop_index("ix_customers_tckn", table_name="customers")
    op.drop_table("customers")
    op.drop_index("ix_scraped_rows_created_at", table_name="scraped_rows")
    op.drop_index("ix_scraped_rows_target_id", table_name="scraped_rows")
    op.drop_table("scraped_rows")
    op.drop_index("ix_scraper_runs_created_at", table_name="scraper_runs")
    op.drop_index("ix_scraper_runs_status", table_name="scraper_runs")
    op.drop_index("ix_scraper_runs_target_id", table_name="scraper_runs")
    op.drop_table("scraper_runs")
    op.drop_index("ix_scraper_targets_is_active", table_name="scraper_targets")
    op.drop_index("ix_scraper_targets_enabled", table_name="scraper_targets")
    op.drop_table("scraper_targets")
