"""Create signals, settings, company_enrichment and contacts tables.

``company_enrichment.signal_id`` is unique: a signal owns at most one
enrichment record. Contacts are looked up by signal for the insert-once guard.
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "4b2e9c7a1d05"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "signals",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("signal_type", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("source_name", sa.String(length=255), nullable=True),
        sa.Column("sector", sa.String(length=255), nullable=True),
        sa.Column("estimated_size", sa.String(length=128), nullable=True),
        sa.Column("event_detail", sa.Text(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("enrichment_status", sa.String(length=64), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_signals_enrichment_status", "signals", ["enrichment_status"])

    op.create_table(
        "settings",
        sa.Column("key", sa.String(length=255), primary_key=True, nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
    )

    op.create_table(
        "company_enrichment",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "signal_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("signals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=64), nullable=True),
        sa.Column("enrichment_source", sa.String(length=64), nullable=True),
        sa.Column("raw_data", JSON_TYPE, nullable=True),
        sa.Column("domain", sa.String(length=255), nullable=True),
        sa.Column("website", sa.String(length=512), nullable=True),
        sa.Column("industry", sa.String(length=255), nullable=True),
        sa.Column("employee_count", sa.String(length=128), nullable=True),
        sa.Column("headquarters_location", sa.String(length=255), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("signal_id", name="uq_company_enrichment_signal"),
    )
    op.create_index("ix_company_enrichment_status", "company_enrichment", ["status"])

    op.create_table(
        "contacts",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "enrichment_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("company_enrichment.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "signal_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("signals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=128), nullable=True),
        sa.Column("last_name", sa.String(length=128), nullable=True),
        sa.Column("job_title", sa.String(length=255), nullable=True),
        sa.Column("department", sa.String(length=255), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("email_principal", sa.String(length=255), nullable=True),
        sa.Column("email_alternatif", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("linkedin_url", sa.String(length=512), nullable=True),
        sa.Column("is_priority_target", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("priority_score", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("outreach_status", sa.String(length=64), nullable=False, server_default="new"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("raw_data", JSON_TYPE, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_contacts_signal_id", "contacts", ["signal_id"])
    op.create_index("ix_contacts_enrichment_id", "contacts", ["enrichment_id"])


def downgrade() -> None:
    op.drop_index("ix_contacts_enrichment_id", table_name="contacts")
    op.drop_index("ix_contacts_signal_id", table_name="contacts")
    op.drop_table("contacts")
    op.drop_index("ix_company_enrichment_status", table_name="company_enrichment")
    op.drop_table("company_enrichment")
    op.drop_table("settings")
    op.drop_index("ix_signals_enrichment_status", table_name="signals")
    op.drop_table("signals")
