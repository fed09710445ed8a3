"""SQLModel mappings for enrichment records and the contacts they produce."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


JSON_BACKING_TYPE = sa.JSON().with_variant(JSONB(astext_type=sa.Text()), "postgresql")


class CompanyEnrichment(SQLModel, table=True):
    """At most one per signal; holds the external task handle inside ``raw_data``."""

    __tablename__ = "company_enrichment"
    __table_args__ = (
        sa.UniqueConstraint("signal_id", name="uq_company_enrichment_signal"),
        sa.Index("ix_company_enrichment_status", "status"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    signal_id: UUID = Field(
        sa_column=Column(
            Uuid(as_uuid=True),
            sa.ForeignKey("signals.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    company_name: str = Field(sa_column=Column(String(length=255), nullable=False))
    status: str | None = Field(default=None, sa_column=Column(String(length=64), nullable=True))
    enrichment_source: str | None = Field(
        default=None, sa_column=Column(String(length=64), nullable=True)
    )
    raw_data: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSON_BACKING_TYPE, nullable=True)
    )
    domain: str | None = Field(default=None, sa_column=Column(String(length=255), nullable=True))
    website: str | None = Field(default=None, sa_column=Column(String(length=512), nullable=True))
    industry: str | None = Field(default=None, sa_column=Column(String(length=255), nullable=True))
    employee_count: str | None = Field(
        default=None, sa_column=Column(String(length=128), nullable=True)
    )
    headquarters_location: str | None = Field(
        default=None, sa_column=Column(String(length=255), nullable=True)
    )
    error_message: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
    )

    @property
    def task_id(self) -> str | None:
        payload = self.raw_data or {}
        value = payload.get("task_id") or payload.get("manus_task_id")
        return str(value) if value else None

    @property
    def task_url(self) -> str | None:
        payload = self.raw_data or {}
        value = payload.get("task_url") or payload.get("manus_task_url")
        return str(value) if value else None


class Contact(SQLModel, table=True):
    """Decision-maker found for a signal's company."""

    __tablename__ = "contacts"
    __table_args__ = (
        sa.Index("ix_contacts_signal_id", "signal_id"),
        sa.Index("ix_contacts_enrichment_id", "enrichment_id"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    enrichment_id: UUID | None = Field(
        default=None,
        sa_column=Column(
            Uuid(as_uuid=True),
            sa.ForeignKey("company_enrichment.id", ondelete="CASCADE"),
            nullable=True,
        ),
    )
    signal_id: UUID = Field(
        sa_column=Column(
            Uuid(as_uuid=True),
            sa.ForeignKey("signals.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    full_name: str = Field(sa_column=Column(String(length=255), nullable=False))
    first_name: str | None = Field(default=None, sa_column=Column(String(length=128), nullable=True))
    last_name: str | None = Field(default=None, sa_column=Column(String(length=128), nullable=True))
    job_title: str | None = Field(default=None, sa_column=Column(String(length=255), nullable=True))
    department: str | None = Field(default=None, sa_column=Column(String(length=255), nullable=True))
    location: str | None = Field(default=None, sa_column=Column(String(length=255), nullable=True))
    email_principal: str | None = Field(
        default=None, sa_column=Column(String(length=255), nullable=True)
    )
    email_alternatif: str | None = Field(
        default=None, sa_column=Column(String(length=255), nullable=True)
    )
    phone: str | None = Field(default=None, sa_column=Column(String(length=64), nullable=True))
    linkedin_url: str | None = Field(
        default=None, sa_column=Column(String(length=512), nullable=True)
    )
    is_priority_target: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, server_default=sa.false())
    )
    priority_score: int = Field(
        default=3, sa_column=Column(Integer, nullable=False, server_default="3")
    )
    outreach_status: str = Field(
        default="new",
        sa_column=Column(String(length=64), nullable=False, server_default="new"),
    )
    notes: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    raw_data: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSON_BACKING_TYPE, nullable=True)
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
    )
