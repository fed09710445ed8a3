"""SQLModel mappings for signals and the key/value settings table."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import Column, DateTime, Integer, String, Text, Uuid
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Signal(SQLModel, table=True):
    """A detected business event about a company."""

    __tablename__ = "signals"
    __table_args__ = (sa.Index("ix_signals_enrichment_status", "enrichment_status"),)

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    company_name: str = Field(sa_column=Column(String(length=255), nullable=False))
    signal_type: str = Field(
        default="", sa_column=Column(String(length=128), nullable=False, server_default="")
    )
    source_name: str | None = Field(
        default=None, sa_column=Column(String(length=255), nullable=True)
    )
    sector: str | None = Field(default=None, sa_column=Column(String(length=255), nullable=True))
    estimated_size: str | None = Field(
        default=None, sa_column=Column(String(length=128), nullable=True)
    )
    event_detail: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    score: int = Field(default=0, sa_column=Column(Integer, nullable=False, server_default="0"))
    enrichment_status: str | None = Field(
        default=None, sa_column=Column(String(length=64), nullable=True)
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


class AppSetting(SQLModel, table=True):
    """Key/value configuration edited from the dashboard settings page."""

    __tablename__ = "settings"

    key: str = Field(sa_column=Column(String(length=255), primary_key=True, nullable=False))
    value: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
