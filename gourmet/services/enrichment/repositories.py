"""Persistence backends for signals, enrichment records and contacts."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from gourmet.config import settings
from gourmet.core.database import create_database_engine, init_database
from gourmet.models.enrichment import CompanyEnrichment, Contact
from gourmet.models.signal import AppSetting, Signal
from gourmet.services.enrichment.errors import (
    ContactNotFoundError,
    EnrichmentPersistenceError,
)

logger = logging.getLogger(__name__)


class EnrichmentRepository(Protocol):
    """Persistence contract for the enrichment workflow."""

    def get_signal(self, signal_id: str) -> Signal | None:
        ...

    def set_signal_status(self, signal_id: str, status: str) -> None:
        ...

    def get_enrichment(self, signal_id: str) -> CompanyEnrichment | None:
        ...

    def create_enrichment(self, record: CompanyEnrichment) -> CompanyEnrichment:
        ...

    def update_enrichment(self, enrichment_id: UUID, **fields: Any) -> CompanyEnrichment:
        ...

    def list_enrichments_by_status(self, status: str) -> list[CompanyEnrichment]:
        ...

    def count_contacts(self, signal_id: str) -> int:
        ...

    def insert_contacts(self, contacts: list[Contact]) -> list[Contact]:
        ...

    def list_contacts(self, signal_id: str) -> list[Contact]:
        ...

    def set_contact_outreach_status(self, contact_id: str, status: str) -> Contact:
        ...

    def get_setting(self, key: str) -> str | None:
        ...


def _parse_uuid(value: str | UUID) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryEnrichmentRepository(EnrichmentRepository):
    """Thread-safe repository used for local development and tests."""

    def __init__(self) -> None:
        self._signals: dict[UUID, Signal] = {}
        self._enrichments: dict[UUID, CompanyEnrichment] = {}
        self._contacts: dict[UUID, Contact] = {}
        self._settings: dict[str, str] = {}
        self._lock = Lock()

    def add_signal(self, signal: Signal) -> Signal:
        with self._lock:
            self._signals[signal.id] = signal
        return signal

    def put_setting(self, key: str, value: str) -> None:
        with self._lock:
            self._settings[key] = value

    def get_signal(self, signal_id: str) -> Signal | None:
        key = _parse_uuid(signal_id)
        with self._lock:
            return self._signals.get(key) if key else None

    def set_signal_status(self, signal_id: str, status: str) -> None:
        signal = self.get_signal(signal_id)
        if signal is None:
            return
        with self._lock:
            signal.enrichment_status = status
            signal.updated_at = _utcnow()

    def get_enrichment(self, signal_id: str) -> CompanyEnrichment | None:
        key = _parse_uuid(signal_id)
        with self._lock:
            for record in self._enrichments.values():
                if record.signal_id == key:
                    return record
        return None

    def create_enrichment(self, record: CompanyEnrichment) -> CompanyEnrichment:
        with self._lock:
            self._enrichments[record.id] = record
        return record

    def update_enrichment(self, enrichment_id: UUID, **fields: Any) -> CompanyEnrichment:
        with self._lock:
            record = self._enrichments.get(enrichment_id)
            if record is None:
                raise EnrichmentPersistenceError(
                    f"Enrichment {enrichment_id} does not exist.", code="500_INTERNAL"
                )
            for name, value in fields.items():
                setattr(record, name, value)
            record.updated_at = _utcnow()
            return record

    def list_enrichments_by_status(self, status: str) -> list[CompanyEnrichment]:
        with self._lock:
            matches = [record for record in self._enrichments.values() if record.status == status]
        return sorted(matches, key=lambda record: record.created_at)

    def count_contacts(self, signal_id: str) -> int:
        key = _parse_uuid(signal_id)
        with self._lock:
            return sum(1 for contact in self._contacts.values() if contact.signal_id == key)

    def insert_contacts(self, contacts: list[Contact]) -> list[Contact]:
        with self._lock:
            for contact in contacts:
                self._contacts[contact.id] = contact
        return contacts

    def list_contacts(self, signal_id: str) -> list[Contact]:
        key = _parse_uuid(signal_id)
        with self._lock:
            matches = [contact for contact in self._contacts.values() if contact.signal_id == key]
        return sorted(matches, key=lambda contact: contact.priority_score, reverse=True)

    def set_contact_outreach_status(self, contact_id: str, status: str) -> Contact:
        key = _parse_uuid(contact_id)
        with self._lock:
            contact = self._contacts.get(key) if key else None
            if contact is None:
                raise ContactNotFoundError(str(contact_id))
            contact.outreach_status = status
            contact.updated_at = _utcnow()
            return contact

    def get_setting(self, key: str) -> str | None:
        with self._lock:
            return self._settings.get(key)


class SqlEnrichmentRepository(EnrichmentRepository):
    """SQLModel-backed repository persisting to Postgres/Supabase or SQLite."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, database_url: str, *, auto_create_schema: bool = False) -> "SqlEnrichmentRepository":
        return cls(
            create_database_engine(
                database_url,
                pool_min_size=settings.db_pool_min_size,
                pool_max_size=settings.db_pool_max_size,
                auto_create_schema=auto_create_schema,
            )
        )

    def dispose(self) -> None:
        """Close the underlying SQLAlchemy engine."""
        self._engine.dispose()

    def add_signal(self, signal: Signal) -> Signal:
        with self._session("add_signal") as session:
            session.add(signal)
            session.commit()
            session.refresh(signal)
            return signal

    def get_signal(self, signal_id: str) -> Signal | None:
        key = _parse_uuid(signal_id)
        if key is None:
            return None
        with self._session("get_signal") as session:
            return session.get(Signal, key)

    def set_signal_status(self, signal_id: str, status: str) -> None:
        key = _parse_uuid(signal_id)
        if key is None:
            return
        with self._session("set_signal_status") as session:
            signal = session.get(Signal, key)
            if signal is None:
                return
            signal.enrichment_status = status
            session.add(signal)
            session.commit()

    def get_enrichment(self, signal_id: str) -> CompanyEnrichment | None:
        key = _parse_uuid(signal_id)
        if key is None:
            return None
        with self._session("get_enrichment") as session:
            statement = select(CompanyEnrichment).where(CompanyEnrichment.signal_id == key)
            return session.exec(statement).first()

    def create_enrichment(self, record: CompanyEnrichment) -> CompanyEnrichment:
        with self._session("create_enrichment") as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            return record

    def update_enrichment(self, enrichment_id: UUID, **fields: Any) -> CompanyEnrichment:
        with self._session("update_enrichment") as session:
            record = session.get(CompanyEnrichment, enrichment_id)
            if record is None:
                raise EnrichmentPersistenceError(
                    f"Enrichment {enrichment_id} does not exist.", code="500_INTERNAL"
                )
            for name, value in fields.items():
                setattr(record, name, value)
            session.add(record)
            session.commit()
            session.refresh(record)
            return record

    def list_enrichments_by_status(self, status: str) -> list[CompanyEnrichment]:
        with self._session("list_enrichments_by_status") as session:
            statement = (
                select(CompanyEnrichment)
                .where(CompanyEnrichment.status == status)
                .order_by(CompanyEnrichment.created_at.asc())
            )
            return list(session.exec(statement).all())

    def count_contacts(self, signal_id: str) -> int:
        key = _parse_uuid(signal_id)
        if key is None:
            return 0
        with self._session("count_contacts") as session:
            statement = select(func.count()).select_from(Contact).where(Contact.signal_id == key)
            return int(session.exec(statement).one())

    def insert_contacts(self, contacts: list[Contact]) -> list[Contact]:
        if not contacts:
            return []
        with self._session("insert_contacts") as session:
            session.add_all(contacts)
            session.commit()
            for contact in contacts:
                session.refresh(contact)
            return contacts

    def list_contacts(self, signal_id: str) -> list[Contact]:
        key = _parse_uuid(signal_id)
        if key is None:
            return []
        with self._session("list_contacts") as session:
            statement = (
                select(Contact)
                .where(Contact.signal_id == key)
                .order_by(Contact.priority_score.desc(), Contact.created_at.asc())
            )
            return list(session.exec(statement).all())

    def set_contact_outreach_status(self, contact_id: str, status: str) -> Contact:
        key = _parse_uuid(contact_id)
        with self._session("set_contact_outreach_status") as session:
            contact = session.get(Contact, key) if key else None
            if contact is None:
                raise ContactNotFoundError(str(contact_id))
            contact.outreach_status = status
            session.add(contact)
            session.commit()
            session.refresh(contact)
            return contact

    def get_setting(self, key: str) -> str | None:
        with self._session("get_setting") as session:
            setting = session.get(AppSetting, key)
            return setting.value if setting else None

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        try:
            with Session(self._engine, expire_on_commit=False) as session:
                yield session
        except SQLAlchemyError as exc:
            logger.exception("enrichment.persistence.error", extra={"operation": operation})
            raise EnrichmentPersistenceError(
                f"Database operation '{operation}' failed.", code="500_INTERNAL"
            ) from exc


def build_enrichment_repository(database_url: str | None = None) -> EnrichmentRepository:
    """Instantiate a repository using DATABASE_URL when available."""
    resolved_url = database_url or settings.database_url
    if not resolved_url:
        logger.info("enrichment.repository.initialized", extra={"backend": "memory"})
        return InMemoryEnrichmentRepository()
    try:
        if resolved_url == settings.database_url:
            # Same engine as gourmet.core.database.engine.
            repository = SqlEnrichmentRepository(init_database())
        else:
            repository = SqlEnrichmentRepository.from_url(
                resolved_url, auto_create_schema=settings.auto_create_schema
            )
        logger.info("enrichment.repository.initialized", extra={"backend": "database"})
        return repository
    except Exception:
        logger.exception("enrichment.repository.init_failed", extra={"backend": "database"})
        raise
