"""Insert-once contact persistence and completion of enrichment records."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from gourmet.models.enrichment import CompanyEnrichment, Contact
from gourmet.models.status import EnrichmentStatus
from gourmet.observability.metrics import metrics
from gourmet.services.enrichment.lifecycle import advance_status
from gourmet.services.enrichment.normalizer import (
    NormalizedOutput,
    company_fields,
    normalize_contact,
)
from gourmet.services.enrichment.repositories import EnrichmentRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InsertResult:
    inserted: int
    existing: int

    @property
    def skipped(self) -> bool:
        return self.existing > 0


@dataclass(frozen=True)
class PersistResult:
    record: CompanyEnrichment
    extracted: int
    inserted: int
    existing: int
    error: str | None = None

    @property
    def contacts_count(self) -> int:
        return self.inserted or self.existing


class ContactPersister:
    """Writes contacts only when the signal has none, then completes the record."""

    def __init__(self, repository: EnrichmentRepository) -> None:
        self._repository = repository

    def insert_contacts_once(
        self,
        record: CompanyEnrichment,
        raw_contacts: Iterable[Mapping[str, Any]],
        *,
        provenance: Mapping[str, Any],
    ) -> InsertResult:
        """Insert ``raw_contacts`` unless any contact already exists for the signal."""
        signal_id = str(record.signal_id)
        existing = self._repository.count_contacts(signal_id)
        if existing:
            metrics.increment("enrichment.persist.skipped")
            logger.info(
                "enrichment.persist.skipped",
                extra={"signal_id": signal_id, "existing": existing},
            )
            return InsertResult(inserted=0, existing=existing)

        rows = [
            Contact(
                enrichment_id=record.id,
                signal_id=record.signal_id,
                raw_data=dict(provenance),
                **normalize_contact(raw),
            )
            for raw in raw_contacts
        ]
        inserted = self._repository.insert_contacts(rows)
        if inserted:
            metrics.increment(
                "enrichment.persist.inserted",
                value=float(len(inserted)),
                tags={"source": str(provenance.get("source", "unknown"))},
            )
        logger.info(
            "enrichment.persist.inserted",
            extra={"signal_id": signal_id, "inserted": len(inserted)},
        )
        return InsertResult(inserted=len(inserted), existing=0)

    def finalize(
        self,
        record: CompanyEnrichment,
        normalized: NormalizedOutput,
        task_output: Any,
        *,
        resync: bool = False,
        error: str | None = None,
    ) -> PersistResult:
        """Persist an agent run's contacts and metadata, then mark it completed.

        ``error`` overrides the agent-reported error, e.g. for expired or
        failed remote tasks. The stored task handle is always kept.
        """
        insert = self.insert_contacts_once(
            record,
            normalized.contacts,
            provenance={"source": "manus", "manus_task_id": record.task_id},
        )

        reported_error = error or normalized.error
        raw_data = {
            **(record.raw_data or {}),
            "manus_output": task_output,
            "search_method": normalized.search_method,
            "manus_error": reported_error,
            "output_file_url": normalized.output_file_url,
            "completed_at": datetime.now(timezone.utc).isoformat(),
        }
        fields: dict[str, Any] = {"raw_data": raw_data, **company_fields(normalized.company_info)}
        if not normalized.contacts and reported_error:
            fields["error_message"] = reported_error

        updated = advance_status(
            self._repository,
            record,
            EnrichmentStatus.COMPLETED,
            resync=resync,
            **fields,
        )
        metrics.increment("enrichment.completed", tags={"source": "manus", "resync": resync})
        logger.info(
            "enrichment.persist.completed",
            extra={
                "signal_id": str(record.signal_id),
                "extracted": len(normalized.contacts),
                "inserted": insert.inserted,
                "existing": insert.existing,
                "resync": resync,
            },
        )
        return PersistResult(
            record=updated,
            extracted=len(normalized.contacts),
            inserted=insert.inserted,
            existing=insert.existing,
            error=reported_error,
        )
