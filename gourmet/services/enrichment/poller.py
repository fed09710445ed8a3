"""Status checks for in-flight Manus tasks and the batch sweep over them."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from gourmet.clients.manus import (
    ManusClient,
    ManusError,
    ManusNotFoundError,
)
from gourmet.models.enrichment import CompanyEnrichment
from gourmet.models.status import EnrichmentStatus
from gourmet.observability.metrics import metrics
from gourmet.services.enrichment.errors import EnrichmentNotFoundError
from gourmet.services.enrichment.normalizer import NormalizedOutput, normalize
from gourmet.services.enrichment.persister import ContactPersister
from gourmet.services.enrichment.repositories import EnrichmentRepository

logger = logging.getLogger(__name__)

REMOTE_COMPLETED = "completed"
DEFAULT_TASK_TTL = timedelta(hours=72)


@dataclass(frozen=True)
class StatusReport:
    status: str
    message: str
    contacts_count: int | None = None
    inserted_count: int | None = None
    task_id: str | None = None
    task_url: str | None = None
    manus_status: str | None = None
    search_method: str | None = None
    company_info: dict[str, Any] | None = None
    error: str | None = None


@dataclass(frozen=True)
class SweepEntry:
    enrichment_id: str
    company_name: str
    status: str
    contacts_count: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        if self.error is None:
            payload.pop("error")
        return payload


@dataclass(frozen=True)
class SweepSummary:
    checked: int
    completed: int
    total_contacts: int
    results: list[SweepEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "checked": self.checked,
            "completed": self.completed,
            "total_contacts": self.total_contacts,
            "results": [entry.to_dict() for entry in self.results],
        }


class TaskStatusPoller:
    """Checks the Manus task behind a signal and persists its output once finished."""

    def __init__(
        self,
        repository: EnrichmentRepository,
        *,
        manus: ManusClient | None = None,
        persister: ContactPersister | None = None,
        task_ttl: timedelta = DEFAULT_TASK_TTL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._manus = manus
        self._persister = persister or ContactPersister(repository)
        self._task_ttl = task_ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def check_status(self, signal_id: str, *, force: bool = False) -> StatusReport:
        record = self._repository.get_enrichment(signal_id)
        if record is None:
            raise EnrichmentNotFoundError(signal_id)

        current = EnrichmentStatus.parse(record.status)
        task_id = record.task_id
        if not task_id:
            return StatusReport(
                status=current.value,
                message="No Manus task associated with this enrichment",
                contacts_count=self._repository.count_contacts(signal_id),
            )
        if current is EnrichmentStatus.COMPLETED and not force:
            return StatusReport(
                status=current.value,
                message="Enrichment already completed",
                contacts_count=self._repository.count_contacts(signal_id),
                task_id=task_id,
                task_url=record.task_url,
                search_method=(record.raw_data or {}).get("search_method"),
                error=record.error_message,
            )

        resync = current is EnrichmentStatus.COMPLETED
        if self._manus is None:
            return self._still_processing(
                record, current, resync=resync, message="Manus API key not configured"
            )

        try:
            task = self._manus.get_task(task_id)
        except ManusError as exc:
            if isinstance(exc, ManusNotFoundError) and self._is_expired(record):
                return self._expire(record, resync=resync, reason=str(exc))
            metrics.increment("enrichment.status.check_failed", tags={"code": exc.code})
            logger.warning(
                "enrichment.status.check_failed",
                extra={"signal_id": signal_id, "task_id": task_id, "code": exc.code},
            )
            return self._still_processing(
                record, current, resync=resync, message="Unable to check Manus status"
            )

        remote_status = str(task.get("status") or "unknown")
        if remote_status != REMOTE_COMPLETED:
            metrics.increment("enrichment.status.pending", tags={"manus_status": remote_status})
            logger.info(
                "enrichment.status.pending",
                extra={"signal_id": signal_id, "task_id": task_id, "manus_status": remote_status},
            )
            label = "still processing" if remote_status == "running" else remote_status
            return StatusReport(
                status=current.value if resync else EnrichmentStatus.MANUS_PROCESSING.value,
                message=f"Manus is {label}",
                task_id=task_id,
                task_url=record.task_url,
                manus_status=remote_status,
            )

        output = task.get("output")
        normalized = normalize(output, fetch_file=self._manus.download_json)
        result = self._persister.finalize(record, normalized, output, resync=resync)
        message = (
            f"Enrichissement terminé: {result.contacts_count} contacts"
            if result.contacts_count
            else "Enrichissement terminé sans contact"
        )
        return StatusReport(
            status=EnrichmentStatus.COMPLETED.value,
            message=message,
            contacts_count=result.contacts_count,
            inserted_count=result.inserted,
            task_id=task_id,
            task_url=record.task_url,
            manus_status=remote_status,
            search_method=normalized.search_method,
            company_info=normalized.company_info,
            error=result.error,
        )

    def sweep(self) -> SweepSummary:
        """Check every record still waiting on Manus, oldest first."""
        pending = self._repository.list_enrichments_by_status(
            EnrichmentStatus.MANUS_PROCESSING.value
        )
        results: list[SweepEntry] = []
        for record in pending:
            results.append(self._sweep_one(record))

        summary = SweepSummary(
            checked=len(pending),
            completed=sum(1 for entry in results if entry.status == REMOTE_COMPLETED),
            total_contacts=sum(entry.contacts_count for entry in results),
            results=results,
        )
        metrics.gauge("enrichment.sweep.pending", float(summary.checked - summary.completed))
        logger.info(
            "enrichment.sweep.finished",
            extra={
                "checked": summary.checked,
                "completed": summary.completed,
                "total_contacts": summary.total_contacts,
            },
        )
        return summary

    def _sweep_one(self, record: CompanyEnrichment) -> SweepEntry:
        base = {"enrichment_id": str(record.id), "company_name": record.company_name}
        if not record.task_id:
            return SweepEntry(status="no_task_id", **base)
        try:
            report = self.check_status(str(record.signal_id))
        except Exception as exc:
            logger.exception(
                "enrichment.sweep.error",
                extra={"enrichment_id": str(record.id), "company_name": record.company_name},
            )
            return SweepEntry(status="error", error=str(exc), **base)
        if report.status == EnrichmentStatus.COMPLETED.value:
            return SweepEntry(
                status=REMOTE_COMPLETED,
                contacts_count=report.contacts_count or 0,
                error=report.error,
                **base,
            )
        return SweepEntry(status=EnrichmentStatus.MANUS_PROCESSING.value, **base)

    def _still_processing(
        self,
        record: CompanyEnrichment,
        current: EnrichmentStatus,
        *,
        resync: bool,
        message: str,
    ) -> StatusReport:
        return StatusReport(
            status=current.value if resync else EnrichmentStatus.MANUS_PROCESSING.value,
            message=message,
            task_id=record.task_id,
            task_url=record.task_url,
        )

    def _is_expired(self, record: CompanyEnrichment) -> bool:
        started = _parse_timestamp((record.raw_data or {}).get("started_at")) or record.created_at
        if started is None:
            return False
        if started.tzinfo is None:
            started = started.replace(tzinfo=timezone.utc)
        return self._clock() - started > self._task_ttl

    def _expire(self, record: CompanyEnrichment, *, resync: bool, reason: str) -> StatusReport:
        hours = int(self._task_ttl.total_seconds() // 3600)
        error = f"Manus task expired after {hours}h and can no longer be read ({reason})"
        metrics.increment("enrichment.status.expired")
        logger.warning(
            "enrichment.status.expired",
            extra={"signal_id": str(record.signal_id), "task_id": record.task_id},
        )
        previous_output = (record.raw_data or {}).get("manus_output")
        result = self._persister.finalize(
            record, NormalizedOutput(), previous_output, resync=resync, error=error
        )
        return StatusReport(
            status=EnrichmentStatus.COMPLETED.value,
            message="Manus task expired",
            contacts_count=result.contacts_count,
            inserted_count=0,
            task_id=record.task_id,
            task_url=record.task_url,
            error=error,
        )


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
