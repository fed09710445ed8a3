"""Enrichment requests: idempotency checks followed by tiered provider dispatch."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from gourmet.clients.lovable import ChatClient, LovableAIError
from gourmet.clients.manus import ManusClient, ManusError, ManusSchemaError
from gourmet.models.enrichment import CompanyEnrichment
from gourmet.models.signal import Signal
from gourmet.models.status import EnrichmentSource, EnrichmentStatus
from gourmet.observability.metrics import metrics
from gourmet.services.enrichment.errors import ProviderUnavailableError, SignalNotFoundError
from gourmet.services.enrichment.lifecycle import advance_status
from gourmet.services.enrichment.mock import company_domain, generate_mock_contacts
from gourmet.services.enrichment.normalizer import extract_payload, parse_json_text
from gourmet.services.enrichment.persister import ContactPersister
from gourmet.services.enrichment.personas import (
    FALLBACK_SYSTEM_PROMPT,
    Persona,
    build_agent_prompt,
    build_fallback_prompt,
    load_personas,
    resolve_persona_source,
)
from gourmet.services.enrichment.repositories import EnrichmentRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestOutcome:
    """Result of an enrichment request as returned to the dashboard."""

    success: bool
    message: str
    status: str
    enrichment_id: str | None = None
    task_id: str | None = None
    task_url: str | None = None
    contacts_count: int | None = None
    source: str | None = None
    already_enriched: bool = False


class EnrichmentRequestor:
    """Starts enrichment for a signal through Manus, Lovable AI, or mock data."""

    def __init__(
        self,
        repository: EnrichmentRepository,
        *,
        manus: ManusClient | None = None,
        chat: ChatClient | None = None,
        persister: ContactPersister | None = None,
    ) -> None:
        self._repository = repository
        self._manus = manus
        self._chat = chat
        self._persister = persister or ContactPersister(repository)

    def request_enrichment(self, signal_id: str) -> RequestOutcome:
        signal = self._repository.get_signal(signal_id)
        if signal is None:
            raise SignalNotFoundError(signal_id)

        existing = self._repository.get_enrichment(signal_id)
        current = EnrichmentStatus.parse(existing.status if existing else None)
        if existing is not None and current is EnrichmentStatus.COMPLETED:
            metrics.increment("enrichment.request.already_enriched")
            logger.info("enrichment.request.already_enriched", extra={"signal_id": signal_id})
            return RequestOutcome(
                success=True,
                message="Signal already enriched",
                status=current.value,
                enrichment_id=str(existing.id),
                task_id=existing.task_id,
                task_url=existing.task_url,
                contacts_count=self._repository.count_contacts(signal_id),
                source=existing.enrichment_source,
                already_enriched=True,
            )
        if (
            existing is not None
            and current is EnrichmentStatus.MANUS_PROCESSING
            and existing.task_id
        ):
            logger.info(
                "enrichment.request.in_flight",
                extra={"signal_id": signal_id, "task_id": existing.task_id},
            )
            return RequestOutcome(
                success=True,
                message="Manus agent already running for this signal",
                status=current.value,
                enrichment_id=str(existing.id),
                task_id=existing.task_id,
                task_url=existing.task_url,
                source=existing.enrichment_source,
            )

        record = self._start_processing(signal, existing)
        source = resolve_persona_source(signal)
        personas = load_personas(self._repository, source)
        start = time.perf_counter()
        try:
            if self._manus is not None:
                try:
                    return self._dispatch_to_manus(signal, record, personas, source)
                except ProviderUnavailableError as exc:
                    self._record_fallthrough(signal_id, exc)
            if self._chat is not None:
                try:
                    return self._generate_with_chat(signal, record, personas)
                except ProviderUnavailableError as exc:
                    self._record_fallthrough(signal_id, exc)
            return self._generate_mock(signal, record, personas)
        finally:
            metrics.timing(
                "enrichment.request.latency_ms",
                (time.perf_counter() - start) * 1000,
            )

    def _start_processing(
        self, signal: Signal, existing: CompanyEnrichment | None
    ) -> CompanyEnrichment:
        record = existing
        if record is None:
            record = self._repository.create_enrichment(
                CompanyEnrichment(signal_id=signal.id, company_name=signal.company_name)
            )
            logger.info(
                "enrichment.request.record_created",
                extra={"signal_id": str(signal.id), "enrichment_id": str(record.id)},
            )
        if EnrichmentStatus.parse(record.status) is EnrichmentStatus.MANUS_PROCESSING:
            # In flight without a stored task id; the next tier completes it.
            return record
        return advance_status(self._repository, record, EnrichmentStatus.PROCESSING)

    def _dispatch_to_manus(
        self,
        signal: Signal,
        record: CompanyEnrichment,
        personas: list[Persona],
        persona_source: str,
    ) -> RequestOutcome:
        assert self._manus is not None
        try:
            handle = self._manus.create_task(build_agent_prompt(signal, personas))
        except ManusSchemaError as exc:
            metrics.increment("enrichment.manus.missing_task_id")
            logger.warning(
                "enrichment.manus.missing_task_id",
                extra={"signal_id": str(signal.id), "error": str(exc)},
            )
            raise ProviderUnavailableError(str(exc), provider=EnrichmentSource.MANUS.value) from exc
        except ManusError as exc:
            raise ProviderUnavailableError(str(exc), provider=EnrichmentSource.MANUS.value) from exc

        raw_data: dict[str, Any] = {
            **(record.raw_data or {}),
            "task_id": handle.task_id,
            "task_url": handle.task_url,
            "started_at": datetime.now(timezone.utc).isoformat(),
            "personas_used": [persona.model_dump(by_alias=True) for persona in personas],
            "persona_source": persona_source,
        }
        updated = advance_status(
            self._repository,
            record,
            EnrichmentStatus.MANUS_PROCESSING,
            enrichment_source=EnrichmentSource.MANUS.value,
            raw_data=raw_data,
        )
        metrics.increment("enrichment.request.accepted", tags={"source": "manus"})
        logger.info(
            "enrichment.request.accepted",
            extra={
                "signal_id": str(signal.id),
                "task_id": handle.task_id,
                "personas": len(personas),
                "persona_source": persona_source,
            },
        )
        return RequestOutcome(
            success=True,
            message=(
                "Manus agent lancé - recherche de contacts en cours "
                "(peut prendre quelques minutes)"
            ),
            status=EnrichmentStatus.MANUS_PROCESSING.value,
            enrichment_id=str(updated.id),
            task_id=handle.task_id,
            task_url=handle.task_url,
            source=EnrichmentSource.MANUS.value,
        )

    def _generate_with_chat(
        self, signal: Signal, record: CompanyEnrichment, personas: list[Persona]
    ) -> RequestOutcome:
        assert self._chat is not None
        try:
            text = self._chat.generate(
                system_prompt=FALLBACK_SYSTEM_PROMPT,
                user_prompt=build_fallback_prompt(signal, personas),
            )
        except LovableAIError as exc:
            raise ProviderUnavailableError(
                str(exc), provider=EnrichmentSource.LOVABLE_AI.value
            ) from exc

        payload = extract_payload(parse_json_text(text))
        if payload is None:
            raise ProviderUnavailableError(
                "Could not parse AI response as JSON",
                provider=EnrichmentSource.LOVABLE_AI.value,
            )

        domain = company_domain(signal.company_name)
        return self._complete_synchronously(
            record,
            payload.contacts,
            source=EnrichmentSource.LOVABLE_AI,
            fields={
                "domain": domain,
                "website": f"https://www.{domain}",
                "industry": signal.sector or "Non spécifié",
            },
        )

    def _generate_mock(
        self, signal: Signal, record: CompanyEnrichment, personas: list[Persona]
    ) -> RequestOutcome:
        return self._complete_synchronously(
            record,
            generate_mock_contacts(signal, personas),
            source=EnrichmentSource.MOCK,
            fields={},
        )

    def _complete_synchronously(
        self,
        record: CompanyEnrichment,
        raw_contacts: list[dict[str, Any]],
        *,
        source: EnrichmentSource,
        fields: dict[str, Any],
    ) -> RequestOutcome:
        insert = self._persister.insert_contacts_once(
            record, raw_contacts, provenance={"source": source.value}
        )
        updated = advance_status(
            self._repository,
            record,
            EnrichmentStatus.COMPLETED,
            enrichment_source=source.value,
            **fields,
        )
        count = insert.inserted or insert.existing
        metrics.increment("enrichment.request.accepted", tags={"source": source.value})
        metrics.increment("enrichment.completed", tags={"source": source.value, "resync": False})
        logger.info(
            "enrichment.request.completed",
            extra={
                "signal_id": str(record.signal_id),
                "source": source.value,
                "contacts": count,
            },
        )
        suffix = " (données simulées)" if source is EnrichmentSource.MOCK else ""
        return RequestOutcome(
            success=True,
            message=f"Enrichissement complété avec {count} contacts{suffix}",
            status=EnrichmentStatus.COMPLETED.value,
            enrichment_id=str(updated.id),
            contacts_count=count,
            source=source.value,
        )

    @staticmethod
    def _record_fallthrough(signal_id: str, exc: ProviderUnavailableError) -> None:
        metrics.increment("enrichment.provider.fallthrough", tags={"provider": exc.provider})
        logger.warning(
            "enrichment.provider.fallthrough",
            extra={"signal_id": signal_id, "provider": exc.provider, "error": str(exc)},
        )
