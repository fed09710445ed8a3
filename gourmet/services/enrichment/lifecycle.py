"""Validated status writes for enrichment records and their signals."""

from __future__ import annotations

import logging
from typing import Any

from gourmet.models.enrichment import CompanyEnrichment
from gourmet.models.status import EnrichmentStatus, can_transition
from gourmet.services.enrichment.errors import InvalidStatusTransitionError
from gourmet.services.enrichment.repositories import EnrichmentRepository

logger = logging.getLogger(__name__)


def advance_status(
    repository: EnrichmentRepository,
    record: CompanyEnrichment,
    target: EnrichmentStatus,
    *,
    resync: bool = False,
    **fields: Any,
) -> CompanyEnrichment:
    """Move ``record`` (then its signal) to ``target`` and write ``fields`` alongside.

    The record is written before the signal; a crash between the two writes
    leaves the signal behind, which a forced resync repairs.
    """
    current = EnrichmentStatus.parse(record.status)
    if not can_transition(current, target, resync=resync):
        logger.warning(
            "enrichment.status.rejected",
            extra={
                "signal_id": str(record.signal_id),
                "current": current.value,
                "target": target.value,
            },
        )
        raise InvalidStatusTransitionError(current.value, target.value)

    updated = repository.update_enrichment(record.id, status=target.value, **fields)
    repository.set_signal_status(str(record.signal_id), target.value)
    logger.info(
        "enrichment.status.advanced",
        extra={
            "signal_id": str(record.signal_id),
            "from": current.value,
            "to": target.value,
            "resync": resync,
        },
    )
    return updated
