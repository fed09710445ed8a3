"""Enrichment and outreach status enums plus the enrichment transition table."""

from __future__ import annotations

from enum import Enum


class EnrichmentStatus(str, Enum):
    """Lifecycle of a signal's enrichment, shared by signals and enrichment records."""

    NONE = "none"
    PROCESSING = "processing"
    MANUS_PROCESSING = "manus_processing"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: str | EnrichmentStatus | None) -> EnrichmentStatus:
        """Coerce stored values (including NULL) into an enum member."""
        if isinstance(value, EnrichmentStatus):
            return value
        if not value:
            return cls.NONE
        return cls(value)


class OutreachStatus(str, Enum):
    """Sales pipeline stage of a contact; freely settable by the user."""

    NEW = "new"
    LINKEDIN_SENT = "linkedin_sent"
    EMAIL_SENT = "email_sent"
    RESPONDED = "responded"
    MEETING = "meeting"
    CONVERTED = "converted"
    NOT_INTERESTED = "not_interested"


class EnrichmentSource(str, Enum):
    MANUS = "manus"
    LOVABLE_AI = "lovable_ai"
    MOCK = "mock"


_ALLOWED_TRANSITIONS: dict[EnrichmentStatus, frozenset[EnrichmentStatus]] = {
    EnrichmentStatus.NONE: frozenset({EnrichmentStatus.PROCESSING}),
    EnrichmentStatus.PROCESSING: frozenset(
        {
            EnrichmentStatus.PROCESSING,
            EnrichmentStatus.MANUS_PROCESSING,
            EnrichmentStatus.COMPLETED,
        }
    ),
    EnrichmentStatus.MANUS_PROCESSING: frozenset(
        {EnrichmentStatus.MANUS_PROCESSING, EnrichmentStatus.COMPLETED}
    ),
    EnrichmentStatus.COMPLETED: frozenset(),
}


def can_transition(
    current: EnrichmentStatus, target: EnrichmentStatus, *, resync: bool = False
) -> bool:
    """Return True when ``current -> target`` is a legal write.

    ``completed -> completed`` is only legal through a forced resync, which
    re-runs extraction against an already finished task.
    """
    if resync and current is EnrichmentStatus.COMPLETED and target is EnrichmentStatus.COMPLETED:
        return True
    return target in _ALLOWED_TRANSITIONS[current]
