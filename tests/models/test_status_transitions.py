from __future__ import annotations

import pytest

from gourmet.models.enrichment import CompanyEnrichment
from gourmet.models.status import EnrichmentStatus, OutreachStatus, can_transition
from gourmet.services.enrichment.errors import InvalidStatusTransitionError
from gourmet.services.enrichment.lifecycle import advance_status
from gourmet.services.enrichment.repositories import InMemoryEnrichmentRepository
from tests.helpers.enrichment_fakes import make_signal

S = EnrichmentStatus


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (S.NONE, S.PROCESSING),
        (S.PROCESSING, S.PROCESSING),
        (S.PROCESSING, S.MANUS_PROCESSING),
        (S.PROCESSING, S.COMPLETED),
        (S.MANUS_PROCESSING, S.MANUS_PROCESSING),
        (S.MANUS_PROCESSING, S.COMPLETED),
    ],
)
def test_forward_transitions_are_allowed(current, target):
    assert can_transition(current, target)


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (S.NONE, S.COMPLETED),
        (S.NONE, S.MANUS_PROCESSING),
        (S.MANUS_PROCESSING, S.PROCESSING),
        (S.COMPLETED, S.PROCESSING),
        (S.COMPLETED, S.MANUS_PROCESSING),
        (S.COMPLETED, S.COMPLETED),
    ],
)
def test_backward_or_skipping_transitions_are_rejected(current, target):
    assert not can_transition(current, target)


def test_completed_can_only_be_rewritten_by_resync():
    assert can_transition(S.COMPLETED, S.COMPLETED, resync=True)
    assert not can_transition(S.COMPLETED, S.PROCESSING, resync=True)


def test_parse_treats_null_as_none():
    assert S.parse(None) is S.NONE
    assert S.parse("") is S.NONE
    assert S.parse("manus_processing") is S.MANUS_PROCESSING
    with pytest.raises(ValueError):
        S.parse("bogus")


def test_outreach_statuses_cover_the_pipeline():
    assert [status.value for status in OutreachStatus] == [
        "new",
        "linkedin_sent",
        "email_sent",
        "responded",
        "meeting",
        "converted",
        "not_interested",
    ]


def test_advance_status_rejects_regression_and_leaves_state_untouched():
    repository = InMemoryEnrichmentRepository()
    signal = make_signal(repository, enrichment_status="completed")
    record = repository.create_enrichment(
        CompanyEnrichment(signal_id=signal.id, company_name=signal.company_name, status="completed")
    )

    with pytest.raises(InvalidStatusTransitionError) as excinfo:
        advance_status(repository, record, S.PROCESSING)

    assert excinfo.value.code == "409_INVALID_TRANSITION"
    assert repository.get_enrichment(str(signal.id)).status == "completed"
    assert repository.get_signal(str(signal.id)).enrichment_status == "completed"


def test_advance_status_updates_record_then_signal():
    repository = InMemoryEnrichmentRepository()
    signal = make_signal(repository)
    record = repository.create_enrichment(
        CompanyEnrichment(signal_id=signal.id, company_name=signal.company_name)
    )

    updated = advance_status(repository, record, S.PROCESSING, enrichment_source="manus")

    assert updated.status == "processing"
    assert updated.enrichment_source == "manus"
    assert repository.get_signal(str(signal.id)).enrichment_status == "processing"
