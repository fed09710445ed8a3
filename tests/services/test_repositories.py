from __future__ import annotations

from uuid import uuid4

import pytest

from gourmet.models.enrichment import CompanyEnrichment, Contact
from gourmet.models.signal import AppSetting, Signal
from gourmet.services.enrichment.errors import ContactNotFoundError, EnrichmentPersistenceError
from gourmet.services.enrichment.repositories import (
    InMemoryEnrichmentRepository,
    SqlEnrichmentRepository,
    build_enrichment_repository,
)


@pytest.fixture
def sql_repository(tmp_path):
    repository = SqlEnrichmentRepository.from_url(
        f"sqlite:///{tmp_path / 'enrichment.db'}", auto_create_schema=True
    )
    yield repository
    repository.dispose()


@pytest.fixture(params=["memory", "sql"])
def repository(request, tmp_path):
    if request.param == "memory":
        yield InMemoryEnrichmentRepository()
        return
    repository = SqlEnrichmentRepository.from_url(
        f"sqlite:///{tmp_path / 'enrichment.db'}", auto_create_schema=True
    )
    yield repository
    repository.dispose()


def _seed(repository) -> tuple[Signal, CompanyEnrichment]:
    signal = repository.add_signal(Signal(company_name="Acme Traiteur", signal_type="levee"))
    record = repository.create_enrichment(
        CompanyEnrichment(
            signal_id=signal.id,
            company_name=signal.company_name,
            status="manus_processing",
            raw_data={"task_id": "t1", "task_url": "https://manus.ai/tasks/t1"},
        )
    )
    return signal, record


def test_enrichment_round_trip_keeps_task_handle(repository):
    signal, record = _seed(repository)

    loaded = repository.get_enrichment(str(signal.id))

    assert loaded is not None
    assert loaded.id == record.id
    assert loaded.task_id == "t1"
    assert loaded.task_url == "https://manus.ai/tasks/t1"


def test_legacy_task_keys_are_still_read():
    record = CompanyEnrichment(
        signal_id=uuid4(),
        company_name="Legacy",
        raw_data={"manus_task_id": "old-1", "manus_task_url": "https://manus.ai/tasks/old-1"},
    )

    assert record.task_id == "old-1"
    assert record.task_url == "https://manus.ai/tasks/old-1"


def test_update_and_list_by_status(repository):
    signal, record = _seed(repository)

    repository.update_enrichment(record.id, status="completed", industry="Traiteur")
    repository.set_signal_status(str(signal.id), "completed")

    assert repository.list_enrichments_by_status("manus_processing") == []
    [completed] = repository.list_enrichments_by_status("completed")
    assert completed.industry == "Traiteur"
    assert repository.get_signal(str(signal.id)).enrichment_status == "completed"


def test_update_unknown_enrichment_fails(repository):
    with pytest.raises(EnrichmentPersistenceError):
        repository.update_enrichment(uuid4(), status="completed")


def test_contacts_are_counted_and_ordered_by_priority(repository):
    signal, record = _seed(repository)
    repository.insert_contacts(
        [
            Contact(enrichment_id=record.id, signal_id=signal.id, full_name="Low", priority_score=2),
            Contact(enrichment_id=record.id, signal_id=signal.id, full_name="High", priority_score=5),
        ]
    )

    contacts = repository.list_contacts(str(signal.id))

    assert repository.count_contacts(str(signal.id)) == 2
    assert [contact.full_name for contact in contacts] == ["High", "Low"]
    assert all(contact.outreach_status == "new" for contact in contacts)


def test_outreach_status_update(repository):
    signal, record = _seed(repository)
    [contact] = repository.insert_contacts(
        [Contact(enrichment_id=record.id, signal_id=signal.id, full_name="Julie Martin")]
    )

    updated = repository.set_contact_outreach_status(str(contact.id), "meeting")

    assert updated.outreach_status == "meeting"
    assert repository.list_contacts(str(signal.id))[0].outreach_status == "meeting"


def test_unknown_contact_raises_not_found(repository):
    with pytest.raises(ContactNotFoundError) as excinfo:
        repository.set_contact_outreach_status(str(uuid4()), "meeting")

    assert excinfo.value.code == "404_CONTACT_NOT_FOUND"


def test_malformed_ids_read_as_missing(repository):
    assert repository.get_signal("not-a-uuid") is None
    assert repository.get_enrichment("not-a-uuid") is None
    assert repository.count_contacts("not-a-uuid") == 0
    assert repository.list_contacts("not-a-uuid") == []


def test_sql_settings_lookup(sql_repository):
    from sqlmodel import Session

    with Session(sql_repository._engine) as session:
        session.add(AppSetting(key="manus_api_key", value="from-dashboard"))
        session.commit()

    assert sql_repository.get_setting("manus_api_key") == "from-dashboard"
    assert sql_repository.get_setting("lovable_api_key") is None


def test_build_without_database_url_uses_memory(monkeypatch):
    from gourmet.services.enrichment import repositories as repositories_module

    monkeypatch.setattr(repositories_module.settings, "database_url", None)

    assert isinstance(build_enrichment_repository(), InMemoryEnrichmentRepository)


def test_build_from_settings_shares_the_application_engine(monkeypatch, tmp_path):
    from gourmet.core import database
    from gourmet.services.enrichment import repositories as repositories_module

    monkeypatch.setattr(database, "engine", None)
    monkeypatch.setattr(
        repositories_module.settings, "database_url", f"sqlite:///{tmp_path / 'shared.db'}"
    )
    monkeypatch.setattr(repositories_module.settings, "auto_create_schema", True)

    repository = build_enrichment_repository()

    try:
        assert isinstance(repository, SqlEnrichmentRepository)
        assert database.engine is not None
        assert repository._engine is database.engine
        assert database.check_database_health()
        assert repository.get_signal(str(uuid4())) is None
    finally:
        database.engine.dispose()
