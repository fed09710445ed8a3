from __future__ import annotations

from contextlib import contextmanager
from uuid import uuid4

from gourmet.main import app
from gourmet.models.enrichment import Contact
from gourmet.services.enrichment import (
    EnrichmentService,
    build_enrichment_service,
    get_enrichment_service,
)
from gourmet.services.enrichment.credentials import ProviderCredentials
from gourmet.services.enrichment.repositories import InMemoryEnrichmentRepository
from tests.helpers.enrichment_fakes import StubManusClient, make_signal

OUTPUT_TASK = {
    "status": "completed",
    "output": {
        "contacts": [
            {"full_name": "Julie Martin", "job_title": "Office Manager", "email": "julie@acme.fr"},
            {"full_name": "Paul Durand", "job_title": "Assistant de direction"},
        ],
        "company_info": {"website": "https://acme.fr", "industry": "Traiteur"},
        "search_method": "LinkedIn",
    },
}


def _build_service(manus: StubManusClient | None = None) -> EnrichmentService:
    return build_enrichment_service(
        repository=InMemoryEnrichmentRepository(),
        credentials=ProviderCredentials(manus_api_key="test" if manus else None),
        manus=manus,
    )


@contextmanager
def _override_service(service: EnrichmentService):
    app.dependency_overrides[get_enrichment_service] = lambda: service
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_enrichment_service, None)


def test_request_then_status_check_round_trip(client):
    manus = StubManusClient(task_id="t1", tasks=[OUTPUT_TASK])
    service = _build_service(manus)
    signal = make_signal(service.repository)
    with _override_service(service):
        response = client.post("/api/enrichment-request", json={"signal_id": str(signal.id)})
        assert response.status_code == 200
        started = response.json()
        assert started["success"] is True
        assert started["status"] == "manus_processing"
        assert started["manus_task_id"] == "t1"
        assert "contacts_count" not in started

        checked = client.post("/api/status-check", json={"signal_id": str(signal.id)})
        assert checked.status_code == 200
        body = checked.json()
        assert body["status"] == "completed"
        assert body["contacts_count"] == 2
        assert body["search_method"] == "LinkedIn"

        detail = client.get(f"/api/signals/{signal.id}/enrichment")
        assert detail.status_code == 200
        payload = detail.json()
        assert payload["enrichment_status"] == "completed"
        assert payload["enrichment"]["task_id"] == "t1"
        assert payload["enrichment"]["website"] == "https://acme.fr"
        assert [contact["full_name"] for contact in payload["contacts"]] == [
            "Paul Durand",
            "Julie Martin",
        ]


def test_request_without_provider_completes_with_mock_contacts(client):
    service = _build_service()
    signal = make_signal(service.repository)
    with _override_service(service):
        response = client.post("/api/enrichment-request", json={"signal_id": str(signal.id)})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["source"] == "mock"
    assert 3 <= body["contacts_count"] <= 5


def test_missing_signal_id_is_a_bad_request(client):
    with _override_service(_build_service()):
        response = client.post("/api/enrichment-request", json={})
        status_response = client.post("/api/status-check", json={"signal_id": "  "})

    assert response.status_code == 400
    assert response.json()["detail"] == "signal_id is required"
    assert status_response.status_code == 400


def test_unknown_signal_returns_404(client):
    with _override_service(_build_service()):
        request = client.post("/api/enrichment-request", json={"signal_id": str(uuid4())})
        status = client.post("/api/status-check", json={"signal_id": str(uuid4())})
        detail = client.get(f"/api/signals/{uuid4()}/enrichment")

    assert request.status_code == 404
    assert status.status_code == 404
    assert detail.status_code == 404


def test_outreach_status_update(client):
    service = _build_service()
    signal = make_signal(service.repository)
    [contact] = service.repository.insert_contacts(
        [Contact(signal_id=signal.id, full_name="Julie Martin")]
    )
    with _override_service(service):
        response = client.patch(
            f"/api/contacts/{contact.id}/outreach-status", json={"status": "linkedin_sent"}
        )
        invalid = client.patch(
            f"/api/contacts/{contact.id}/outreach-status", json={"status": "ghosted"}
        )
        missing = client.patch(
            f"/api/contacts/{uuid4()}/outreach-status", json={"status": "meeting"}
        )

    assert response.status_code == 200
    assert response.json()["outreach_status"] == "linkedin_sent"
    assert invalid.status_code == 422
    assert missing.status_code == 404


def test_health_endpoints(client):
    assert client.get("/health").json()["status"] == "healthy"
    ready = client.get("/health/ready")
    assert ready.status_code == 200
    assert ready.json()["status"] == "ready"
