from __future__ import annotations

import json
from uuid import UUID

import pytest

from gourmet.config import Settings
from gourmet.models.signal import Signal
from gourmet.services.enrichment.credentials import resolve_provider_credentials
from gourmet.services.enrichment.mock import company_domain, generate_mock_contacts
from gourmet.services.enrichment.personas import (
    DEFAULT_PERSONAS,
    Persona,
    build_agent_prompt,
    build_fallback_prompt,
    load_personas,
    resolve_persona_source,
    search_keywords,
)
from gourmet.services.enrichment.repositories import InMemoryEnrichmentRepository


@pytest.mark.parametrize(
    ("signal_type", "source_name", "expected"),
    [
        ("levee", "Les Echos", "presse"),
        ("recrutement", "LinkedIn", "linkedin"),
        ("linkedin_post", None, "linkedin"),
        ("anniversaire", "BODACC", "pappers"),
        ("nomination", None, "pappers"),
        ("levee", "Pappers", "pappers"),
    ],
)
def test_persona_source_follows_signal_origin(signal_type, source_name, expected):
    signal = Signal(company_name="Acme", signal_type=signal_type, source_name=source_name)

    assert resolve_persona_source(signal) == expected


def test_missing_persona_setting_uses_defaults():
    personas = load_personas(InMemoryEnrichmentRepository(), "presse")

    assert personas == list(DEFAULT_PERSONAS)
    assert [persona.name for persona in personas if persona.is_priority] == [
        "Assistant(e) de direction",
        "Office Manager",
    ]


@pytest.mark.parametrize("raw", ["{not json", "[]", json.dumps([{"isPriority": True}])])
def test_invalid_persona_setting_falls_back(raw):
    repository = InMemoryEnrichmentRepository()
    repository.put_setting("personas_linkedin", raw)

    assert load_personas(repository, "linkedin") == list(DEFAULT_PERSONAS)


def test_persona_setting_accepts_camel_case_flag():
    repository = InMemoryEnrichmentRepository()
    repository.put_setting(
        "personas_presse",
        json.dumps([{"name": "Responsable Facility", "isPriority": True}, {"name": "DRH"}]),
    )

    personas = load_personas(repository, "presse")

    assert personas == [
        Persona(name="Responsable Facility", is_priority=True),
        Persona(name="DRH", is_priority=False),
    ]


def test_search_keywords_simplify_persona_names():
    personas = [Persona(name="Assistant(e) de direction"), Persona(name="DAF/CFO")]

    assert search_keywords(personas) == "assistant de direction OR daf OR cfo"


def test_prompts_name_company_and_priority_personas():
    signal = Signal(company_name="Acme Traiteur", signal_type="levee", sector="Restauration")

    agent_prompt = build_agent_prompt(signal, list(DEFAULT_PERSONAS))
    fallback_prompt = build_fallback_prompt(signal, list(DEFAULT_PERSONAS))

    assert "Acme Traiteur" in agent_prompt
    assert "**Office Manager** - contact PRIORITAIRE" in agent_prompt
    assert "PROFILS SECONDAIRES" in agent_prompt
    assert "Office Manager (PRIORITAIRE)" in fallback_prompt
    assert "Restauration" in fallback_prompt


def test_mock_contacts_are_deterministic_per_signal():
    signal = Signal(
        id=UUID("5e1a0000-0000-4000-8000-000000000001"),
        company_name="Acmé Traiteur",
        signal_type="levee",
    )

    first = generate_mock_contacts(signal, list(DEFAULT_PERSONAS))
    second = generate_mock_contacts(signal, list(DEFAULT_PERSONAS))

    assert first == second
    assert len(first) == 5
    assert first[0]["is_priority_target"] is True
    assert first[0]["priority_score"] == 5
    assert first[2]["priority_score"] == 3
    assert all(contact["email_principal"].endswith("@acmetraiteur.com") for contact in first)


def test_mock_contact_count_is_bounded():
    signal = Signal(company_name="Solo", signal_type="levee")

    assert len(generate_mock_contacts(signal, [Persona(name="DRH")])) == 3
    assert len(generate_mock_contacts(signal, [])) == 3


def test_company_domain_folds_accents_and_punctuation():
    assert company_domain("Café & Co. Événements") == "cafecoevenements.com"
    assert company_domain("!!!") == "entreprise.com"


def test_environment_credentials_win_over_settings_table():
    repository = InMemoryEnrichmentRepository()
    repository.put_setting("manus_api_key", "from-table")
    repository.put_setting("lovable_api_key", "lovable-from-table")
    config = Settings(_env_file=None, manus_api_key="from-env", lovable_api_key=None)

    credentials = resolve_provider_credentials(config, repository)

    assert credentials.manus_api_key == "from-env"
    assert credentials.lovable_api_key == "lovable-from-table"


def test_no_credentials_anywhere():
    config = Settings(_env_file=None, manus_api_key="", lovable_api_key=None)

    credentials = resolve_provider_credentials(config, InMemoryEnrichmentRepository())

    assert credentials.manus_api_key is None
    assert credentials.lovable_api_key is None
