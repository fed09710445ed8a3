"""Target persona configuration and the prompts built from it."""

from __future__ import annotations

import json
import logging
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gourmet.models.signal import Signal
from gourmet.services.enrichment.repositories import EnrichmentRepository

logger = logging.getLogger(__name__)

PERSONA_SOURCES: Final[tuple[str, ...]] = ("presse", "pappers", "linkedin")
_PAPPERS_SIGNAL_MARKERS: Final[tuple[str, ...]] = ("anniversaire", "nomination", "capital")


class Persona(BaseModel):
    """A job profile the agent should look for, as stored in settings."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    is_priority: bool = Field(default=False, alias="isPriority")


DEFAULT_PERSONAS: Final[tuple[Persona, ...]] = (
    Persona(name="Assistant(e) de direction", is_priority=True),
    Persona(name="Office Manager", is_priority=True),
    Persona(name="Responsable RH", is_priority=False),
    Persona(name="Directeur Général", is_priority=False),
    Persona(name="DAF / CFO", is_priority=False),
    Persona(name="Responsable Communication", is_priority=False),
    Persona(name="Responsable Achats", is_priority=False),
)


def resolve_persona_source(signal: Signal) -> str:
    """Pick the persona set matching where the signal was detected."""
    signal_type = (signal.signal_type or "").lower()
    source_name = (signal.source_name or "").lower()
    if "linkedin" in signal_type or "linkedin" in source_name:
        return "linkedin"
    if any(marker in signal_type for marker in _PAPPERS_SIGNAL_MARKERS) or "pappers" in source_name:
        return "pappers"
    return "presse"


def load_personas(repository: EnrichmentRepository, source: str) -> list[Persona]:
    """Personas configured under ``personas_<source>``, or the defaults."""
    raw = repository.get_setting(f"personas_{source}")
    if raw:
        try:
            decoded = json.loads(raw)
            if isinstance(decoded, list) and decoded:
                personas = [Persona.model_validate(entry) for entry in decoded]
                logger.info(
                    "enrichment.personas.loaded",
                    extra={"source": source, "count": len(personas)},
                )
                return personas
        except (ValueError, ValidationError):
            logger.warning("enrichment.personas.invalid", extra={"source": source})
    return list(DEFAULT_PERSONAS)


def search_keywords(personas: list[Persona]) -> str:
    """LinkedIn search expression derived from persona names."""
    simplified = (
        persona.name.lower().replace("(e)", "").replace("/", " OR ").strip()
        for persona in personas
    )
    return " OR ".join(keyword for keyword in simplified if keyword)


def build_agent_prompt(signal: Signal, personas: list[Persona]) -> str:
    """Research brief for the long-running Manus agent."""
    priority = [persona for persona in personas if persona.is_priority]
    secondary = [persona for persona in personas if not persona.is_priority]
    priority_lines = "\n".join(
        f"{index}. **{persona.name}** - contact PRIORITAIRE à cibler en premier"
        for index, persona in enumerate(priority, start=1)
    )
    secondary_lines = "\n".join(
        f"{index}. {persona.name}"
        for index, persona in enumerate(secondary, start=len(priority) + 1)
    )
    secondary_section = (
        f"\n## PROFILS SECONDAIRES (si prioritaires non trouvés)\n{secondary_lines}\n"
        if secondary_lines
        else ""
    )
    sector = signal.sector or "Non spécifié"
    return (
        "Tu es un expert en recherche de contacts B2B spécialisé dans l'identification "
        "des décideurs opérationnels.\n\n"
        "## ENTREPRISE CIBLE\n"
        f"- Nom: {signal.company_name}\n"
        f"- Secteur: {sector}\n"
        f"- Contexte: {signal.event_detail or signal.signal_type}\n\n"
        "## MISSION\n"
        "Trouve 3 à 5 contacts OPÉRATIONNELS qui décident réellement des achats de "
        "services et produits pour cette entreprise.\n\n"
        "## PROFILS PRIORITAIRES À CIBLER (par ordre de priorité)\n"
        f"{priority_lines}\n"
        f"{secondary_section}\n"
        "ÉVITER: CEO, DG, VP et \"Head of\" stratégiques qui ne gèrent pas les achats "
        "opérationnels.\n\n"
        "## RECHERCHE\n"
        f"Mots-clés LinkedIn: {search_keywords(personas)}\n"
        f"Entreprise: {signal.company_name}\n"
        "Complète les emails manquants au format prenom.nom@domaine (minuscules).\n\n"
        "## FORMAT DE RÉPONSE (JSON OBLIGATOIRE, écrit dans un fichier .json)\n"
        "{\n"
        '  "contacts": [\n'
        "    {\n"
        '      "full_name": "Prénom Nom",\n'
        '      "first_name": "Prénom",\n'
        '      "last_name": "Nom",\n'
        '      "job_title": "Titre exact",\n'
        '      "department": "Département",\n'
        '      "location": "Ville, Pays",\n'
        '      "email": "email@company.com",\n'
        '      "linkedin_url": "https://linkedin.com/in/username",\n'
        '      "is_priority_persona": true\n'
        "    }\n"
        "  ],\n"
        '  "company_info": {"website": "https://...", "industry": "Secteur", '
        '"employee_count": "Fourchette", "headquarters": "Ville"},\n'
        '  "search_method": "Méthode de recherche utilisée"\n'
        "}\n\n"
        "Si aucun contact n'est trouvé, renvoie \"contacts\": [], les champs de "
        "company_info à \"N/A\" et un champ \"error\" expliquant pourquoi "
        f"(entreprise {signal.company_name}, secteur {sector}).\n\n"
        "## IMPORTANT\n"
        "- Ne pose JAMAIS de questions, exécute directement la recherche\n"
        "- Retourne TOUJOURS un JSON valide\n"
        "- Minimum 3 contacts, maximum 5, priorité aux profils prioritaires"
    )


FALLBACK_SYSTEM_PROMPT: Final[str] = (
    "Tu génères des données JSON structurées. Réponds uniquement avec du JSON valide."
)


def build_fallback_prompt(signal: Signal, personas: list[Persona]) -> str:
    """Single-shot prompt for the synchronous text-generation fallback."""
    persona_lines = "\n".join(
        f"{index}. {persona.name}{' (PRIORITAIRE)' if persona.is_priority else ''}"
        for index, persona in enumerate(personas, start=1)
    )
    return (
        "Tu es un assistant qui génère des données de contacts professionnels réalistes "
        "pour une entreprise.\n\n"
        f"Entreprise: {signal.company_name}\n"
        f"Secteur: {signal.sector or 'Non spécifié'}\n"
        f"Taille estimée: {signal.estimated_size or 'Non spécifié'}\n"
        f"Type d'événement: {signal.signal_type}\n\n"
        f"PERSONAS CIBLES (par ordre de priorité):\n{persona_lines}\n\n"
        "Génère 3 à 5 contacts décideurs, en priorité les profils PRIORITAIRE, avec pour "
        "chacun: full_name, first_name, last_name, job_title, department, location, "
        "email_principal (prenom.nom@domaine.com), linkedin_url, is_priority_target "
        "(true pour un persona PRIORITAIRE) et priority_score (1 à 5).\n\n"
        'Réponds UNIQUEMENT avec un JSON valide contenant un tableau "contacts".'
    )
