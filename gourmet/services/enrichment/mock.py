"""Deterministic placeholder contacts used when no AI provider is configured."""

from __future__ import annotations

import random
import re
from typing import Any, Final

from gourmet.models.signal import Signal
from gourmet.services.enrichment.personas import Persona

FIRST_NAMES: Final[tuple[str, ...]] = (
    "Jean", "Marie", "Pierre", "Sophie", "François", "Claire", "Nicolas", "Isabelle",
)
LAST_NAMES: Final[tuple[str, ...]] = (
    "Dupont", "Martin", "Bernard", "Petit", "Robert", "Richard", "Durand", "Leroy",
)
CITIES: Final[tuple[str, ...]] = ("Paris", "Lyon", "Marseille", "Toulouse", "Bordeaux")

MIN_CONTACTS: Final[int] = 3
MAX_CONTACTS: Final[int] = 5

_ASCII_FOLD = str.maketrans("àâäçéèêëîïôöùûüÿ", "aaaceeeeiioouuuy")


def company_domain(company_name: str) -> str:
    slug = re.sub(r"[^a-z0-9]", "", company_name.lower().translate(_ASCII_FOLD))
    return f"{slug or 'entreprise'}.com"


def _email_local(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.lower().translate(_ASCII_FOLD))


def generate_mock_contacts(signal: Signal, personas: list[Persona]) -> list[dict[str, Any]]:
    """Synthesize 3 to 5 contacts, seeded by the signal id so reruns are stable."""
    rng = random.Random(str(signal.id))
    roster = personas or [Persona(name="Office Manager", is_priority=True)]
    count = min(MAX_CONTACTS, max(MIN_CONTACTS, len(roster)))
    domain = company_domain(signal.company_name)

    contacts: list[dict[str, Any]] = []
    for index in range(count):
        persona = roster[index % len(roster)]
        first_name = rng.choice(FIRST_NAMES)
        last_name = rng.choice(LAST_NAMES)
        local_first, local_last = _email_local(first_name), _email_local(last_name)
        contacts.append(
            {
                "full_name": f"{first_name} {last_name}",
                "first_name": first_name,
                "last_name": last_name,
                "job_title": persona.name,
                "department": "Direction" if persona.is_priority else "Opérations",
                "location": rng.choice(CITIES),
                "email_principal": f"{local_first}.{local_last}@{domain}",
                "linkedin_url": (
                    f"https://www.linkedin.com/in/{local_first}-{local_last}-{rng.randrange(16**6):06x}"
                ),
                "is_priority_target": persona.is_priority,
                "priority_score": 5 if persona.is_priority else 3,
            }
        )
    return contacts
