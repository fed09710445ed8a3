"""Seed deterministic demo signals so the enrichment endpoints can be exercised locally."""

from __future__ import annotations

import argparse
import logging
from uuid import UUID

from sqlalchemy.engine.url import make_url
from sqlmodel import Session

from gourmet.config import Settings
from gourmet.core.database import create_database_engine
from gourmet.models.signal import Signal

logger = logging.getLogger("scripts.seed_signals")

DEMO_SIGNALS: tuple[dict[str, object], ...] = (
    {
        "id": UUID("5e1a0000-0000-0000-0000-000000000001"),
        "company_name": "Acme Traiteur",
        "signal_type": "levee",
        "source_name": "Les Echos",
        "sector": "Restauration",
        "estimated_size": "50-200",
        "event_detail": "Levée de fonds de 4M€ pour ouvrir trois nouveaux sites.",
        "score": 4,
    },
    {
        "id": UUID("5e1a0000-0000-0000-0000-000000000002"),
        "company_name": "Maison Delorme",
        "signal_type": "anniversaire",
        "source_name": "Pappers",
        "sector": "Luxe",
        "estimated_size": "200-500",
        "event_detail": "La société fête ses 50 ans cette année.",
        "score": 5,
    },
    {
        "id": UUID("5e1a0000-0000-0000-0000-000000000003"),
        "company_name": "Nova Conseil",
        "signal_type": "linkedin_engagement",
        "source_name": "LinkedIn",
        "sector": "Conseil",
        "estimated_size": "10-50",
        "event_detail": "Engagement sur une publication concernant un séminaire d'équipe.",
        "score": 3,
    },
)


def _render_database_url(url: str) -> str:
    try:
        return make_url(url).render_as_string(hide_password=True)
    except Exception:
        return "<invalid DATABASE_URL>"


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed GOURMET demo signals.")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Override DATABASE_URL (falls back to .env).",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables before seeding (local SQLite convenience).",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Replace demo signals that already exist.",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    local_settings = Settings()
    database_url = args.database_url or local_settings.database_url
    if not database_url:
        raise RuntimeError("DATABASE_URL is required to seed signals.")
    logger.info("Using DATABASE_URL=%s", _render_database_url(database_url))

    engine = create_database_engine(database_url, auto_create_schema=args.create_schema)
    seeded = 0
    try:
        with Session(engine, expire_on_commit=False) as session:
            for payload in DEMO_SIGNALS:
                signal_id = payload["id"]
                existing = session.get(Signal, signal_id)
                if existing is not None and not args.force:
                    logger.info("seed_signals.skipped", extra={"signal_id": str(signal_id)})
                    continue
                if existing is not None:
                    session.delete(existing)
                    session.flush()
                session.add(Signal(**payload))
                seeded += 1
            session.commit()
    finally:
        engine.dispose()
    logger.info("seed_signals.complete", extra={"count": seeded})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
