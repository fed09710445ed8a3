"""Provider credential resolution performed once at the service boundary."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from gourmet.config import Settings
from gourmet.services.enrichment.repositories import EnrichmentRepository

logger = logging.getLogger(__name__)

MANUS_SETTING_KEY = "manus_api_key"
LOVABLE_SETTING_KEY = "lovable_api_key"


@dataclass(frozen=True)
class ProviderCredentials:
    manus_api_key: str | None = None
    lovable_api_key: str | None = None


def resolve_provider_credentials(
    config: Settings, repository: EnrichmentRepository | None = None
) -> ProviderCredentials:
    """Environment values win; the dashboard settings table fills the gaps."""
    manus_key = config.manus_api_key
    lovable_key = config.lovable_api_key
    if repository is not None:
        if not manus_key:
            manus_key = repository.get_setting(MANUS_SETTING_KEY)
        if not lovable_key:
            lovable_key = repository.get_setting(LOVABLE_SETTING_KEY)

    credentials = ProviderCredentials(
        manus_api_key=manus_key or None,
        lovable_api_key=lovable_key or None,
    )
    logger.info(
        "enrichment.credentials.resolved",
        extra={
            "manus": bool(credentials.manus_api_key),
            "lovable": bool(credentials.lovable_api_key),
        },
    )
    return credentials
