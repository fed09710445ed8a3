"""Enrichment workflow: request, poll, normalize and persist contacts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from gourmet.clients.lovable import ChatClient, LovableChatClient
from gourmet.clients.manus import ManusClient
from gourmet.config import Settings, settings
from gourmet.services.enrichment.credentials import (
    ProviderCredentials,
    resolve_provider_credentials,
)
from gourmet.services.enrichment.persister import ContactPersister
from gourmet.services.enrichment.poller import TaskStatusPoller
from gourmet.services.enrichment.repositories import (
    EnrichmentRepository,
    build_enrichment_repository,
)
from gourmet.services.enrichment.requestor import EnrichmentRequestor
from gourmet.services.enrichment.scheduler import EnrichmentPollingLoop

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentService:
    """Requestor and poller wired to one repository and one set of credentials."""

    repository: EnrichmentRepository
    requestor: EnrichmentRequestor
    poller: TaskStatusPoller
    credentials: ProviderCredentials
    manus: ManusClient | None = None

    def polling_loop(self, **kwargs) -> EnrichmentPollingLoop:
        kwargs.setdefault("interval_seconds", settings.enrichment_poll_interval_seconds)
        return EnrichmentPollingLoop(self.poller, **kwargs)

    def close(self) -> None:
        if self.manus is not None:
            self.manus.close()


def build_enrichment_service(
    *,
    repository: EnrichmentRepository | None = None,
    credentials: ProviderCredentials | None = None,
    manus: ManusClient | None = None,
    chat: ChatClient | None = None,
    config: Settings | None = None,
) -> EnrichmentService:
    """Resolve credentials once and build the clients they unlock."""
    config = config or settings
    repository = repository or build_enrichment_repository()
    credentials = credentials or resolve_provider_credentials(config, repository)
    if manus is None and credentials.manus_api_key:
        manus = ManusClient(
            credentials.manus_api_key,
            base_url=config.manus_base_url,
            task_base_url=config.manus_task_base_url,
            agent_profile=config.manus_agent_profile,
            task_mode=config.manus_task_mode,
            timeout=config.manus_timeout_seconds,
        )
    if chat is None and credentials.lovable_api_key:
        chat = LovableChatClient(
            credentials.lovable_api_key,
            base_url=config.lovable_base_url,
            model=config.lovable_model,
            temperature=config.lovable_temperature,
        )

    persister = ContactPersister(repository)
    return EnrichmentService(
        repository=repository,
        requestor=EnrichmentRequestor(repository, manus=manus, chat=chat, persister=persister),
        poller=TaskStatusPoller(
            repository,
            manus=manus,
            persister=persister,
            task_ttl=timedelta(hours=config.manus_task_ttl_hours),
        ),
        credentials=credentials,
        manus=manus,
    )


_SERVICE_INSTANCE: EnrichmentService | None = None


def get_enrichment_service() -> EnrichmentService:
    """Singleton accessor used by API routes."""
    global _SERVICE_INSTANCE  # noqa: PLW0603
    if _SERVICE_INSTANCE is None:
        _SERVICE_INSTANCE = build_enrichment_service()
    return _SERVICE_INSTANCE


def reset_enrichment_service() -> None:
    """Drop the cached service so the next access rebuilds it."""
    global _SERVICE_INSTANCE  # noqa: PLW0603
    if _SERVICE_INSTANCE is not None:
        _SERVICE_INSTANCE.close()
    _SERVICE_INSTANCE = None
