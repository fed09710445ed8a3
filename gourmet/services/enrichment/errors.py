"""Shared error classes for the enrichment workflow and its repositories."""

from __future__ import annotations


class EnrichmentError(RuntimeError):
    """Base exception raised by the enrichment workflow."""

    def __init__(self, message: str, code: str = "ENRICHMENT_ERROR") -> None:
        super().__init__(message)
        self.code = code


class SignalNotFoundError(EnrichmentError):
    """Raised when the requested signal does not exist."""

    def __init__(self, signal_id: str) -> None:
        super().__init__(f"Signal not found: {signal_id}", code="404_SIGNAL_NOT_FOUND")


class EnrichmentNotFoundError(EnrichmentError):
    """Raised when a signal has no enrichment record yet."""

    def __init__(self, signal_id: str) -> None:
        super().__init__(
            f"Enrichment record not found for signal: {signal_id}",
            code="404_ENRICHMENT_NOT_FOUND",
        )


class ContactNotFoundError(EnrichmentError):
    """Raised when a contact id does not resolve."""

    def __init__(self, contact_id: str) -> None:
        super().__init__(f"Contact not found: {contact_id}", code="404_CONTACT_NOT_FOUND")


class ProviderUnavailableError(EnrichmentError):
    """Raised when a provider tier has no credential or its call failed."""

    def __init__(self, message: str, *, provider: str) -> None:
        super().__init__(message, code="503_PROVIDER_UNAVAILABLE")
        self.provider = provider


class InvalidStatusTransitionError(EnrichmentError):
    """Raised when a status write would move the state machine backwards."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Illegal enrichment status transition {current} -> {target}",
            code="409_INVALID_TRANSITION",
        )
        self.current = current
        self.target = target


class EnrichmentPersistenceError(EnrichmentError):
    """Raised when the repository fails to read or write enrichment rows."""
