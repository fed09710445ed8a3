"""API endpoints driving signal enrichment and contact outreach tracking."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from gourmet.models.status import OutreachStatus
from gourmet.services.enrichment import EnrichmentService, get_enrichment_service
from gourmet.services.enrichment.errors import EnrichmentError, SignalNotFoundError

router = APIRouter()
logger = logging.getLogger(__name__)


class EnrichmentRequestBody(BaseModel):
    signal_id: str | None = Field(default=None, description="Signal to enrich.")


class StatusCheckBody(BaseModel):
    signal_id: str | None = Field(default=None, description="Signal whose task to check.")
    force: bool = Field(
        default=False,
        description="Re-run extraction even when the enrichment is already completed.",
    )


class OutreachStatusBody(BaseModel):
    status: OutreachStatus


class EnrichmentRequestResponse(BaseModel):
    success: bool
    message: str
    status: str
    enrichment_id: str | None = None
    manus_task_id: str | None = None
    manus_task_url: str | None = None
    contacts_count: int | None = None
    source: str | None = None
    already_enriched: bool = False


class StatusCheckResponse(BaseModel):
    status: str
    message: str
    contacts_count: int | None = None
    inserted_count: int | None = None
    manus_task_id: str | None = None
    manus_task_url: str | None = None
    manus_status: str | None = None
    search_method: str | None = None
    company_info: dict[str, Any] | None = None
    error: str | None = None


class ContactView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    enrichment_id: UUID | None = None
    signal_id: UUID
    full_name: str
    first_name: str | None = None
    last_name: str | None = None
    job_title: str | None = None
    department: str | None = None
    location: str | None = None
    email_principal: str | None = None
    email_alternatif: str | None = None
    phone: str | None = None
    linkedin_url: str | None = None
    is_priority_target: bool
    priority_score: int
    outreach_status: str
    created_at: datetime


class EnrichmentView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    signal_id: UUID
    company_name: str
    status: str | None = None
    enrichment_source: str | None = None
    domain: str | None = None
    website: str | None = None
    industry: str | None = None
    employee_count: str | None = None
    headquarters_location: str | None = None
    error_message: str | None = None
    task_id: str | None = None
    task_url: str | None = None
    updated_at: datetime


class SignalEnrichmentResponse(BaseModel):
    signal_id: str
    enrichment_status: str | None = None
    enrichment: EnrichmentView | None = None
    contacts: list[ContactView] = Field(default_factory=list)


def _require_signal_id(signal_id: str | None) -> str:
    if not signal_id or not signal_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="signal_id is required")
    return signal_id.strip()


@router.post(
    "/enrichment-request",
    response_model=EnrichmentRequestResponse,
    response_model_exclude_none=True,
)
def request_enrichment(
    payload: EnrichmentRequestBody,
    service: EnrichmentService = Depends(get_enrichment_service),
) -> EnrichmentRequestResponse:
    """Start enrichment for a signal, or report the existing run."""
    signal_id = _require_signal_id(payload.signal_id)
    try:
        outcome = service.requestor.request_enrichment(signal_id)
    except EnrichmentError as exc:
        logger.error("enrichment.api_error", extra={"signal_id": signal_id, "code": exc.code})
        raise HTTPException(status_code=_map_error_code(exc.code), detail=str(exc)) from exc
    return EnrichmentRequestResponse(
        success=outcome.success,
        message=outcome.message,
        status=outcome.status,
        enrichment_id=outcome.enrichment_id,
        manus_task_id=outcome.task_id,
        manus_task_url=outcome.task_url,
        contacts_count=outcome.contacts_count,
        source=outcome.source,
        already_enriched=outcome.already_enriched,
    )


@router.post(
    "/status-check",
    response_model=StatusCheckResponse,
    response_model_exclude_none=True,
)
def check_status(
    payload: StatusCheckBody,
    service: EnrichmentService = Depends(get_enrichment_service),
) -> StatusCheckResponse:
    """Poll the Manus task behind a signal; ``force`` resyncs a completed run."""
    signal_id = _require_signal_id(payload.signal_id)
    try:
        report = service.poller.check_status(signal_id, force=payload.force)
    except EnrichmentError as exc:
        logger.error("enrichment.api_error", extra={"signal_id": signal_id, "code": exc.code})
        raise HTTPException(status_code=_map_error_code(exc.code), detail=str(exc)) from exc
    return StatusCheckResponse(
        status=report.status,
        message=report.message,
        contacts_count=report.contacts_count,
        inserted_count=report.inserted_count,
        manus_task_id=report.task_id,
        manus_task_url=report.task_url,
        manus_status=report.manus_status,
        search_method=report.search_method,
        company_info=report.company_info,
        error=report.error,
    )


@router.get("/signals/{signal_id}/enrichment", response_model=SignalEnrichmentResponse)
def get_signal_enrichment(
    signal_id: UUID,
    service: EnrichmentService = Depends(get_enrichment_service),
) -> SignalEnrichmentResponse:
    """Enrichment record and contacts for a signal, best targets first."""
    key = str(signal_id)
    try:
        signal = service.repository.get_signal(key)
        if signal is None:
            raise SignalNotFoundError(key)
        record = service.repository.get_enrichment(key)
        contacts = service.repository.list_contacts(key)
    except EnrichmentError as exc:
        raise HTTPException(status_code=_map_error_code(exc.code), detail=str(exc)) from exc
    return SignalEnrichmentResponse(
        signal_id=key,
        enrichment_status=signal.enrichment_status,
        enrichment=EnrichmentView.model_validate(record) if record else None,
        contacts=[ContactView.model_validate(contact) for contact in contacts],
    )


@router.patch("/contacts/{contact_id}/outreach-status", response_model=ContactView)
def update_outreach_status(
    contact_id: UUID,
    payload: OutreachStatusBody,
    service: EnrichmentService = Depends(get_enrichment_service),
) -> ContactView:
    try:
        contact = service.repository.set_contact_outreach_status(
            str(contact_id), payload.status.value
        )
    except EnrichmentError as exc:
        raise HTTPException(status_code=_map_error_code(exc.code), detail=str(exc)) from exc
    logger.info(
        "contacts.outreach_status.updated",
        extra={"contact_id": str(contact_id), "status": payload.status.value},
    )
    return ContactView.model_validate(contact)


def _map_error_code(code: str) -> int:
    if code.startswith("404_"):
        return status.HTTP_404_NOT_FOUND
    if code == "409_INVALID_TRANSITION":
        return status.HTTP_409_CONFLICT
    if code == "503_PROVIDER_UNAVAILABLE":
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR
