"""Ticket endpoints: public submission and tracking, user and admin views."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Body, HTTPException, Query, status
from pydantic import EmailStr
from sqlalchemy.orm import Session

from helpdesk.api.v1.dependencies import (
    AdminUserDep,
    CaptchaStoreDep,
    ClientIpDep,
    CurrentUserDep,
    EmailServiceDep,
    RateLimiterDep,
    SessionDep,
)
from helpdesk.core.exceptions import CaptchaInvalidError
from helpdesk.core.settings import settings
from helpdesk.models.ticket import (
    CATEGORY_ACCOUNT_MANAGEMENT,
    CATEGORY_DOCUMENT_UPLOAD,
    CATEGORY_TROUBLESHOOTING,
    Ticket,
)
from helpdesk.models.user import User
from helpdesk.schemas import (
    CaptchaResponse,
    MessageResponse,
    RateLimitStatusResponse,
    TicketAdminUpdate,
    TicketCreatedResponse,
    TicketListResponse,
    TicketResponse,
    TrackTicketRequest,
)
from helpdesk.services import tickets as ticket_service
from helpdesk.services.captcha import CaptchaStore
from helpdesk.services.email import EmailService
from helpdesk.services.rate_limit import SubmissionRateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["tickets"])

TicketPayload = Annotated[dict[str, Any], Body()]
PageQuery = Annotated[int, Query(ge=1)]
LimitQuery = Annotated[int, Query(ge=1, le=100)]


def _captcha_answer(payload: dict[str, Any]) -> tuple[str, str]:
    """Pull the challenge id and answer out of a submission body."""
    captcha_id = payload.get("captchaId", payload.get("captcha_id"))
    captcha_code = payload.get("captchaCode", payload.get("captcha_code"))
    if not captcha_id or not captcha_code:
        raise CaptchaInvalidError("CAPTCHA verification is required")
    # The answer is compared verbatim; a number or padded string never matches.
    if not isinstance(captcha_id, str) or not isinstance(captcha_code, str):
        raise CaptchaInvalidError("Invalid or expired CAPTCHA")
    return captcha_id, captcha_code


def _submit_ticket(
    payload: dict[str, Any],
    category: str | None,
    *,
    db: Session,
    captcha_store: CaptchaStore,
    rate_limiter: SubmissionRateLimiter,
    email_service: EmailService,
    client_ip: str,
    background_tasks: BackgroundTasks,
) -> TicketCreatedResponse:
    """Gate, validate and store one public ticket submission.

    The CAPTCHA must be present before anything else is looked at. Field
    validation comes next so a typo does not burn the challenge; then the
    challenge is consumed and the (email, IP) allowance checked. Only a stored
    ticket counts against the allowance.
    """
    captcha_id, captcha_code = _captcha_answer(payload)
    form = ticket_service.parse_ticket_payload(payload, category)

    if not captcha_store.validate(captcha_id, captcha_code, client_ip):
        raise CaptchaInvalidError("Invalid or expired CAPTCHA")

    email = str(form.email)
    with rate_limiter.reserve(email, client_ip):
        rate_limiter.can_submit(email, client_ip)
        ticket = ticket_service.create_ticket(db, form)
        rate_limiter.record_submission(email, client_ip)

    background_tasks.add_task(email_service.send_ticket_confirmation, ticket)
    return TicketCreatedResponse(
        message="Ticket created successfully",
        ticket_id=ticket.id,
        tracking_id=ticket.tracking_id,
    )


@router.get("/generate-captcha", response_model=CaptchaResponse)
def generate_captcha(captcha_store: CaptchaStoreDep, client_ip: ClientIpDep) -> CaptchaResponse:
    """Issue a single-use CAPTCHA challenge."""
    issued = captcha_store.issue(client_ip)
    return CaptchaResponse(
        captcha_id=issued.challenge_id,
        captcha_code=issued.code if settings.captcha_expose_code else None,
    )


@router.get("/rate-limit-status", response_model=RateLimitStatusResponse)
def rate_limit_status(
    email: Annotated[EmailStr, Query()],
    rate_limiter: RateLimiterDep,
    client_ip: ClientIpDep,
) -> RateLimitStatusResponse:
    """Report the caller's remaining submission allowance for ``email``."""
    snapshot = rate_limiter.get_rate_limit_status(str(email), client_ip)
    return RateLimitStatusResponse(
        remaining_attempts=snapshot.remaining_attempts,
        is_blocked=snapshot.is_blocked,
        cooldown_remaining=snapshot.cooldown_remaining,
    )


@router.post("", response_model=TicketCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_ticket(
    payload: TicketPayload,
    db: SessionDep,
    captcha_store: CaptchaStoreDep,
    rate_limiter: RateLimiterDep,
    email_service: EmailServiceDep,
    client_ip: ClientIpDep,
    background_tasks: BackgroundTasks,
) -> TicketCreatedResponse:
    """Submit a ticket whose category is named in the body."""
    return _submit_ticket(
        payload,
        None,
        db=db,
        captcha_store=captcha_store,
        rate_limiter=rate_limiter,
        email_service=email_service,
        client_ip=client_ip,
        background_tasks=background_tasks,
    )


@router.post(
    "/troubleshooting",
    response_model=TicketCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_troubleshooting_ticket(
    payload: TicketPayload,
    db: SessionDep,
    captcha_store: CaptchaStoreDep,
    rate_limiter: RateLimiterDep,
    email_service: EmailServiceDep,
    client_ip: ClientIpDep,
    background_tasks: BackgroundTasks,
) -> TicketCreatedResponse:
    return _submit_ticket(
        payload,
        CATEGORY_TROUBLESHOOTING,
        db=db,
        captcha_store=captcha_store,
        rate_limiter=rate_limiter,
        email_service=email_service,
        client_ip=client_ip,
        background_tasks=background_tasks,
    )


@router.post(
    "/account-management",
    response_model=TicketCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_account_management_ticket(
    payload: TicketPayload,
    db: SessionDep,
    captcha_store: CaptchaStoreDep,
    rate_limiter: RateLimiterDep,
    email_service: EmailServiceDep,
    client_ip: ClientIpDep,
    background_tasks: BackgroundTasks,
) -> TicketCreatedResponse:
    return _submit_ticket(
        payload,
        CATEGORY_ACCOUNT_MANAGEMENT,
        db=db,
        captcha_store=captcha_store,
        rate_limiter=rate_limiter,
        email_service=email_service,
        client_ip=client_ip,
        background_tasks=background_tasks,
    )


@router.post(
    "/document-upload",
    response_model=TicketCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_document_upload_ticket(
    payload: TicketPayload,
    db: SessionDep,
    captcha_store: CaptchaStoreDep,
    rate_limiter: RateLimiterDep,
    email_service: EmailServiceDep,
    client_ip: ClientIpDep,
    background_tasks: BackgroundTasks,
) -> TicketCreatedResponse:
    return _submit_ticket(
        payload,
        CATEGORY_DOCUMENT_UPLOAD,
        db=db,
        captcha_store=captcha_store,
        rate_limiter=rate_limiter,
        email_service=email_service,
        client_ip=client_ip,
        background_tasks=background_tasks,
    )


@router.post("/track", response_model=TicketResponse)
def track_ticket(request: TrackTicketRequest, db: SessionDep) -> TicketResponse:
    """Look up a ticket by tracking id and the email it was filed with."""
    ticket = ticket_service.find_by_tracking(db, request.tracking_id, str(request.email))
    return ticket_service.to_ticket_response(ticket, include_updates=True)


def _owns(user: User, ticket: Ticket) -> bool:
    return ticket.user_id == user.id or ticket.email == user.email.lower()


@router.get("/my-tickets", response_model=TicketListResponse)
def list_my_tickets(
    current_user: CurrentUserDep,
    db: SessionDep,
    page: PageQuery = 1,
    limit: LimitQuery = 10,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> TicketListResponse:
    """List tickets filed with the caller's email address."""
    return ticket_service.list_tickets(
        db,
        page=page,
        limit=limit,
        status=status_filter,
        email=current_user.email,
    )


@router.get("/my-tickets/{ticket_id}", response_model=TicketResponse)
def get_my_ticket(ticket_id: int, current_user: CurrentUserDep, db: SessionDep) -> TicketResponse:
    ticket = ticket_service.get_ticket(db, ticket_id)
    if not _owns(current_user, ticket):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view this ticket",
        )
    return ticket_service.to_ticket_response(ticket, include_updates=True)


@router.get("", response_model=TicketListResponse)
def list_tickets(
    _admin: AdminUserDep,
    db: SessionDep,
    page: PageQuery = 1,
    limit: LimitQuery = 10,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    category: str | None = None,
    department: str | None = None,
    search: str | None = None,
) -> TicketListResponse:
    """List every ticket with optional filters (admin only)."""
    return ticket_service.list_tickets(
        db,
        page=page,
        limit=limit,
        status=status_filter,
        category=category,
        department=department,
        search=search,
    )


@router.get("/{ticket_id}", response_model=TicketResponse)
def get_ticket(ticket_id: int, _admin: AdminUserDep, db: SessionDep) -> TicketResponse:
    ticket = ticket_service.get_ticket(db, ticket_id)
    return ticket_service.to_ticket_response(ticket, include_updates=True)


@router.put("/{ticket_id}", response_model=TicketResponse)
def update_ticket(
    ticket_id: int,
    update: TicketAdminUpdate,
    admin: AdminUserDep,
    db: SessionDep,
    email_service: EmailServiceDep,
    background_tasks: BackgroundTasks,
) -> TicketResponse:
    """Edit the admin-managed fields of a ticket; other keys are ignored."""
    ticket = ticket_service.get_ticket(db, ticket_id)
    status_update = ticket_service.apply_admin_update(
        db, ticket, update, updated_by_id=admin.id
    )
    if status_update is not None:
        background_tasks.add_task(email_service.send_status_update, ticket, status_update)
    logger.info("ticket_updated", extra={"ticket_id": ticket.id, "admin_id": admin.id})
    return ticket_service.to_ticket_response(ticket, include_updates=True)


@router.delete("/{ticket_id}", response_model=MessageResponse)
def delete_ticket(ticket_id: int, admin: AdminUserDep, db: SessionDep) -> MessageResponse:
    ticket = ticket_service.get_ticket(db, ticket_id)
    ticket_service.delete_ticket(db, ticket)
    logger.info("ticket_deleted", extra={"ticket_id": ticket_id, "admin_id": admin.id})
    return MessageResponse(message="Ticket deleted successfully")
