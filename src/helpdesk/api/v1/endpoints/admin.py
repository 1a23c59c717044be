"""Administrator dashboard endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, status

from helpdesk.api.v1.dependencies import AdminUserDep, EmailServiceDep, SessionDep
from helpdesk.schemas.common import MessageResponse
from helpdesk.schemas.stats import DashboardStats, EmailTestRequest
from helpdesk.schemas.ticket import StatusUpdateRequest, TicketListResponse, TicketResponse
from helpdesk.services import tickets as ticket_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=DashboardStats)
def get_stats(_admin: AdminUserDep, db: SessionDep) -> DashboardStats:
    """Return ticket totals and distributions for the dashboard."""
    return DashboardStats.model_validate(ticket_service.ticket_stats(db))


@router.get("/tickets", response_model=TicketListResponse)
def list_tickets(
    _admin: AdminUserDep,
    db: SessionDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    category: str | None = None,
    department: str | None = None,
    search: str | None = None,
) -> TicketListResponse:
    return ticket_service.list_tickets(
        db,
        page=page,
        limit=limit,
        status=status_filter,
        category=category,
        department=department,
        search=search,
    )


@router.put("/tickets/{ticket_id}/status", response_model=TicketResponse)
def update_ticket_status(
    ticket_id: int,
    request: StatusUpdateRequest,
    admin: AdminUserDep,
    db: SessionDep,
    email_service: EmailServiceDep,
    background_tasks: BackgroundTasks,
) -> TicketResponse:
    """Move a ticket to a new status and notify the submitter."""
    ticket = ticket_service.get_ticket(db, ticket_id)
    update = ticket_service.change_status(
        db,
        ticket,
        request.status,
        comment=request.comment,
        updated_by_id=admin.id,
    )
    background_tasks.add_task(email_service.send_status_update, ticket, update)
    return ticket_service.to_ticket_response(ticket, include_updates=True)


@router.post("/email/test", response_model=MessageResponse)
def send_test_email(
    request: EmailTestRequest,
    _admin: AdminUserDep,
    email_service: EmailServiceDep,
    background_tasks: BackgroundTasks,
) -> MessageResponse:
    """Queue a message that exercises the SMTP settings."""
    if not email_service.enabled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email notifications are not configured",
        )
    background_tasks.add_task(email_service.send_test_email, str(request.recipient))
    logger.info("test_email_queued", extra={"recipient": str(request.recipient)})
    return MessageResponse(message=f"Test email queued for {request.recipient}")
