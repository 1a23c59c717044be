"""Ticket rules and persistence helpers."""
from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from helpdesk.core.exceptions import NotFoundError, PersistenceError, TicketValidationError
from helpdesk.core.settings import settings
from helpdesk.db.time import utcnow
from helpdesk.models.ticket import (
    CATEGORIES,
    CATEGORY_ACCOUNT_MANAGEMENT,
    CATEGORY_DOCUMENT_UPLOAD,
    CATEGORY_TROUBLESHOOTING,
    STATUSES,
    Ticket,
    TicketUpdate,
)
from helpdesk.schemas.common import Pagination
from helpdesk.schemas.ticket import (
    AccountManagementTicketCreate,
    CategoryDetails,
    DocumentUploadTicketCreate,
    TicketAdminUpdate,
    TicketCreate,
    TicketListResponse,
    TicketResponse,
    TicketUpdateEntry,
    TroubleshootingTicketCreate,
)

logger = logging.getLogger(__name__)

TRACKING_ID_RE = re.compile(r"^\d{8}-\d+$")

CREATE_SCHEMAS: dict[str, type[TicketCreate]] = {
    CATEGORY_TROUBLESHOOTING: TroubleshootingTicketCreate,
    CATEGORY_ACCOUNT_MANAGEMENT: AccountManagementTicketCreate,
    CATEGORY_DOCUMENT_UPLOAD: DocumentUploadTicketCreate,
}

# Columns any administrator edit may touch.
ADMIN_COLUMNS = (
    "status",
    "priority",
    "completed_by",
    "diagnosis",
    "action_taken",
    "recommendations",
    "response",
)

# Keys inside ``Ticket.details`` that may be edited, per category.
ADMIN_DETAIL_KEYS: dict[str, tuple[str, ...]] = {
    CATEGORY_TROUBLESHOOTING: (
        "specific_problem",
        "type_of_equipment",
        "model_of_equipment",
        "serial_no",
    ),
    CATEGORY_ACCOUNT_MANAGEMENT: ("account_type", "reason"),
    CATEGORY_DOCUMENT_UPLOAD: (
        "document_title",
        "document_type",
        "document_description",
        "files",
    ),
}

_CONTACT_FIELDS = {"category", "name", "email", "department", "priority"}


def generate_tracking_id(ticket_id: int, created_at: datetime) -> str:
    """Return the public tracking id ``YYYYMMDD-<ticket_id>``."""
    return f"{created_at:%Y%m%d}-{ticket_id}"


def is_valid_tracking_id(value: str) -> bool:
    return bool(TRACKING_ID_RE.match(value))


def format_validation_errors(err: ValidationError) -> list[dict[str, str]]:
    """Flatten a pydantic error into one ``{field, message}`` per problem."""
    errors: list[dict[str, str]] = []
    for item in err.errors():
        field = ".".join(str(part) for part in item.get("loc", ()))
        message = str(item.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": field or "__root__", "message": message})
    return errors


def parse_ticket_payload(payload: dict[str, Any], category: str | None = None) -> TicketCreate:
    """Validate a raw form payload against its category schema.

    Args:
        payload: Decoded JSON body (CAPTCHA keys may be present and are ignored).
        category: Category fixed by the route; falls back to ``payload["category"]``.

    Returns:
        The validated category-specific model.

    Raises:
        TicketValidationError: Unknown category, or any field invalid. Every
            offending field is listed.
    """
    category = category or payload.get("category")
    schema = CREATE_SCHEMAS.get(category) if isinstance(category, str) else None
    if schema is None:
        raise TicketValidationError(
            [{"field": "category", "message": "Invalid ticket category"}],
            message="Invalid ticket category",
        )
    data = dict(payload)
    data["category"] = category
    try:
        return schema.model_validate(data)
    except ValidationError as err:
        raise TicketValidationError(format_validation_errors(err)) from err


def _resolve_location(form: TroubleshootingTicketCreate) -> str | None:
    if form.location_type == "SCHOOL":
        return form.school
    if form.location_type == "OFFICE":
        return settings.default_office_location
    return form.location


def build_ticket(form: TicketCreate, *, user_id: int | None = None) -> Ticket:
    """Map a validated form onto a new (unsaved) Ticket row."""
    details = form.model_dump(
        mode="json",
        exclude=_CONTACT_FIELDS | {"location", "location_type", "school"},
    )
    location = _resolve_location(form) if isinstance(form, TroubleshootingTicketCreate) else None
    return Ticket(
        category=form.category,
        name=form.name,
        email=str(form.email).lower(),
        department=form.department,
        priority=form.priority,
        location=location,
        details=details,
        user_id=user_id,
        created_at=utcnow(),
    )


def create_ticket(db: Session, form: TicketCreate, *, user_id: int | None = None) -> Ticket:
    """Persist a ticket and assign its tracking id.

    Raises:
        PersistenceError: If the database rejects the insert.
    """
    ticket = build_ticket(form, user_id=user_id)
    try:
        db.add(ticket)
        db.flush()
        ticket.tracking_id = generate_tracking_id(ticket.id, ticket.created_at)
        db.commit()
    except SQLAlchemyError as err:
        db.rollback()
        logger.exception("ticket_create_failed", extra={"category": form.category})
        raise PersistenceError("Failed to create ticket") from err
    db.refresh(ticket)
    logger.info(
        "ticket_created",
        extra={"ticket_id": ticket.id, "tracking_id": ticket.tracking_id},
    )
    return ticket


def category_details(ticket: Ticket) -> CategoryDetails:
    """Summarise the category payload under a human-readable heading."""
    details = ticket.details or {}
    if ticket.category == CATEGORY_TROUBLESHOOTING:
        return CategoryDetails(
            type="Technical Support",
            details={
                "location": ticket.location,
                "date_of_request": details.get("date_of_request"),
                "equipment": details.get("type_of_equipment"),
                "model": details.get("model_of_equipment"),
                "serial_no": details.get("serial_no"),
                "problem": details.get("specific_problem"),
            },
        )
    if ticket.category == CATEGORY_ACCOUNT_MANAGEMENT:
        return CategoryDetails(
            type="Account Management",
            details={
                "request_type": details.get("type"),
                "account_type": details.get("account_type"),
                "position": details.get("position"),
                "employee_id": details.get("employee_id"),
                "reason": details.get("reason"),
            },
        )
    if ticket.category == CATEGORY_DOCUMENT_UPLOAD:
        return CategoryDetails(
            type="Document Processing",
            details={
                "title": details.get("document_title"),
                "document_type": details.get("document_type"),
                "description": details.get("document_description"),
                "files": details.get("files", []),
            },
        )
    return CategoryDetails()


def to_ticket_response(ticket: Ticket, *, include_updates: bool = False) -> TicketResponse:
    """Convert a Ticket ORM instance to an API schema."""
    return TicketResponse(
        id=ticket.id,
        tracking_id=ticket.tracking_id,
        category=ticket.category,
        status=ticket.status,
        priority=ticket.priority,
        name=ticket.name,
        email=ticket.email,
        department=ticket.department,
        location=ticket.location,
        details=dict(ticket.details or {}),
        completed_by=ticket.completed_by,
        diagnosis=ticket.diagnosis,
        action_taken=ticket.action_taken,
        recommendations=ticket.recommendations,
        response=ticket.response,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
        category_specific_details=category_details(ticket),
        updates=(
            [TicketUpdateEntry.model_validate(update) for update in ticket.updates]
            if include_updates
            else []
        ),
    )


def get_ticket(db: Session, ticket_id: int) -> Ticket:
    """Return a ticket by primary key or raise NotFoundError."""
    ticket = db.get(Ticket, ticket_id)
    if ticket is None:
        raise NotFoundError("Ticket not found")
    return ticket


def find_by_tracking(db: Session, tracking_id: str, email: str) -> Ticket:
    """Return the ticket matching both tracking id and submitter email."""
    ticket = (
        db.query(Ticket)
        .filter(
            Ticket.tracking_id == tracking_id,
            Ticket.email == email.strip().lower(),
        )
        .first()
    )
    if ticket is None:
        raise NotFoundError("No ticket found with the provided tracking ID and email")
    return ticket


def list_tickets(
    db: Session,
    *,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    category: str | None = None,
    department: str | None = None,
    search: str | None = None,
    email: str | None = None,
) -> TicketListResponse:
    """Filter and paginate tickets, newest first."""
    query = db.query(Ticket)
    if status:
        query = query.filter(Ticket.status == status)
    if category:
        query = query.filter(Ticket.category == category)
    if department:
        query = query.filter(Ticket.department == department)
    if email:
        query = query.filter(Ticket.email == email.strip().lower())
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Ticket.name.ilike(pattern),
                Ticket.email.ilike(pattern),
                Ticket.tracking_id.ilike(pattern),
                Ticket.department.ilike(pattern),
            )
        )

    total = query.count()
    rows = (
        query.order_by(Ticket.created_at.desc(), Ticket.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return TicketListResponse(
        items=[to_ticket_response(row) for row in rows],
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )


def apply_admin_update(
    db: Session,
    ticket: Ticket,
    update: TicketAdminUpdate,
    *,
    updated_by_id: int | None = None,
) -> TicketUpdate | None:
    """Apply only the fields administrators may edit for this ticket's category.

    Explicit nulls are ignored. A status change goes through
    :func:`change_status` so it lands in the ticket's history; the resulting
    :class:`TicketUpdate` is returned, or ``None`` when the status is unchanged.
    """
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    new_status = changes.pop("status", None)
    for column in ADMIN_COLUMNS:
        if column in changes:
            setattr(ticket, column, changes[column])

    allowed_keys = ADMIN_DETAIL_KEYS.get(ticket.category, ())
    detail_changes = {key: changes[key] for key in allowed_keys if key in changes}
    if detail_changes:
        # Reassign so SQLAlchemy notices the JSON column changed.
        ticket.details = {**(ticket.details or {}), **detail_changes}

    db.commit()
    db.refresh(ticket)

    if new_status is not None and new_status != ticket.status:
        return change_status(db, ticket, new_status, updated_by_id=updated_by_id)
    return None


def change_status(
    db: Session,
    ticket: Ticket,
    new_status: str,
    *,
    comment: str | None = None,
    updated_by_id: int | None = None,
) -> TicketUpdate:
    """Move a ticket to ``new_status`` and record the transition."""
    if new_status not in STATUSES:
        raise TicketValidationError(
            [{"field": "status", "message": f"Must be one of: {', '.join(STATUSES)}"}],
            message="Invalid status",
        )
    update = TicketUpdate(
        ticket_id=ticket.id,
        previous_status=ticket.status,
        new_status=new_status,
        comment=comment,
        updated_by_id=updated_by_id,
        created_at=utcnow(),
    )
    ticket.status = new_status
    db.add(update)
    db.commit()
    db.refresh(ticket)
    db.refresh(update)
    logger.info(
        "ticket_status_changed",
        extra={
            "ticket_id": ticket.id,
            "previous_status": update.previous_status,
            "new_status": new_status,
        },
    )
    return update


def delete_ticket(db: Session, ticket: Ticket) -> None:
    db.delete(ticket)
    db.commit()


def ticket_stats(db: Session) -> dict[str, Any]:
    """Aggregate counts for the admin dashboard."""
    by_status = dict(
        db.query(Ticket.status, func.count(Ticket.id)).group_by(Ticket.status).all()
    )
    by_category = dict(
        db.query(Ticket.category, func.count(Ticket.id)).group_by(Ticket.category).all()
    )
    return {
        "total_tickets": sum(by_status.values()),
        "pending_tickets": by_status.get("PENDING", 0),
        "in_progress_tickets": by_status.get("IN_PROGRESS", 0),
        "resolved_tickets": by_status.get("RESOLVED", 0),
        "closed_tickets": by_status.get("CLOSED", 0),
        "status_distribution": [
            {"status": status, "count": by_status[status]}
            for status in STATUSES
            if status in by_status
        ],
        "category_distribution": [
            {"category": category, "count": by_category[category]}
            for category in CATEGORIES
            if category in by_category
        ],
    }
