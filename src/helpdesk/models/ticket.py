# src/helpdesk/models/ticket.py
"""Models for help-desk tickets and their status history."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from helpdesk.db.session import Base
from helpdesk.db.time import utcnow

CATEGORY_TROUBLESHOOTING = "TROUBLESHOOTING"
CATEGORY_ACCOUNT_MANAGEMENT = "ACCOUNT_MANAGEMENT"
CATEGORY_DOCUMENT_UPLOAD = "DOCUMENT_UPLOAD"
CATEGORIES = (
    CATEGORY_TROUBLESHOOTING,
    CATEGORY_ACCOUNT_MANAGEMENT,
    CATEGORY_DOCUMENT_UPLOAD,
)

STATUS_PENDING = "PENDING"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_RESOLVED = "RESOLVED"
STATUS_CLOSED = "CLOSED"
STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_RESOLVED, STATUS_CLOSED)

PRIORITIES = ("LOW", "MEDIUM", "HIGH", "URGENT")
DEFAULT_PRIORITY = "MEDIUM"


class Ticket(Base):
    """A help-desk request filed through one of the public forms.

    Contact fields are shared by every category; the category-specific form
    payload lives in ``details``.
    """

    __tablename__ = "ticket"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Assigned right after the first flush because it embeds the primary key.
    tracking_id: Mapped[str | None] = mapped_column(
        String(32), unique=True, index=True, nullable=True
    )
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=STATUS_PENDING, index=True
    )
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default=DEFAULT_PRIORITY)

    name: Mapped[str] = mapped_column(Text, nullable=False)
    # Stored lower-cased; tracking lookups compare against the normalized form.
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    department: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Filled in by administrators while working the ticket.
    completed_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    diagnosis: Mapped[str | None] = mapped_column(Text, nullable=True)
    action_taken: Mapped[str | None] = mapped_column(Text, nullable=True)
    recommendations: Mapped[str | None] = mapped_column(Text, nullable=True)
    response: Mapped[str | None] = mapped_column(Text, nullable=True)

    user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    updates: Mapped[list[TicketUpdate]] = relationship(
        "TicketUpdate",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketUpdate.id.desc()",
    )


class TicketUpdate(Base):
    """Audit row written whenever an administrator changes a ticket's status."""

    __tablename__ = "ticket_update"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("ticket.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    previous_status: Mapped[str] = mapped_column(String(16), nullable=False)
    new_status: Mapped[str] = mapped_column(String(16), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_by_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    ticket: Mapped[Ticket] = relationship("Ticket", back_populates="updates")
