"""Aggregate statistics schemas for the admin dashboard."""

from pydantic import EmailStr

from .common import ApiModel


class StatusCount(ApiModel):
    status: str
    count: int


class CategoryCount(ApiModel):
    category: str
    count: int


class DashboardStats(ApiModel):
    """Ticket counts for the admin dashboard."""

    total_tickets: int
    pending_tickets: int
    in_progress_tickets: int
    resolved_tickets: int
    closed_tickets: int
    status_distribution: list[StatusCount]
    category_distribution: list[CategoryCount]


class EmailTestRequest(ApiModel):
    """Recipient for an SMTP configuration check."""

    recipient: EmailStr
